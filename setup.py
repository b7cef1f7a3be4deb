from setuptools import setup, find_packages

setup(
    name='luciadmin-connector-py',
    version='0.1.0',
    description='Administration of LUCIDAC instruments over the network or a serial port, '
                'with zeroconf discovery and a websocket proxy for the web GUI.',
    url='',
    author='',
    author_email='',
    license='LGPL',
    package_dir={'': 'src'},
    packages=find_packages('src'),
    package_data={'luciadmin.config': ['*.cfg']},
    python_requires='>=3.9',
    install_requires=[
        'pyserial',
        'zeroconf',
        'configobj>=5.0.9',
        'fastapi',
        'uvicorn[standard]',
        'click',
        'httpx',
    ],
    extras_require={
        'test': [
            'pytest',
            'PyHamcrest>=2.0.3',
        ],
    },
    entry_points={
        'console_scripts': [
            'luciadmin=luciadmin.cli:cli',
        ],
    },
    zip_safe=False,
)
