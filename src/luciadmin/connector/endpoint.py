"""
Translates endpoint URLs such as ``net://1.2.3.4:5732`` or ``serial://dev/ttyACM0`` to Endpoint instances.
"""
from urllib.parse import urlsplit

from luciadmin.connector.base import Endpoint, ParseError
from luciadmin.connector.serialconn import SerialEndpoint
from luciadmin.connector.socketconn import DEFAULT_PORT, NetworkEndpoint

# tcp is how network endpoints used to be written
network_schemes = ('net', 'tcp')
serial_schemes = ('serial',)

usage = "provide an endpoint URL such as net://1.2.3.4 or serial://dev/ttyACM0"


def parse_endpoint(text: str) -> Endpoint:
    """
    Parses an endpoint URL.

    >>> parse_endpoint('net://1.2.3.4')
    NetworkEndpoint(host='1.2.3.4', port=5732)
    >>> parse_endpoint('serial://COM1')
    SerialEndpoint(path='COM1')

    raises ParseError if the text is not a valid endpoint URL.
    """
    try:
        url = urlsplit(text)
    except ValueError as e:
        raise ParseError("could not parse '%s' as endpoint URL: %s" % (text, e)) from e
    if not url.netloc or not url.scheme:
        raise ParseError("need an endpoint URL, %s. Given was '%s'" % (usage, text))

    scheme = url.scheme.lower()
    if scheme in network_schemes:
        endpoint = _network_endpoint(text, url)
    elif scheme in serial_schemes:
        endpoint = SerialEndpoint(serial_device(url.netloc, url.path))
    else:
        raise ParseError("unknown scheme '%s' in '%s', %s" % (url.scheme, text, usage))

    if not endpoint.is_valid():
        raise ParseError("'%s' does not describe a usable endpoint, %s" % (text, usage))
    return endpoint


def _network_endpoint(text, url):
    try:
        port = url.port
    except ValueError as e:
        raise ParseError("expected a port number between 1 and 65535 in '%s'" % text) from e
    return NetworkEndpoint(url.hostname or '', DEFAULT_PORT if port is None else port)


def serial_device(authority: str, path: str) -> str:
    """
    Works out the device path from the authority and path of a serial URL.
    On POSIX, serial://dev/ttyACM0 has the authority 'dev' and the path '/ttyACM0'.

    >>> serial_device('', '/dev/null')
    '/dev/null'
    >>> serial_device('COM1', '')
    'COM1'
    >>> serial_device('dev', '/null')
    '/dev/null'
    """
    if not authority and path:
        return path
    if authority and not path:
        return authority
    return '/' + authority + path
