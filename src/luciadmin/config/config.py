import os
import platform

from configobj import ConfigObj, ConfigObjError, flatten_errors
from configobj.validate import Validator

# The default extension for configuration files
config_extension = '.cfg'

# the base name of the configuration files
config_name = 'luciadmin'

# the schema ships with this package
schema_directory = os.path.dirname(__file__)


def config_flavor(name, flavor=None):
    configname = name if not flavor else name + '.' + flavor
    return configname


def config_filename(name, directory=None):
    """
    Determines the location of a config file in the given directory.
    """
    config_file = os.path.join(directory, name + config_extension)
    return config_file


def load_config_file_base(file, must_exist=True):
    """
    Loads a configuration file
    :param file:        The configuration file to load
    :param must_exist:  when True, the file must exist or an exception is thrown.
    :return: The ConfigObj instance for the file.
    """
    try:
        return ConfigObj(file, interpolation='Template', file_error=must_exist) \
            if must_exist or os.path.exists(file) else ConfigObj()
    except ConfigObjError as e:
        raise type(e)(str(e) + ' at ' + file)


def config_flavor_file(name, directory, subpart=None) -> ConfigObj:
    """
    Loads a specialization of a config file. The configuration file is expected to be named
    after the base, followed by a period and then the specialization, if the specialization is given,
    otherwise just the base name. A missing file is an empty configuration.
    """
    configname = config_flavor(name, subpart)
    file = config_filename(configname, directory)
    return load_config_file_base(file, False)


def map_os_name(name):
    """
    >>> map_os_name('Windows')
    'windows'
    >>> map_os_name("Darwin")
    'osx'
    """
    name = name.lower()
    if name == 'darwin':
        name = 'osx'
    return name


def os_name():
    return map_os_name(platform.system())


def user_config_file(name):
    return os.path.expanduser('~/' + name + config_extension)


def load_schema():
    """ loads the packaged schema. Check expressions contain commas, so values are not split into lists. """
    file = config_filename(config_flavor(config_name, 'schema'), schema_directory)
    return ConfigObj(file, list_values=False, file_error=True)


def validation_errors(config, result):
    """ describes the validation failures, one entry per key or missing section. """
    errors = []
    for section_list, key, error in flatten_errors(config, result):
        section = '.'.join(section_list)
        if key is None:
            errors.append('missing section %s' % section)
        else:
            path = section + '.' + key if section else key
            errors.append('%s: %s' % (path, error if error else 'missing value'))
    return errors


def load_config(name=config_name, directory=None):
    """
        Loads all the configuration files that relate to the given name.
        Configurations are merged in this order, later ones win:
        - the default specialization
        - the platform specialization
        - the user override in the home directory
        - the base configuration
        The merged configuration is validated against the packaged schema, which also supplies
        the defaults for missing values.
    :param directory: the location of the configuration files, the current directory when None.
    :return: the validated ConfigObj
    raises ConfigObjError when a file cannot be parsed or a value is not valid.
    """
    if directory is None:
        directory = os.getcwd()
    local_config = config_flavor_file(name, directory)
    default_config = config_flavor_file(name, directory, 'default')
    platform_config = config_flavor_file(name, directory, os_name())
    user_config = load_config_file_base(user_config_file(name), must_exist=False)
    config = ConfigObj()
    config.merge(default_config)
    config.merge(platform_config)
    config.merge(user_config)
    config.merge(local_config)

    config.configspec = load_schema()
    result = config.validate(Validator(), preserve_errors=True)
    if result is not True:
        raise ConfigObjError("the config file %s failed validation: %s" %
                             (name, '; '.join(validation_errors(config, result))))
    return config
