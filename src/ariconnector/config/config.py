"""
Layered configuration files for the client.

Configuration for a name is loaded from several files in the configuration directory, each
optional, and merged in this order (later files override earlier ones):

- <name>.default.cfg   defaults shipped with an installation
- <name>.<os>.cfg      platform specific settings (windows, linux, osx)
- ~/<name>.cfg         the user's settings
- <name>.cfg           local settings

The result is validated against <name>.schema.cfg, which also provides defaults and converts
values to their types.
"""
import os
import platform

from configobj import ConfigObj, ConfigObjError
from validate import Validator

config_extension = '.cfg'

# holds the schema shipped with the package
package_directory = os.path.dirname(os.path.abspath(__file__))


def config_path(directory, name, flavor=None):
    """
    >>> config_path('/etc', 'ari', 'default').replace(os.sep, '/')
    '/etc/ari.default.cfg'
    """
    return os.path.join(directory, '.'.join(filter(None, (name, flavor))) + config_extension)


def read_config(path, must_exist=True) -> ConfigObj:
    """
    Reads one configuration file. Syntax errors name the file they were found in.
    :param must_exist: when False, a missing file reads as an empty configuration
    """
    if not must_exist and not os.path.exists(path):
        return ConfigObj()
    try:
        return ConfigObj(path, interpolation='Template', file_error=True)
    except ConfigObjError as e:
        raise type(e)("%s at %s" % (e, path))


def map_os_name(name):
    """
    >>> map_os_name('Windows')
    'windows'
    >>> map_os_name("Darwin")
    'osx'
    """
    name = name.lower()
    return 'osx' if name == 'darwin' else name


def os_name():
    return map_os_name(platform.system())


def user_config_file(name):
    return os.path.expanduser('~/' + name + config_extension)


def layer_paths(name, directory):
    """ the files that make up a configuration, lowest precedence first. """
    return [config_path(directory, name, 'default'),
            config_path(directory, name, os_name()),
            user_config_file(name),
            config_path(directory, name)]


def load_config(name, directory, schema_directory=None) -> ConfigObj:
    """
    Merges the configuration layers for a name and validates the result against the schema.
    :param directory: the location of the configuration files
    :param schema_directory: the location of the schema. Defaults to directory.
    :raises ConfigObjError: when a file cannot be parsed or the result fails validation
    """
    config = ConfigObj()
    for path in layer_paths(name, directory):
        config.merge(read_config(path, must_exist=False))
    config.configspec = read_config(config_path(schema_directory or directory, name, 'schema'), must_exist=False)
    result = config.validate(Validator())
    if result is not True:
        raise ConfigObjError("the config file %s failed validation %s" % (name, result))
    return config


def apply_section(conf, section_path, target):
    """
    Sets each value in a configuration section on the target attribute of the same name. Values
    with no matching attribute are ignored, as is a section that does not exist.
    :param section_path: the names of the nested sections, outermost first
    :return: the section applied, or None
    """
    for name in section_path:
        conf = conf.get(name)
        if conf is None:
            return None
    for key, value in conf.items():
        if hasattr(target, key):
            setattr(target, key, value)
    return conf


class ClientSettings:
    """
    The settings for connecting a client to a server. Defaults match the schema.
    """

    def __init__(self):
        self.base_url = 'http://localhost:8088'
        self.username = ''
        self.password = ''
        self.application = ''
        self.command_timeout = 0.0      # seconds, 0 means commands never time out
        self.http_timeout = 10.0
        self.http_workers = 1
        self.reconnect_period = 5.0
        self.reconnect_max_period = 60.0
        self.poll_interval = 0.5


def load_settings(directory=None, name='ariconnector', section='client'):
    """
    Loads the client settings.
    :param directory: the directory containing the configuration files. Defaults to the current directory.
    :return: a ClientSettings instance
    """
    conf = load_config(name, directory or os.getcwd(), package_directory)
    settings = ClientSettings()
    apply_section(conf, section.split("."), settings)
    return settings
