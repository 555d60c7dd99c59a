"""
Commands sent on the command channel and the responses that complete them.

A command is a method, a path and a set of query parameters. Parameters the caller leaves at
their "absent" value are never sent.
"""
from collections import OrderedDict
from urllib.parse import quote, urlencode

from ariconnector.errors import AriError
from ariconnector.support.mixins import CommonEqualityMixin, StringerMixin

# the absent value for integer parameters
NO_VALUE = -1


class RemoteError(AriError):
    """ The server completed a command with a non-success status. """

    def __init__(self, status, body=None, command=None):
        super().__init__("%s %s failed with status %s: %s" % (
            command.method if command else '', command.path if command else '', status, body))
        self.status = status
        self.body = body
        self.command = command


class MalformedResponse(AriError):
    """ A command succeeded but the response lacks a value the caller needs. """


class CommandTimeoutError(AriError):
    """ No response arrived for a command within the configured timeout. """


def is_absent(value):
    """ Determines if a parameter value is the absent sentinel for its type.

    >>> is_absent(''), is_absent(None), is_absent(-1), is_absent(0), is_absent(False)
    (True, True, True, False, False)
    """
    if value is None:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value < 0
    if isinstance(value, (str, list, tuple)):
        return len(value) == 0
    return False


def encode_value(value):
    """ Converts a parameter value to its wire string.

    >>> encode_value(True), encode_value(50), encode_value(['a', 'b'])
    ('true', '50', 'a,b')
    """
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (list, tuple)):
        return ','.join(encode_value(v) for v in value)
    return str(value)


def query(**params):
    """ Builds the query parameters for a command, in the order given, omitting absent values.

    >>> list(query(media='sound:x', lang='', offsetms=-1, skipms=50).items())
    [('media', 'sound:x'), ('skipms', '50')]
    """
    return OrderedDict((name, encode_value(value)) for name, value in params.items() if not is_absent(value))


def resource_path(*parts):
    """
    >>> resource_path('bridges', 'b 1', 'play')
    '/bridges/b%201/play'
    """
    return '/' + '/'.join(quote(str(p), safe='') for p in parts)


class Command(StringerMixin, CommonEqualityMixin):
    """ A request on the command channel.
    :param method: the HTTP method
    :param path: the resource path, relative to the server's ARI root
    :param params: the query parameters, see query()
    """

    def __init__(self, method, path, params=None, correlation_key=None):
        self.method = method
        self.path = path
        self.params = OrderedDict(params or ())
        self.correlation_key = correlation_key

    @property
    def url_path(self):
        """
        >>> Command('POST', '/bridges/1/addChannel', query(channel='c1', role='participant')).url_path
        '/bridges/1/addChannel?channel=c1&role=participant'
        """
        if not self.params:
            return self.path
        return self.path + '?' + urlencode(self.params, safe=',:')


class Response(StringerMixin):
    """ The completion of a command.
    :param correlation_key: the key of the command this response completes
    :param status: the status code, or None if the command could not be performed
    :param body: the decoded body
    :param error: an exception raised while performing the command
    """

    def __init__(self, correlation_key, status=None, body=None, error=None):
        self.correlation_key = correlation_key
        self.status = status
        self.body = body
        self.error = error

    @property
    def ok(self):
        return self.error is None and self.status is not None and 200 <= self.status < 300

    def outcome(self, command=None):
        """
        :return: the value to resolve the command with, or the exception to reject it with.
        """
        if self.error is not None:
            return self.error
        if not self.ok:
            return RemoteError(self.status, self.body, command)
        return self.body
