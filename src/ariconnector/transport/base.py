from abc import abstractmethod

from ariconnector.errors import AriError


class TransportError(AriError):
    """ A command could not be sent, or the connection carrying it broke. """


class TransportClosedError(TransportError):
    """ The transport is not open. """


class Transport:
    """
    Carries commands to the server and brings back their responses.

    send() hands a command over and returns without waiting for the server. The response is
    posted later to the sink given to attach(), from whatever thread the transport uses.
    A response that could not be obtained is posted with its error set to a TransportError.
    """

    def __init__(self):
        self._sink = None

    def attach(self, sink):
        """
        :param sink: a callable receiving each Response. Must not block.
        """
        self._sink = sink

    def _post(self, response):
        sink = self._sink
        if sink is not None:
            sink(response)

    @property
    @abstractmethod
    def open(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def start(self):
        raise NotImplementedError

    @abstractmethod
    def close(self):
        raise NotImplementedError

    @abstractmethod
    def send(self, command):
        """
        Hands a command to the transport.
        :raises TransportError: if the command cannot be accepted
        """
        raise NotImplementedError
