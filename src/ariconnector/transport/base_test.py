import unittest
from unittest.mock import Mock

from hamcrest import assert_that, calling, is_, raises

from ariconnector.protocol.commands import Response
from ariconnector.transport.base import Transport, TransportClosedError, TransportError


class ScriptedTransport(Transport):
    """ A transport that records the commands sent. Responses are posted by calling reply(). """

    def __init__(self):
        super().__init__()
        self.sent = []
        self._open = True

    @property
    def open(self):
        return self._open

    def start(self):
        self._open = True

    def close(self):
        self._open = False

    def send(self, command):
        if not self._open:
            raise TransportClosedError("transport closed")
        self.sent.append(command)

    @property
    def last(self):
        return self.sent[-1]

    def commands(self, method=None):
        return [c for c in self.sent if method is None or c.method == method]

    def reply(self, command=None, status=200, body=None):
        command = command or self.last
        self._post(Response(command.correlation_key, status, body))

    def fail(self, command=None, error=None):
        command = command or self.last
        self._post(Response(command.correlation_key, error=error or TransportError("connection reset")))


class TransportTest(unittest.TestCase):
    def test_abstract(self):
        sut = Transport()
        assert_that(calling(lambda: sut.open), raises(NotImplementedError))
        assert_that(calling(sut.start), raises(NotImplementedError))
        assert_that(calling(sut.close), raises(NotImplementedError))
        assert_that(calling(sut.send).with_args(Mock()), raises(NotImplementedError))

    def test_post_without_sink_is_harmless(self):
        Transport()._post(Mock())

    def test_post_goes_to_sink(self):
        sut = Transport()
        sink = Mock()
        sut.attach(sink)
        response = Mock()
        sut._post(response)
        sink.assert_called_once_with(response)

    def test_closed_error_is_transport_error(self):
        assert_that(issubclass(TransportClosedError, TransportError), is_(True))


if __name__ == '__main__':  # pragma no cover
    unittest.main()
