import unittest
from unittest.mock import Mock

from hamcrest import assert_that, equal_to, instance_of, is_, is_not

from ariconnector.protocol.commands import query
from ariconnector.protocol.correlator import ResponseCorrelator
from ariconnector.protocol.deferred import DeferredResult
from ariconnector.protocol.dispatcher import CommandDispatcher
from ariconnector.transport.base import TransportClosedError, TransportError
from ariconnector.transport.base_test import ScriptedTransport


class CommandDispatcherTest(unittest.TestCase):
    def setUp(self):
        self.transport = ScriptedTransport()
        self.correlator = ResponseCorrelator()
        self.transport.attach(self.correlator.deliver)
        self.sut = CommandDispatcher(self.transport, self.correlator)

    def test_send_hands_command_to_transport(self):
        result = self.sut.send('POST', '/bridges/1/play', query(media='x'))
        assert_that(result, instance_of(DeferredResult))
        assert_that(result.pending, is_(True))
        command = self.transport.last
        assert_that(command.method, is_('POST'))
        assert_that(command.url_path, is_('/bridges/1/play?media=x'))
        assert_that(command.correlation_key in self.correlator, is_(True))

    def test_response_resolves_result(self):
        result = self.sut.send('GET', '/bridges')
        self.transport.reply(body=[{'id': '1'}])
        assert_that(result.value(), is_([{'id': '1'}]))

    def test_correlation_keys_are_unique(self):
        self.sut.send('GET', '/a')
        self.sut.send('GET', '/b')
        first, second = self.transport.sent
        assert_that(first.correlation_key, is_not(equal_to(second.correlation_key)))

    def test_responses_out_of_order(self):
        a = self.sut.send('GET', '/a')
        b = self.sut.send('GET', '/b')
        self.transport.reply(self.transport.sent[1], body='b')
        self.transport.reply(self.transport.sent[0], body='a')
        assert_that(a.value(), is_('a'))
        assert_that(b.value(), is_('b'))

    def test_send_on_closed_transport_fails_result_without_raising(self):
        self.transport.close()
        result = self.sut.send('DELETE', '/bridges/1')
        assert_that(result.exception(), instance_of(TransportClosedError))
        assert_that(len(self.correlator), is_(0))

    def test_transport_failure_after_handoff_fails_result(self):
        result = self.sut.send('DELETE', '/bridges/1')
        self.transport.fail()
        assert_that(result.exception(), instance_of(TransportError))

    def test_request_handlers_observe_commands(self):
        handler = Mock()
        self.sut.request_handlers += handler
        result = self.sut.send('POST', '/bridges')
        handler.assert_called_once_with(self.transport.last, result)


if __name__ == '__main__':  # pragma no cover
    unittest.main()
