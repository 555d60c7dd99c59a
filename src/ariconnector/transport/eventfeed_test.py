import json
import threading
import unittest
from unittest.mock import Mock

import timeout_decorator
from hamcrest import assert_that, empty, instance_of, is_
from websockets.exceptions import ConnectionClosedOK, InvalidURI

from ariconnector.events import Event
from ariconnector.protocol.asyncloop_test import debug_timeout
from ariconnector.transport.eventfeed import EventFeed, FeedConnectedEvent, FeedDisconnectedEvent


class FakeConnection:
    """ replays messages, then closes. With stay_open, times out on recv until closed. """

    def __init__(self, messages=(), stay_open=False):
        self.messages = list(messages)
        self.stay_open = stay_open
        self.closed = threading.Event()
        self.timeouts = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def recv(self, timeout=None):
        self.timeouts.append(timeout)
        if self.messages:
            return self.messages.pop(0)
        if self.stay_open and not self.closed.is_set():
            self.closed.wait(timeout)
            raise TimeoutError()
        raise ConnectionClosedOK(None, None)

    def close(self):
        self.closed.set()


def message(event_type, **resources):
    body = dict(type=event_type, application='demo')
    body.update({key: {'id': value} for key, value in resources.items()})
    return json.dumps(body)


class EventFeedTest(unittest.TestCase):

    def setUp(self):
        self.connection = FakeConnection()
        self.connect = Mock(side_effect=lambda url: self.connection)
        self.retry = Mock(return_value=0)
        self.sut = EventFeed('ws://pbx:8088/ari/events?app=demo', self.retry, connect=self.connect,
                             poll_interval=0.01)
        self.posted = []
        self.sut.attach(self.posted.append)
        self.status = []
        self.sut.status_events += self.status.append

    def test_posts_received_events(self):
        self.connection.messages = [message('StasisStart', channel='c1'), message('BridgeDestroyed', bridge='b1')]
        self.sut.loop()
        self.connect.assert_called_once_with('ws://pbx:8088/ari/events?app=demo')
        assert_that([(e.type, e.resource_type, e.resource_id) for e in self.posted],
                    is_([('StasisStart', 'channel', 'c1'), ('BridgeDestroyed', 'bridge', 'b1')]))
        assert_that(self.connection.timeouts[0], is_(0.01))

    def test_connection_status_events(self):
        self.sut.loop()
        self.retry.succeeded.assert_called_once()
        assert_that([type(e) for e in self.status], is_([FeedConnectedEvent, FeedDisconnectedEvent]))
        assert_that(self.status[0].feed, is_(self.sut))
        assert_that(self.sut.connected, is_(False))

    def test_connected_while_receiving(self):
        connected = []
        self.sut.status_events += lambda e: connected.append(self.sut.connected)
        self.sut.loop()
        assert_that(connected, is_([True, False]))

    def test_malformed_messages_are_dropped(self):
        self.sut.logger = Mock()
        self.connection.messages = ['not json', '[1, 2]', json.dumps({'channel': {}}),
                                    message('StasisEnd', channel='c1')]
        self.sut.loop()
        assert_that([e.type for e in self.posted], is_(['StasisEnd']))
        assert_that(self.sut.logger.warning.call_count, is_(3))

    def test_mistyped_messages_are_dropped_without_reconnecting(self):
        self.sut.logger = Mock()
        self.connection.messages = [json.dumps({'type': 'ChannelVarset', 'channel': 'c1'}),
                                    json.dumps({'type': 7}),
                                    json.dumps({'type': 'BridgeDestroyed', 'bridge': {'id': 42}}),
                                    message('BridgeDestroyed', bridge='b1')]
        self.sut.loop()
        assert_that([(e.type, e.resource_id) for e in self.posted], is_([('BridgeDestroyed', 'b1')]))
        assert_that(self.sut.logger.warning.call_count, is_(3))
        self.connect.assert_called_once()

    def test_handle_message_without_sink(self):
        sut = EventFeed('ws://pbx/ari/events', connect=self.connect)
        event = sut.handle_message(message('ChannelHold', channel='c1'))
        assert_that(event, instance_of(Event))

    def test_connection_failure_is_retried_later(self):
        self.connect.side_effect = OSError('connection refused')
        self.sut.logger = Mock()
        self.sut.loop()
        self.retry.succeeded.assert_not_called()
        assert_that(self.status, is_(empty()))
        self.sut.logger.warning.assert_called_once()
        self.sut.loop()
        assert_that(self.connect.call_count, is_(2))
        assert_that(self.retry.call_count, is_(2))

    def test_invalid_url_is_logged(self):
        self.connect.side_effect = InvalidURI('nope', 'not a websocket URI')
        self.sut.logger = Mock()
        self.sut.loop()
        self.sut.logger.warning.assert_called_once()

    def test_waits_for_retry_period(self):
        self.retry.return_value = 5
        self.sut.stop_event.set()
        self.sut.loop()
        self.connect.assert_not_called()

    def test_stop_closes_connection(self):
        connection = Mock()
        self.sut._connection = connection
        self.sut.stop()
        connection.close.assert_called_once()
        assert_that(self.sut.running(), is_(False))

    @timeout_decorator.timeout(debug_timeout(2))
    def test_runs_on_background_thread(self):
        self.connection = FakeConnection([message('StasisStart', channel='c1')], stay_open=True)
        received = threading.Event()
        self.sut.attach(lambda e: received.set())
        self.sut.start()
        try:
            received.wait()
        finally:
            self.sut.stop()
        assert_that(self.connection.closed.is_set(), is_(True))
        assert_that(type(self.status[-1]), is_(FeedDisconnectedEvent))


if __name__ == '__main__':  # pragma no cover
    unittest.main()
