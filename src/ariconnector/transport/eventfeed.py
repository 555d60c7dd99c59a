"""
The event channel over a websocket.
"""
import json
import logging
from urllib.parse import urlencode, urlsplit

from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.sync.client import connect as websocket_connect

from ariconnector.events import Event
from ariconnector.protocol.asyncloop import AsyncLoop
from ariconnector.support.events import EventSource
from ariconnector.support.mixins import StringerMixin
from ariconnector.support.retry_strategy import BackoffRetryStrategy, RetryStrategy

logger = logging.getLogger(__name__)


def events_url(base_url, application, username='', password='', subscribe_all=False):
    """ The websocket URL for an application's event feed.

    >>> events_url('http://pbx:8088', 'demo', 'user', 'secret')
    'ws://pbx:8088/ari/events?app=demo&api_key=user%3Asecret'
    >>> events_url('https://pbx/', 'demo', subscribe_all=True)
    'wss://pbx/ari/events?app=demo&subscribeAll=true'
    """
    parts = urlsplit(base_url)
    scheme = 'wss' if parts.scheme == 'https' else 'ws'
    params = [('app', application)]
    if username:
        params.append(('api_key', '%s:%s' % (username, password)))
    if subscribe_all:
        params.append(('subscribeAll', 'true'))
    return '%s://%s%s/ari/events?%s' % (scheme, parts.netloc, parts.path.rstrip('/'), urlencode(params))


class FeedEvent(StringerMixin):
    """ base class for changes in the event feed connection. """
    def __init__(self, feed):
        self.feed = feed


class FeedConnectedEvent(FeedEvent):
    """ The event feed connected. """


class FeedDisconnectedEvent(FeedEvent):
    """ The event feed disconnected. It reconnects when its retry strategy allows, unless stopped. """


class EventFeed(AsyncLoop):
    """
    Receives events from the server's websocket on a background thread and posts each one to the
    sink given to attach().

    When the connection cannot be made or is lost, the feed tries again when the retry strategy allows.
    Connection changes are fired from status_events as FeedConnectedEvent and FeedDisconnectedEvent.

    :param url: the websocket URL, see events_url()
    :param retry_strategy: how long to wait before reconnecting
    :param connect: opens a websocket connection to a URL
    """

    def __init__(self, url, retry_strategy: RetryStrategy=None, connect=websocket_connect, poll_interval=0.5,
                 log=logger):
        super().__init__(name='ari-events', log=log)
        self.url = url
        self.retry_strategy = retry_strategy or BackoffRetryStrategy(5, 60)
        self.poll_interval = poll_interval
        self.status_events = EventSource()
        self._connect = connect
        self._connection = None
        self._sink = None

    def attach(self, sink):
        """
        :param sink: a callable receiving each Event. Must not block.
        """
        self._sink = sink

    @property
    def connected(self):
        return self._connection is not None

    def loop(self):
        delay = self.retry_strategy()
        if delay > 0:
            self.stop_event.wait(delay)
            return
        try:
            with self._connect(self.url) as connection:
                self._connection = connection
                self.retry_strategy.succeeded()
                self.logger.info("event feed connected to %s" % self.url)
                self.status_events.fire(FeedConnectedEvent(self))
                self._receive(connection)
        except ConnectionClosed as e:
            self.logger.info("event feed %s closed: %s" % (self.url, e))
        except (WebSocketException, OSError) as e:
            method = self.logger.info if not self.running() else self.logger.warning
            method("event feed %s unavailable: %s" % (self.url, e))
        finally:
            if self._connection is not None:
                self._connection = None
                self.status_events.fire(FeedDisconnectedEvent(self))

    def _receive(self, connection):
        while self.running():
            try:
                message = connection.recv(timeout=self.poll_interval)
            except TimeoutError:
                continue
            self.handle_message(message)

    def handle_message(self, message):
        """ decodes a message and posts the event. Undecodable messages are logged and dropped. """
        try:
            event = Event.from_message(json.loads(message))
        except ValueError as e:
            self.logger.warning("dropping malformed event %r: %s" % (message, e))
            return None
        self.logger.debug("received %s for %s %s" % (event.type, event.resource_type, event.resource_id))
        sink = self._sink
        if sink is not None:
            sink(event)
        return event

    def stop(self):
        self.stop_event.set()
        connection = self._connection
        if connection is not None:
            connection.close()
        super().stop()
