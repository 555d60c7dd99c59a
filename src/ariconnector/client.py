"""
The application's entry point: a client bound to one server.

The client composes the two channels to the server with the machinery that reconciles them:

- the command channel (a Transport) carries commands and brings back their responses
- the event feed (an EventFeed) brings events the server raises on its own
- both post what they receive to the DeliveryLoop, which hands responses to the ResponseCorrelator
  and events to the EventRouter, one message at a time
- the CommandDispatcher sends commands and returns DeferredResult instances that the correlator
  later completes
- resource handles (Bridge, Channel) send their commands through the dispatcher and follow their
  events through the router
"""
import logging

from ariconnector.config.config import ClientSettings
from ariconnector.events import EventRouter
from ariconnector.protocol.correlator import ResponseCorrelator
from ariconnector.protocol.deferred import DeferredResult
from ariconnector.protocol.delivery import DeliveryLoop
from ariconnector.protocol.dispatcher import CommandDispatcher
from ariconnector.resources.base import HandleRegistry
from ariconnector.resources.bridge import Bridge
from ariconnector.resources.channel import Channel
from ariconnector.support.events import QueuedEventSource
from ariconnector.support.retry_strategy import BackoffRetryStrategy
from ariconnector.transport.base import Transport
from ariconnector.transport.eventfeed import EventFeed, events_url
from ariconnector.transport.http import HttpTransport

logger = logging.getLogger(__name__)


class AriClient:
    """
    A client for one server and application.

    Events about the event feed connection (FeedConnectedEvent, FeedDisconnectedEvent) are queued on
    connection_events and fired on the thread that calls update().

    :param transport: the command channel
    :param event_feed: the event channel, or None to run without events
    :param command_timeout: seconds after which a command with no response fails with
        CommandTimeoutError. 0 means commands wait for their response indefinitely.
    :param poll_interval: how often the delivery loop checks for expired commands
    """

    def __init__(self, transport: Transport, event_feed: EventFeed=None, command_timeout=0, poll_interval=0.5):
        self.transport = transport
        self.event_feed = event_feed
        self.correlator = ResponseCorrelator(command_timeout)
        self.router = EventRouter()
        self.dispatcher = CommandDispatcher(transport, self.correlator)
        self.handles = HandleRegistry()
        self.delivery = DeliveryLoop(self.correlator, self.router, poll_interval)
        self.connection_events = QueuedEventSource()
        transport.attach(self.delivery.post)
        if event_feed is not None:
            event_feed.attach(self.delivery.post)
            event_feed.status_events += self.connection_events.fire

    @classmethod
    def from_settings(cls, settings: ClientSettings):
        transport = HttpTransport(settings.base_url, settings.username, settings.password,
                                  workers=settings.http_workers, timeout=settings.http_timeout,
                                  poll_interval=settings.poll_interval)
        event_feed = None
        if settings.application:
            url = events_url(settings.base_url, settings.application, settings.username, settings.password)
            retry = BackoffRetryStrategy(settings.reconnect_period, settings.reconnect_max_period)
            event_feed = EventFeed(url, retry, poll_interval=settings.poll_interval)
        return cls(transport, event_feed, settings.command_timeout, settings.poll_interval)

    def start(self):
        """ opens the channels and starts delivering responses and events. """
        self.transport.start()
        self.delivery.start()
        if self.event_feed is not None:
            self.event_feed.start()
        logger.info("client started")

    def stop(self):
        """
        Closes the channels. Commands still queued fail with TransportClosedError; their results are
        completed on the calling thread.
        """
        if self.event_feed is not None:
            self.event_feed.stop()
        self.transport.close()
        self.delivery.stop()
        self.delivery.drain()
        logger.info("client stopped")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()

    def update(self):
        """ fires any queued connection events on the calling thread. """
        self.connection_events.publish()

    def send(self, method, path, params=None) -> DeferredResult:
        """ sends a command that has no resource handle. See commands.query() for params. """
        return self.dispatcher.send(method, path, params)

    def on(self, event_type, handler):
        """ adds a listener for every event of a type, e.g. StasisStart. """
        self.router.add_event_handler(event_type, handler)

    def bridge(self, bridge_id) -> Bridge:
        """ the handle for an existing bridge. """
        return self.handles.handle_for(Bridge, bridge_id, self)

    def channel(self, channel_id) -> Channel:
        """ the handle for an existing channel. """
        return self.handles.handle_for(Channel, channel_id, self)

    def create_bridge(self, bridge_type='mixing', bridge_id='', name='') -> DeferredResult:
        return Bridge.create(self, bridge_type, bridge_id, name)

    def originate(self, endpoint, **kwargs) -> DeferredResult:
        return Channel.originate(self, endpoint, **kwargs)
