"""
Events pushed by the server on the event feed, and their routing to resource handles.

Each event names the resource it is about (a bridge, channel, playback or recording). The router
delivers an event to every handler subscribed to that resource, and then to application listeners
registered for the event type.
"""
import logging
from collections import defaultdict

from ariconnector.support.events import EventSource
from ariconnector.support.mixins import CommonEqualityMixin, StringerMixin

logger = logging.getLogger(__name__)


# event type prefix -> (resource type, payload key, identifier field)
resource_prefixes = (
    ('Bridge', ('bridge', 'bridge', 'id')),
    ('ChannelEnteredBridge', ('bridge', 'bridge', 'id')),
    ('ChannelLeftBridge', ('bridge', 'bridge', 'id')),
    ('Channel', ('channel', 'channel', 'id')),
    ('Stasis', ('channel', 'channel', 'id')),
    ('Dial', ('channel', 'peer', 'id')),
    ('Playback', ('playback', 'playback', 'id')),
    ('Recording', ('recording', 'recording', 'name')),
)


def resource_of(event_type, payload):
    """ Determines the resource an event pertains to.

    >>> resource_of('BridgeDestroyed', {'bridge': {'id': 'b1'}})
    ('bridge', 'b1')
    >>> resource_of('RecordingFinished', {'recording': {'name': 'r1'}})
    ('recording', 'r1')
    >>> resource_of('DeviceStateChanged', {})
    (None, None)

    :raises ValueError: when the resource in the payload is not an object with a string identifier
    """
    for prefix, (resource_type, key, field) in resource_prefixes:
        if event_type.startswith(prefix):
            resource = payload.get(key) or {}
            if not isinstance(resource, dict):
                raise ValueError("%s is not an object: %r" % (key, resource))
            resource_id = resource.get(field)
            if resource_id is not None and not isinstance(resource_id, str):
                raise ValueError("%s %s is not a string: %r" % (key, field, resource_id))
            return resource_type, resource_id
    return None, None


class Event(StringerMixin, CommonEqualityMixin):
    """ A message from the event feed.
    :param type: the event type, e.g. BridgeDestroyed
    :param resource_type: the kind of resource the event is about, or None
    :param resource_id: the identifier of that resource, or None
    :param payload: the complete decoded message
    """

    def __init__(self, type, resource_type=None, resource_id=None, payload=None):
        self.type = type
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.payload = payload if payload is not None else {}

    @classmethod
    def from_message(cls, message: dict):
        """ builds an event from a decoded event feed message. """
        event_type = message.get('type') if isinstance(message, dict) else None
        if not event_type or not isinstance(event_type, str):
            raise ValueError("event has no type: %s" % (message,))
        resource_type, resource_id = resource_of(event_type, message)
        return cls(event_type, resource_type, resource_id, message)


class EventRouter:
    """
    Demultiplexes events to the handlers subscribed to the resource each event is about.

    Handlers for one resource are called in subscription order, for each event in the order routed.
    Events for resources with no handlers are dropped. The router is used from a single delivery
    context.
    """

    def __init__(self, log=logger):
        self._resources = dict()
        self._listeners = defaultdict(EventSource)
        self.logger = log

    def subscribe(self, resource_type, resource_id, handler):
        key = (resource_type, resource_id)
        source = self._resources.get(key)
        if source is None:
            source = self._resources[key] = EventSource(self.logger)
        source.add(handler)

    def unsubscribe(self, resource_type, resource_id, handler):
        key = (resource_type, resource_id)
        source = self._resources.get(key)
        if source is not None:
            source.remove(handler)
            if not len(source):
                del self._resources[key]

    def subscribers(self, resource_type, resource_id):
        source = self._resources.get((resource_type, resource_id))
        return source.handlers() if source is not None else ()

    def add_event_handler(self, event_type, handler):
        """ adds a listener for every event of the given type, regardless of resource. """
        self._listeners[event_type].add(handler)

    def remove_event_handler(self, event_type, handler):
        source = self._listeners.get(event_type)
        if source is not None:
            source.remove(handler)

    def route(self, event: Event):
        """
        Delivers the event to the resource's handlers and then to the listeners for its type.
        :return: the number of handlers called
        """
        count = 0
        if event.resource_type is not None:
            source = self._resources.get((event.resource_type, event.resource_id))
            if source is not None:
                count += source.fire(event)
        listeners = self._listeners.get(event.type)
        if listeners is not None:
            count += listeners.fire(event)
        if not count:
            self.logger.debug("no handler for %s on %s %s" % (event.type, event.resource_type, event.resource_id))
        return count
