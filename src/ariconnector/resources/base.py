"""
Handles for server-managed resources.

A handle is the local proxy for one remote resource. It owns the resource's identifier, sends the
resource's commands through the dispatcher and follows the resource's events through the router.

Destruction
-----------
A handle moves through alive -> destroying -> dead. Three things can destroy it:

- destroy() called by the application. The handle sends the delete command and is dead once that
  command completes.
- the handle being discarded (garbage collected) while alive. The delete command is sent and the
  handle is dead at once.
- a destroyed event from the server. No command is sent since the resource is already gone.

Whichever of these takes the alive -> destroying step first is the only one that acts. The step is
taken under a lock, since destroy() may be called from any thread while events arrive on the
delivery thread. Every later trigger, and every operation on a handle that is not alive, does
nothing and returns an already-succeeded DeferredResult.
"""
import logging
import threading
import weakref
from enum import Enum

from ariconnector.protocol.commands import MalformedResponse, resource_path
from ariconnector.protocol.deferred import DeferredResult
from ariconnector.support.events import EventSource, WeakMethodHandler

logger = logging.getLogger(__name__)


class DestroyState(Enum):
    alive = 'alive'
    destroying = 'destroying'
    dead = 'dead'


class HandleRegistry:
    """
    Tracks the live handle for each resource so that there is at most one per identifier.
    Handles are referenced weakly and are removed when they die or are collected.
    """

    def __init__(self):
        self._handles = weakref.WeakValueDictionary()
        self._lock = threading.RLock()

    def __len__(self):
        return len(self._handles)

    def get(self, resource_type, resource_id):
        handle = self._handles.get((resource_type, resource_id))
        return handle if handle is not None and not handle.is_dead else None

    def add(self, handle):
        key = (handle.resource_type, handle.id)
        with self._lock:
            existing = self.get(*key)
            if existing is not None and existing is not handle:
                raise ValueError("%s %s already has a live handle" % key)
            self._handles[key] = handle

    def remove(self, handle):
        key = (handle.resource_type, handle.id)
        with self._lock:
            if self._handles.get(key) is handle:
                del self._handles[key]

    def handle_for(self, cls, resource_id, client):
        """ retrieves the live handle for a resource, creating one if there is none. """
        with self._lock:
            existing = self.get(cls.resource_type, resource_id)
            return existing if existing is not None else cls(resource_id, client)


class ResourceHandle:
    """
    The base class for resource handles.

    Subclasses name the resource collection and the event that signals the resource was destroyed.
    Events for the resource are re-fired from the events attribute, so applications can add listeners
    to a handle directly.

    :param resource_id: the server-assigned identifier. Liveness is carried by the state, so an
        empty string is a valid identifier. Only None is rejected.
    :param client: provides the dispatcher, router and handle registry
    """
    resource_type = None      # the resource type used in event routing, e.g. 'bridge'
    collection = None         # the path segment for the resource collection, e.g. 'bridges'
    destroyed_event = None    # the event type sent when the server destroys the resource

    def __init__(self, resource_id, client):
        if resource_id is None:
            raise ValueError("a resource handle requires an identifier")
        self._id = resource_id
        self._client = client
        self._state = DestroyState.alive
        self._state_lock = threading.Lock()
        self._handing_over = False
        self._destroyed_while_handing_over = False
        self.events = EventSource()
        client.handles.add(self)
        # set only once registered, so a handle refused by the registry has nothing to tear down
        self._handler = WeakMethodHandler(self._on_event)
        client.router.subscribe(self.resource_type, resource_id, self._handler)

    def __repr__(self):
        return "%s(%r, %s)" % (type(self).__name__, self._id, self._state.value)

    @property
    def id(self):
        return self._id

    @property
    def state(self) -> DestroyState:
        return self._state

    @property
    def is_dead(self):
        return self._state is DestroyState.dead

    @property
    def alive(self):
        return self._state is DestroyState.alive

    @property
    def path(self):
        return resource_path(self.collection, self._id)

    def _begin_destroy(self):
        """ takes the alive -> destroying step.
        :return: True if this caller took the step and is responsible for the destruction.
        """
        with self._state_lock:
            if self._state is not DestroyState.alive:
                return False
            self._state = DestroyState.destroying
            return True

    def _mark_dead(self):
        with self._state_lock:
            self._state = DestroyState.dead
        self._client.router.unsubscribe(self.resource_type, self._id, self._handler)
        self._client.handles.remove(self)

    def destroy(self) -> DeferredResult:
        """
        Destroys the resource on the server. Destroying a handle that is already destroying or dead
        does nothing.
        :return: the result of the delete command, or an already-succeeded result if no command was sent.
        """
        return self._destroy()

    def _destroy(self, params=None) -> DeferredResult:
        if not self._begin_destroy():
            logger.debug("%r already destroyed" % self)
            return DeferredResult.empty()
        logger.debug("destroying %r" % self)
        result = self._delete(params)
        result.add_done_callback(self._deleted)
        return result

    def _delete(self, params=None) -> DeferredResult:
        """ sends the delete command for the resource. """
        return self._client.dispatcher.send('DELETE', self.path, params)

    def _deleted(self, result):
        self._mark_dead()

    def _remote_destroyed(self):
        if not self._begin_destroy():
            return False
        logger.debug("%r destroyed by the server" % self)
        self._mark_dead()
        return True

    def _teardown(self):
        if not self._begin_destroy():
            return False
        logger.debug("%r discarded while alive, destroying" % self)
        self._delete()
        self._mark_dead()
        return True

    def __del__(self):
        if getattr(self, '_handler', None) is not None:
            self._teardown()

    def _on_event(self, event):
        if self._handing_over:
            if event.type == self.destroyed_event:
                self._destroyed_while_handing_over = True
            return
        if event.type == self.destroyed_event:
            self._remote_destroyed()
        self.events.fire(event)

    def transfer(self):
        """
        Moves this resource to a new handle. This handle becomes dead without destroying the resource.
        Event listeners move with the resource.

        The new handle subscribes before this one unsubscribes. A destroyed event that reaches only
        this handle during the hand-over is passed on, so the new handle does not outlive the resource.

        :return: the new handle, or this handle when it is no longer alive. Operations on a handle that
            is not alive do nothing, so the result can be used either way.
        """
        with self._state_lock:
            if self._state is not DestroyState.alive:
                logger.debug("%r not alive, not transferred" % self)
                return self
            self._state = DestroyState.dead
            self._handing_over = True
        try:
            successor = type(self)(self._id, self._client)
            successor.events = self.events
            self.events = EventSource()
        finally:
            self._client.router.unsubscribe(self.resource_type, self._id, self._handler)
            self._client.handles.remove(self)
            with self._state_lock:
                self._handing_over = False
        if self._destroyed_while_handing_over:
            successor._remote_destroyed()
        return successor

    def _command(self, method, *path, params=None) -> DeferredResult:
        """ sends a command on a sub-path of this resource, unless the handle is not alive. """
        if self._state is not DestroyState.alive:
            logger.debug("%r not alive, %s %s not sent" % (self, method, '/'.join(path)))
            return DeferredResult.empty()
        return self._client.dispatcher.send(method, resource_path(self.collection, self._id, *path), params)

    @classmethod
    def _create(cls, client, path, params=None) -> DeferredResult:
        """ sends a creation command.
        :return: a DeferredResult that succeeds with the handle for the created resource.
        """
        return client.dispatcher.send('POST', path, params).then(
            lambda body: cls._from_created(client, body))

    @classmethod
    def _from_created(cls, client, body):
        resource_id = body.get('id') if isinstance(body, dict) else None
        if resource_id is None:
            raise MalformedResponse("created %s has no id: %s" % (cls.resource_type, body))
        return client.handles.handle_for(cls, resource_id, client)
