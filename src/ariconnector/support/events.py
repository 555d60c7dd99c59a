import logging
import weakref
from queue import Queue

logger = logging.getLogger(__name__)


class EventSource(object):
    """
    A list of handlers that are all called, in the order added, when the source fires.
    A handler that raises is logged and does not prevent the remaining handlers being called.
    """

    def __init__(self, log=logger):
        self._handlers = []
        self.logger = log

    def __iadd__(self, handler):
        return self.add(handler)

    def __isub__(self, handler):
        return self.remove(handler)

    def __len__(self):
        return len(self._handlers)

    def add(self, handler):
        self._handlers.append(handler)
        return self

    def remove(self, handler):
        if handler in self._handlers:
            self._handlers.remove(handler)
        return self

    def handlers(self):
        return tuple(self._handlers)

    def fire(self, *args, **kwargs):
        return self._fire(*args, **kwargs)

    def fire_all(self, events):
        self._fire_all(events)

    def _fire_all(self, events):
        for e in events:
            self._fire(e)

    def _fire(self, *args, **kwargs):
        """ calls each handler. Returns the number of handlers called. """
        handlers = self.handlers()
        for handler in handlers:
            try:
                handler(*args, **kwargs)
            except Exception as e:
                self.logger.exception("handler %s failed: %s" % (handler, e))
        return len(handlers)


class QueuedEventSource(EventSource):
    """
    the public fire() methods post events to the queue. These are fired when a thread
    calls publish()
    """
    def __init__(self, log=logger):
        super().__init__(log)
        self.event_queue = Queue()

    def fire(self, event):
        self.event_queue.put(event)

    def publish(self):
        """ publishes any queued events on the calling thread. """
        queue = self.event_queue
        if not queue.empty():
            events = []
            while not queue.empty():
                events.append(queue.get())
            self._fire_all(events)


class WeakMethodHandler:
    """
    A handler that refers weakly to a bound method. Calling the handler after the method's
    instance has been collected does nothing.
    Handlers compare equal when they refer to the same bound method, so they can be removed
    from an EventSource by constructing a new handler for the same method.
    """

    def __init__(self, method):
        self._ref = weakref.WeakMethod(method)

    def __call__(self, *args, **kwargs):
        method = self._ref()
        if method is not None:
            return method(*args, **kwargs)

    @property
    def alive(self):
        return self._ref() is not None

    def __eq__(self, other):
        return isinstance(other, WeakMethodHandler) and self._ref == other._ref
