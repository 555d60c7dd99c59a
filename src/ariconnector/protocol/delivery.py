import logging
import time
from queue import Empty, Queue

from ariconnector.events import Event, EventRouter
from ariconnector.protocol.asyncloop import AsyncLoop
from ariconnector.protocol.commands import Response
from ariconnector.protocol.correlator import ResponseCorrelator

logger = logging.getLogger(__name__)


class DeliveryLoop(AsyncLoop):
    """
    The single context on which responses and events are delivered.

    Transports post inbound messages with post(), from any thread. The loop takes them off the queue
    one at a time, in the order posted, and passes responses to the correlator and events to the
    router. Continuations attached to command results, and event handlers, therefore run on this
    loop's thread and must not block.

    When the correlator has a timeout, overdue commands are expired every poll_interval seconds.
    """

    def __init__(self, correlator: ResponseCorrelator, router: EventRouter, poll_interval=0.5,
                 current_time=time.time, log=logger):
        super().__init__(name='ari-delivery', log=log)
        self.correlator = correlator
        self.router = router
        self.poll_interval = poll_interval
        self.current_time = current_time
        self.inbound = Queue()

    def post(self, message):
        """ queues a Response or Event for delivery. """
        self.inbound.put(message)

    def loop(self):
        try:
            message = self.inbound.get(timeout=self.poll_interval)
        except Empty:
            message = None
        if message is not None:
            self.deliver(message)
        self.correlator.expire(self.current_time)

    def drain(self):
        """ delivers everything queued so far on the calling thread.
        :return: the number of messages delivered
        """
        count = 0
        while True:
            try:
                message = self.inbound.get_nowait()
            except Empty:
                break
            self.deliver(message)
            count += 1
        self.correlator.expire(self.current_time)
        return count

    def deliver(self, message):
        if isinstance(message, Response):
            self.correlator.deliver(message)
        elif isinstance(message, Event):
            self.router.route(message)
        else:
            self.logger.warning("ignoring unknown inbound message %s" % (message,))
