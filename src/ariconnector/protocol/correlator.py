import logging
import time

from ariconnector.protocol.commands import Command, CommandTimeoutError, Response
from ariconnector.protocol.deferred import DeferredResult
from ariconnector.support.events import EventSource

logger = logging.getLogger(__name__)


class PendingCommand:
    """ A dispatched command waiting for its response. """

    def __init__(self, command: Command, result: DeferredResult, dispatched_at):
        self.command = command
        self.result = result
        self.dispatched_at = dispatched_at


class ResponseCorrelator:
    """
    Pairs responses with the commands that produced them, and completes the command's DeferredResult
    exactly once.

    Commands are registered by correlation key when dispatched. A response removes the matching entry
    and resolves or rejects its result. Responses with no matching entry are logged and passed to
    unmatched_handlers.

    The correlator is used from a single delivery context and does no locking of its own for delivery.
    Registration happens on the dispatching thread, so the pending map is only mutated through
    dict operations that are atomic.

    :param timeout: seconds after which expire() rejects a pending command. 0 disables expiry.
    """

    def __init__(self, timeout=0, log=logger):
        self._pending = dict()
        self.timeout = timeout
        self.unmatched_handlers = EventSource()
        self.logger = log

    def __len__(self):
        return len(self._pending)

    def __contains__(self, correlation_key):
        return correlation_key in self._pending

    def register(self, command: Command, result: DeferredResult, current_time=time.time):
        key = command.correlation_key
        if key in self._pending:
            raise ValueError("correlation key %s is already pending" % key)
        self._pending[key] = PendingCommand(command, result, current_time())

    def discard(self, correlation_key):
        """ stops tracking a command without completing it. """
        return self._pending.pop(correlation_key, None)

    def deliver(self, response: Response):
        """
        Completes the command that the response belongs to.
        :return: the DeferredResult that was completed, or None if the response was unmatched.
        """
        pending = self._pending.pop(response.correlation_key, None)
        if pending is None:
            self.logger.warning("dropping unmatched response %s" % response)
            self.unmatched_handlers.fire(response)
            return None
        outcome = response.outcome(pending.command)
        self.logger.debug("%s %s completed with status %s" %
                          (pending.command.method, pending.command.path, response.status))
        pending.result.resolve_or_reject(outcome)
        return pending.result

    def expire(self, current_time=time.time):
        """
        Rejects every pending command older than the timeout with CommandTimeoutError.
        :return: the number of commands expired
        """
        if not self.timeout or self.timeout <= 0:
            return 0
        now = current_time()
        expired = [key for key, pending in list(self._pending.items())
                   if now - pending.dispatched_at >= self.timeout]
        count = 0
        for key in expired:
            pending = self._pending.pop(key, None)
            if pending is None:
                continue
            command = pending.command
            self.logger.warning("%s %s timed out after %ss" % (command.method, command.path, self.timeout))
            pending.result.reject(CommandTimeoutError("no response to %s %s within %ss" %
                                                      (command.method, command.path, self.timeout)))
            count += 1
        return count
