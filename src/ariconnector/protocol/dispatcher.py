import itertools
import logging

from ariconnector.protocol.commands import Command
from ariconnector.protocol.correlator import ResponseCorrelator
from ariconnector.protocol.deferred import DeferredResult
from ariconnector.support.events import EventSource
from ariconnector.transport.base import Transport, TransportError

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """
    Sends commands to the transport and returns their results as DeferredResult instances.

    send() never blocks on the server and never raises: a command that cannot be handed to the
    transport fails its result with TransportError.

    To observe every command sent, add a listener to request_handlers. Listeners receive the command
    and its result.
    """

    def __init__(self, transport: Transport, correlator: ResponseCorrelator, log=logger):
        self._transport = transport
        self._correlator = correlator
        self._keys = itertools.count(1)
        self.request_handlers = EventSource()
        self.logger = log

    @property
    def correlator(self):
        return self._correlator

    @property
    def transport(self):
        return self._transport

    def send(self, method, path, params=None) -> DeferredResult:
        """ Asynchronously sends a command.
        :param method: the HTTP method
        :param path: the resource path, e.g. /bridges/1234
        :param params: the query parameters, built with commands.query()
        :return: a DeferredResult completed when the response arrives
        """
        command = Command(method, path, params, next(self._keys))
        return self.dispatch(command)

    def dispatch(self, command: Command) -> DeferredResult:
        result = DeferredResult()
        self._correlator.register(command, result)
        self.request_handlers.fire(command, result)
        self.logger.debug("sending %s %s [%s]" % (command.method, command.url_path, command.correlation_key))
        try:
            self._transport.send(command)
        except TransportError as e:
            self._correlator.discard(command.correlation_key)
            self.logger.debug("unable to send %s %s: %s" % (command.method, command.path, e))
            result.reject(e)
        return result
