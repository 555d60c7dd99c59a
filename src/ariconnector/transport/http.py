"""
The command channel over HTTP.
"""
import logging
from queue import Empty, Queue

import httpx

from ariconnector.protocol.asyncloop import AsyncLoop
from ariconnector.protocol.commands import Command, Response
from ariconnector.transport.base import Transport, TransportClosedError, TransportError

logger = logging.getLogger(__name__)


def decode_body(response: httpx.Response):
    """ the JSON body of a response, its text if it is not JSON, or None if it is empty. """
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class HttpTransport(Transport):
    """
    Performs commands as HTTP requests against the server's ARI root.

    send() queues the command. Worker threads take commands from the queue in order, perform the
    request and post the Response. With a single worker, commands reach the server in the order sent.

    :param base_url: the server URL, e.g. http://localhost:8088
    :param workers: the number of requests performed concurrently
    :param timeout: the HTTP timeout in seconds
    :param client_factory: creates the httpx.Client. Defaults to a client for base_url with basic auth.
    """

    def __init__(self, base_url, username='', password='', workers=1, timeout=10.0, client_factory=None,
                 poll_interval=0.5, log=logger):
        super().__init__()
        self.base_url = base_url.rstrip('/')
        self.username = username
        self.password = password
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.logger = log
        self._client_factory = client_factory or self._new_client
        self._client = None
        self._queue = Queue()
        self._workers = [AsyncLoop(self._work, name='ari-http-%d' % n, log=log) for n in range(max(1, workers))]

    def _new_client(self) -> httpx.Client:
        auth = (self.username, self.password) if self.username else None
        return httpx.Client(base_url=self.base_url + '/ari', auth=auth, timeout=self.timeout)

    @property
    def open(self):
        return self._client is not None

    def start(self):
        if self._client is None:
            self._client = self._client_factory()
            self.logger.info("opened command channel to %s" % self.base_url)
        for worker in self._workers:
            worker.start()

    def close(self):
        client = self._client
        self._client = None
        for worker in self._workers:
            worker.stop()
        if client is not None:
            client.close()
            self.logger.info("closed command channel to %s" % self.base_url)
        self._fail_queued()

    def _fail_queued(self):
        while True:
            try:
                command = self._queue.get_nowait()
            except Empty:
                break
            self._post(Response(command.correlation_key, error=TransportClosedError("transport closed")))

    def send(self, command: Command):
        if self._client is None:
            raise TransportClosedError("command channel to %s is not open" % self.base_url)
        self._queue.put(command)

    def _work(self):
        try:
            command = self._queue.get(timeout=self.poll_interval)
        except Empty:
            return
        self._post(self.perform(command))

    def perform(self, command: Command) -> Response:
        """ performs the request for a command on the calling thread. """
        client = self._client
        if client is None:
            return Response(command.correlation_key, error=TransportClosedError("transport closed"))
        try:
            response = client.request(command.method, command.path, params=dict(command.params))
        except httpx.HTTPError as e:
            self.logger.debug("%s %s failed: %s" % (command.method, command.path, e))
            error = TransportError("%s %s failed: %s" % (command.method, command.path, e))
            error.__cause__ = e
            return Response(command.correlation_key, error=error)
        return Response(command.correlation_key, response.status_code, decode_body(response))
