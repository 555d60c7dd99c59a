import threading
import time
import unittest
from queue import Queue
from unittest.mock import Mock

import httpx
import timeout_decorator
from hamcrest import assert_that, calling, contains_string, instance_of, is_, raises

from ariconnector.protocol.asyncloop_test import debug_timeout
from ariconnector.protocol.commands import Command, query
from ariconnector.transport.base import TransportClosedError, TransportError
from ariconnector.transport.http import HttpTransport, decode_body


class DecodeBodyTest(unittest.TestCase):
    def test_json(self):
        assert_that(decode_body(httpx.Response(200, json={'id': 'b1'})), is_({'id': 'b1'}))

    def test_text(self):
        assert_that(decode_body(httpx.Response(500, text='Internal error')), is_('Internal error'))

    def test_empty(self):
        assert_that(decode_body(httpx.Response(204)), is_(None))


class HttpTransportTest(unittest.TestCase):

    def setUp(self):
        self.requests = []
        self.handler = self.respond_ok
        self.sut = HttpTransport('http://pbx:8088/', 'user', 'secret', client_factory=self.new_client,
                                 poll_interval=0.01)

    def new_client(self):
        return httpx.Client(base_url='http://pbx:8088/ari', transport=httpx.MockTransport(self.handle))

    def handle(self, request: httpx.Request):
        self.requests.append(request)
        return self.handler(request)

    @staticmethod
    def respond_ok(request):
        return httpx.Response(200, json={'id': 'b1'})

    def test_not_open_until_started(self):
        assert_that(self.sut.open, is_(False))
        assert_that(calling(self.sut.send).with_args(Command('GET', '/bridges', correlation_key=1)),
                    raises(TransportClosedError))

    def test_perform_sends_request(self):
        self.sut.start()
        try:
            response = self.sut.perform(Command('POST', '/bridges/b1/play',
                                                query(media='sound:hello', skipms=50), correlation_key=7))
        finally:
            self.sut.close()
        request = self.requests[0]
        assert_that(request.method, is_('POST'))
        assert_that(request.url.path, is_('/ari/bridges/b1/play'))
        assert_that(dict(request.url.params), is_({'media': 'sound:hello', 'skipms': '50'}))
        assert_that(response.correlation_key, is_(7))
        assert_that(response.status, is_(200))
        assert_that(response.body, is_({'id': 'b1'}))

    def test_perform_reports_error_status(self):
        self.handler = lambda request: httpx.Response(404, json={'message': 'Bridge not found'})
        self.sut.start()
        try:
            response = self.sut.perform(Command('DELETE', '/bridges/b9', correlation_key=1))
        finally:
            self.sut.close()
        assert_that(response.ok, is_(False))
        assert_that(response.status, is_(404))
        assert_that(response.body, is_({'message': 'Bridge not found'}))

    def test_perform_reports_transport_failure(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)
        self.handler = refuse
        self.sut.start()
        try:
            response = self.sut.perform(Command('GET', '/bridges', correlation_key=1))
        finally:
            self.sut.close()
        assert_that(response.status, is_(None))
        assert_that(response.error, instance_of(TransportError))
        assert_that(response.error.__cause__, instance_of(httpx.ConnectError))
        assert_that(str(response.error), contains_string('connection refused'))

    def test_perform_when_closed(self):
        response = self.sut.perform(Command('GET', '/bridges', correlation_key=3))
        assert_that(response.error, instance_of(TransportClosedError))

    @timeout_decorator.timeout(debug_timeout(2))
    def test_commands_performed_in_order(self):
        posted = Queue()
        self.sut.attach(posted.put)
        self.sut.start()
        try:
            for key in range(1, 6):
                self.sut.send(Command('POST', '/things/%d' % key, correlation_key=key))
            responses = [posted.get() for _ in range(5)]
        finally:
            self.sut.close()
        assert_that([r.correlation_key for r in responses], is_([1, 2, 3, 4, 5]))
        assert_that([r.url.path for r in self.requests], is_(['/ari/things/%d' % n for n in range(1, 6)]))

    @timeout_decorator.timeout(debug_timeout(2))
    def test_close_fails_queued_commands(self):
        release = threading.Event()
        started = threading.Event()

        def slow(request):
            started.set()
            release.wait()
            return httpx.Response(204)
        self.handler = slow
        posted = Queue()
        self.sut.attach(posted.put)
        self.sut.start()
        self.sut.send(Command('POST', '/first', correlation_key=1))
        started.wait()
        self.sut.send(Command('POST', '/second', correlation_key=2))
        closer = threading.Thread(target=self.sut.close)
        closer.start()
        while self.sut.open:
            time.sleep(0.001)
        release.set()
        closer.join()
        responses = {}
        while not posted.empty():
            response = posted.get()
            responses[response.correlation_key] = response
        assert_that(responses[2].error, instance_of(TransportClosedError))
        assert_that(self.sut.open, is_(False))

    def test_default_client_uses_basic_auth(self):
        sut = HttpTransport('http://pbx:8088/', 'user', 'secret', timeout=3)
        client = sut._new_client()
        try:
            assert_that(str(client.base_url), is_('http://pbx:8088/ari/'))
            assert_that(client.auth, instance_of(httpx.BasicAuth))
            assert_that(client.timeout.read, is_(3))
        finally:
            client.close()

    def test_close_closes_client(self):
        client = Mock()
        sut = HttpTransport('http://pbx:8088', client_factory=lambda: client, poll_interval=0.01)
        sut.start()
        sut.close()
        client.close.assert_called_once()


if __name__ == '__main__':  # pragma no cover
    unittest.main()
