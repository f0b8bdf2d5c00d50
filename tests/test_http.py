import json
import threading
import unittest
from http.server import BaseHTTPRequestHandler, HTTPServer

import requests

from marine_conditions.data_sources import http
from marine_conditions.errors import NetworkError, NoDataAvailableError, ServerError


class _StatusHandler(BaseHTTPRequestHandler):
    status = 200
    body = {"status": 200}
    hits = 0

    def do_GET(self):
        type(self).hits += 1
        payload = json.dumps(self.body).encode("utf-8")
        self.send_response(self.status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format, *args):
        pass


class RaisingSession:
    def __init__(self, exc):
        self.exc = exc

    def get(self, url, params=None, timeout=None):
        raise self.exc


class TestGetJsonThroughRetrySession(unittest.TestCase):
    def setUp(self):
        self._orig_session = http.session
        http.session = http.build_session(retries=2, backoff_factor=0)
        _StatusHandler.hits = 0
        self.server = HTTPServer(("127.0.0.1", 0), _StatusHandler)
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self.thread.start()
        self.url = f"http://127.0.0.1:{self.server.server_port}/api"

    def tearDown(self):
        self.server.shutdown()
        self.server.server_close()
        http.session = self._orig_session

    def _serve(self, status, body=None):
        _StatusHandler.status = status
        _StatusHandler.body = body if body is not None else {"error": "failure"}

    def test_retried_server_error_keeps_status(self):
        self._serve(500)
        with self.assertRaises(ServerError) as ctx:
            http.get_json(self.url, {}, timeout=2)
        self.assertEqual(ctx.exception.status_code, 500)
        # first attempt plus two retries
        self.assertEqual(_StatusHandler.hits, 3)

    def test_gateway_error_keeps_status(self):
        self._serve(502)
        with self.assertRaises(ServerError) as ctx:
            http.get_json(self.url, {}, timeout=2)
        self.assertEqual(ctx.exception.status_code, 502)

    def test_non_retried_status(self):
        self._serve(503)
        with self.assertRaises(ServerError) as ctx:
            http.get_json(self.url, {}, timeout=2)
        self.assertEqual(ctx.exception.status_code, 503)
        self.assertEqual(_StatusHandler.hits, 1)

    def test_not_found_is_no_data(self):
        self._serve(404)
        with self.assertRaises(NoDataAvailableError):
            http.get_json(self.url, {}, timeout=2)

    def test_success(self):
        self._serve(200, {"status": 200, "extremes": []})
        self.assertEqual(http.get_json(self.url, {"lat": 1}, timeout=2), {"status": 200, "extremes": []})


class TestGetJsonErrorMapping(unittest.TestCase):
    def setUp(self):
        self._orig_session = http.session

    def tearDown(self):
        http.session = self._orig_session

    def test_retry_error_maps_to_server_error(self):
        http.session = RaisingSession(
            requests.exceptions.RetryError("Max retries exceeded (Caused by ResponseError('too many 504 error responses'))")
        )
        with self.assertRaises(ServerError) as ctx:
            http.get_json("https://example.invalid/api", {})
        self.assertEqual(ctx.exception.status_code, 504)

    def test_connection_error_is_network_error(self):
        http.session = RaisingSession(requests.ConnectionError("refused"))
        with self.assertRaises(NetworkError):
            http.get_json("https://example.invalid/api", {})

    def test_error_for_status(self):
        self.assertIsInstance(http.error_for_status(404), NoDataAvailableError)
        err = http.error_for_status(500, "boom")
        self.assertIsInstance(err, ServerError)
        self.assertEqual(err.status_code, 500)


if __name__ == "__main__":
    unittest.main()
