import unittest
from datetime import datetime, timedelta, timezone

import requests

from marine_conditions.data_sources import http, worldtides_client
from marine_conditions.domain import ExtremeKind
from marine_conditions.errors import (
    DecodingError,
    InvalidLocationError,
    NetworkError,
    NoDataAvailableError,
    ServerError,
)


class DummyResp:
    def __init__(self, payload=None, status_code=200, bad_json=False):
        self._payload = payload
        self.status_code = status_code
        self._bad_json = bad_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)

    def json(self):
        if self._bad_json:
            raise ValueError("Expecting value")
        return self._payload


class FakeSession:
    def __init__(self, resp=None, exc=None):
        self.resp = resp
        self.exc = exc
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.resp


START = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _payload():
    return {
        "status": 200,
        "station": "LA JOLLA",
        "extremes": [
            {"dt": 1717228800, "date": "2024-06-01T08:00+0000", "height": 1.2, "type": "High"},
            {"dt": 1717250400, "date": "2024-06-01T14:00+0000", "height": -0.3, "type": "Low"},
        ],
    }


class TestWorldTidesClient(unittest.TestCase):
    def setUp(self):
        self._orig_session = http.session

    def tearDown(self):
        http.session = self._orig_session

    def _fetch(self):
        return worldtides_client.fetch_tide_extremes(
            32.8, -117.2, START, START + timedelta(days=7), api_key="abc", datum="MLLW", timeout=3.0
        )

    def test_fetch_tide_extremes(self):
        http.session = FakeSession(DummyResp(_payload()))
        extremes = self._fetch()
        self.assertEqual(len(extremes), 2)
        self.assertEqual(extremes[0].timestamp, START + timedelta(hours=8))
        self.assertIs(extremes[0].kind, ExtremeKind.HIGH)
        self.assertEqual(extremes[1].height, -0.3)
        self.assertIs(extremes[1].kind, ExtremeKind.LOW)

    def test_request_params(self):
        session = FakeSession(DummyResp(_payload()))
        http.session = session
        self._fetch()
        call = session.calls[0]
        self.assertEqual(call["url"], worldtides_client.WORLDTIDES_URL)
        self.assertEqual(call["timeout"], 3.0)
        params = call["params"]
        self.assertIn("extremes", params)
        self.assertEqual(params["start"], int(START.timestamp()))
        self.assertEqual(params["length"], 7 * 24 * 3600)
        self.assertEqual(params["key"], "abc")
        self.assertEqual(params["datum"], "MLLW")

    def test_body_status_maps_to_errors(self):
        http.session = FakeSession(DummyResp({"status": 400, "error": "Invalid lat"}))
        with self.assertRaises(InvalidLocationError):
            self._fetch()
        http.session = FakeSession(DummyResp({"status": 503, "error": "Busy"}))
        with self.assertRaises(ServerError) as ctx:
            self._fetch()
        self.assertEqual(ctx.exception.status_code, 503)

    def test_http_status_maps_to_errors(self):
        http.session = FakeSession(DummyResp(status_code=404))
        with self.assertRaises(NoDataAvailableError):
            self._fetch()
        http.session = FakeSession(DummyResp(status_code=500))
        with self.assertRaises(ServerError) as ctx:
            self._fetch()
        self.assertEqual(ctx.exception.status_code, 500)

    def test_empty_extremes_is_no_data(self):
        http.session = FakeSession(DummyResp({"status": 200, "extremes": []}))
        with self.assertRaises(NoDataAvailableError):
            self._fetch()

    def test_network_failure(self):
        http.session = FakeSession(exc=requests.ConnectionError("unreachable"))
        with self.assertRaises(NetworkError):
            self._fetch()
        http.session = FakeSession(exc=requests.Timeout("slow"))
        with self.assertRaises(NetworkError):
            self._fetch()

    def test_decoding_failures(self):
        http.session = FakeSession(DummyResp(bad_json=True))
        with self.assertRaises(DecodingError):
            self._fetch()
        http.session = FakeSession(DummyResp({"status": 200, "extremes": [{"dt": 1717228800, "type": "High"}]}))
        with self.assertRaises(DecodingError):
            self._fetch()
        http.session = FakeSession(DummyResp({"status": 200, "extremes": [{"dt": 1, "height": 1, "type": "Slack"}]}))
        with self.assertRaises(DecodingError):
            self._fetch()


if __name__ == "__main__":
    unittest.main()
