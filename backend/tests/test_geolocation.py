import unittest
from unittest import mock

import requests

from backend.geolocation import PRO_API_URL, GeoLocator, client_ip


class ClientIpTests(unittest.TestCase):
    def test_prefers_first_forwarded_hop(self):
        self.assertEqual(client_ip("198.51.100.4, 10.0.0.2", "10.0.0.1"), "198.51.100.4")

    def test_falls_back_to_peer_then_loopback(self):
        self.assertEqual(client_ip(None, "10.0.0.1"), "10.0.0.1")
        self.assertEqual(client_ip(" ", None), "127.0.0.1")


class GeoLocatorTests(unittest.TestCase):
    def setUp(self):
        patcher = mock.patch("backend.geolocation.requests.get")
        self.get = patcher.start()
        self.addCleanup(patcher.stop)
        self.locator = GeoLocator("http://geo.test/json/{ip}")

    def _respond(self, payload, ok=True):
        response = mock.Mock(ok=ok, status_code=200 if ok else 500)
        response.json.return_value = payload
        self.get.return_value = response

    def test_success(self):
        self._respond({"status": "success", "country": "Japan", "city": "Tokyo"})
        location = self.locator.lookup("203.0.113.7")
        self.assertEqual((location.country, location.city), ("Japan", "Tokyo"))
        self.assertEqual(self.get.call_args.args[0], "http://geo.test/json/203.0.113.7")

    def test_failures_map_to_unknown(self):
        self._respond({"status": "fail", "message": "private range"})
        self.assertEqual(self.locator.lookup("10.0.0.1").country, "Unknown")

        self._respond({}, ok=False)
        self.assertEqual(self.locator.lookup("10.0.0.1").city, "Unknown")

        self.get.side_effect = requests.ConnectionError("offline")
        location = self.locator.lookup("10.0.0.1")
        self.assertEqual((location.country, location.city), ("Unknown", "Unknown"))

    def test_api_key_switches_to_pro_endpoint(self):
        locator = GeoLocator("http://geo.test/json/{ip}", api_key="secret")
        self._respond({"status": "success", "country": "France", "city": ""})
        location = locator.lookup("192.0.2.1")
        self.assertEqual(location.city, "Unknown")
        self.assertEqual(self.get.call_args.args[0], PRO_API_URL.format(ip="192.0.2.1"))
        self.assertEqual(self.get.call_args.kwargs["params"]["key"], "secret")


if __name__ == "__main__":
    unittest.main()
