import unittest
from unittest import mock

import requests

from backend.spotify import (
    FEATURED_TRACK_IDS,
    SpotifyClient,
    SpotifyConfigError,
    SpotifyError,
)


def _response(status_code=200, payload=None):
    response = mock.Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.json.return_value = payload if payload is not None else {}
    return response


TRACK_ITEM = {
    "id": "t1",
    "name": "Yellow",
    "artists": [{"name": "Coldplay"}, {"name": "Guest"}],
    "album": {"images": [{"url": "https://img/large"}, {"url": "https://img/small"}]},
}


class SpotifyClientTests(unittest.TestCase):
    def setUp(self):
        post_patcher = mock.patch("backend.spotify.requests.post")
        get_patcher = mock.patch("backend.spotify.requests.get")
        self.post = post_patcher.start()
        self.get = get_patcher.start()
        self.addCleanup(post_patcher.stop)
        self.addCleanup(get_patcher.stop)
        self.now = 1000.0
        self.client = SpotifyClient("id", "secret", clock=lambda: self.now)
        self.post.return_value = _response(
            payload={"access_token": "tok", "expires_in": 3600}
        )

    def test_missing_credentials(self):
        client = SpotifyClient(None, None)
        with self.assertRaises(SpotifyConfigError):
            client.get_access_token()

    def test_token_cached_until_five_minutes_before_expiry(self):
        self.assertEqual(self.client.get_access_token(), "tok")
        self.now += 3600 - 300 - 1
        self.client.get_access_token()
        self.assertEqual(self.post.call_count, 1)

        self.now += 1
        self.client.get_access_token()
        self.assertEqual(self.post.call_count, 2)
        self.assertEqual(self.post.call_args.kwargs["auth"], ("id", "secret"))

    def test_token_error(self):
        self.post.return_value = _response(400, {"error_description": "Invalid client"})
        with self.assertRaises(SpotifyError) as ctx:
            self.client.get_access_token()
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(str(ctx.exception), "Invalid client")

    def test_search_maps_tracks(self):
        self.get.return_value = _response(payload={"tracks": {"items": [TRACK_ITEM]}})
        tracks = self.client.search("yellow")

        self.assertEqual(len(tracks), 1)
        self.assertEqual(tracks[0].artist, "Coldplay, Guest")
        self.assertEqual(tracks[0].album_art, "https://img/large")
        params = self.get.call_args.kwargs["params"]
        self.assertEqual(params, {"q": "yellow", "type": "track", "limit": 10})
        self.assertEqual(
            self.get.call_args.kwargs["headers"], {"Authorization": "Bearer tok"}
        )

    def test_featured_skips_missing_tracks(self):
        self.get.return_value = _response(
            payload={"tracks": [TRACK_ITEM, None, {"id": "t2", "name": "No art", "artists": []}]}
        )
        tracks = self.client.featured()
        self.assertEqual([t.id for t in tracks], ["t1", "t2"])
        self.assertEqual(tracks[1].album_art, "")
        self.assertEqual(
            self.get.call_args.kwargs["params"]["ids"], ",".join(FEATURED_TRACK_IDS)
        )

    def test_api_error_keeps_status(self):
        self.get.return_value = _response(429, {"error": {"message": "rate limited"}})
        with self.assertRaises(SpotifyError) as ctx:
            self.client.search("x")
        self.assertEqual(ctx.exception.status_code, 429)


    def test_network_failures_become_bad_gateway(self):
        self.post.side_effect = requests.ConnectTimeout("timed out")
        with self.assertLogs("backend.spotify", level="ERROR"):
            with self.assertRaises(SpotifyError) as ctx:
                self.client.get_access_token()
        self.assertEqual(ctx.exception.status_code, 502)

        self.post.side_effect = None
        self.get.side_effect = requests.ConnectionError("reset")
        with self.assertLogs("backend.spotify", level="ERROR"):
            with self.assertRaises(SpotifyError) as ctx:
                self.client.search("yellow")
        self.assertEqual(ctx.exception.status_code, 502)

    def test_token_response_without_token(self):
        response = _response(200)
        response.json.side_effect = ValueError("not json")
        self.post.return_value = response
        with self.assertLogs("backend.spotify", level="ERROR"):
            with self.assertRaises(SpotifyError) as ctx:
                self.client.get_access_token()
        self.assertEqual(ctx.exception.status_code, 502)


if __name__ == "__main__":
    unittest.main()
