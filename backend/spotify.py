"""
Thin proxy over the Spotify Web API for song search and featured tracks.

Uses the client-credentials flow; the access token is cached in memory and
refreshed five minutes before it expires.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import requests

from shared.types import Track

logger = logging.getLogger(__name__)

TOKEN_URL = "https://accounts.spotify.com/api/token"
API_BASE_URL = "https://api.spotify.com/v1"
REQUEST_TIMEOUT = 15  # seconds
TOKEN_REFRESH_MARGIN_SECONDS = 300
SEARCH_LIMIT = 10

# A list of popular track IDs from various genres to ensure variety
FEATURED_TRACK_IDS = [
    "3AJwUDP919kvQ9QcozQPxg",  # Yellow - Coldplay
    "4m0q0xQ2BNl9SCAGKyfiGZ",  # Somebody Else - The 1975
    "6Qyc6fS4DsZjB2mRW9DsQs",  # Iris - The Goo Goo Dolls
    "2btKtacOXuMtC9WjcNRvAA",  # ILYSB - LANY
    "7JIuqL4ZqkpfGKQhYlrirs",  # The Only Exception - Paramore
    "6rY5FAWxCdAGllYEOZMbjW",  # SLOW DANCING IN THE DARK - Joji
    "3T9CfDxFYqZWSKxd0BhZrb",  # Wait - Maroon 5
    "5II8XNTmGAsegdcYFplDfN",  # Statue - Lil Eddie
    "3hEfpBHxgieRLz4t3kLNEg",  # About You - The 1975
    "3qhlB30KknSejmIvZZLjOD",  # End of Beginning - Djo
]


class SpotifyConfigError(Exception):
    """Raised when API credentials are missing."""


class SpotifyError(Exception):
    """Raised when the Spotify API returns an error."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.status_code = status_code


def _to_track(item: dict) -> Track:
    images = (item.get("album") or {}).get("images") or []
    return Track(
        id=item["id"],
        name=item.get("name", ""),
        artist=", ".join(a.get("name", "") for a in item.get("artists", [])),
        album_art=images[0].get("url", "") if images else "",
    )


class SpotifyClient:
    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        *,
        clock: Callable[[], float] = time.time,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self._clock = clock
        self._access_token = ""
        self._expires_at = 0.0

    def get_access_token(self) -> str:
        """Return a cached token, fetching a new one when it is missing or stale."""
        if self._access_token and self._clock() < self._expires_at:
            return self._access_token

        if not self.client_id or not self.client_secret:
            raise SpotifyConfigError(
                "Spotify API credentials are not configured in environment variables."
            )

        try:
            response = requests.post(
                TOKEN_URL,
                data={"grant_type": "client_credentials"},
                auth=(self.client_id, self.client_secret),
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as exc:
            logger.error("Spotify token request failed: %s", exc)
            raise SpotifyError(
                "Failed to fetch Spotify access token.", status_code=502
            ) from exc
        data = _json_or_empty(response)
        if not response.ok:
            logger.error("Spotify token error: %s", data)
            raise SpotifyError(
                data.get("error_description")
                or "Failed to fetch Spotify access token.",
                status_code=500,
            )

        access_token = data.get("access_token")
        if not access_token:
            logger.error("Spotify token response had no access token: %s", data)
            raise SpotifyError("Failed to fetch Spotify access token.", status_code=502)

        self._access_token = access_token
        self._expires_at = self._clock() + (
            data.get("expires_in", 3600) - TOKEN_REFRESH_MARGIN_SECONDS
        )
        return self._access_token

    def _get(self, path: str, params: dict, error_message: str) -> dict:
        token = self.get_access_token()
        try:
            response = requests.get(
                f"{API_BASE_URL}{path}",
                params=params,
                headers={"Authorization": f"Bearer {token}"},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as exc:
            logger.error("Spotify API request failed: %s", exc)
            raise SpotifyError(error_message, status_code=502) from exc
        if not response.ok:
            logger.error("Spotify API error: %s", _json_or_empty(response))
            raise SpotifyError(error_message, status_code=response.status_code)
        data = _json_or_empty(response)
        if not data:
            logger.error("Spotify API returned an unreadable body for %s", path)
            raise SpotifyError(error_message, status_code=502)
        return data

    def search(self, query: str, limit: int = SEARCH_LIMIT) -> list[Track]:
        data = self._get(
            "/search",
            {"q": query, "type": "track", "limit": limit},
            "Failed to search tracks on Spotify.",
        )
        items = (data.get("tracks") or {}).get("items") or []
        return [_to_track(item) for item in items if item]

    def featured(self) -> list[Track]:
        data = self._get(
            "/tracks",
            {"ids": ",".join(FEATURED_TRACK_IDS)},
            "Failed to fetch featured tracks from Spotify.",
        )
        return [_to_track(item) for item in data.get("tracks") or [] if item]


def _json_or_empty(response: requests.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
