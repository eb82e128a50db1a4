"""
Visitor geolocation lookup used when logging site visits.
"""

from __future__ import annotations

import logging
from typing import Optional

import requests

from shared.constants import UNKNOWN_LOCATION
from shared.types import GeoLocation

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 5  # seconds
PRO_API_URL = "https://pro.ip-api.com/json/{ip}"
LOOKUP_FIELDS = "status,message,country,city"

UNKNOWN = GeoLocation(country=UNKNOWN_LOCATION, city=UNKNOWN_LOCATION)


def client_ip(forwarded_for: Optional[str], peer_host: Optional[str]) -> str:
    """First hop of X-Forwarded-For, else the socket peer, else loopback."""
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return peer_host or "127.0.0.1"


class GeoLocator:
    def __init__(self, api_url: str, api_key: Optional[str] = None):
        self.api_url = PRO_API_URL if api_key else api_url
        self.api_key = api_key

    def lookup(self, ip: str) -> GeoLocation:
        """Resolve an IP to a location; every failure maps to Unknown/Unknown."""
        params = {"fields": LOOKUP_FIELDS}
        if self.api_key:
            params["key"] = self.api_key
        try:
            response = requests.get(
                self.api_url.format(ip=ip), params=params, timeout=REQUEST_TIMEOUT
            )
        except requests.RequestException:
            logger.warning("Geolocation request failed for %s", ip, exc_info=True)
            return UNKNOWN

        if not response.ok:
            logger.warning(
                "Failed to fetch geolocation data (HTTP %s)", response.status_code
            )
            return UNKNOWN

        try:
            data = response.json()
        except ValueError:
            logger.warning("Geolocation response was not JSON")
            return UNKNOWN

        if data.get("status") != "success":
            logger.warning(
                "Geolocation lookup was not successful: %s", data.get("message")
            )
            return UNKNOWN

        return GeoLocation(
            country=data.get("country") or UNKNOWN_LOCATION,
            city=data.get("city") or UNKNOWN_LOCATION,
        )
