"""
Best-effort IP and place lookups used while capturing a visitor.

Both lookups are independent and fail soft: any network or decoding error
is logged and reported as None so the caller can fall back to defaults.
"""

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = "visitrack-capture/1.0"


class Place:
    """Container for reverse geocoding results"""
    def __init__(self, country: Optional[str] = None,
                 city: Optional[str] = None,
                 country_code: Optional[str] = None):
        self.country = country
        self.city = city
        self.country_code = country_code

    def __repr__(self):
        return f"<Place {self.city}, {self.country} ({self.country_code})>"


def lookup_public_ip(client: httpx.Client, url: str) -> Optional[str]:
    """
    Public IP address of this machine, as seen by an ipify-style service.

    Returns:
        IP address string, or None if the lookup failed
    """
    try:
        response = client.get(url, params={"format": "json"})
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("IP lookup failed: %s", exc)
        return None

    if not isinstance(data, dict):
        return None
    return data.get("ip") or None


def reverse_geocode(client: httpx.Client, url: str, latitude: float, longitude: float) -> Optional[Place]:
    """
    Country and city for a coordinate pair from a Nominatim-style service.

    Returns:
        Place, or None if the lookup failed
    """
    try:
        response = client.get(
            url,
            params={"format": "json", "lat": latitude, "lon": longitude},
            headers={"User-Agent": USER_AGENT},
        )
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Reverse geocoding failed for (%s, %s): %s", latitude, longitude, exc)
        return None

    if not isinstance(data, dict):
        return None

    address = data.get("address") or {}
    country_code = address.get("country_code")
    return Place(
        country=address.get("country"),
        city=address.get("city") or address.get("town") or address.get("village"),
        country_code=country_code.upper() if country_code else None,
    )
