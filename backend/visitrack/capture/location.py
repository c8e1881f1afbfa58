"""
Visitor capture: the form state used to add or edit a visitor, and the
opt-in location detection that fills it.

Detection asks a position provider (the platform geolocation API) for a
fresh, high-accuracy fix, then looks up the public IP and the place name
independently. Any failure leaves the draft usable and is reported as a
warning message; coordinates can always be entered by hand.
"""

import logging
from typing import Any, Callable, List, Optional

import httpx
from pydantic import BaseModel, Field

from ..config import settings
from ..core.coordinates import parse_coordinate
from .lookup import lookup_public_ip, reverse_geocode
from .useragent import describe_user_agent

logger = logging.getLogger(__name__)

# Geolocation API error codes
PERMISSION_DENIED = 1
POSITION_UNAVAILABLE = 2
TIMEOUT = 3

ERROR_PREFIX = "Location detection failed. "
GEOLOCATION_ERROR_MESSAGES = {
    PERMISSION_DENIED: "Please allow location access in your browser settings.",
    POSITION_UNAVAILABLE: "Location information is unavailable.",
    TIMEOUT: "The request to get location timed out.",
}
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."
UNSUPPORTED_MESSAGE = "Geolocation is not supported by this browser. Please enter coordinates manually."

FALLBACK_IP = "127.0.0.1"
UNKNOWN = "Unknown"


class GeolocationError(Exception):
    """Position request failed with a geolocation error code"""
    def __init__(self, code: int, message: Optional[str] = None):
        self.code = code
        super().__init__(message or describe_geolocation_error(code))


def describe_geolocation_error(code: int) -> str:
    return ERROR_PREFIX + GEOLOCATION_ERROR_MESSAGES.get(code, UNKNOWN_ERROR_MESSAGE)


class GeolocationOptions(BaseModel):
    """Options passed to the position provider"""
    enable_high_accuracy: bool = True
    timeout: float = Field(default_factory=lambda: settings.GEOLOCATION_TIMEOUT_SECONDS)
    maximum_age: int = 0  # never reuse a cached position


class Position(BaseModel):
    latitude: float
    longitude: float
    accuracy: Optional[float] = None


PositionProvider = Callable[[GeolocationOptions], Position]


class LocationDraft(BaseModel):
    country: str = ""
    city: str = ""
    country_code: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    coordinates: List[float] = []


class VisitorDraft(BaseModel):
    """Editable visitor record before it is submitted"""
    ip_address: str = ""
    device_info: str = ""
    browser: str = ""
    os: str = ""
    referrer: str = ""
    location: LocationDraft = Field(default_factory=LocationDraft)
    visit_count: int = 1

    @classmethod
    def for_new_visitor(cls, user_agent: str, referrer: str = "") -> "VisitorDraft":
        """Blank draft with browser, OS and device filled from the user agent"""
        return cls(referrer=referrer or "", **describe_user_agent(user_agent))

    @classmethod
    def from_visitor(cls, visitor: dict) -> "VisitorDraft":
        """Draft for editing a visitor returned by the API"""
        location = visitor.get("location") or {}
        return cls(
            ip_address=visitor.get("ip_address") or "",
            device_info=visitor.get("device_info") or "",
            browser=visitor.get("browser") or "",
            os=visitor.get("os") or "",
            referrer=visitor.get("referrer") or "",
            location=LocationDraft(
                country=location.get("country") or "",
                city=location.get("city") or "",
                country_code=location.get("country_code") or "",
                latitude=parse_coordinate(location.get("latitude")),
                longitude=parse_coordinate(location.get("longitude")),
                coordinates=location.get("coordinates") or [],
            ),
            visit_count=visitor.get("visit_count") or 1,
        )

    def set_latitude(self, value: Any) -> None:
        self.location.latitude = parse_coordinate(value)
        self._sync_coordinates()

    def set_longitude(self, value: Any) -> None:
        self.location.longitude = parse_coordinate(value)
        self._sync_coordinates()

    def _sync_coordinates(self) -> None:
        lat, lng = self.location.latitude, self.location.longitude
        self.location.coordinates = [lng, lat] if lat is not None and lng is not None else []

    def set_position(self, latitude: float, longitude: float) -> None:
        self.location.latitude = float(latitude)
        self.location.longitude = float(longitude)
        self._sync_coordinates()

    def to_payload(self) -> dict:
        return self.model_dump()


class CaptureResult:
    """Outcome of a detection attempt"""
    def __init__(self, draft: VisitorDraft, detected: bool = False, warning: Optional[str] = None):
        self.draft = draft
        self.detected = detected
        self.warning = warning


class LocationCapture:
    """
    Fills a VisitorDraft from the device position and public lookups.

    Args:
        http_client: Client for the IP and reverse geocoding services;
            one with a bounded timeout is created when omitted
        options: Options for the position provider
    """

    def __init__(self, http_client: Optional[httpx.Client] = None,
                 options: Optional[GeolocationOptions] = None,
                 ip_lookup_url: str = settings.IP_LOOKUP_URL,
                 reverse_geocode_url: str = settings.REVERSE_GEOCODE_URL):
        self._client = http_client or httpx.Client(timeout=settings.LOOKUP_TIMEOUT_SECONDS)
        self._owns_client = http_client is None
        self.options = options or GeolocationOptions()
        self.ip_lookup_url = ip_lookup_url
        self.reverse_geocode_url = reverse_geocode_url

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def detect(self, draft: VisitorDraft, provider: Optional[PositionProvider]) -> CaptureResult:
        """
        Detect the location for ``draft``.

        Never raises for geolocation or lookup failures; the draft keeps
        whatever could be determined and ``warning`` explains the rest.
        """
        if provider is None:
            return CaptureResult(draft, warning=UNSUPPORTED_MESSAGE)

        try:
            position = provider(self.options)
        except GeolocationError as exc:
            logger.info("Geolocation error code=%s", exc.code)
            return CaptureResult(draft, warning=describe_geolocation_error(exc.code))
        except TimeoutError:
            return CaptureResult(draft, warning=describe_geolocation_error(TIMEOUT))

        latitude, longitude = position.latitude, position.longitude
        logger.debug("Device position: %s, %s", latitude, longitude)

        ip = lookup_public_ip(self._client, self.ip_lookup_url)
        place = reverse_geocode(self._client, self.reverse_geocode_url, latitude, longitude)

        draft.ip_address = ip or FALLBACK_IP
        draft.location.country = (place and place.country) or UNKNOWN
        draft.location.city = (place and place.city) or UNKNOWN
        draft.location.country_code = (place and place.country_code) or ""
        draft.set_position(latitude, longitude)

        return CaptureResult(draft, detected=True)


def prepare_visitor(user_agent: str, referrer: str = "", detect_location: bool = False,
                    provider: Optional[PositionProvider] = None,
                    capture: Optional[LocationCapture] = None) -> CaptureResult:
    """
    Build the draft for a new visitor.

    Location detection is opt-in; without it the draft only carries what the
    user agent tells us.
    """
    draft = VisitorDraft.for_new_visitor(user_agent, referrer)
    if not detect_location:
        return CaptureResult(draft)

    if capture is not None:
        return capture.detect(draft, provider)

    with LocationCapture() as owned:
        return owned.detect(draft, provider)
