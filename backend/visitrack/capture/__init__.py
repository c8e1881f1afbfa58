from .client import VisitorApiClient, VisitorApiError
from .location import (
    GeolocationError,
    GeolocationOptions,
    LocationCapture,
    Position,
    VisitorDraft,
    prepare_visitor,
)
from .useragent import describe_user_agent

__all__ = [
    "VisitorApiClient", "VisitorApiError", "GeolocationError", "GeolocationOptions",
    "LocationCapture", "Position", "VisitorDraft", "prepare_visitor", "describe_user_agent",
]
