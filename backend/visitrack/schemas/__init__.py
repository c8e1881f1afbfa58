from .visitor import LocationIn, Location, VisitorCreate, VisitorUpdate, VisitorResponse, VisitorListResponse
from .geography import CountryVisits, MapPoint, GeographyMap
from .statistics import VisitorStatistics
from .user import UserResponse, Token

__all__ = [
    "LocationIn", "Location", "VisitorCreate", "VisitorUpdate", "VisitorResponse", "VisitorListResponse",
    "CountryVisits", "MapPoint", "GeographyMap", "VisitorStatistics", "UserResponse", "Token",
]
