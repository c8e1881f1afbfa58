from typing import List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel


class CountryVisits(BaseModel):
    """Visit total for one country (choropleth entry)"""
    id: str  # country code
    value: int


class MapPoint(BaseModel):
    """Single visitor rendered on the map"""
    id: int
    name: str
    city: str
    country: str
    lat: float
    lng: float
    visit_count: int
    last_visit: Optional[datetime] = None
    ip: str
    coordinate_source: Literal["fields", "array"]


class GeographyMap(BaseModel):
    """Map points, or an explicit empty state with guidance"""
    status: Literal["ok", "empty"]
    points: List[MapPoint]
    countries: List[CountryVisits]
    message: Optional[str] = None
