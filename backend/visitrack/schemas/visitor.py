from typing import Any, List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..core.coordinates import normalize_location


def _strip_ip(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("ip_address is required")
    return v


class LocationIn(BaseModel):
    """Raw location as sent by clients.

    Coordinate fields accept anything; normalize_location drops booleans and
    other non-numeric values as if they were absent.
    """
    country: Optional[str] = None
    city: Optional[str] = None
    country_code: Optional[str] = None
    latitude: Optional[Any] = None
    longitude: Optional[Any] = None
    coordinates: Optional[Any] = None


class Location(BaseModel):
    """Normalized location with both coordinate representations"""
    country: str = ""
    city: str = ""
    country_code: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    coordinates: Optional[List[float]] = Field(None, description="[longitude, latitude]")


class VisitorCreate(BaseModel):
    """Schema for recording a visit (create or upsert by IP)"""
    ip_address: str = Field(..., min_length=1, max_length=45)
    location: Optional[LocationIn] = None
    device_info: Optional[str] = Field(None, max_length=100)
    browser: Optional[str] = Field(None, max_length=100)
    os: Optional[str] = Field(None, max_length=100)
    referrer: Optional[str] = Field(None, max_length=512)
    visit_count: Optional[int] = Field(None, ge=1)

    @field_validator("ip_address")
    @classmethod
    def strip_ip(cls, v: Optional[str]) -> Optional[str]:
        return _strip_ip(v)


class VisitorUpdate(BaseModel):
    """Schema for editing a visitor; only fields sent are applied"""
    ip_address: Optional[str] = Field(None, min_length=1, max_length=45)
    location: Optional[LocationIn] = None
    device_info: Optional[str] = Field(None, max_length=100)
    browser: Optional[str] = Field(None, max_length=100)
    os: Optional[str] = Field(None, max_length=100)
    referrer: Optional[str] = Field(None, max_length=512)
    visit_count: Optional[int] = Field(None, ge=1)

    @field_validator("ip_address")
    @classmethod
    def strip_ip(cls, v: Optional[str]) -> Optional[str]:
        return _strip_ip(v)


class VisitorResponse(BaseModel):
    """Schema for visitor response"""
    id: int = Field(..., serialization_alias="_id")
    ip_address: str
    location: Optional[Location] = None
    device_info: Optional[str] = None
    browser: Optional[str] = None
    os: Optional[str] = None
    referrer: Optional[str] = None
    visit_count: int
    last_visited_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("location", mode="before")
    @classmethod
    def backfill_location(cls, v):
        return normalize_location(v)


class VisitorListResponse(BaseModel):
    """Paginated visitor list"""
    visitors: List[VisitorResponse]
    total: int
    total_pages: int
    current_page: int

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DeleteResponse(BaseModel):
    message: str
