import logging
from typing import Iterable, List, Mapping

from ..core.coordinates import resolve_point
from ..models import Visitor
from ..schemas.geography import CountryVisits, GeographyMap, MapPoint

logger = logging.getLogger(__name__)

DEFAULT_VISITOR_NAME = "Anonymous Visitor"
UNKNOWN = "Unknown"
EMPTY_MAP_MESSAGE = (
    "No visitors with valid coordinates found. Add a visitor with location "
    "detection enabled, or enter latitude and longitude manually, to see it on the map."
)


def _stored_location(visitor: Visitor) -> Mapping:
    location = visitor.location
    if location and not isinstance(location, Mapping):
        logger.debug("Visitor %s has a malformed location: %r", visitor.id, location)
        return {}
    return location or {}


def build_map_points(visitors: Iterable[Visitor]) -> List[MapPoint]:
    """
    Map-ready points for visitors with a usable position.

    Visitors without a location, or whose coordinates do not resolve to two
    finite numbers, are skipped.
    """
    points = []
    for visitor in visitors:
        location = _stored_location(visitor)
        resolved = resolve_point(location)
        if resolved is None:
            if location:
                logger.debug("Skipping visitor %s without usable coordinates", visitor.id)
            continue

        lat, lng, source = resolved
        points.append(MapPoint(
            id=visitor.id,
            name=DEFAULT_VISITOR_NAME,
            city=location.get("city") or UNKNOWN,
            country=location.get("country") or UNKNOWN,
            lat=lat,
            lng=lng,
            visit_count=visitor.visit_count or 1,
            last_visit=visitor.last_visited_at,
            ip=visitor.ip_address,
            coordinate_source=source
        ))

    return points


def summarize_countries(visitors: Iterable[Visitor]) -> List[CountryVisits]:
    """Total visits per country code, in order of first appearance"""
    totals: dict[str, int] = {}
    for visitor in visitors:
        location = _stored_location(visitor)
        country_code = location.get("country_code")
        if not country_code:
            continue
        totals[country_code] = totals.get(country_code, 0) + (visitor.visit_count or 1)

    return [CountryVisits(id=code, value=value) for code, value in totals.items()]


def build_geography_map(visitors: Iterable[Visitor]) -> GeographyMap:
    visitors = list(visitors)
    points = build_map_points(visitors)
    countries = summarize_countries(visitors)

    if not points:
        return GeographyMap(status="empty", points=[], countries=countries, message=EMPTY_MAP_MESSAGE)

    return GeographyMap(status="ok", points=points, countries=countries)
