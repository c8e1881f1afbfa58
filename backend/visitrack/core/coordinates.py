"""
Reconciliation of visitor location coordinates.

A stored location may carry its position as scalar ``latitude`` /
``longitude`` fields, as a GeoJSON-ordered ``coordinates`` pair
(``[longitude, latitude]``), as both, or as neither. Values may arrive as
numbers or numeric strings. The helpers here are pure and are used on the
write path (sanitizing request bodies) as well as on the read path
(backfilling older documents for display).
"""

import logging
import math
from typing import Any, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

NAME_FIELDS = ("country", "city", "country_code")
SCALAR_FIELDS = ("latitude", "longitude")


def parse_coordinate(value: Any) -> Optional[float]:
    """
    Parse a single coordinate component.

    Returns None for missing, boolean, non-numeric, NaN or infinite values.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(number):
        return None
    return number


def _as_mapping(raw: Any) -> Optional[Mapping[str, Any]]:
    if raw is None:
        return None
    if isinstance(raw, Mapping):
        return raw
    if hasattr(raw, "model_dump"):
        return raw.model_dump()
    logger.debug("Ignoring location that is not a mapping: %r", raw)
    return None


def _scalar_pair(location: Mapping[str, Any]) -> Optional[Tuple[float, float]]:
    lat = parse_coordinate(location.get("latitude"))
    lng = parse_coordinate(location.get("longitude"))
    if lat is None or lng is None:
        return None
    return lat, lng


def _array_pair(location: Mapping[str, Any]) -> Optional[Tuple[float, float]]:
    coordinates = location.get("coordinates")
    if not isinstance(coordinates, (list, tuple)) or len(coordinates) != 2:
        return None
    lng = parse_coordinate(coordinates[0])
    lat = parse_coordinate(coordinates[1])
    if lat is None or lng is None:
        return None
    return lat, lng


def _has_coordinate_input(location: Mapping[str, Any]) -> bool:
    return any(location.get(field) not in (None, "", []) for field in (*SCALAR_FIELDS, "coordinates"))


def normalize_location(raw: Any) -> Optional[dict]:
    """
    Normalize a raw location into its canonical form.

    The result always has the keys ``country``, ``city``, ``country_code``,
    ``latitude``, ``longitude`` and ``coordinates``. The three coordinate keys
    are either all None or consistent with each other, with
    ``coordinates == [longitude, latitude]``. Scalar fields win when both
    representations are valid; a malformed pair is dropped rather than
    raising. Normalizing a normalized location returns an equal value.

    Args:
        raw: Mapping (or pydantic model) with any subset of the fields;
            None or any other value counts as no location

    Returns:
        Normalized location dict, or None when no location was given
    """
    location = _as_mapping(raw)
    if location is None:
        return None

    normalized = {field: location.get(field) or "" for field in NAME_FIELDS}

    pair = _scalar_pair(location) or _array_pair(location)
    if pair is None:
        if _has_coordinate_input(location):
            logger.debug(
                "Dropping malformed coordinates: latitude=%r longitude=%r coordinates=%r",
                location.get("latitude"),
                location.get("longitude"),
                location.get("coordinates"),
            )
        normalized.update(latitude=None, longitude=None, coordinates=None)
        return normalized

    lat, lng = pair
    normalized.update(latitude=lat, longitude=lng, coordinates=[lng, lat])
    return normalized


def merge_location(existing: Any, patch: Any) -> Optional[dict]:
    """
    Apply a partial location edit on top of a stored location.

    Only keys present in ``patch`` are applied. Editing either scalar field
    discards the stored coordinates array, and editing the array discards the
    stored scalar fields, so the edited representation is the one that
    survives normalization.
    """
    patch_map = _as_mapping(patch)
    if patch_map is None:
        return normalize_location(existing)

    merged = dict(_as_mapping(existing) or {})
    if any(field in patch_map for field in SCALAR_FIELDS):
        merged.pop("coordinates", None)
    elif "coordinates" in patch_map:
        for field in SCALAR_FIELDS:
            merged.pop(field, None)

    merged.update(patch_map)
    return normalize_location(merged)


def has_location_data(location: Optional[Mapping[str, Any]]) -> bool:
    """True when a normalized location carries coordinates or any place name."""
    if not location:
        return False
    if location.get("coordinates"):
        return True
    return any(location.get(field) for field in NAME_FIELDS)


def resolve_point(location: Any) -> Optional[Tuple[float, float, str]]:
    """
    Resolve a single map position for a stored location.

    Prefers the scalar fields and falls back to the coordinates array.

    Returns:
        Tuple of (latitude, longitude, source) where source is "fields" or
        "array", or None when neither representation is usable
    """
    location_map = _as_mapping(location)
    if not location_map:
        return None

    pair = _scalar_pair(location_map)
    if pair is not None:
        return pair[0], pair[1], "fields"

    pair = _array_pair(location_map)
    if pair is not None:
        return pair[0], pair[1], "array"

    return None
