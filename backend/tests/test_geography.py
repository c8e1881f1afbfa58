from datetime import datetime

import pytest

from visitrack.models import Visitor
from visitrack.services.geography import (
    DEFAULT_VISITOR_NAME,
    EMPTY_MAP_MESSAGE,
    build_geography_map,
    build_map_points,
    summarize_countries,
)


def _visitor(id, location=None, visit_count=1, ip=None):
    return Visitor(
        id=id,
        ip_address=ip or f"192.0.2.{id}",
        location=location,
        visit_count=visit_count,
        last_visited_at=datetime(2024, 5, 1, 12, 0),
    )


class TestMapPoints:

    def test_only_resolvable_visitors_become_points(self):
        visitors = [
            _visitor(1, {"latitude": 48.85, "longitude": 2.35, "city": "Paris", "country": "France"}),
            _visitor(2, {"coordinates": [13.4, 52.5]}),
            _visitor(3, None),
            _visitor(4, {"latitude": "abc", "longitude": 1}),
            _visitor(5, {"coordinates": [1]}),
        ]

        points = build_map_points(visitors)

        assert [p.id for p in points] == [1, 2]
        paris, berlin = points
        assert (paris.lat, paris.lng, paris.coordinate_source) == (48.85, 2.35, "fields")
        assert paris.city == "Paris"
        assert (berlin.lat, berlin.lng, berlin.coordinate_source) == (52.5, 13.4, "array")
        assert berlin.city == "Unknown"
        assert berlin.country == "Unknown"

    @pytest.mark.parametrize("location", [[1, 2], "Paris", 7])
    def test_malformed_location_is_skipped(self, location):
        visitors = [_visitor(1, location), _visitor(2, {"latitude": 1, "longitude": 2, "country_code": "NZ"})]

        assert [p.id for p in build_map_points(visitors)] == [2]
        assert [c.id for c in summarize_countries(visitors)] == ["NZ"]

    def test_point_details(self):
        point = build_map_points([_visitor(7, {"latitude": 0, "longitude": 0}, visit_count=4)])[0]

        assert point.name == DEFAULT_VISITOR_NAME
        assert point.visit_count == 4
        assert point.ip == "192.0.2.7"
        assert point.last_visit == datetime(2024, 5, 1, 12, 0)
        assert (point.lat, point.lng) == (0.0, 0.0)


class TestCountrySummary:

    def test_visit_counts_are_summed_per_code(self):
        visitors = [
            _visitor(1, {"country_code": "US"}, visit_count=3),
            _visitor(2, {"country_code": "US"}, visit_count=None),
            _visitor(3, {"country_code": "DE"}, visit_count=2),
            _visitor(4, {"country": "Nowhere"}),
            _visitor(5, None),
        ]

        summary = summarize_countries(visitors)

        assert [(c.id, c.value) for c in summary] == [("US", 4), ("DE", 2)]

    def test_no_locations(self):
        assert summarize_countries([_visitor(1)]) == []


class TestGeographyMap:

    def test_empty_state(self):
        result = build_geography_map([_visitor(1), _visitor(2, {"country_code": "FR"})])

        assert result.status == "empty"
        assert result.points == []
        assert result.message == EMPTY_MAP_MESSAGE
        assert [c.id for c in result.countries] == ["FR"]

    def test_with_points(self):
        result = build_geography_map([_visitor(1, {"coordinates": [1, 2], "country_code": "FR"})])

        assert result.status == "ok"
        assert len(result.points) == 1
        assert result.message is None
