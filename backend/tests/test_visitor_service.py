from datetime import datetime, timedelta

import pytest

from visitrack.errors import ConflictError, NotFoundError
from visitrack.models import Visitor
from visitrack.schemas.visitor import VisitorCreate, VisitorUpdate
from visitrack.services import visitors as visitor_service


def _create(db, ip="198.51.100.1", **fields):
    return visitor_service.upsert_visitor(db, VisitorCreate(ip_address=ip, **fields))


class TestUpsertVisitor:

    def test_first_visit_creates_with_defaults(self, db):
        visitor = _create(db)

        assert visitor.id is not None
        assert visitor.visit_count == 1
        assert visitor.device_info == "Unknown"
        assert visitor.browser == "Unknown"
        assert visitor.os == "Unknown"
        assert visitor.referrer == ""
        assert visitor.location is None
        assert visitor.is_deleted is False
        assert visitor.last_visited_at is not None

    def test_first_visit_normalizes_location(self, db):
        visitor = _create(db, location={"latitude": "12.34", "longitude": 56.78, "country": "France"})

        assert visitor.location["coordinates"] == [56.78, 12.34]
        assert visitor.location["latitude"] == 12.34
        assert visitor.location["country"] == "France"

    def test_explicit_visit_count_is_kept(self, db):
        assert _create(db, visit_count=5).visit_count == 5

    def test_revisit_increments_and_keeps_location(self, db):
        first = _create(db, location={"latitude": 1, "longitude": 2, "country": "Peru"}, browser="Firefox")
        second = _create(db)

        assert second.id == first.id
        assert second.visit_count == 2
        assert second.location["coordinates"] == [2.0, 1.0]
        assert second.location["country"] == "Peru"
        assert second.browser == "Firefox"
        assert db.query(Visitor).count() == 1

    def test_revisit_with_location_replaces_it(self, db):
        _create(db, location={"latitude": 1, "longitude": 2})
        visitor = _create(db, location={"coordinates": [30, 40], "city": "Oslo"})

        assert visitor.location["latitude"] == 40.0
        assert visitor.location["city"] == "Oslo"

    def test_revisit_with_empty_location_keeps_stored(self, db):
        _create(db, location={"latitude": 1, "longitude": 2})
        visitor = _create(db, location={"latitude": "bad"})

        assert visitor.location["coordinates"] == [2.0, 1.0]

    def test_revisit_applies_supplied_descriptive_fields(self, db):
        _create(db, browser="Firefox", os="Linux")
        visitor = _create(db, browser="Chrome", os="")

        assert visitor.browser == "Chrome"
        assert visitor.os == "Linux"

    def test_revisit_refreshes_last_visited(self, db):
        visitor = _create(db)
        visitor.last_visited_at = datetime(2020, 1, 1)
        db.commit()

        visitor = _create(db)
        assert visitor.last_visited_at > datetime(2020, 1, 1)

    def test_deleted_visitor_is_not_revisited(self, db):
        first = _create(db)
        visitor_service.delete_visitor(db, first.id)

        second = _create(db)
        assert second.id != first.id
        assert second.visit_count == 1

    def test_concurrent_first_visit_becomes_revisit(self, db, monkeypatch):
        existing = _create(db, browser="Safari")

        lookup = visitor_service.get_active_visitor_by_ip
        calls = []

        def stale_lookup(session, ip_address):
            calls.append(ip_address)
            if len(calls) == 1:
                return None
            return lookup(session, ip_address)

        monkeypatch.setattr(visitor_service, "get_active_visitor_by_ip", stale_lookup)

        visitor = _create(db)

        assert visitor.id == existing.id
        assert visitor.visit_count == 2
        assert visitor.browser == "Safari"
        active = db.query(Visitor).filter(Visitor.is_deleted == False).count()
        assert active == 1


class TestUpdateVisitor:

    def test_edit_does_not_bump_visit_count(self, db):
        visitor = _create(db)
        updated = visitor_service.update_visitor(db, visitor.id, VisitorUpdate(browser="Edge"))

        assert updated.browser == "Edge"
        assert updated.visit_count == 1

    def test_unsent_fields_are_unchanged(self, db):
        visitor = _create(db, browser="Firefox", os="Linux", referrer="https://example.com")
        updated = visitor_service.update_visitor(db, visitor.id, VisitorUpdate(os="Windows"))

        assert updated.browser == "Firefox"
        assert updated.os == "Windows"
        assert updated.referrer == "https://example.com"

    def test_scalar_edit_recomputes_coordinates(self, db):
        visitor = _create(db, location={"coordinates": [10, 20], "country": "Italy"})
        updated = visitor_service.update_visitor(
            db, visitor.id, VisitorUpdate(location={"latitude": 30, "longitude": 40})
        )

        assert updated.location["coordinates"] == [40.0, 30.0]
        assert updated.location["country"] == "Italy"

    def test_ip_change(self, db):
        visitor = _create(db)
        updated = visitor_service.update_visitor(db, visitor.id, VisitorUpdate(ip_address="203.0.113.9"))

        assert updated.ip_address == "203.0.113.9"

    def test_blank_fields_keep_stored_values(self, db):
        visitor = _create(db, browser="Firefox", os="Linux", device_info="Desktop", referrer="https://example.com")
        updated = visitor_service.update_visitor(
            db, visitor.id, VisitorUpdate(browser="", os="", device_info="", referrer="", visit_count=3)
        )

        assert updated.browser == "Firefox"
        assert updated.os == "Linux"
        assert updated.device_info == "Desktop"
        assert updated.referrer == "https://example.com"
        assert updated.visit_count == 3

    def test_legacy_location_is_replaced_by_edit(self, db):
        visitor = _create(db)
        visitor.location = [1, 2]
        db.commit()

        updated = visitor_service.update_visitor(
            db, visitor.id, VisitorUpdate(location={"latitude": 5, "longitude": 6})
        )
        assert updated.location["coordinates"] == [6.0, 5.0]

    def test_ip_change_to_existing_visitor_conflicts(self, db):
        _create(db, ip="203.0.113.1")
        visitor = _create(db, ip="203.0.113.2")

        with pytest.raises(ConflictError):
            visitor_service.update_visitor(db, visitor.id, VisitorUpdate(ip_address="203.0.113.1"))

    def test_unknown_visitor(self, db):
        with pytest.raises(NotFoundError):
            visitor_service.update_visitor(db, 999, VisitorUpdate(browser="Edge"))


class TestDeleteAndLookup:

    def test_soft_delete_hides_visitor(self, db):
        visitor = _create(db)
        visitor_service.delete_visitor(db, visitor.id)

        assert db.get(Visitor, visitor.id).is_deleted is True
        with pytest.raises(NotFoundError):
            visitor_service.get_visitor_by_ip(db, visitor.ip_address)
        with pytest.raises(NotFoundError):
            visitor_service.get_visitor(db, visitor.id)

    def test_delete_twice(self, db):
        visitor = _create(db)
        visitor_service.delete_visitor(db, visitor.id)

        with pytest.raises(NotFoundError):
            visitor_service.delete_visitor(db, visitor.id)


class TestListVisitors:

    def test_pagination_and_order(self, db):
        now = datetime.utcnow()
        for i in range(5):
            visitor = _create(db, ip=f"192.0.2.{i}")
            visitor.last_visited_at = now - timedelta(hours=i)
        db.commit()

        page = visitor_service.list_visitors(db, page=1, limit=2)
        assert page["total"] == 5
        assert page["total_pages"] == 3
        assert page["current_page"] == 1
        assert [v.ip_address for v in page["visitors"]] == ["192.0.2.0", "192.0.2.1"]

        last = visitor_service.list_visitors(db, page=3, limit=2)
        assert [v.ip_address for v in last["visitors"]] == ["192.0.2.4"]

    def test_deleted_visitors_are_excluded(self, db):
        visitor = _create(db, ip="192.0.2.1")
        _create(db, ip="192.0.2.2")
        visitor_service.delete_visitor(db, visitor.id)

        page = visitor_service.list_visitors(db)
        assert page["total"] == 1

    def test_page_far_past_the_end(self, db):
        _create(db, ip="192.0.2.1")

        page = visitor_service.list_visitors(db, page=10 ** 19, limit=10)
        assert page["visitors"] == []
        assert page["total"] == 1
        assert page["total_pages"] == 1

    def test_empty(self, db):
        page = visitor_service.list_visitors(db)
        assert page["total"] == 0
        assert page["total_pages"] == 0
        assert page["visitors"] == []
