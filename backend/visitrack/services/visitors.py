"""
Visitor persistence.

Passive tracking goes through ``upsert_visitor`` (keyed by IP address);
admin edits go through ``update_visitor`` (keyed by row id). Active rows are
unique per IP through a partial index, so a concurrent first visit from the
same IP fails the insert and is replayed as a revisit.
"""

import logging
import math
from datetime import datetime
from typing import Optional

from sqlalchemy import desc, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.coordinates import has_location_data, merge_location, normalize_location
from ..errors import ConflictError, NotFoundError
from ..models import Visitor
from ..schemas.visitor import VisitorCreate, VisitorUpdate

logger = logging.getLogger(__name__)

DESCRIPTIVE_FIELDS = ("device_info", "browser", "os", "referrer")


def get_active_visitor_by_ip(db: Session, ip_address: str) -> Optional[Visitor]:
    return db.query(Visitor).filter(
        Visitor.ip_address == ip_address,
        Visitor.is_deleted == False
    ).first()


def get_visitor_by_ip(db: Session, ip_address: str) -> Visitor:
    visitor = get_active_visitor_by_ip(db, ip_address)
    if visitor is None:
        raise NotFoundError("Visitor not found", ip_address=ip_address)
    return visitor


def get_visitor(db: Session, visitor_id: int) -> Visitor:
    visitor = db.query(Visitor).filter(Visitor.id == visitor_id).first()
    if visitor is None or visitor.is_deleted:
        raise NotFoundError("Visitor not found", visitor_id=visitor_id)
    return visitor


def _record_revisit(visitor: Visitor, payload: VisitorCreate, location: Optional[dict]) -> None:
    """Bump the counter and apply only the non-empty fields of a repeat visit"""
    # Evaluated in SQL so concurrent revisits do not lose increments
    visitor.visit_count = Visitor.visit_count + 1
    visitor.last_visited_at = datetime.utcnow()

    if has_location_data(location):
        visitor.location = location

    for field in DESCRIPTIVE_FIELDS:
        value = getattr(payload, field)
        if value:
            setattr(visitor, field, value)


def upsert_visitor(db: Session, payload: VisitorCreate) -> Visitor:
    """
    Record a visit from ``payload.ip_address``.

    Creates the visitor on first sight, otherwise increments ``visit_count``,
    refreshes ``last_visited_at`` and applies supplied fields without ever
    clearing stored ones.

    Returns:
        The persisted visitor
    """
    location = normalize_location(payload.location)
    visitor = get_active_visitor_by_ip(db, payload.ip_address)

    if visitor is not None:
        _record_revisit(visitor, payload, location)
        db.commit()
        db.refresh(visitor)
        logger.debug("Revisit ip=%s count=%s", visitor.ip_address, visitor.visit_count)
        return visitor

    visitor = Visitor(
        ip_address=payload.ip_address,
        location=location,
        device_info=payload.device_info or "Unknown",
        browser=payload.browser or "Unknown",
        os=payload.os or "Unknown",
        referrer=payload.referrer or "",
        visit_count=payload.visit_count or 1,
        last_visited_at=datetime.utcnow(),
        is_deleted=False
    )
    db.add(visitor)

    try:
        db.commit()
    except IntegrityError:
        # Another request inserted this IP between our lookup and insert
        db.rollback()
        logger.info("Concurrent first visit for ip=%s, applying as revisit", payload.ip_address)
        visitor = get_active_visitor_by_ip(db, payload.ip_address)
        if visitor is None:
            raise
        _record_revisit(visitor, payload, location)
        db.commit()
        db.refresh(visitor)
        return visitor

    db.refresh(visitor)
    logger.info("New visitor ip=%s id=%s", visitor.ip_address, visitor.id)
    return visitor


def update_visitor(db: Session, visitor_id: int, patch: VisitorUpdate) -> Visitor:
    """
    Apply an admin edit to a visitor.

    Only fields present in the request with a non-null value are applied;
    blank descriptive fields never clear stored ones.
    The visit counter is not bumped.

    Raises:
        NotFoundError: Unknown or deleted visitor
        ConflictError: New IP address already belongs to another visitor
    """
    visitor = get_visitor(db, visitor_id)
    changes = patch.model_dump(exclude_unset=True)

    ip_address = changes.get("ip_address")
    if ip_address and ip_address != visitor.ip_address:
        other = get_active_visitor_by_ip(db, ip_address)
        if other is not None and other.id != visitor.id:
            raise ConflictError("Another visitor already uses this IP address", ip_address=ip_address)
        visitor.ip_address = ip_address

    if patch.location is not None:
        visitor.location = merge_location(visitor.location, patch.location.model_dump(exclude_unset=True))

    for field in DESCRIPTIVE_FIELDS:
        value = changes.get(field)
        if value:
            setattr(visitor, field, value)

    if changes.get("visit_count") is not None:
        visitor.visit_count = changes["visit_count"]

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Another visitor already uses this IP address", ip_address=ip_address)

    db.refresh(visitor)
    return visitor


def delete_visitor(db: Session, visitor_id: int) -> None:
    """Soft delete a visitor"""
    visitor = get_visitor(db, visitor_id)
    visitor.is_deleted = True
    db.commit()
    logger.info("Soft deleted visitor id=%s ip=%s", visitor.id, visitor.ip_address)


def list_visitors(db: Session, page: int = 1, limit: int = 10) -> dict:
    """Active visitors, most recent visit first"""
    query = db.query(Visitor).filter(Visitor.is_deleted == False)

    total = query.with_entities(func.count(Visitor.id)).scalar() or 0
    offset = (page - 1) * limit

    # Past the last page, including offsets too large for SQL integers
    if offset >= total:
        visitors = []
    else:
        visitors = query.order_by(
            desc(Visitor.last_visited_at), desc(Visitor.id)
        ).offset(offset).limit(limit).all()

    return {
        "visitors": visitors,
        "total": total,
        "total_pages": math.ceil(total / limit),
        "current_page": page,
    }


def get_all_active_visitors(db: Session) -> list[Visitor]:
    return db.query(Visitor).filter(Visitor.is_deleted == False).all()
