"""
Dashboard statistics.

Two different "visitor" figures exist and are never interchangeable:
``count_tracked_visitors`` counts stored visitor records, while
``count_statistics_visitors`` counts users with recent activity statistics.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import User, UserStatistics, Visitor

RETENTION_ACTIVE_DAYS = 7
RETENTION_SIGNUP_DAYS = 30


def calculate_retention_rate(db: Session, now: Optional[datetime] = None) -> float:
    """
    Percentage of users created in the last 30 days who were active in the
    last 7 days, rounded to one decimal. 0 when there are no new users.
    """
    now = now or datetime.utcnow()
    signup_start = now - timedelta(days=RETENTION_SIGNUP_DAYS)
    active_start = now - timedelta(days=RETENTION_ACTIVE_DAYS)

    new_users = db.query(func.count(User.id)).filter(
        User.created_at >= signup_start,
        User.is_deleted == False
    ).scalar() or 0

    if new_users == 0:
        return 0

    retained_users = db.query(func.count(func.distinct(UserStatistics.user_id))).filter(
        UserStatistics.last_active >= active_start,
        UserStatistics.is_deleted == False
    ).scalar() or 0

    return round(retained_users / new_users * 100, 1)


def count_tracked_visitors(db: Session) -> int:
    """Number of visitor records that are not soft deleted"""
    return db.query(func.count(Visitor.id)).filter(Visitor.is_deleted == False).scalar() or 0


def count_statistics_visitors(db: Session, now: Optional[datetime] = None) -> int:
    """Distinct users whose activity statistics were created in the last 30 days"""
    now = now or datetime.utcnow()
    start = now - timedelta(days=RETENTION_SIGNUP_DAYS)

    return db.query(func.count(func.distinct(UserStatistics.user_id))).filter(
        UserStatistics.created_at >= start,
        UserStatistics.is_deleted == False
    ).scalar() or 0


def get_visitor_statistics(db: Session) -> dict:
    now = datetime.utcnow()
    return {
        "retention_rate": calculate_retention_rate(db, now),
        "total_visitors": count_statistics_visitors(db, now),
        "tracked_visitors": count_tracked_visitors(db),
        "last_updated": now,
    }


def record_user_activity(db: Session, user: User, page_name: Optional[str] = None) -> UserStatistics:
    """Mark ``user`` active now and count a visit to ``page_name``"""
    stats = db.query(UserStatistics).filter(
        UserStatistics.user_id == user.id,
        UserStatistics.is_deleted == False
    ).first()

    if stats is None:
        stats = UserStatistics(user_id=user.id, pages_visited=[], total_time_spent=0)
        db.add(stats)

    if page_name:
        # JSON columns only track reassignment, so build a new list
        pages = [dict(page) for page in (stats.pages_visited or [])]
        for page in pages:
            if page.get("page_name") == page_name:
                page["visit_count"] = page.get("visit_count", 0) + 1
                break
        else:
            pages.append({"page_name": page_name, "visit_count": 1})
        stats.pages_visited = pages

    stats.last_active = datetime.utcnow()
    db.commit()
    db.refresh(stats)
    return stats
