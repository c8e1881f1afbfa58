from typing import List
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..capture.useragent import describe_user_agent
from ..config import settings
from ..core.security import require_api_access
from ..database import get_db
from ..schemas.geography import CountryVisits, GeographyMap
from ..schemas.statistics import VisitorStatistics
from ..schemas.visitor import (
    DeleteResponse,
    VisitorCreate,
    VisitorListResponse,
    VisitorResponse,
    VisitorUpdate,
)
from ..services import geography, statistics, visitors as visitor_service
from ..utils.network import get_client_ip

router = APIRouter(
    prefix="/visitors",
    tags=["visitors"],
    dependencies=[Depends(require_api_access)]
)


@router.get("", response_model=VisitorListResponse)
def list_visitors(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db)
):
    """
    Get visitors with pagination, most recent visit first.

    Requires authentication.
    """
    return visitor_service.list_visitors(db, page=page, limit=limit)


@router.post("", response_model=VisitorResponse, status_code=201)
def create_or_update_visitor(
    payload: VisitorCreate,
    db: Session = Depends(get_db)
):
    """
    Record a visit for an IP address.

    Creates the visitor on first visit, otherwise increments its visit count.
    """
    return visitor_service.upsert_visitor(db, payload)


@router.post("/track", response_model=VisitorResponse, status_code=201)
def track_visit(
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Record a visit for the calling client.

    IP address, browser, OS and device come from the request itself.
    """
    agent = describe_user_agent(request.headers.get("user-agent", ""))
    payload = VisitorCreate(
        ip_address=get_client_ip(request),
        referrer=request.headers.get("referer", "")[:512],
        **agent
    )
    return visitor_service.upsert_visitor(db, payload)


@router.get("/statistics", response_model=VisitorStatistics)
def get_visitor_statistics(db: Session = Depends(get_db)):
    """Retention rate and visitor counts"""
    return statistics.get_visitor_statistics(db)


@router.get("/geography", response_model=List[CountryVisits])
def get_visitor_geography(db: Session = Depends(get_db)):
    """Visit totals per country code"""
    return geography.summarize_countries(visitor_service.get_all_active_visitors(db))


@router.get("/geography/points", response_model=GeographyMap)
def get_visitor_map(db: Session = Depends(get_db)):
    """Visitor positions for the map, or an empty state with guidance"""
    return geography.build_geography_map(visitor_service.get_all_active_visitors(db))


@router.get("/ip/{ip}", response_model=VisitorResponse)
def get_visitor_by_ip(ip: str, db: Session = Depends(get_db)):
    return visitor_service.get_visitor_by_ip(db, ip)


@router.put("/{visitor_id}", response_model=VisitorResponse)
def update_visitor(
    visitor_id: int,
    patch: VisitorUpdate,
    db: Session = Depends(get_db),
):
    """
    Edit a visitor.

    Only fields present in the body are changed; the visit count is not bumped.
    """
    return visitor_service.update_visitor(db, visitor_id, patch)


@router.delete("/{visitor_id}", response_model=DeleteResponse)
def delete_visitor(
    visitor_id: int,
    db: Session = Depends(get_db)
):
    """Soft delete a visitor"""
    visitor_service.delete_visitor(db, visitor_id)
    return {"message": "Visitor deleted successfully"}
