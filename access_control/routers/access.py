from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from ..core.database import get_db
from ..schemas.access import (
    ScanRequest, ScanResult, OccupantsResponse, PresenceStatus,
    AccessEventResponse, DailyStats
)
from ..services.access_service import AccessService
from ..services.person_service import PersonService
from ..services.presence_service import PresenceService
from ..utils.dependencies import get_current_active_user
from ..models.user import User
from typing import List

router = APIRouter(prefix="/access", tags=["Access"])


@router.post("/scan", response_model=ScanResult)
def scan(
    scan_request: ScanRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Process a scanned credential; direction is derived from presence"""
    return AccessService.scan(db, scan_request.model_dump(exclude_none=True), current_user.id_user)


@router.post("/scan-complete", response_model=ScanResult)
def scan_complete(
    scan_request: ScanRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Process a scan with institutional context and role schedule rules"""
    return AccessService.scan_complete(db, scan_request.model_dump(exclude_none=True), current_user.id_user)


@router.get("/current", response_model=OccupantsResponse)
def get_current_occupants(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Get everyone currently inside"""
    people = PresenceService.current_occupants(db)
    return {"count": len(people), "people": people}


@router.get("/presence/{person_id}", response_model=PresenceStatus)
def get_presence(
    person_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Get whether a person is inside"""
    if not PersonService.get_person(db, person_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Person not found"
        )
    latest = PresenceService.latest_event(db, person_id)
    return {
        "person_id": person_id,
        "inside": PresenceService.is_inside(db, person_id),
        "last_direction": latest.direction if latest else None,
        "last_event_at": latest.timestamp if latest else None,
    }


@router.get("/history/{person_id}", response_model=List[AccessEventResponse])
def get_history(
    person_id: int,
    limit: int = Query(10, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Get the latest access events of a person"""
    return PresenceService.get_history(db, person_id, limit=limit)


@router.get("/stats", response_model=DailyStats)
def get_daily_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Get today's access totals"""
    return PresenceService.get_daily_stats(db)
