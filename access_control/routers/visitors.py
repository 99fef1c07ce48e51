from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from ..core.database import get_db
from ..schemas.visitor import VisitorRegistration, VisitorPassResponse, VisitorCredentialResponse
from ..services.person_service import PersonService
from ..services.visitor_service import VisitorService
from ..utils.dependencies import get_current_active_user
from ..models.user import User
from typing import List

router = APIRouter(prefix="/visitors", tags=["Visitors"])


@router.post("/", response_model=VisitorCredentialResponse, status_code=status.HTTP_201_CREATED)
def register_visitor(
    registration: VisitorRegistration,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Register a visitor (or re-issue a credential) and open a fresh pass"""
    return VisitorService.register_visitor(db, registration)


@router.get("/passes", response_model=List[VisitorPassResponse])
def get_passes(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    active_only: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Get visitor passes"""
    return VisitorService.get_passes(db, skip=skip, limit=limit, active_only=active_only)


@router.get("/{person_id}/passes", response_model=List[VisitorPassResponse])
def get_passes_by_person(
    person_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Get all passes of a visitor"""
    if not PersonService.get_person(db, person_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Person not found"
        )
    return VisitorService.get_passes_by_person(db, person_id)
