from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from ..core.database import get_db
from ..schemas.person import PersonCreate, PersonUpdate, PersonStatusUpdate, PersonResponse
from ..services.person_service import PersonService
from ..utils.dependencies import get_current_active_user
from ..models.person import PersonStatus, Role
from ..models.user import User
from typing import List, Optional

router = APIRouter(prefix="/persons", tags=["Persons"])


@router.post("/", response_model=PersonResponse, status_code=status.HTTP_201_CREATED)
def create_person(
    person: PersonCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Enroll a person"""
    return PersonService.create_person(db, person)


@router.get("/", response_model=List[PersonResponse])
def get_persons(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    role: Optional[Role] = None,
    person_status: Optional[PersonStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Get all persons"""
    return PersonService.get_persons(db, skip=skip, limit=limit, role=role, person_status=person_status)


@router.get("/search/{name}", response_model=List[PersonResponse])
def search_persons_by_name(
    name: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Search persons by name"""
    return PersonService.search_persons_by_name(db, name)


@router.get("/{person_id}", response_model=PersonResponse)
def get_person(
    person_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Get a person by ID"""
    person = PersonService.get_person(db, person_id)
    if not person:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Person not found"
        )
    return person


@router.put("/{person_id}", response_model=PersonResponse)
def update_person(
    person_id: int,
    person_update: PersonUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Update a person"""
    person = PersonService.update_person(db, person_id, person_update)
    if not person:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Person not found"
        )
    return person


@router.put("/{person_id}/status", response_model=PersonResponse)
def set_person_status(
    person_id: int,
    status_update: PersonStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Activate, deactivate or suspend a person"""
    person = PersonService.set_status(db, person_id, status_update.status)
    if not person:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Person not found"
        )
    return person
