from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from ..core.config import settings
from ..core.logging_config import get_logger
from ..models.person import Person, PersonStatus, Role
from ..schemas.person import PersonCreate, PersonUpdate
from ..utils.names import split_full_name
from typing import List, Optional

logger = get_logger(__name__)


class PersonService:
    """Enrollment and status changes; scans never create members."""

    @staticmethod
    def find_by_document(
        db: Session,
        document_number: str,
        document_type: Optional[str] = None,
        for_update: bool = False,
    ) -> Optional[Person]:
        query = db.query(Person).filter(
            Person.document_number == document_number,
            Person.document_type == (document_type or settings.default_document_type).upper(),
        )
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    @staticmethod
    def create_person(db: Session, person: PersonCreate) -> Person:
        existing_person = PersonService.find_by_document(db, person.document_number, person.document_type)
        if existing_person:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Document already registered"
            )

        given_names, surnames = split_full_name(person.display_name, settings.visitor_surname_tokens)
        data = person.model_dump()
        data["document_type"] = data["document_type"].upper()
        db_person = Person(
            **data,
            given_names=given_names,
            surnames=surnames,
            status=PersonStatus.ACTIVE,
        )
        db.add(db_person)
        db.commit()
        db.refresh(db_person)
        logger.info("Enrolled %s %s as %s", db_person.document_type, db_person.document_number, db_person.role.value)
        return db_person

    @staticmethod
    def get_person(db: Session, person_id: int) -> Optional[Person]:
        return db.query(Person).filter(Person.id_person == person_id).first()

    @staticmethod
    def get_persons(
        db: Session,
        skip: int = 0,
        limit: int = 100,
        role: Optional[Role] = None,
        person_status: Optional[PersonStatus] = None,
    ) -> List[Person]:
        query = db.query(Person)
        if role is not None:
            query = query.filter(Person.role == role)
        if person_status is not None:
            query = query.filter(Person.status == person_status)
        return query.order_by(Person.id_person).offset(skip).limit(limit).all()

    @staticmethod
    def update_person(db: Session, person_id: int, person_update: PersonUpdate) -> Optional[Person]:
        db_person = db.query(Person).filter(Person.id_person == person_id).first()
        if not db_person:
            return None

        update_data = person_update.model_dump(exclude_unset=True)
        if update_data.get("display_name"):
            given_names, surnames = split_full_name(update_data["display_name"], settings.visitor_surname_tokens)
            update_data["given_names"] = given_names
            update_data["surnames"] = surnames
        for field, value in update_data.items():
            setattr(db_person, field, value)

        db.commit()
        db.refresh(db_person)
        return db_person

    @staticmethod
    def set_status(db: Session, person_id: int, new_status: PersonStatus) -> Optional[Person]:
        db_person = db.query(Person).filter(Person.id_person == person_id).first()
        if not db_person:
            return None

        db_person.status = new_status
        db.commit()
        db.refresh(db_person)
        logger.info("Person %s status set to %s", person_id, new_status.value)
        return db_person

    @staticmethod
    def search_persons_by_name(db: Session, name: str) -> List[Person]:
        return db.query(Person).filter(
            Person.display_name.ilike(f"%{name}%")
        ).all()
