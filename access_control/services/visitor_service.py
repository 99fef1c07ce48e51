import json
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from datetime import datetime, timedelta
from ..core.config import settings
from ..core.database import transaction
from ..core.logging_config import get_logger
from ..models.person import Person, PersonStatus, Role
from ..models.visitor import VisitorPass, PassState
from ..schemas.visitor import VisitorRegistration, VisitorCredential
from ..utils.names import split_full_name
from typing import List, Optional

logger = get_logger(__name__)

DEFAULT_VISIT_REASON = "Visita general"


class VisitorService:
    """
    Visitor pass lifecycle.

    Pass helpers only flush; the caller owns the transaction so pass changes
    commit together with the access event that caused them.
    """

    @staticmethod
    def latest_pass(db: Session, person_id: int) -> Optional[VisitorPass]:
        return (
            db.query(VisitorPass)
            .filter(VisitorPass.person_id == person_id)
            .order_by(VisitorPass.started_at.desc(), VisitorPass.id_pass.desc())
            .first()
        )

    @staticmethod
    def active_pass(db: Session, person_id: int) -> Optional[VisitorPass]:
        return db.query(VisitorPass).filter(
            VisitorPass.person_id == person_id,
            VisitorPass.state == PassState.ACTIVE,
        ).first()

    @staticmethod
    def close_active_pass(db: Session, person_id: int, now: datetime) -> Optional[VisitorPass]:
        db_pass = VisitorService.active_pass(db, person_id)
        if not db_pass:
            return None

        db_pass.state = PassState.CLOSED
        db_pass.ended_at = now
        db.flush()
        return db_pass

    @staticmethod
    def open_pass(
        db: Session,
        person_id: int,
        now: datetime,
        reason: str = DEFAULT_VISIT_REASON,
        issued_at: Optional[datetime] = None,
        destination: Optional[str] = None,
        host_name: Optional[str] = None,
        contact: Optional[str] = None,
    ) -> VisitorPass:
        # A fresh pass always replaces, never resurrects, the previous one
        VisitorService.close_active_pass(db, person_id, now)

        db_pass = VisitorPass(
            person_id=person_id,
            reason=reason,
            destination=destination,
            host_name=host_name,
            contact=contact,
            issued_at=issued_at or now,
            started_at=now,
            state=PassState.ACTIVE,
        )
        db.add(db_pass)
        db.flush()
        return db_pass

    @staticmethod
    def build_credential(person: Person, visitor_pass: VisitorPass) -> VisitorCredential:
        return VisitorCredential(
            document=person.document_number,
            document_type=person.document_type,
            display_name=person.display_name,
            issue_timestamp=visitor_pass.issued_at,
        )

    @staticmethod
    def register_visitor(db: Session, registration: VisitorRegistration, now: Optional[datetime] = None) -> dict:
        """Desk registration or re-issuance: always yields a fresh ACTIVE pass."""
        now = now or datetime.now()
        document_type = (registration.document_type or settings.default_document_type).upper()
        given_names, surnames = split_full_name(registration.display_name, settings.visitor_surname_tokens)

        with transaction(db, "visitor registration"):
            person = db.query(Person).filter(
                Person.document_number == registration.document_number,
                Person.document_type == document_type,
            ).with_for_update().first()

            if person and person.role != Role.VISITOR:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Document belongs to an enrolled member"
                )

            if person is None:
                person = Person(
                    document_number=registration.document_number,
                    document_type=document_type,
                    role=Role.VISITOR,
                )
                db.add(person)

            person.display_name = registration.display_name.strip()
            person.given_names = given_names
            person.surnames = surnames
            person.status = PersonStatus.ACTIVE
            db.flush()

            visitor_pass = VisitorService.open_pass(
                db,
                person.id_person,
                now,
                reason=registration.reason,
                destination=registration.destination,
                host_name=registration.host_name,
                contact=registration.contact,
            )

        db.refresh(person)
        db.refresh(visitor_pass)
        credential = VisitorService.build_credential(person, visitor_pass)
        logger.info("Visitor pass %s issued to %s", visitor_pass.id_pass, person.document_number)
        return {
            "person_id": person.id_person,
            "visitor_pass": visitor_pass,
            "credential": credential,
            "qr_data": json.dumps(credential.model_dump(mode="json")),
            "expires_at": visitor_pass.issued_at + timedelta(hours=settings.visitor_pass_validity_hours),
        }

    @staticmethod
    def get_passes(db: Session, skip: int = 0, limit: int = 100, active_only: bool = False) -> List[VisitorPass]:
        query = db.query(VisitorPass)
        if active_only:
            query = query.filter(VisitorPass.state == PassState.ACTIVE)
        return query.order_by(VisitorPass.started_at.desc()).offset(skip).limit(limit).all()

    @staticmethod
    def get_passes_by_person(db: Session, person_id: int) -> List[VisitorPass]:
        return (
            db.query(VisitorPass)
            .filter(VisitorPass.person_id == person_id)
            .order_by(VisitorPass.started_at.desc())
            .all()
        )
