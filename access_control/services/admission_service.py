"""
Admission policy for the open circuit.

Direction is never declared by the credential: it is always the opposite of
the person's derived presence. Decisions re-read the person row under lock so
a status change between resolution and commit is honoured.
"""
import enum
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Union

from sqlalchemy.orm import Session

from ..core.logging_config import get_logger
from ..models.access_event import AccessEvent, Direction
from ..models.person import Person, PersonStatus
from .presence_service import PresenceService
from .visitor_service import VisitorService

logger = get_logger(__name__)

# Issue times lose sub-second precision on some backends
ISSUE_TOLERANCE = timedelta(seconds=1)


class ReasonCode(str, enum.Enum):
    PERSON_NOT_REGISTERED = "PERSON_NOT_REGISTERED"
    ACCESS_DENIED_INACTIVE = "ACCESS_DENIED_INACTIVE"
    QR_EXPIRED = "QR_EXPIRED"
    QR_REQUIRES_REISSUE = "QR_REQUIRES_REISSUE"
    OUT_OF_SCHEDULE = "OUT_OF_SCHEDULE"
    ENVIRONMENT_FULL = "ENVIRONMENT_FULL"
    NO_ENVIRONMENT_ASSIGNED = "NO_ENVIRONMENT_ASSIGNED"


@dataclass(frozen=True)
class Admit:
    direction: Direction


@dataclass(frozen=True)
class Deny:
    reason_code: ReasonCode
    message: str


Decision = Union[Admit, Deny]


def not_registered() -> Deny:
    return Deny(ReasonCode.PERSON_NOT_REGISTERED, "Access denied: the person is not registered in the system")


def inactive(person_status: PersonStatus) -> Deny:
    return Deny(ReasonCode.ACCESS_DENIED_INACTIVE, f"Access denied: the person is {person_status.value.lower()}")


def requires_reissue() -> Deny:
    return Deny(
        ReasonCode.QR_REQUIRES_REISSUE,
        "Credential already used for a prior visit; request a new visitor credential",
    )


class AdmissionService:

    @staticmethod
    def decide(
        db: Session,
        person: Person,
        is_visitor: bool,
        now: datetime,
        issued_at: Optional[datetime] = None,
    ) -> Decision:
        current = (
            db.query(Person)
            .filter(Person.id_person == person.id_person)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if current is None:
            return not_registered()
        if current.status != PersonStatus.ACTIVE:
            return requires_reissue() if is_visitor else inactive(current.status)

        latest = PresenceService.latest_event(db, current.id_person, at=now)
        direction = latest.direction.opposite() if latest else Direction.ENTRY

        if is_visitor and direction == Direction.ENTRY:
            visitor_pass = VisitorService.latest_pass(db, current.id_person)
            if visitor_pass is None or not visitor_pass.is_active:
                return requires_reissue()
            if issued_at is not None and issued_at < visitor_pass.issued_at - ISSUE_TOLERANCE:
                # Code printed for an earlier pass
                return requires_reissue()

        return Admit(direction)

    @staticmethod
    def commit(
        db: Session,
        person: Person,
        decision: Admit,
        is_visitor: bool,
        now: datetime,
        operator_id: Optional[int] = None,
    ) -> AccessEvent:
        """
        Append the event and apply visitor bookkeeping.

        Only flushes: the caller's transaction makes the event, the pass
        closure and the deactivation one atomic unit.
        """
        event = AccessEvent(
            person_id=person.id_person,
            direction=decision.direction,
            timestamp=now,
            operator_id=operator_id,
        )
        db.add(event)
        db.flush()

        if is_visitor and decision.direction == Direction.EXIT:
            closed = VisitorService.close_active_pass(db, person.id_person, now)
            person.status = PersonStatus.INACTIVE
            db.flush()
            logger.info(
                "Visitor %s left; pass %s closed and credential invalidated",
                person.document_number, closed.id_pass if closed else None,
            )

        return event
