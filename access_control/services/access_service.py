"""
Scan orchestration: credential -> identity -> decision -> event.

Every scan for the same credential key runs serialized, and the whole
resolve/decide/commit sequence for one scan is a single transaction.
"""
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Any, Dict, Optional
from ..core.exceptions import InvalidCredential
from ..core.database import transaction
from ..core.logging_config import get_logger
from ..models.access_event import Direction
from ..models.person import Person
from ..schemas.access import Outcome, ScanResult
from ..schemas.person import PersonSummary
from ..utils.locks import KeyedLock
from .admission_service import Admit, AdmissionService, Deny, ReasonCode, inactive, not_registered, requires_reissue
from .identity_service import ActivePerson, Credential, IdentityService, InactivePerson, UnknownPerson
from .integration_service import IntegrationService
from .security_log_service import SecurityLogService

logger = get_logger(__name__)

# Scans for one (document_type, document) never interleave in this process
scan_locks = KeyedLock()


def _summary(person: Optional[Person], credential: Credential) -> PersonSummary:
    if person is not None:
        return PersonSummary.model_validate(person)
    return PersonSummary(
        display_name=credential.display_name,
        document_number=credential.document,
        document_type=credential.document_type,
        role=credential.role_hint,
    )


def _admit_message(direction: Direction, summary: PersonSummary) -> str:
    if direction == Direction.ENTRY:
        return f"Welcome, {summary.display_name}"
    return f"Goodbye, {summary.display_name}"


class AccessService:

    @staticmethod
    def scan(
        db: Session,
        payload: Dict[str, Any],
        operator_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> ScanResult:
        """Core admission: identity, status and presence toggle."""
        return AccessService._process(db, payload, operator_id, now, extended=False)

    @staticmethod
    def scan_complete(
        db: Session,
        payload: Dict[str, Any],
        operator_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> ScanResult:
        """Admission plus institutional context and the role entry rules."""
        return AccessService._process(db, payload, operator_id, now, extended=True)

    @staticmethod
    def _process(
        db: Session,
        payload: Dict[str, Any],
        operator_id: Optional[int],
        now: Optional[datetime],
        extended: bool,
    ) -> ScanResult:
        now = now or datetime.now()

        try:
            credential = IdentityService.parse_credential(payload)
        except InvalidCredential as exc:
            subject = str(payload.get("document") or payload.get("documento") or "unparsed")
            SecurityLogService.invalid_credential(db, subject, exc.message, operator_id, now)
            logger.warning("Rejected malformed credential for %s: %s", subject, exc.message)
            raise

        if IdentityService.is_expired(credential, now):
            decision = Deny(ReasonCode.QR_EXPIRED, "Visitor credential has expired; request a new one")
            summary = _summary(None, credential)
            return AccessService._finish(db, credential, summary, decision, None, operator_id, now)

        institutional = None
        with scan_locks.hold(credential.key):
            with transaction(db, "scan"):
                resolution = IdentityService.resolve(db, credential, now)
                person = getattr(resolution, "person", None)

                if isinstance(resolution, UnknownPerson):
                    decision = not_registered()
                elif isinstance(resolution, InactivePerson):
                    decision = requires_reissue() if person.is_visitor else inactive(person.status)
                else:
                    decision = AdmissionService.decide(
                        db, person, person.is_visitor, now, issued_at=credential.issue_timestamp
                    )

                if extended and isinstance(resolution, ActivePerson) and not person.is_visitor:
                    institutional = IntegrationService.get_institutional_context(db, person)
                    if isinstance(decision, Admit) and decision.direction == Direction.ENTRY:
                        decision = IntegrationService.evaluate_entry(db, person, institutional, now) or decision

                if isinstance(decision, Admit):
                    AdmissionService.commit(db, person, decision, person.is_visitor, now, operator_id)

                # Taken before commit expires the instance
                summary = _summary(person, credential)

            return AccessService._finish(db, credential, summary, decision, institutional, operator_id, now)

    @staticmethod
    def _finish(
        db: Session,
        credential: Credential,
        summary: PersonSummary,
        decision,
        institutional: Optional[dict],
        operator_id: Optional[int],
        now: datetime,
    ) -> ScanResult:
        if isinstance(decision, Deny):
            SecurityLogService.access_denied(
                db,
                credential.document,
                decision.reason_code.value,
                {"document_type": credential.document_type, "message": decision.message},
                operator_id,
                now,
            )
            logger.info(
                "DENY %s %s: %s", credential.document_type, credential.document, decision.reason_code.value
            )
            return ScanResult(
                outcome=Outcome.DENY,
                person=summary,
                reason_code=decision.reason_code.value,
                message=decision.message,
                timestamp=now,
                institutional=institutional,
            )

        logger.info(
            "ADMIT %s %s %s", decision.direction.value, credential.document_type, credential.document
        )
        return ScanResult(
            outcome=Outcome.ADMIT,
            direction=decision.direction,
            person=summary,
            message=_admit_message(decision.direction, summary),
            timestamp=now,
            institutional=institutional,
        )
