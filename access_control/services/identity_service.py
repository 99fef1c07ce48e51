"""
Identity resolution for scanned credentials.

A credential either claims to be a visitor (auto-provisioned on first sight)
or a member (must already be enrolled). Resolution yields one of three
outcomes: an active person, a known but inactive person, or nobody.
"""
import json
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Union

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import InvalidCredential
from ..core.logging_config import get_logger
from ..models.person import Person, PersonStatus, Role
from ..utils.names import split_full_name
from ..utils.roles import normalize_role
from .person_service import PersonService
from .visitor_service import VisitorService

logger = get_logger(__name__)

# Printed codes use either the API field names or the legacy Spanish keys
_FIELD_ALIASES = {
    "credential_kind": ("credential_kind", "type", "tipo"),
    "document": ("document", "documento"),
    "document_type": ("document_type", "tipo_documento"),
    "display_name": ("display_name", "nombre", "nombre_completo"),
    "issue_timestamp": ("issue_timestamp", "timestamp"),
    "role_hint": ("role_hint", "rol"),
}

_VISITOR_KINDS = {"visitor", "visitante"}
_MEMBER_KINDS = {"member", "miembro", "persona"}


@dataclass
class Credential:
    document: str
    document_type: str
    claims_visitor: bool
    display_name: Optional[str] = None
    issue_timestamp: Optional[datetime] = None
    role_hint: Optional[Role] = None

    @property
    def key(self):
        return (self.document_type, self.document)


@dataclass
class ActivePerson:
    person: Person
    provisioned: bool = False


@dataclass
class InactivePerson:
    person: Person


@dataclass
class UnknownPerson:
    credential: Credential


Resolution = Union[ActivePerson, InactivePerson, UnknownPerson]


def _pick(payload: Dict[str, Any], field: str):
    for key in _FIELD_ALIASES[field]:
        value = payload.get(key)
        if value not in (None, ""):
            return value
    return None


def _parse_timestamp(value) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise InvalidCredential("Credential issue timestamp is not a valid date") from exc
    if parsed.tzinfo is not None:
        # Stored times are naive local time
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


class IdentityService:

    @staticmethod
    def parse_payload(qr_data: str) -> Dict[str, Any]:
        try:
            payload = json.loads(qr_data)
        except (TypeError, ValueError) as exc:
            raise InvalidCredential("Credential payload is not valid JSON") from exc
        if not isinstance(payload, dict):
            raise InvalidCredential("Credential payload must be a JSON object")
        return payload

    @staticmethod
    def parse_credential(payload: Dict[str, Any]) -> Credential:
        """Validate a scan payload and normalize it at the system boundary."""
        if payload.get("qr_data"):
            payload = IdentityService.parse_payload(payload["qr_data"])

        raw_kind = _pick(payload, "credential_kind")
        raw_role = _pick(payload, "role_hint")
        document = _pick(payload, "document")

        if document is None or not str(document).strip():
            raise InvalidCredential("Credential is missing the document number")
        if raw_kind is None and raw_role is None:
            raise InvalidCredential("Credential is missing its kind")

        role_hint = normalize_role(raw_role)
        kind = str(raw_kind or raw_role).strip().lower()
        if kind in _VISITOR_KINDS:
            claims_visitor = True
        elif kind in _MEMBER_KINDS:
            claims_visitor = False
        else:
            kind_role = normalize_role(kind)
            if kind_role is None:
                raise InvalidCredential(f"Unknown credential kind '{raw_kind or raw_role}'")
            claims_visitor = kind_role is Role.VISITOR
            role_hint = role_hint or kind_role

        display_name = _pick(payload, "display_name")
        display_name = str(display_name).strip() if display_name is not None else None
        if claims_visitor and not display_name:
            raise InvalidCredential("Visitor credential requires name and document")

        issued = _pick(payload, "issue_timestamp")
        document_type = _pick(payload, "document_type") or settings.default_document_type

        return Credential(
            document=str(document).strip(),
            document_type=str(document_type).strip().upper(),
            claims_visitor=claims_visitor,
            display_name=display_name,
            issue_timestamp=_parse_timestamp(issued) if issued is not None else None,
            role_hint=role_hint,
        )

    @staticmethod
    def is_expired(credential: Credential, now: datetime) -> bool:
        if not credential.claims_visitor or credential.issue_timestamp is None:
            return False
        return now - credential.issue_timestamp > timedelta(hours=settings.visitor_pass_validity_hours)

    @staticmethod
    def resolve(db: Session, credential: Credential, now: datetime) -> Resolution:
        """
        Map a credential to a person.

        Runs inside the caller's transaction: the person row is locked and a
        visitor seen for the first time is provisioned with an open pass.
        """
        person = PersonService.find_by_document(
            db, credential.document, credential.document_type, for_update=True
        )

        if credential.claims_visitor:
            if person is None:
                return ActivePerson(IdentityService.provision_visitor(db, credential, now), provisioned=True)
            if person.role == Role.VISITOR:
                if not person.is_active:
                    return InactivePerson(person)
                IdentityService._refresh_visitor_name(db, person, credential.display_name)
                return ActivePerson(person)
            # An enrolled member holding a visitor code is still judged as a member
            logger.info("Visitor credential for enrolled member %s", credential.document)

        if person is None:
            return UnknownPerson(credential)
        if not person.is_active:
            return InactivePerson(person)
        return ActivePerson(person)

    @staticmethod
    def provision_visitor(db: Session, credential: Credential, now: datetime) -> Person:
        given_names, surnames = split_full_name(credential.display_name, settings.visitor_surname_tokens)
        person = Person(
            document_number=credential.document,
            document_type=credential.document_type,
            display_name=credential.display_name,
            given_names=given_names,
            surnames=surnames,
            role=Role.VISITOR,
            status=PersonStatus.ACTIVE,
        )
        db.add(person)
        db.flush()

        VisitorService.open_pass(db, person.id_person, now, issued_at=credential.issue_timestamp)
        logger.info(
            "Visitor %s (%s) provisioned, id_person=%s",
            credential.display_name, credential.document, person.id_person,
        )
        return person

    @staticmethod
    def _refresh_visitor_name(db: Session, person: Person, display_name: Optional[str]):
        if not display_name or display_name == person.display_name:
            return
        person.display_name = display_name
        person.given_names, person.surnames = split_full_name(display_name, settings.visitor_surname_tokens)
        db.flush()
