import json
from datetime import timedelta

import pytest

from access_control.core.exceptions import InvalidCredential
from access_control.models import Person, PersonStatus, Role, VisitorPass, PassState
from access_control.services.identity_service import (
    ActivePerson, IdentityService, InactivePerson, UnknownPerson,
)
from access_control.utils.names import split_full_name

from conftest import NOW


def visitor_payload(**overrides):
    payload = {"credential_kind": "visitor", "document": "900123", "display_name": "Ana Maria Lopez"}
    payload.update(overrides)
    return payload


def test_parse_structured_visitor_credential():
    credential = IdentityService.parse_credential(visitor_payload(document_type="cc"))

    assert credential.claims_visitor is True
    assert credential.document == "900123"
    assert credential.document_type == "CC"
    assert credential.key == ("CC", "900123")


def test_parse_raw_code_with_spanish_keys():
    qr_data = json.dumps({
        "tipo": "visitante",
        "documento": "900123",
        "nombre": "Ana Maria Lopez",
        "timestamp": "2024-05-15T09:30:00",
    })

    credential = IdentityService.parse_credential({"qr_data": qr_data})

    assert credential.claims_visitor is True
    assert credential.display_name == "Ana Maria Lopez"
    assert credential.issue_timestamp == NOW - timedelta(minutes=30)


def test_parse_member_credential_by_role():
    credential = IdentityService.parse_credential({"document": "1010", "rol": "Aprendiz"})

    assert credential.claims_visitor is False
    assert credential.role_hint is Role.APPRENTICE
    assert credential.document_type == "CC"


def test_aware_timestamp_is_stored_naive():
    credential = IdentityService.parse_credential(visitor_payload(issue_timestamp="2024-05-15T15:00:00Z"))
    assert credential.issue_timestamp.tzinfo is None


@pytest.mark.parametrize("payload", [
    {"credential_kind": "visitor", "display_name": "Ana Lopez"},
    {"document": "1010"},
    {"credential_kind": "spaceship", "document": "1010"},
    {"credential_kind": "visitor", "document": "900123"},
    {"qr_data": "{not json"},
    {"qr_data": "[1, 2]"},
    visitor_payload(issue_timestamp="yesterday"),
])
def test_malformed_credentials_are_rejected(payload):
    with pytest.raises(InvalidCredential):
        IdentityService.parse_credential(payload)


def test_visitor_credential_expires_after_validity():
    fresh = IdentityService.parse_credential(visitor_payload(issue_timestamp=NOW - timedelta(hours=23)))
    stale = IdentityService.parse_credential(visitor_payload(issue_timestamp=NOW - timedelta(hours=25)))
    undated = IdentityService.parse_credential(visitor_payload())

    assert IdentityService.is_expired(fresh, NOW) is False
    assert IdentityService.is_expired(stale, NOW) is True
    assert IdentityService.is_expired(undated, NOW) is False


def test_unknown_visitor_is_provisioned_with_a_pass(db):
    credential = IdentityService.parse_credential(visitor_payload(issue_timestamp=NOW))

    resolution = IdentityService.resolve(db, credential, NOW)
    db.commit()

    assert isinstance(resolution, ActivePerson)
    assert resolution.provisioned is True
    person = resolution.person
    assert person.role is Role.VISITOR
    assert person.status is PersonStatus.ACTIVE
    assert (person.given_names, person.surnames) == ("Ana", "Maria Lopez")
    passes = db.query(VisitorPass).filter(VisitorPass.person_id == person.id_person).all()
    assert len(passes) == 1
    assert passes[0].state is PassState.ACTIVE
    assert passes[0].issued_at == NOW


def test_unknown_member_is_never_created(db):
    credential = IdentityService.parse_credential({"credential_kind": "member", "document": "5555"})

    resolution = IdentityService.resolve(db, credential, NOW)

    assert isinstance(resolution, UnknownPerson)
    assert db.query(Person).count() == 0


def test_inactive_visitor_resolves_inactive(db, make_person):
    make_person(document_number="900123", role=Role.VISITOR, status=PersonStatus.INACTIVE)
    credential = IdentityService.parse_credential(visitor_payload())

    assert isinstance(IdentityService.resolve(db, credential, NOW), InactivePerson)


def test_member_holding_visitor_code_is_judged_as_member(db, make_person):
    member = make_person(document_number="900123", role=Role.INSTRUCTOR, status=PersonStatus.SUSPENDED)
    credential = IdentityService.parse_credential(visitor_payload())

    resolution = IdentityService.resolve(db, credential, NOW)

    assert isinstance(resolution, InactivePerson)
    assert resolution.person.id_person == member.id_person
    assert db.query(VisitorPass).count() == 0


def test_active_visitor_name_is_refreshed(db, make_person):
    visitor = make_person(document_number="900123", role=Role.VISITOR, display_name="Ana Lopez")
    credential = IdentityService.parse_credential(visitor_payload(display_name="Ana Maria Lopez Diaz"))

    resolution = IdentityService.resolve(db, credential, NOW)

    assert resolution.person.id_person == visitor.id_person
    assert visitor.display_name == "Ana Maria Lopez Diaz"
    assert (visitor.given_names, visitor.surnames) == ("Ana Maria", "Lopez Diaz")


@pytest.mark.parametrize("full_name, expected", [
    ("Ana Maria Lopez", ("Ana", "Maria Lopez")),
    ("Ana Lopez", ("Ana", "Lopez")),
    ("Cher", ("Cher", "")),
    ("  ", ("", "")),
])
def test_split_full_name(full_name, expected):
    assert split_full_name(full_name) == expected
