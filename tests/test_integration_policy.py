from datetime import datetime, timedelta

import pytest

from access_control.models import Direction, Role, Shift
from access_control.schemas.access import Outcome
from access_control.services.access_service import AccessService
from access_control.services.admission_service import ReasonCode
from access_control.services.integration_service import IntegrationService

from conftest import NOW

EVENING = NOW.replace(hour=20)
SATURDAY = datetime(2024, 5, 18, 10, 0)


def member(document):
    return {"credential_kind": "member", "document": document}


@pytest.mark.parametrize("shift, hour, expected", [
    (Shift.DAY, 6, True),
    (Shift.DAY, 17, True),
    (Shift.DAY, 18, False),
    (Shift.NIGHT, 18, True),
    (Shift.NIGHT, 3, True),
    (Shift.NIGHT, 10, False),
    (Shift.MIXED, 23, True),
    (None, 2, True),
])
def test_is_within_shift(shift, hour, expected):
    assert IntegrationService.is_within_shift(shift, hour) is expected


def test_apprentice_context_and_admission(db, make_person, make_group, make_environment, assign):
    group = make_group(shift=Shift.DAY)
    lab = make_environment()
    apprentice = make_person(document_number="1010", training_group=group)
    assign(apprentice, lab)

    result = AccessService.scan_complete(db, member("1010"), now=NOW)

    assert (result.outcome, result.direction) == (Outcome.ADMIT, Direction.ENTRY)
    assert result.institutional["training_group"] == "2670001"
    assert result.institutional["shift"] == Shift.DAY.value
    assert result.institutional["environment"] == "Bloque A - Sistemas 1"


def test_apprentice_outside_shift_is_denied_entry(db, make_person, make_group):
    apprentice = make_person(document_number="1010", training_group=make_group(shift=Shift.DAY))

    result = AccessService.scan_complete(db, member("1010"), now=EVENING)

    assert result.outcome is Outcome.DENY
    assert result.reason_code == ReasonCode.OUT_OF_SCHEDULE.value
    assert result.person.id_person == apprentice.id_person


def test_exit_is_never_held_by_schedule(db, make_person, make_group, add_event):
    apprentice = make_person(document_number="1010", training_group=make_group(shift=Shift.DAY))
    add_event(apprentice, Direction.ENTRY, NOW)

    result = AccessService.scan_complete(db, member("1010"), now=EVENING)

    assert (result.outcome, result.direction) == (Outcome.ADMIT, Direction.EXIT)


def test_basic_scan_ignores_schedule(db, make_person, make_group):
    make_person(document_number="1010", training_group=make_group(shift=Shift.DAY))

    result = AccessService.scan(db, member("1010"), now=EVENING)

    assert result.outcome is Outcome.ADMIT
    assert result.institutional is None


def test_full_environment_denies_entry(db, make_person, make_environment, assign, add_event):
    lab = make_environment(capacity=2)
    for document in ("1", "2"):
        other = make_person(document_number=document)
        assign(other, lab)
        add_event(other, Direction.ENTRY, NOW - timedelta(minutes=30))
    apprentice = make_person(document_number="1010")
    assign(apprentice, lab)

    result = AccessService.scan_complete(db, member("1010"), now=NOW)

    assert result.outcome is Outcome.DENY
    assert result.reason_code == ReasonCode.ENVIRONMENT_FULL.value


def test_environment_below_threshold_admits(db, make_person, make_environment, assign, add_event):
    lab = make_environment(capacity=10)
    other = make_person(document_number="1")
    assign(other, lab)
    add_event(other, Direction.ENTRY, NOW - timedelta(minutes=30))
    apprentice = make_person(document_number="1010")
    assign(apprentice, lab)

    result = AccessService.scan_complete(db, member("1010"), now=NOW)

    assert result.outcome is Outcome.ADMIT


def test_instructor_without_environment_is_denied(db, make_person):
    make_person(document_number="2020", role=Role.INSTRUCTOR)

    result = AccessService.scan_complete(db, member("2020"), now=NOW)

    assert result.reason_code == ReasonCode.NO_ENVIRONMENT_ASSIGNED.value


def test_instructor_context_lists_environments_and_groups(db, make_person, make_group, make_environment, assign):
    lab = make_environment()
    instructor = make_person(document_number="2020", role=Role.INSTRUCTOR, display_name="Marta Diaz")
    assign(instructor, lab, schedule={"lunes": "08:00-12:00"})
    apprentice = make_person(document_number="1010", training_group=make_group(code="2670002"))
    assign(apprentice, lab)

    result = AccessService.scan_complete(db, member("2020"), now=NOW)

    assert result.outcome is Outcome.ADMIT
    assert result.institutional["environments"][0]["code"] == "AMB-101"
    assert result.institutional["training_groups"] == ["2670002"]
    assert result.institutional["schedules"] == ["lunes: 08:00-12:00"]


@pytest.mark.parametrize("moment", [SATURDAY, NOW.replace(hour=7), NOW.replace(hour=17, minute=30)])
def test_administrative_outside_office_hours(db, make_person, moment):
    make_person(document_number="3030", role=Role.ADMINISTRATIVE)

    result = AccessService.scan_complete(db, member("3030"), now=moment)

    assert result.outcome is Outcome.DENY
    assert result.reason_code == ReasonCode.OUT_OF_SCHEDULE.value


def test_administrative_during_office_hours(db, make_person, make_environment, assign):
    office = make_environment(code="OF-1", name="Coordinacion", block="Bloque B")
    staff = make_person(document_number="3030", role=Role.ADMINISTRATIVE)
    assign(staff, office)

    result = AccessService.scan_complete(db, member("3030"), now=NOW)

    assert result.outcome is Outcome.ADMIT
    assert result.institutional["work_environment"] == "Bloque B - Coordinacion"
    assert result.institutional["office_schedule"] == "8:00-17:00"


def test_visitors_skip_institutional_rules(db):
    payload = {"credential_kind": "visitor", "document": "900123", "display_name": "Ana Maria Lopez"}

    result = AccessService.scan_complete(db, payload, now=SATURDAY.replace(hour=23))

    assert result.outcome is Outcome.ADMIT
    assert result.institutional is None
