from datetime import timedelta

from access_control.models import Direction, Role
from access_control.services.presence_service import PresenceService, minutes_between

from conftest import NOW


def test_presence_follows_latest_event(db, make_person, add_event):
    person = make_person()
    t1, t2, t3 = NOW, NOW + timedelta(hours=1), NOW + timedelta(hours=2)
    add_event(person, Direction.ENTRY, t1)
    add_event(person, Direction.EXIT, t2)
    add_event(person, Direction.ENTRY, t3)

    assert PresenceService.is_inside(db, person.id_person, at=t3) is True
    assert PresenceService.is_inside(db, person.id_person, at=t2 + timedelta(minutes=30)) is False
    assert PresenceService.is_inside(db, person.id_person, at=t1 + timedelta(minutes=5)) is True
    assert PresenceService.is_inside(db, person.id_person, at=t1 - timedelta(minutes=5)) is False


def test_no_events_means_outside(db, make_person):
    person = make_person()
    assert PresenceService.is_inside(db, person.id_person) is False
    assert PresenceService.latest_event(db, person.id_person) is None


def test_same_timestamp_resolved_by_insertion_order(db, make_person, add_event):
    person = make_person()
    add_event(person, Direction.ENTRY, NOW)
    add_event(person, Direction.EXIT, NOW)

    assert PresenceService.is_inside(db, person.id_person, at=NOW) is False


def test_current_occupants_reports_elapsed_minutes(db, make_person, add_event, open_pass):
    inside = make_person(document_number="1", display_name="Laura Gomez")
    left = make_person(document_number="2", display_name="Pedro Ruiz")
    visitor = make_person(document_number="900", role=Role.VISITOR, display_name="Ana Lopez")
    open_pass(visitor, NOW - timedelta(hours=1), reason="Entrevista")

    add_event(inside, Direction.ENTRY, NOW - timedelta(minutes=95))
    add_event(left, Direction.ENTRY, NOW - timedelta(minutes=60))
    add_event(left, Direction.EXIT, NOW - timedelta(minutes=10))
    add_event(visitor, Direction.ENTRY, NOW - timedelta(minutes=30))

    occupants = PresenceService.current_occupants(db, now=NOW)
    by_document = {record.document_number: record for record in occupants}

    assert set(by_document) == {"1", "900"}
    assert by_document["1"].minutes_inside == 95
    assert by_document["1"].is_visitor is False
    assert by_document["900"].is_visitor is True
    assert by_document["900"].visit_reason == "Entrevista"


def test_occupancy_per_environment(db, make_person, add_event, make_environment, assign):
    lab = make_environment(code="LAB-1")
    office = make_environment(code="OF-1")
    a = make_person(document_number="1")
    b = make_person(document_number="2")
    c = make_person(document_number="3")
    assign(a, lab)
    assign(b, lab)
    assign(c, office)
    for person in (a, b, c):
        add_event(person, Direction.ENTRY, NOW - timedelta(minutes=20))
    add_event(b, Direction.EXIT, NOW - timedelta(minutes=5))

    assert PresenceService.occupancy(db, now=NOW) == 2
    assert PresenceService.occupancy(db, environment_id=lab.id_environment, now=NOW) == 1
    assert PresenceService.occupancy(db, environment_id=office.id_environment, now=NOW) == 1


def test_daily_stats(db, make_person, add_event, open_pass):
    member = make_person(document_number="1")
    visitor = make_person(document_number="900", role=Role.VISITOR, display_name="Ana Lopez")
    open_pass(visitor, NOW - timedelta(hours=2))
    add_event(member, Direction.ENTRY, NOW - timedelta(hours=3))
    add_event(member, Direction.EXIT, NOW - timedelta(hours=2))
    add_event(visitor, Direction.ENTRY, NOW - timedelta(hours=1))
    add_event(member, Direction.ENTRY, NOW - timedelta(days=1))

    stats = PresenceService.get_daily_stats(db, now=NOW)

    assert stats["total_events"] == 3
    assert stats["entries"] == 2
    assert stats["exits"] == 1
    assert stats["people_inside"] == 1
    assert stats["visitors"] == 1


def test_history_newest_first(db, make_person, add_event):
    person = make_person()
    add_event(person, Direction.ENTRY, NOW - timedelta(hours=2))
    add_event(person, Direction.EXIT, NOW - timedelta(hours=1))

    history = PresenceService.get_history(db, person.id_person)

    assert [event.direction for event in history] == [Direction.EXIT, Direction.ENTRY]


def test_minutes_between_never_negative():
    assert minutes_between(NOW, NOW - timedelta(minutes=3)) == 0
    assert minutes_between(NOW, NOW + timedelta(seconds=150)) == 2
