from datetime import timedelta

from access_control.models import Alert, AlertType, Severity
from access_control.services.alert_service import AlertService

from conftest import NOW


def raise_alert(db, dedup_key="burst:1", now=NOW, severity=Severity.MEDIUM, dedup_since=None):
    return AlertService.create_alert(
        db,
        AlertType.BURST_ACCESS,
        severity,
        "Unusual number of entries",
        "Five entries in two hours",
        dedup_key=dedup_key,
        dedup_since=dedup_since,
        now=now,
    )


def test_duplicate_fact_is_not_alerted_twice(db):
    first = raise_alert(db)
    second = raise_alert(db, now=NOW + timedelta(minutes=5))

    assert first is not None
    assert first.dedup_key == "burst:1"
    assert second is None
    assert db.query(Alert).count() == 1


def test_dedup_window_expires(db):
    raise_alert(db, now=NOW - timedelta(hours=3))

    again = raise_alert(db, dedup_since=NOW - timedelta(hours=2))

    assert again is not None
    assert db.query(Alert).count() == 2


def test_different_keys_are_independent(db):
    raise_alert(db, dedup_key="burst:1")
    raise_alert(db, dedup_key="burst:2")

    assert db.query(Alert).count() == 2


def test_mark_read_and_stats(db, operator):
    critical = raise_alert(db, dedup_key="a", severity=Severity.CRITICAL)
    raise_alert(db, dedup_key="b", severity=Severity.HIGH)
    raise_alert(db, dedup_key="c", severity=Severity.LOW, now=NOW - timedelta(days=2))

    AlertService.mark_as_read(db, critical.id_alert, operator.id_user)
    stats = AlertService.get_alert_stats(db, now=NOW)

    assert stats["total"] == 3
    assert stats["unread"] == 2
    assert stats["critical_unread"] == 0
    assert stats["high_unread"] == 1
    assert stats["today"] == 2
    assert {"key": "burst_access", "count": 3} in stats["by_type"]
    assert critical.read_by == operator.id_user


def test_filters_and_delete(db):
    keep = raise_alert(db, dedup_key="a", severity=Severity.HIGH)
    drop = raise_alert(db, dedup_key="b", severity=Severity.LOW)

    assert [a.id_alert for a in AlertService.get_alerts(db, severity=Severity.HIGH)] == [keep.id_alert]
    assert AlertService.delete_alert(db, drop.id_alert) is True
    assert AlertService.delete_alert(db, drop.id_alert) is False
    assert len(AlertService.get_alerts(db, unread_only=True)) == 1


def test_only_old_read_alerts_are_purged(db):
    old_read = raise_alert(db, dedup_key="a")
    recent_read = raise_alert(db, dedup_key="b")
    raise_alert(db, dedup_key="c")
    old_read.read_at = NOW - timedelta(days=40)
    recent_read.read_at = NOW - timedelta(days=2)
    db.commit()

    deleted = AlertService.delete_read_alerts(db, NOW - timedelta(days=30))

    assert deleted == 1
    assert db.query(Alert).count() == 2
