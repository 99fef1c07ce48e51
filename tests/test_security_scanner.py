import threading
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from access_control.jobs import security_scanner
from access_control.jobs.cleanup_jobs import clean_old_records
from access_control.jobs.security_scanner import SecurityScanner, run_security_scan
from access_control.models import Alert, AlertType, Direction, SecurityLog, Severity
from access_control.services.alert_service import AlertService
from access_control.services.security_log_service import SecurityLogService

from conftest import NOW


def test_failing_rule_does_not_stop_the_sweep(db):
    calls = []

    def broken(db, now):
        raise RuntimeError("boom")

    def healthy(db, now):
        calls.append(now)
        return ["alert"]

    report = run_security_scan(db, NOW, rules=[("broken", broken), ("healthy", healthy)])

    assert report["failed"] == ["broken"]
    assert report["created"] == {"healthy": 1}
    assert calls == [NOW]


def test_full_sweep_is_idempotent(db, make_person, add_event):
    person = make_person()
    add_event(person, Direction.ENTRY, NOW.replace(hour=5))

    first = run_security_scan(db, NOW)
    second = run_security_scan(db, NOW + timedelta(minutes=5))

    assert first["created"]["off_schedule_access"] == 1
    assert sum(second["created"].values()) == 0
    assert first["failed"] == []
    assert db.query(Alert).count() == 1


def test_overlapping_trigger_is_skipped(monkeypatch):
    started = threading.Event()
    release = threading.Event()

    def slow_rule(db, now):
        started.set()
        release.wait(5)
        return []

    monkeypatch.setattr(security_scanner, "DETECTION_RULES", [("slow", slow_rule)])
    monkeypatch.setattr(security_scanner, "clean_old_records", lambda db, now: {})
    scanner = SecurityScanner(MagicMock, interval_seconds=60)

    worker = threading.Thread(target=scanner.run_once)
    worker.start()
    assert started.wait(5)

    skipped = scanner.run_once()
    release.set()
    worker.join(5)

    assert skipped["skipped"] is True
    assert scanner.last_report["skipped"] is False
    assert scanner.lock.acquire(blocking=False)
    scanner.lock.release()


def test_run_once_releases_the_slot_after_a_crash(monkeypatch):
    def crash(db, now):
        raise RuntimeError("boom")

    monkeypatch.setattr(security_scanner, "run_security_scan", crash)
    scanner = SecurityScanner(MagicMock, interval_seconds=60)

    with pytest.raises(RuntimeError):
        scanner.run_once()

    assert scanner.lock.acquire(blocking=False)
    scanner.lock.release()


def test_start_and_stop(monkeypatch):
    monkeypatch.setattr(security_scanner, "run_security_scan", lambda db, now=None: {"skipped": False})
    scanner = SecurityScanner(MagicMock, interval_seconds=60)

    assert scanner.start()["status"] == "started"
    assert scanner.start()["status"] == "already_running"
    assert scanner.stop()["status"] == "stopped"
    assert scanner.is_running is False


def test_housekeeping_keeps_recent_rows(db):
    SecurityLogService.login_failed(db, "a@sena.edu.co", "bad password", "10.0.0.7", NOW - timedelta(days=100))
    SecurityLogService.login_failed(db, "a@sena.edu.co", "bad password", "10.0.0.7", NOW - timedelta(days=1))
    read = AlertService.create_alert(db, AlertType.BURST_ACCESS, Severity.LOW, "t", "m", now=NOW - timedelta(days=60))
    read.read_at = NOW - timedelta(days=45)
    db.commit()

    purged = clean_old_records(db, NOW)

    assert purged == {"security_logs": 1, "read_alerts": 1}
    assert db.query(SecurityLog).count() == 1
    assert db.query(Alert).count() == 0
