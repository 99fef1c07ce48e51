"""
Detection rules run by the periodic security sweep.

Each rule reads the access log, visitor passes or the security audit log as
of ``now`` and raises alerts for facts not already alerted on. Rules are
independent of one another and safe to re-run: a repeated sweep over the same
data creates nothing new.
"""
from sqlalchemy.orm import Session
from datetime import datetime, time, timedelta
from typing import Dict, List, Tuple
from ..core.config import settings
from ..models.access_event import AccessEvent, Direction
from ..models.alert import Alert, AlertType, Severity
from ..models.person import Person
from ..models.security_log import SecurityCategory
from ..models.visitor import VisitorPass, PassState
from .alert_service import AlertService
from .security_log_service import SecurityLogService


def _day_start(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def _entries_by_person(db: Session, since: datetime, until: datetime) -> Dict[int, Tuple[Person, List[datetime]]]:
    rows = (
        db.query(Person, AccessEvent.timestamp)
        .join(AccessEvent, AccessEvent.person_id == Person.id_person)
        .filter(
            AccessEvent.direction == Direction.ENTRY,
            AccessEvent.timestamp >= since,
            AccessEvent.timestamp <= until,
        )
        .order_by(AccessEvent.person_id, AccessEvent.timestamp)
        .all()
    )
    grouped = {}
    for person, timestamp in rows:
        grouped.setdefault(person.id_person, (person, []))[1].append(timestamp)
    return grouped


def densest_window(timestamps: List[datetime], size: int, span: timedelta):
    """
    First run of ``size`` consecutive timestamps that fits inside ``span``.

    ``timestamps`` must be sorted. Returns (first, last) or None.
    """
    if size <= 0:
        return None
    for i in range(len(timestamps) - size + 1):
        first, last = timestamps[i], timestamps[i + size - 1]
        if last - first <= span:
            return first, last
    return None


class FraudDetectionService:

    @staticmethod
    def detect_off_schedule_access(db: Session, now: datetime) -> List[Alert]:
        day = _day_start(now)
        opens = time(settings.off_schedule_start_hour)
        closes = time(settings.off_schedule_end_hour)

        created = []
        for person, timestamps in _entries_by_person(db, day, now).values():
            off_hours = [t for t in timestamps if t.time() < opens or t.time() >= closes]
            if not off_hours:
                continue
            alert = AlertService.create_alert(
                db,
                AlertType.OFF_SCHEDULE_ACCESS,
                Severity.MEDIUM,
                "Access outside allowed hours",
                f"{person.display_name} ({person.document_number}) entered at "
                f"{off_hours[0].strftime('%H:%M')}, outside {opens.strftime('%H:%M')}-{closes.strftime('%H:%M')}",
                subject_person_id=person.id_person,
                metadata={"entries": [t.isoformat() for t in off_hours]},
                dedup_key=f"off_schedule:{person.id_person}:{day.date().isoformat()}",
                dedup_since=day,
                now=now,
            )
            if alert:
                created.append(alert)
        return created

    @staticmethod
    def detect_expiring_visitor_passes(db: Session, now: datetime) -> List[Alert]:
        validity = timedelta(hours=settings.visitor_pass_validity_hours)
        closing = timedelta(hours=settings.visitor_pass_closing_window_hours)

        rows = (
            db.query(VisitorPass, Person)
            .join(Person, Person.id_person == VisitorPass.person_id)
            .filter(
                VisitorPass.state == PassState.ACTIVE,
                VisitorPass.issued_at <= now - (validity - closing),
                VisitorPass.issued_at > now - validity,
            )
            .all()
        )

        created = []
        for visitor_pass, person in rows:
            expires_at = visitor_pass.issued_at + validity
            remaining = int((expires_at - now).total_seconds() // 60)
            alert = AlertService.create_alert(
                db,
                AlertType.EXPIRING_VISITOR_PASS,
                Severity.LOW,
                "Visitor pass about to expire",
                f"Pass of {person.display_name} ({person.document_number}) expires in {remaining} minutes",
                subject_person_id=person.id_person,
                metadata={"pass_id": visitor_pass.id_pass, "expires_at": expires_at.isoformat()},
                dedup_key=f"expiring_pass:{visitor_pass.id_pass}",
                now=now,
            )
            if alert:
                created.append(alert)
        return created

    @staticmethod
    def detect_burst_access(db: Session, now: datetime) -> List[Alert]:
        window_start = now - timedelta(minutes=settings.burst_access_window_minutes)

        created = []
        for person, timestamps in _entries_by_person(db, window_start, now).values():
            count = len(timestamps)
            if count <= settings.burst_access_threshold:
                continue
            severity = Severity.HIGH if count >= settings.burst_access_high_threshold else Severity.MEDIUM
            alert = AlertService.create_alert(
                db,
                AlertType.BURST_ACCESS,
                severity,
                "Unusual number of entries",
                f"{person.display_name} ({person.document_number}) entered {count} times "
                f"in the last {settings.burst_access_window_minutes} minutes",
                subject_person_id=person.id_person,
                metadata={"entries": count, "window_minutes": settings.burst_access_window_minutes},
                dedup_key=f"burst:{person.id_person}",
                dedup_since=window_start,
                now=now,
            )
            if alert:
                created.append(alert)
        return created

    @staticmethod
    def detect_failed_login_attempts(db: Session, now: datetime) -> List[Alert]:
        since = now - timedelta(minutes=settings.failed_login_window_minutes)
        dedup_since = now - timedelta(minutes=settings.failed_login_dedup_minutes)

        created = []
        for origin, attempts, first, last in SecurityLogService.count_by_subject(
            db, SecurityCategory.LOGIN_FAILED, since, now
        ):
            if attempts < settings.failed_login_threshold:
                continue
            severity = (
                Severity.CRITICAL if attempts >= settings.failed_login_critical_threshold else Severity.HIGH
            )
            elapsed = int((last - first).total_seconds() // 60)
            alert = AlertService.create_alert(
                db,
                AlertType.FAILED_LOGIN_ATTEMPTS,
                severity,
                "Repeated failed logins",
                f"{attempts} failed login attempts from {origin} in {elapsed} minutes",
                metadata={
                    "origin": origin,
                    "attempts": attempts,
                    "first_attempt": first.isoformat(),
                    "last_attempt": last.isoformat(),
                },
                dedup_key=f"failed_login:{origin}",
                dedup_since=dedup_since,
                now=now,
            )
            if alert:
                created.append(alert)
        return created

    @staticmethod
    def detect_suspicious_behavior(db: Session, now: datetime) -> List[Alert]:
        day = _day_start(now)
        span = timedelta(minutes=settings.suspicious_access_window_minutes)

        created = []
        for person, timestamps in _entries_by_person(db, day, now).values():
            window = densest_window(timestamps, settings.suspicious_access_threshold, span)
            if window is None:
                continue
            first, last = window
            minutes = int((last - first).total_seconds() // 60)
            alert = AlertService.create_alert(
                db,
                AlertType.SUSPICIOUS_BEHAVIOR,
                Severity.HIGH,
                "Suspicious behaviour detected",
                f"{person.display_name} ({person.document_number}) entered "
                f"{settings.suspicious_access_threshold} times in {minutes} minutes",
                subject_person_id=person.id_person,
                metadata={"first_entry": first.isoformat(), "last_entry": last.isoformat()},
                dedup_key=f"suspicious:{person.id_person}:{day.date().isoformat()}",
                dedup_since=day,
                now=now,
            )
            if alert:
                created.append(alert)
        return created


# Sweep order; each entry is (name, rule)
DETECTION_RULES = [
    ("off_schedule_access", FraudDetectionService.detect_off_schedule_access),
    ("expiring_visitor_pass", FraudDetectionService.detect_expiring_visitor_passes),
    ("burst_access", FraudDetectionService.detect_burst_access),
    ("failed_login_attempts", FraudDetectionService.detect_failed_login_attempts),
    ("suspicious_behavior", FraudDetectionService.detect_suspicious_behavior),
]
