"""
Presence derived from the access log.

Nobody stores an "inside" flag: a person is inside when the most recent
event at the query time is an ENTRY. Ties on timestamp are broken by
insertion order.
"""
from sqlalchemy import func
from sqlalchemy.orm import Session
from datetime import datetime, timedelta
from typing import List, Optional
from ..models.access_event import AccessEvent, Direction
from ..models.institution import EnvironmentAssignment
from ..models.person import Person
from ..models.visitor import VisitorPass, PassState
from ..schemas.access import PresenceRecord


def _latest_events(db: Session, at: datetime):
    """Subquery with the latest event per person as of ``at``."""
    ranked = db.query(
        AccessEvent.person_id.label("person_id"),
        AccessEvent.direction.label("direction"),
        AccessEvent.timestamp.label("timestamp"),
        func.row_number().over(
            partition_by=AccessEvent.person_id,
            order_by=(AccessEvent.timestamp.desc(), AccessEvent.id_event.desc()),
        ).label("position"),
    ).filter(AccessEvent.timestamp <= at).subquery()

    return db.query(ranked).filter(ranked.c.position == 1).subquery()


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes elapsed, never negative."""
    return max(0, int((end - start).total_seconds() // 60))


class PresenceService:

    @staticmethod
    def latest_event(db: Session, person_id: int, at: Optional[datetime] = None) -> Optional[AccessEvent]:
        query = db.query(AccessEvent).filter(AccessEvent.person_id == person_id)
        if at is not None:
            query = query.filter(AccessEvent.timestamp <= at)
        return query.order_by(AccessEvent.timestamp.desc(), AccessEvent.id_event.desc()).first()

    @staticmethod
    def is_inside(db: Session, person_id: int, at: Optional[datetime] = None) -> bool:
        latest = PresenceService.latest_event(db, person_id, at)
        return latest is not None and latest.direction == Direction.ENTRY

    @staticmethod
    def current_occupants(db: Session, now: Optional[datetime] = None) -> List[PresenceRecord]:
        now = now or datetime.now()
        latest = _latest_events(db, now)

        rows = (
            db.query(Person, latest.c.timestamp)
            .join(latest, latest.c.person_id == Person.id_person)
            .filter(latest.c.direction == Direction.ENTRY)
            .order_by(latest.c.timestamp.desc())
            .all()
        )

        visitor_ids = [person.id_person for person, _ in rows if person.is_visitor]
        reasons = {}
        if visitor_ids:
            passes = db.query(VisitorPass).filter(
                VisitorPass.person_id.in_(visitor_ids),
                VisitorPass.state == PassState.ACTIVE,
            ).all()
            reasons = {p.person_id: p.reason for p in passes}

        return [
            PresenceRecord(
                id_person=person.id_person,
                display_name=person.display_name,
                document_number=person.document_number,
                role=person.role,
                entered_at=entered_at,
                minutes_inside=minutes_between(entered_at, now),
                is_visitor=person.is_visitor,
                visit_reason=reasons.get(person.id_person),
            )
            for person, entered_at in rows
        ]

    @staticmethod
    def occupancy(db: Session, environment_id: Optional[int] = None, now: Optional[datetime] = None) -> int:
        """People inside, optionally only those assigned to one environment."""
        now = now or datetime.now()
        latest = _latest_events(db, now)

        query = db.query(func.count(func.distinct(latest.c.person_id))).select_from(latest).filter(
            latest.c.direction == Direction.ENTRY
        )
        if environment_id is not None:
            query = query.join(
                EnvironmentAssignment,
                EnvironmentAssignment.person_id == latest.c.person_id,
            ).filter(
                EnvironmentAssignment.environment_id == environment_id,
                EnvironmentAssignment.active.is_(True),
            )
        return query.scalar() or 0

    @staticmethod
    def get_history(db: Session, person_id: int, limit: int = 10) -> List[AccessEvent]:
        return (
            db.query(AccessEvent)
            .filter(AccessEvent.person_id == person_id)
            .order_by(AccessEvent.timestamp.desc(), AccessEvent.id_event.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_daily_stats(db: Session, now: Optional[datetime] = None) -> dict:
        now = now or datetime.now()
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        day_end = day_start + timedelta(days=1)

        counts = dict(
            db.query(AccessEvent.direction, func.count(AccessEvent.id_event))
            .filter(AccessEvent.timestamp >= day_start, AccessEvent.timestamp < day_end)
            .group_by(AccessEvent.direction)
            .all()
        )
        visitors = db.query(func.count(VisitorPass.id_pass)).filter(
            VisitorPass.started_at >= day_start,
            VisitorPass.started_at < day_end,
        ).scalar() or 0

        entries = counts.get(Direction.ENTRY, 0)
        exits = counts.get(Direction.EXIT, 0)
        return {
            "date": day_start,
            "total_events": entries + exits,
            "entries": entries,
            "exits": exits,
            "people_inside": PresenceService.occupancy(db, now=now),
            "visitors": visitors,
        }
