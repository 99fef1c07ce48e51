from sqlalchemy.orm import Session
from datetime import datetime
from typing import Dict, List, Optional
from ..core.config import settings
from ..models.institution import Environment, EnvironmentAssignment, Shift, TrainingGroup
from ..models.person import Person, Role
from .admission_service import Deny, ReasonCode
from .presence_service import PresenceService


class IntegrationService:
    """
    Institutional context for the complete scan: training group, assigned
    environments and schedules, plus the role time windows and capacity
    rules evaluated on entry.
    """

    @staticmethod
    def _active_assignments(db: Session, person_id: int, role: Role) -> List[EnvironmentAssignment]:
        return (
            db.query(EnvironmentAssignment)
            .join(Environment)
            .filter(
                EnvironmentAssignment.person_id == person_id,
                EnvironmentAssignment.assignment_type == role,
                EnvironmentAssignment.active.is_(True),
            )
            .order_by(EnvironmentAssignment.id_assignment)
            .all()
        )

    @staticmethod
    def format_schedule(schedule: Optional[Dict[str, str]]) -> List[str]:
        if not schedule or not isinstance(schedule, dict):
            return []
        return [f"{day}: {hours}" for day, hours in schedule.items()]

    @staticmethod
    def get_institutional_context(db: Session, person: Person) -> dict:
        if person.role == Role.APPRENTICE:
            return IntegrationService._apprentice_context(db, person)
        if person.role == Role.INSTRUCTOR:
            return IntegrationService._instructor_context(db, person)
        if person.role == Role.ADMINISTRATIVE:
            return IntegrationService._administrative_context(db, person)
        return {}

    @staticmethod
    def _apprentice_context(db: Session, person: Person) -> dict:
        group = person.training_group
        assignments = IntegrationService._active_assignments(db, person.id_person, Role.APPRENTICE)
        environment = assignments[0].environment if assignments else None
        return {
            "training_group": group.code if group else None,
            "program_code": group.program_code if group else None,
            "program_name": group.program_name if group else None,
            "shift": group.shift.value if group and group.shift else None,
            "environment": environment.label if environment else None,
            "environment_code": environment.code if environment else None,
            "environment_id": environment.id_environment if environment else None,
        }

    @staticmethod
    def _instructor_context(db: Session, person: Person) -> dict:
        assignments = IntegrationService._active_assignments(db, person.id_person, Role.INSTRUCTOR)
        environment_ids = [a.environment_id for a in assignments]

        groups = []
        if environment_ids:
            groups = (
                db.query(TrainingGroup.code)
                .join(Person, Person.training_group_id == TrainingGroup.id_training_group)
                .join(EnvironmentAssignment, EnvironmentAssignment.person_id == Person.id_person)
                .filter(
                    EnvironmentAssignment.environment_id.in_(environment_ids),
                    EnvironmentAssignment.assignment_type == Role.APPRENTICE,
                    EnvironmentAssignment.active.is_(True),
                )
                .distinct()
                .all()
            )

        schedules = []
        for assignment in assignments:
            schedules.extend(IntegrationService.format_schedule(assignment.schedule))

        return {
            "environments": [
                {
                    "code": a.environment.code,
                    "name": a.environment.name,
                    "block": a.environment.block,
                    "schedule": a.schedule,
                }
                for a in assignments
            ],
            "training_groups": sorted(code for (code,) in groups),
            "schedules": schedules,
        }

    @staticmethod
    def _administrative_context(db: Session, person: Person) -> dict:
        assignments = IntegrationService._active_assignments(db, person.id_person, Role.ADMINISTRATIVE)
        if not assignments:
            return {"work_environment": None, "office": None, "office_schedule": None}

        assignment = assignments[0]
        schedule = IntegrationService.format_schedule(assignment.schedule)
        return {
            "work_environment": assignment.environment.label,
            "office": assignment.environment.name,
            "office_schedule": ", ".join(schedule) if schedule else
            f"{settings.office_hours_start}:00-{settings.office_hours_end}:00",
        }

    @staticmethod
    def is_within_shift(shift: Optional[Shift], hour: int) -> bool:
        if shift == Shift.DAY:
            return settings.day_shift_start <= hour < settings.day_shift_end
        if shift == Shift.NIGHT:
            return hour >= settings.day_shift_end or hour < settings.day_shift_start
        return True

    @staticmethod
    def check_environment_capacity(db: Session, environment_id: int, now: datetime) -> Optional[Deny]:
        environment = db.query(Environment).filter(Environment.id_environment == environment_id).first()
        if environment is None or not environment.capacity:
            return None

        occupancy = PresenceService.occupancy(db, environment_id=environment_id, now=now)
        ratio = occupancy / environment.capacity
        if ratio >= settings.environment_capacity_ratio:
            return Deny(
                ReasonCode.ENVIRONMENT_FULL,
                f"Access denied: {environment.label} is at {round(ratio * 100)}% of capacity",
            )
        return None

    @staticmethod
    def evaluate_entry(db: Session, person: Person, context: dict, now: datetime) -> Optional[Deny]:
        """Role rules applied before an ENTRY; exits are never held back."""
        if person.role == Role.APPRENTICE:
            shift = Shift(context["shift"]) if context.get("shift") else None
            if not IntegrationService.is_within_shift(shift, now.hour):
                return Deny(
                    ReasonCode.OUT_OF_SCHEDULE,
                    f"Access denied: outside the {shift.value} shift",
                )
            if context.get("environment_id"):
                return IntegrationService.check_environment_capacity(db, context["environment_id"], now)
            return None

        if person.role == Role.INSTRUCTOR:
            if not context.get("environments"):
                return Deny(
                    ReasonCode.NO_ENVIRONMENT_ASSIGNED,
                    "Access denied: no environment assigned",
                )
            return None

        if person.role == Role.ADMINISTRATIVE:
            if now.weekday() >= 5:
                return Deny(ReasonCode.OUT_OF_SCHEDULE, "Access denied: outside office hours (weekend)")
            if now.hour < settings.office_hours_start or now.hour >= settings.office_hours_end:
                return Deny(
                    ReasonCode.OUT_OF_SCHEDULE,
                    f"Access denied: outside office hours "
                    f"({settings.office_hours_start}:00-{settings.office_hours_end}:00)",
                )
        return None
