from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from datetime import datetime
from typing import List, Optional, Tuple
from ..core.logging_config import get_logger
from ..models.security_log import SecurityLog, SecurityCategory

logger = get_logger(__name__)


class SecurityLogService:
    """Append-only audit sink consumed by the fraud detector."""

    @staticmethod
    def record(
        db: Session,
        category: SecurityCategory,
        subject: str,
        detail: Optional[dict] = None,
        user_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Optional[SecurityLog]:
        """
        Persist one audit row in its own commit.

        Audit writes never change the outcome of the operation being audited:
        a store failure here is logged and None is returned.
        """
        entry = SecurityLog(
            category=category.value,
            subject=subject or "unknown",
            timestamp=now or datetime.now(),
            detail=detail or {},
            user_id=user_id,
        )
        try:
            db.add(entry)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Could not write security log %s for %s", category.value, subject)
            return None
        logger.info("Security log %s: %s", category.value, subject)
        return entry

    @staticmethod
    def login_failed(db: Session, email: str, reason: str, origin: str, now: Optional[datetime] = None):
        return SecurityLogService.record(
            db,
            SecurityCategory.LOGIN_FAILED,
            origin,
            {"email": email, "reason": reason},
            now=now,
        )

    @staticmethod
    def login_success(db: Session, user_id: int, email: str, origin: str, now: Optional[datetime] = None):
        return SecurityLogService.record(
            db,
            SecurityCategory.LOGIN_SUCCESS,
            origin,
            {"email": email},
            user_id=user_id,
            now=now,
        )

    @staticmethod
    def access_denied(
        db: Session,
        document: str,
        reason_code: str,
        detail: Optional[dict] = None,
        operator_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ):
        return SecurityLogService.record(
            db,
            SecurityCategory.ACCESS_DENIED,
            document,
            {"reason_code": reason_code, **(detail or {})},
            user_id=operator_id,
            now=now,
        )

    @staticmethod
    def invalid_credential(
        db: Session,
        subject: str,
        reason: str,
        operator_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ):
        return SecurityLogService.record(
            db,
            SecurityCategory.INVALID_CREDENTIAL,
            subject,
            {"reason": reason},
            user_id=operator_id,
            now=now,
        )

    @staticmethod
    def count_by_subject(
        db: Session,
        category: SecurityCategory,
        since: datetime,
        until: Optional[datetime] = None,
    ) -> List[Tuple[str, int, datetime, datetime]]:
        """(subject, count, first, last) for every subject logged in the window."""
        query = db.query(
            SecurityLog.subject,
            func.count(SecurityLog.id_log),
            func.min(SecurityLog.timestamp),
            func.max(SecurityLog.timestamp),
        ).filter(
            SecurityLog.category == category.value,
            SecurityLog.timestamp >= since,
        )
        if until is not None:
            query = query.filter(SecurityLog.timestamp <= until)
        return [tuple(row) for row in query.group_by(SecurityLog.subject).all()]

    @staticmethod
    def get_logs(
        db: Session,
        category: Optional[SecurityCategory] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[SecurityLog]:
        query = db.query(SecurityLog)
        if category is not None:
            query = query.filter(SecurityLog.category == category.value)
        return query.order_by(SecurityLog.timestamp.desc()).offset(skip).limit(limit).all()

    @staticmethod
    def purge_older_than(db: Session, cutoff: datetime) -> int:
        deleted = db.query(SecurityLog).filter(SecurityLog.timestamp < cutoff).delete(
            synchronize_session=False
        )
        db.commit()
        return deleted
