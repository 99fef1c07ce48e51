from sqlalchemy import func
from sqlalchemy.orm import Session
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from ..core.logging_config import get_logger
from ..models.alert import Alert, AlertType, Severity

logger = get_logger(__name__)


class AlertService:

    @staticmethod
    def exists(db: Session, alert_type: AlertType, dedup_key: str, since: Optional[datetime] = None) -> bool:
        """True when an alert with this dedup key was already raised in the window."""
        query = db.query(Alert).filter(Alert.type == alert_type)
        if since is not None:
            query = query.filter(Alert.created_at >= since)
        # JSON path filters differ per backend; the candidate set is small
        return any(alert.dedup_key == dedup_key for alert in query.all())

    @staticmethod
    def create_alert(
        db: Session,
        alert_type: AlertType,
        severity: Severity,
        title: str,
        message: str,
        subject_person_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
        dedup_key: Optional[str] = None,
        dedup_since: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> Optional[Alert]:
        """Persist an alert unless one with the same dedup key already exists."""
        if dedup_key and AlertService.exists(db, alert_type, dedup_key, dedup_since):
            return None

        data = dict(metadata or {})
        if dedup_key:
            data["dedup_key"] = dedup_key

        db_alert = Alert(
            type=alert_type,
            severity=severity,
            title=title,
            message=message,
            subject_person_id=subject_person_id,
            created_at=now or datetime.now(),
            alert_metadata=data,
        )
        db.add(db_alert)
        db.commit()
        db.refresh(db_alert)
        logger.warning("Alert %s [%s]: %s", alert_type.value, severity.value, title)
        return db_alert

    @staticmethod
    def get_alert(db: Session, alert_id: int) -> Optional[Alert]:
        return db.query(Alert).filter(Alert.id_alert == alert_id).first()

    @staticmethod
    def get_alerts(
        db: Session,
        skip: int = 0,
        limit: int = 100,
        alert_type: Optional[AlertType] = None,
        severity: Optional[Severity] = None,
        unread_only: bool = False,
    ) -> List[Alert]:
        query = db.query(Alert)
        if alert_type is not None:
            query = query.filter(Alert.type == alert_type)
        if severity is not None:
            query = query.filter(Alert.severity == severity)
        if unread_only:
            query = query.filter(Alert.read_at.is_(None))
        return query.order_by(Alert.created_at.desc(), Alert.id_alert.desc()).offset(skip).limit(limit).all()

    @staticmethod
    def mark_as_read(db: Session, alert_id: int, user_id: Optional[int] = None) -> Optional[Alert]:
        db_alert = AlertService.get_alert(db, alert_id)
        if not db_alert:
            return None

        if db_alert.read_at is None:
            db_alert.read_at = datetime.now()
            db_alert.read_by = user_id
            db.commit()
            db.refresh(db_alert)
        return db_alert

    @staticmethod
    def delete_alert(db: Session, alert_id: int) -> bool:
        db_alert = AlertService.get_alert(db, alert_id)
        if not db_alert:
            return False

        db.delete(db_alert)
        db.commit()
        return True

    @staticmethod
    def delete_read_alerts(db: Session, cutoff: datetime) -> int:
        """Drop alerts that were read before ``cutoff``; unread ones stay."""
        deleted = db.query(Alert).filter(
            Alert.read_at.isnot(None),
            Alert.read_at < cutoff,
        ).delete(synchronize_session=False)
        db.commit()
        return deleted

    @staticmethod
    def get_alert_stats(db: Session, now: Optional[datetime] = None) -> dict:
        now = now or datetime.now()
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        unread = Alert.read_at.is_(None)

        total = db.query(func.count(Alert.id_alert)).scalar() or 0
        unread_count = db.query(func.count(Alert.id_alert)).filter(unread).scalar() or 0
        critical = db.query(func.count(Alert.id_alert)).filter(
            unread, Alert.severity == Severity.CRITICAL
        ).scalar() or 0
        high = db.query(func.count(Alert.id_alert)).filter(
            unread, Alert.severity == Severity.HIGH
        ).scalar() or 0
        today = db.query(func.count(Alert.id_alert)).filter(
            Alert.created_at >= day_start,
            Alert.created_at < day_start + timedelta(days=1),
        ).scalar() or 0

        by_type = db.query(Alert.type, func.count(Alert.id_alert)).group_by(Alert.type).all()
        by_severity = db.query(Alert.severity, func.count(Alert.id_alert)).group_by(Alert.severity).all()

        return {
            "total": total,
            "unread": unread_count,
            "critical_unread": critical,
            "high_unread": high,
            "today": today,
            "by_type": [{"key": t.value, "count": c} for t, c in by_type],
            "by_severity": [{"key": s.value, "count": c} for s, c in by_severity],
        }
