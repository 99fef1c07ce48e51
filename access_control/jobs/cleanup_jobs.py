from sqlalchemy.orm import Session
from datetime import datetime, timedelta
from typing import Dict, Optional
from ..core.config import settings
from ..core.logging_config import get_logger
from ..services.alert_service import AlertService
from ..services.security_log_service import SecurityLogService

logger = get_logger(__name__)


def clean_old_records(
    db: Session,
    now: Optional[datetime] = None,
    security_log_days: Optional[int] = None,
    read_alert_days: Optional[int] = None,
) -> Dict[str, int]:
    """Purge aged security-log rows and alerts read long ago. Access events are never touched."""
    now = now or datetime.now()
    security_log_days = security_log_days or settings.security_log_retention_days
    read_alert_days = read_alert_days or settings.read_alert_retention_days

    security_logs = SecurityLogService.purge_older_than(db, now - timedelta(days=security_log_days))
    alerts = AlertService.delete_read_alerts(db, now - timedelta(days=read_alert_days))

    if security_logs or alerts:
        logger.info("Housekeeping removed %d security logs and %d read alerts", security_logs, alerts)
    return {"security_logs": security_logs, "read_alerts": alerts}
