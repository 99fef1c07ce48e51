"""
Periodic security sweep.

One ``SecurityScanner`` owns the sweep slot: a trigger that arrives while a
sweep is still running is skipped rather than queued, whether it comes from
the timer thread or from the manual endpoint.
"""
import threading
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Any, Callable, Dict, Optional
from ..core.config import settings
from ..core.logging_config import get_logger
from ..services.fraud_detection_service import DETECTION_RULES
from .cleanup_jobs import clean_old_records

logger = get_logger(__name__)


def run_security_scan(db: Session, now: Optional[datetime] = None, rules=None) -> Dict[str, Any]:
    """Run every detection rule once; a failing rule is logged and the rest still run."""
    now = now or datetime.now()
    report = {"skipped": False, "created": {}, "failed": [], "purged": {}}

    for name, rule in (rules if rules is not None else DETECTION_RULES):
        try:
            alerts = rule(db, now)
        except Exception:
            db.rollback()
            logger.exception("Security rule %s failed", name)
            report["failed"].append(name)
            continue
        report["created"][name] = len(alerts)

    try:
        report["purged"] = clean_old_records(db, now)
    except Exception:
        db.rollback()
        logger.exception("Housekeeping failed")
        report["failed"].append("housekeeping")

    logger.info(
        "Security scan finished: %d alerts created, %d step(s) failed",
        sum(report["created"].values()), len(report["failed"]),
    )
    return report


class SecurityScanner:
    def __init__(self, session_factory: Callable[[], Session], interval_seconds: Optional[int] = None):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds or settings.security_scan_interval_seconds
        self.lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.last_report: Optional[Dict[str, Any]] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self, db: Optional[Session] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
        if not self.lock.acquire(blocking=False):
            logger.warning("Security scan already in progress, skipping")
            return {"skipped": True, "created": {}, "failed": [], "purged": {}}

        own_session = db is None
        session = self.session_factory() if own_session else db
        try:
            self.last_report = run_security_scan(session, now)
            return self.last_report
        finally:
            if own_session:
                session.close()
            self.lock.release()

    def _loop(self):
        # First sweep runs immediately
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("Security scan crashed")
            self._stop_event.wait(self.interval_seconds)

    def start(self) -> Dict[str, Any]:
        if self.is_running:
            return {"status": "already_running"}
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="security-scanner", daemon=True)
        self._thread.start()
        logger.info("Security scanner started (every %s seconds)", self.interval_seconds)
        return {"status": "started", "interval_seconds": self.interval_seconds}

    def stop(self, timeout: float = 5.0) -> Dict[str, Any]:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Security scanner stopped")
        return {"status": "stopped"}
