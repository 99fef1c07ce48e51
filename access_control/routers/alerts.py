from fastapi import APIRouter, Depends, HTTPException, Request, status, Query
from sqlalchemy.orm import Session
from datetime import datetime, timedelta
from ..core.config import settings
from ..core.database import get_db
from ..schemas.alert import AlertResponse, AlertStats, SecurityLogResponse, SecurityScanReport
from ..services.alert_service import AlertService
from ..services.security_log_service import SecurityLogService
from ..utils.dependencies import get_current_active_user
from ..models.alert import AlertType, Severity
from ..models.security_log import SecurityCategory
from ..models.user import User
from typing import List, Optional

router = APIRouter(prefix="/alerts", tags=["Alerts"])


@router.get("/", response_model=List[AlertResponse])
def get_alerts(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    alert_type: Optional[AlertType] = Query(None, alias="type"),
    severity: Optional[Severity] = None,
    unread_only: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Get alerts, newest first"""
    return AlertService.get_alerts(
        db, skip=skip, limit=limit, alert_type=alert_type, severity=severity, unread_only=unread_only
    )


@router.get("/stats", response_model=AlertStats)
def get_alert_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Get alert counts by type and severity"""
    return AlertService.get_alert_stats(db)


@router.get("/security-logs", response_model=List[SecurityLogResponse])
def get_security_logs(
    category: Optional[SecurityCategory] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Get the security audit log, newest first"""
    return SecurityLogService.get_logs(db, category=category, skip=skip, limit=limit)


@router.post("/scan", response_model=SecurityScanReport)
def run_security_scan(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Run the security sweep now; skipped if one is already running"""
    return request.app.state.security_scanner.run_once(db)


@router.delete("/read", response_model=dict)
def delete_read_alerts(
    older_than_days: int = Query(settings.read_alert_retention_days, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Delete alerts read more than N days ago"""
    deleted = AlertService.delete_read_alerts(db, datetime.now() - timedelta(days=older_than_days))
    return {"deleted": deleted}


@router.put("/{alert_id}/read", response_model=AlertResponse)
def mark_alert_as_read(
    alert_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Mark an alert as read"""
    alert = AlertService.mark_as_read(db, alert_id, current_user.id_user)
    if not alert:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Alert not found"
        )
    return alert


@router.delete("/{alert_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_alert(
    alert_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Delete an alert"""
    success = AlertService.delete_alert(db, alert_id)
    if not success:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Alert not found"
        )
