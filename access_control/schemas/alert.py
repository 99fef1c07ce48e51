from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, List, Optional
from ..models.alert import AlertType, Severity


class AlertResponse(BaseModel):
    id_alert: int
    type: AlertType
    severity: Severity
    title: str
    message: str
    subject_person_id: Optional[int] = None
    created_at: datetime
    read_at: Optional[datetime] = None
    read_by: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="alert_metadata")

    class Config:
        from_attributes = True


class CountByKey(BaseModel):
    key: str
    count: int


class AlertStats(BaseModel):
    total: int
    unread: int
    critical_unread: int
    high_unread: int
    today: int
    by_type: List[CountByKey]
    by_severity: List[CountByKey]


class SecurityScanReport(BaseModel):
    skipped: bool = False
    created: Dict[str, int] = {}
    failed: List[str] = []
    purged: Dict[str, int] = {}


class SecurityLogResponse(BaseModel):
    id_log: int
    category: str
    subject: str
    timestamp: datetime
    detail: Optional[Dict[str, Any]] = None
    user_id: Optional[int] = None

    class Config:
        from_attributes = True
