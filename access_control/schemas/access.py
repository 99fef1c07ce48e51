import enum
from pydantic import BaseModel
from datetime import datetime
from typing import Any, Dict, List, Optional
from ..models.access_event import Direction
from ..models.person import Role
from .person import PersonSummary


class Outcome(str, enum.Enum):
    ADMIT = "ADMIT"
    DENY = "DENY"


class ScanRequest(BaseModel):
    """
    Inbound scan. Either the structured fields or ``qr_data`` (the raw JSON
    string read from the code) must be supplied.
    """
    credential_kind: Optional[str] = None
    document: Optional[str] = None
    document_type: Optional[str] = None
    display_name: Optional[str] = None
    issue_timestamp: Optional[datetime] = None
    role_hint: Optional[str] = None
    qr_data: Optional[str] = None


class ScanResult(BaseModel):
    outcome: Outcome
    direction: Optional[Direction] = None
    person: Optional[PersonSummary] = None
    reason_code: Optional[str] = None
    message: str
    timestamp: datetime
    institutional: Optional[Dict[str, Any]] = None


class PresenceRecord(BaseModel):
    id_person: int
    display_name: str
    document_number: str
    role: Role
    entered_at: datetime
    minutes_inside: int
    is_visitor: bool = False
    visit_reason: Optional[str] = None


class OccupantsResponse(BaseModel):
    count: int
    people: List[PresenceRecord]


class PresenceStatus(BaseModel):
    person_id: int
    inside: bool
    last_direction: Optional[Direction] = None
    last_event_at: Optional[datetime] = None


class AccessEventResponse(BaseModel):
    id_event: int
    person_id: int
    direction: Direction
    timestamp: datetime
    operator_id: Optional[int] = None

    class Config:
        from_attributes = True


class DailyStats(BaseModel):
    date: datetime
    total_events: int
    entries: int
    exits: int
    people_inside: int
    visitors: int
