from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from ..models.visitor import PassState


class VisitorRegistration(BaseModel):
    display_name: str
    document_number: str
    document_type: Optional[str] = None
    reason: str = "Visita general"
    destination: Optional[str] = None
    host_name: Optional[str] = None
    contact: Optional[str] = None


class VisitorPassResponse(BaseModel):
    id_pass: int
    person_id: int
    reason: str
    destination: Optional[str] = None
    host_name: Optional[str] = None
    contact: Optional[str] = None
    issued_at: datetime
    started_at: datetime
    ended_at: Optional[datetime] = None
    state: PassState

    class Config:
        from_attributes = True


class VisitorCredential(BaseModel):
    """Payload printed on the visitor's QR code."""
    type: str = "visitor"
    document: str
    document_type: str
    display_name: str
    issue_timestamp: datetime


class VisitorCredentialResponse(BaseModel):
    person_id: int
    visitor_pass: VisitorPassResponse
    credential: VisitorCredential
    qr_data: str
    expires_at: datetime
