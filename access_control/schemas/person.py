from pydantic import BaseModel, EmailStr, field_validator
from datetime import datetime
from typing import Optional
from ..models.person import Role, PersonStatus
from ..utils.roles import normalize_role


class PersonBase(BaseModel):
    document_number: str
    document_type: str = "CC"
    display_name: str
    role: Role
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    training_group_id: Optional[int] = None

    @field_validator("role", mode="before")
    @classmethod
    def normalize(cls, value):
        return normalize_role(value) or value


class PersonCreate(PersonBase):
    pass


class PersonUpdate(BaseModel):
    display_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    training_group_id: Optional[int] = None


class PersonStatusUpdate(BaseModel):
    status: PersonStatus


class PersonResponse(PersonBase):
    id_person: int
    given_names: Optional[str] = None
    surnames: Optional[str] = None
    status: PersonStatus
    created_at: datetime

    class Config:
        from_attributes = True


class PersonSummary(BaseModel):
    """Identity context attached to every scan result."""
    id_person: Optional[int] = None
    display_name: Optional[str] = None
    document_number: str
    document_type: Optional[str] = None
    role: Optional[Role] = None
    status: Optional[PersonStatus] = None

    class Config:
        from_attributes = True
