from pydantic import BaseModel, EmailStr
from datetime import datetime
from typing import Optional


class UserBase(BaseModel):
    name_user: str
    email: EmailStr
    active: Optional[bool] = True


class UserCreate(UserBase):
    password: str
    role_id: int


class UserResponse(UserBase):
    id_user: int
    created_at: datetime
    last_login_at: Optional[datetime] = None
    role_id: int

    class Config:
        from_attributes = True


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str


class RolBase(BaseModel):
    name_rol: str


class RolCreate(RolBase):
    pass


class RolResponse(RolBase):
    id_rol: int

    class Config:
        from_attributes = True
