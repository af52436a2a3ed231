import re
from pydantic import BaseModel, validator
from typing import Optional
from datetime import datetime
from elitetime.models.shared.enums import UserRole, UserStatus

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+$")


class SafeUser(BaseModel):
    """User as exposed to the browser"""
    id: int
    username: str
    email: Optional[str] = None
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    role: UserRole
    status: UserStatus
    department: Optional[str] = None
    position: Optional[str] = None
    avatar: Optional[str] = None
    team_lead_id: Optional[int] = None

    class Config:
        from_attributes = True


class UserResponse(SafeUser):
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserBase(BaseModel):
    email: str
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    role: UserRole = UserRole.EMPLOYEE
    department: Optional[str] = None
    position: Optional[str] = None
    team_lead_id: Optional[int] = None

    @validator("email")
    def validate_email(cls, v):
        v = v.strip().lower()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("Email invalide")
        return v


class UserCreate(UserBase):
    username: Optional[str] = None

    @validator("username")
    def validate_username(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not 3 <= len(v) <= 50:
            raise ValueError("Le nom d'utilisateur doit contenir entre 3 et 50 caractères")
        if not USERNAME_PATTERN.match(v):
            raise ValueError("Le nom d'utilisateur ne peut contenir que lettres, chiffres, '.', '_' et '-'")
        return v


class UserUpdate(BaseModel):
    email: Optional[str] = None
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    department: Optional[str] = None
    position: Optional[str] = None
    team_lead_id: Optional[int] = None
