from pydantic import BaseModel, validator
from typing import List, Optional
from elitetime.schemas.auth.user_schema import SafeUser


class LoginRequest(BaseModel):
    username: str
    password: str

    @validator("username")
    def validate_username(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Nom d'utilisateur requis")
        return v

    @validator("password")
    def validate_password(cls, v):
        if not v:
            raise ValueError("Mot de passe requis")
        return v


class LoginResponse(BaseModel):
    success: bool = True
    user: SafeUser


class MeResponse(BaseModel):
    user: Optional[SafeUser] = None


class UserPermissionsResponse(BaseModel):
    success: bool = True
    permissions: List[str]
    role: str
