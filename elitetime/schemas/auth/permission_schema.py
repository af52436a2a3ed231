from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class PermissionResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    category: str

    class Config:
        from_attributes = True


class PermissionGrantRequest(BaseModel):
    permission_id: int = Field(..., alias="permissionId")

    class Config:
        populate_by_name = True


class UserPermissionsDetail(BaseModel):
    user_id: int
    role: str
    is_admin: bool
    permissions: List[PermissionResponse]


class GrantAllResponse(BaseModel):
    success: bool = True
    updatedAdmins: int
    createdLinks: int


class NavigationItemResponse(BaseModel):
    code: str
    path: str
    label: str
    group: str


class PageAccessResponse(BaseModel):
    allowed: bool
    page: str
    reason: Optional[str] = None
    redirect_to: Optional[str] = None


class SeedResponse(BaseModel):
    success: bool = True
    created: int
    updated: int = 0


class ActivityLogResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    action: str
    details: Optional[str] = None
    type: str
    timestamp: Optional[datetime] = None

    class Config:
        from_attributes = True
