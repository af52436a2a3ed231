from pydantic import BaseModel, validator
from typing import Optional
from datetime import datetime

class PositionBase(BaseModel):
    name: str
    description: Optional[str] = None
    department_id: int

class PositionCreate(PositionBase):
    @validator('name')
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError('Le nom du poste est requis')
        return v.strip()

class PositionUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    department_id: Optional[int] = None

class PositionResponse(PositionBase):
    id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
