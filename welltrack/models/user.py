"""User models."""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from uuid import UUID


class UserCreate(BaseModel):
    """Data required to register a new user."""

    name: str = Field(min_length=1)
    email: EmailStr


class UserUpdate(BaseModel):
    """Data for updating the user profile."""

    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None


class User(BaseModel):
    """Full user model with profile bookkeeping."""

    id: UUID
    name: str
    email: str
    initial_health_data_submitted: bool = False
    metrics_update_count: int = 0
    last_metrics_update: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
