"""User Pydantic Schemas"""

from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field, ConfigDict

from app.models.enums import UserRole


class UserBrief(BaseModel):
    """Minimal user info for embedding in enrollment/payment responses."""
    id: UUID
    name: str
    email: EmailStr
    phone: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class UserResponse(UserBrief):
    """Schema for user responses"""
    role: UserRole
    is_active: bool
    is_verified: bool
    created_at: datetime


class AdminCreate(BaseModel):
    """Schema for an admin creating another admin account"""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, description="Password must be at least 8 characters")
    phone: Optional[str] = Field(None, max_length=32)


class UserRoleUpdate(BaseModel):
    role: UserRole


class UserStatusUpdate(BaseModel):
    is_active: bool


class UserIds(BaseModel):
    ids: list[UUID] = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    """Self-service profile edit. Omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=32)


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8, description="Password must be at least 8 characters")
