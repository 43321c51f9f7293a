"""Class Session Pydantic Schemas"""

from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict

from app.models.enums import ClassStatus
from app.schemas.batch import BatchOption


class ClassCreate(BaseModel):
    batch_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    meeting_url: str = Field(..., min_length=1, max_length=1024)
    starts_at: datetime
    ends_at: datetime


class ClassUpdate(BaseModel):
    """Partial update. The time range is checked against the stored class."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    meeting_url: Optional[str] = Field(None, min_length=1, max_length=1024)
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    status: Optional[ClassStatus] = None


class ClassResponse(BaseModel):
    id: UUID
    batch_id: UUID
    title: str
    meeting_url: str
    starts_at: datetime
    ends_at: datetime
    status: ClassStatus
    created_at: datetime
    batch: Optional[BatchOption] = None

    model_config = ConfigDict(from_attributes=True)


class ClassIds(BaseModel):
    ids: list[UUID] = Field(..., min_length=1)
