"""Batch Pydantic Schemas"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict, model_validator


class BatchBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    seats: int = Field(..., ge=0)
    enroll_start: datetime
    enroll_end: datetime


class BatchCreate(BatchBase):
    pass


class BatchUpdate(BaseModel):
    """Partial update. Window consistency is checked against the stored batch."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    seats: Optional[int] = Field(None, ge=0)
    enroll_start: Optional[datetime] = None
    enroll_end: Optional[datetime] = None

    @model_validator(mode="after")
    def check_window(self) -> "BatchUpdate":
        if self.enroll_start and self.enroll_end and self.enroll_end <= self.enroll_start:
            raise ValueError("enroll_end must be after enroll_start")
        return self


class BatchVisibilityUpdate(BaseModel):
    is_published: bool


class BatchBrief(BaseModel):
    """Minimal batch info for embedding in enrollment responses."""
    id: UUID
    name: str
    price: Decimal
    enroll_start: datetime
    enroll_end: datetime
    is_open: bool
    is_published: bool

    model_config = ConfigDict(from_attributes=True)


class BatchResponse(BatchBrief):
    seats: int
    created_at: datetime


class BatchWithStats(BatchResponse):
    active_enrollments: int = 0


class BatchOption(BaseModel):
    id: UUID
    name: str

    model_config = ConfigDict(from_attributes=True)


class BatchIds(BaseModel):
    ids: list[UUID] = Field(..., min_length=1)
