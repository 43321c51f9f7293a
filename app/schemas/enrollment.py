"""Enrollment & Payment Pydantic Schemas"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict

from app.models.enums import EnrollmentStatus, PaymentMethod, PaymentStatus
from app.schemas.batch import BatchBrief
from app.schemas.user import UserBrief


class EnrollmentStart(BaseModel):
    batch_id: UUID


class PaymentSubmit(BaseModel):
    enrollment_id: UUID
    trx_id: str = Field(..., min_length=4, max_length=100)
    method: PaymentMethod
    sender_number: str = Field(..., min_length=6, max_length=32)


class PaymentReject(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class PaymentResponse(BaseModel):
    id: UUID
    enrollment_id: UUID
    trx_id: str
    method: PaymentMethod
    sender_number: str
    amount: Decimal
    status: PaymentStatus
    paid_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    verified_by_id: Optional[UUID] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentOutcomeResponse(BaseModel):
    """Result of a submission or approval; auto-rejections are valid outcomes."""
    payment: PaymentResponse
    auto_rejected: bool = False
    reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class EnrollmentResponse(BaseModel):
    id: UUID
    user_id: UUID
    batch_id: UUID
    enrollment_fee: Decimal
    status: EnrollmentStatus
    paid_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    reject_reason: Optional[str] = None
    created_at: datetime
    batch: Optional[BatchBrief] = None
    payment: Optional[PaymentResponse] = None

    model_config = ConfigDict(from_attributes=True)


class AdminEnrollmentResponse(EnrollmentResponse):
    user: Optional[UserBrief] = None


class EnrollmentBrief(BaseModel):
    """Enrollment embedded in admin payment listings."""
    id: UUID
    status: EnrollmentStatus
    enrollment_fee: Decimal
    user: Optional[UserBrief] = None
    batch: Optional[BatchBrief] = None

    model_config = ConfigDict(from_attributes=True)


class AdminPaymentResponse(PaymentResponse):
    enrollment: Optional[EnrollmentBrief] = None
    verified_by: Optional[UserBrief] = None


class EnrollmentIds(BaseModel):
    ids: list[UUID] = Field(..., min_length=1)


class PaymentIds(BaseModel):
    ids: list[UUID] = Field(..., min_length=1)
