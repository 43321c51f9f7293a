"""Notification and Email Outbox Pydantic Schemas"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict

from app.models.enums import EmailJobStatus, EmailJobType


class NotificationBatch(BaseModel):
    id: UUID
    name: str

    model_config = ConfigDict(from_attributes=True)


class NotificationResponse(BaseModel):
    id: UUID
    title: str
    body: str
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime
    batch: Optional[NotificationBatch] = None

    model_config = ConfigDict(from_attributes=True)


class EmailJobResponse(BaseModel):
    """Outbox entry as shown in the admin email log. The HTML body is omitted."""
    id: UUID
    type: EmailJobType
    email: str
    subject: str
    is_admin: bool
    status: EmailJobStatus
    attempts: int
    max_attempts: int
    next_run_at: datetime
    last_error: Optional[str] = None
    user_id: Optional[UUID] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EmailQueueStatus(BaseModel):
    counts: Dict[str, int]
    recent: List[EmailJobResponse]
