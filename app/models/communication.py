"""Domain 3: Communication Models (Notifications & Email Outbox)"""

from sqlalchemy import Column, String, Text, DateTime, Boolean, Integer, ForeignKey, Enum, Uuid
from sqlalchemy.orm import relationship

from app.models.base import BaseModel
from app.models.enums import EmailJobStatus, EmailJobType


class Notification(BaseModel):
    """
    In-app notification for a user, optionally about a batch.
    Inserted inside the same transaction as the transition that caused it.
    """
    __tablename__ = "notifications"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    batch_id = Column(Uuid(as_uuid=True), ForeignKey("batches.id", ondelete="SET NULL"), nullable=True, index=True)

    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    read_at = Column(DateTime, nullable=True)

    # Relationships
    user = relationship("User", back_populates="notifications")
    batch = relationship("Batch", back_populates="notifications")

    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    def __repr__(self) -> str:
        return f"<Notification {self.title}>"


class EmailJob(BaseModel):
    """
    Transactional outbox entry for an email.
    Written with the state change, delivered after commit by the email worker.
    """
    __tablename__ = "email_jobs"

    type = Column(Enum(EmailJobType, name="email_job_type"), nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    email = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False)
    html = Column(Text, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)

    status = Column(Enum(EmailJobStatus, name="email_job_status"), default=EmailJobStatus.QUEUED, nullable=False, index=True)
    attempts = Column(Integer, default=0, nullable=False)
    max_attempts = Column(Integer, default=3, nullable=False)
    next_run_at = Column(DateTime, nullable=False, index=True)
    last_error = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<EmailJob {self.type} -> {self.email} ({self.status})>"
