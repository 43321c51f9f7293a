"""Domain 4: Live Class Session Model"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Enum, Uuid, CheckConstraint
from sqlalchemy.orm import relationship

from app.models.base import BaseModel
from app.models.enums import ClassStatus


class ClassSession(BaseModel):
    """
    A scheduled live class for a batch. Visible to students with an ACTIVE
    enrollment in that batch until it ends or an admin expires it.
    """
    __tablename__ = "class_sessions"
    __table_args__ = (
        CheckConstraint("ends_at > starts_at", name="ck_class_sessions_time_range"),
    )

    batch_id = Column(Uuid(as_uuid=True), ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    meeting_url = Column(String(1024), nullable=False)
    starts_at = Column(DateTime, nullable=False, index=True)
    ends_at = Column(DateTime, nullable=False)
    status = Column(Enum(ClassStatus, name="class_status"), default=ClassStatus.ACTIVE, nullable=False, index=True)

    # Relationships
    batch = relationship("Batch", back_populates="classes")

    def __repr__(self) -> str:
        return f"<ClassSession {self.title} ({self.status.value})>"
