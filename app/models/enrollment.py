"""Domain 2: Enrollment Model"""

from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, Enum, Index, Uuid, text
from sqlalchemy.orm import relationship

from app.models.base import BaseModel
from app.models.enums import EnrollmentStatus

_ACTIVE_TRACK_CLAUSE = text("status IN ('PENDING', 'PAYMENT_SUBMITTED', 'ACTIVE')")


class Enrollment(BaseModel):
    """
    One student's claim on a seat in one batch.

    At most one active-track enrollment (PENDING, PAYMENT_SUBMITTED, ACTIVE)
    exists per (user, batch); the partial unique index backs the service pre-check.
    """
    __tablename__ = "enrollments"
    __table_args__ = (
        Index(
            "uq_enrollments_active_track",
            "user_id",
            "batch_id",
            unique=True,
            postgresql_where=_ACTIVE_TRACK_CLAUSE,
            sqlite_where=_ACTIVE_TRACK_CLAUSE,
        ),
    )

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    batch_id = Column(Uuid(as_uuid=True), ForeignKey("batches.id", ondelete="RESTRICT"), nullable=False, index=True)

    # Snapshot of Batch.price at enrollment time
    enrollment_fee = Column(Numeric(10, 2), nullable=False)
    status = Column(
        Enum(EnrollmentStatus, name="enrollment_status"),
        default=EnrollmentStatus.PENDING,
        nullable=False,
        index=True,
    )

    paid_at = Column(DateTime, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    expired_at = Column(DateTime, nullable=True)
    reject_reason = Column(String(500), nullable=True)

    # Relationships
    user = relationship("User", back_populates="enrollments", foreign_keys=[user_id])
    batch = relationship("Batch", back_populates="enrollments")
    payment = relationship("Payment", back_populates="enrollment", uselist=False, cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Enrollment {self.user_id} -> {self.batch_id} ({self.status})>"
