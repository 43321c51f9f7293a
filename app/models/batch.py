"""Domain 2: Course Batch Model"""

from sqlalchemy import Column, String, Integer, Numeric, Boolean, DateTime, CheckConstraint
from sqlalchemy.orm import relationship

from app.models.base import BaseModel


class Batch(BaseModel):
    """
    A scheduled course offering with a fixed seat capacity and enrollment window.

    `seats` is the remaining capacity. It is only changed through the seat
    ledger's conditional updates and never goes negative.
    """
    __tablename__ = "batches"
    __table_args__ = (
        CheckConstraint("seats >= 0", name="ck_batches_seats_non_negative"),
    )

    name = Column(String(255), nullable=False, index=True)
    price = Column(Numeric(10, 2), nullable=False)
    seats = Column(Integer, nullable=False, default=0)

    is_open = Column(Boolean, default=False, nullable=False, index=True)
    is_published = Column(Boolean, default=False, nullable=False, index=True)

    enroll_start = Column(DateTime, nullable=False)
    enroll_end = Column(DateTime, nullable=False)

    # Relationships
    enrollments = relationship("Enrollment", back_populates="batch")
    notifications = relationship("Notification", back_populates="batch")
    classes = relationship("ClassSession", back_populates="batch")

    def __repr__(self) -> str:
        return f"<Batch {self.name} ({self.seats} seats)>"
