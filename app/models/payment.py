"""Domain 2: Payment Proof Model"""

from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, Enum, Uuid
from sqlalchemy.orm import relationship

from app.models.base import BaseModel
from app.models.enums import PaymentMethod, PaymentStatus


class Payment(BaseModel):
    """
    Manually submitted proof of an out-of-band transfer, bound 1:1 to an enrollment.

    `trx_id` is globally unique so a transaction reference cannot be reused.
    `verified_by_id` is NULL when the system verified (auto-rejected) the payment.
    """
    __tablename__ = "payments"

    enrollment_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("enrollments.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    trx_id = Column(String(100), unique=True, nullable=False, index=True)
    method = Column(Enum(PaymentMethod, name="payment_method"), nullable=False, index=True)
    sender_number = Column(String(32), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(
        Enum(PaymentStatus, name="payment_status"),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True,
    )

    paid_at = Column(DateTime, nullable=True)
    verified_at = Column(DateTime, nullable=True)
    verified_by_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Relationships
    enrollment = relationship("Enrollment", back_populates="payment")
    verified_by = relationship("User", foreign_keys=[verified_by_id])

    def __repr__(self) -> str:
        return f"<Payment {self.trx_id} - {self.status}>"
