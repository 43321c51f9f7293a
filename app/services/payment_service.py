"""Payment Service - payment submission and admin verification"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, update, delete, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import (
    EnrollmentClosedError,
    EnrollmentNotFoundError,
    ForbiddenError,
    InvalidStateError,
    NoSeatsLeftError,
    PaymentAlreadyExistsError,
    PaymentAlreadyVerifiedError,
    PaymentDeletionError,
    PaymentNotFoundError,
    TransactionAlreadyUsedError,
)
from app.core.logging import log_transition
from app.database import atomic
from app.models.batch import Batch
from app.models.enrollment import Enrollment
from app.models.enums import EmailJobType, EnrollmentStatus, PaymentMethod, PaymentStatus
from app.models.payment import Payment
from app.models.user import User
from app.schemas.enrollment import PaymentSubmit
from app.services.email_queue import EmailQueue
from app.services.email_service import (
    render_payment_approved,
    render_payment_rejected,
    render_payment_submitted,
)
from app.services.enrollment_service import EnrollmentService
from app.services.lifecycle import EnrollmentEvent, apply_transition, ensure_transition
from app.services.notification_service import NotificationService
from app.services.payment_gate import evaluate_approval, evaluate_submission
from app.utils.time import resolve_now

logger = logging.getLogger(__name__)

INVALID_SUBMISSION_STATE = "Invalid state. Payment already submitted or processed."


@dataclass
class PaymentOutcome:
    """Result of a submission or approval. Auto-rejection is a successful outcome."""
    payment: Payment
    auto_rejected: bool = False
    reason: Optional[str] = None


async def _verify_payment(
    db: AsyncSession,
    payment: Payment,
    status: PaymentStatus,
    verified_by_id: Optional[UUID],
    now: datetime,
) -> None:
    """Move a PENDING payment to its final status exactly once."""
    result = await db.execute(
        update(Payment)
        .where(Payment.id == payment.id, Payment.status == PaymentStatus.PENDING)
        .values(status=status, verified_by_id=verified_by_id, verified_at=now)
    )
    if result.rowcount != 1:
        raise PaymentAlreadyVerifiedError()


def _duplicate_payment_error(error: IntegrityError) -> Exception:
    if "trx_id" in str(error.orig):
        return TransactionAlreadyUsedError()
    return PaymentAlreadyExistsError()


async def _load_pending_review(db: AsyncSession, enrollment_id: UUID) -> Enrollment:
    """Shared guards for admin approve/reject."""
    enrollment = await EnrollmentService.get_enrollment_for_update(db, enrollment_id)
    if not enrollment:
        raise EnrollmentNotFoundError()
    if not enrollment.payment:
        raise PaymentNotFoundError()
    if enrollment.status != EnrollmentStatus.PAYMENT_SUBMITTED:
        raise InvalidStateError()
    if enrollment.payment.status != PaymentStatus.PENDING:
        raise PaymentAlreadyVerifiedError()
    return enrollment


class PaymentService:
    """Service layer for payment proof submission and verification"""

    @staticmethod
    async def submit_payment(
        db: AsyncSession,
        user: User,
        data: PaymentSubmit,
        now: Optional[datetime] = None,
    ) -> PaymentOutcome:
        """
        Record payment proof for a PENDING enrollment.

        Inside the enrollment window the enrollment moves to PAYMENT_SUBMITTED
        and every admin is notified. Outside it the payment is stored REJECTED,
        the enrollment is REJECTED, the seat is released and the student is
        told why.

        Raises:
            EnrollmentNotFoundError, ForbiddenError, InvalidStateError,
            EnrollmentClosedError, NoSeatsLeftError,
            TransactionAlreadyUsedError, PaymentAlreadyExistsError
        """
        now = resolve_now(now)
        enrollment = await EnrollmentService.get_enrollment_for_update(db, data.enrollment_id)
        if not enrollment:
            raise EnrollmentNotFoundError()
        if enrollment.user_id != user.id:
            raise ForbiddenError()
        if enrollment.status != EnrollmentStatus.PENDING:
            raise InvalidStateError(INVALID_SUBMISSION_STATE)

        batch = enrollment.batch
        if not batch.is_open:
            raise EnrollmentClosedError("This batch is no longer accepting enrollments.")
        if batch.seats <= 0:
            raise NoSeatsLeftError("No seats left in this batch.")

        trx_used = await db.scalar(select(Payment.id).where(Payment.trx_id == data.trx_id).limit(1))
        if trx_used:
            raise TransactionAlreadyUsedError()
        if enrollment.payment is not None:
            raise PaymentAlreadyExistsError()

        decision = evaluate_submission(batch, now)
        target = EnrollmentStatus.REJECTED if decision.rejected else EnrollmentStatus.PAYMENT_SUBMITTED
        ensure_transition(enrollment.status, EnrollmentEvent.SUBMIT_PAYMENT, target, INVALID_SUBMISSION_STATE)
        student = enrollment.user

        async with atomic(db):
            payment = Payment(
                enrollment_id=enrollment.id,
                trx_id=data.trx_id,
                method=data.method,
                sender_number=data.sender_number,
                amount=enrollment.enrollment_fee,
                status=PaymentStatus.REJECTED if decision.rejected else PaymentStatus.PENDING,
                paid_at=now,
                verified_at=now if decision.rejected else None,
                verified_by_id=None,
            )
            db.add(payment)
            try:
                await db.flush()
            except IntegrityError as e:
                raise _duplicate_payment_error(e) from e

            if decision.rejected:
                await apply_transition(
                    db, enrollment, EnrollmentEvent.SUBMIT_PAYMENT, target, INVALID_SUBMISSION_STATE,
                    rejected_at=now, reject_reason=decision.reason,
                )
                NotificationService.notify(db, student.id, "Payment Auto-Rejected", decision.reason, batch.id)
                EmailQueue.enqueue(
                    db,
                    type=EmailJobType.PAYMENT_NOTIFICATION,
                    user_id=student.id,
                    email=student.email,
                    subject="Payment Auto-Rejected",
                    html=render_payment_rejected(student.name, payment.amount, str(payment.id), decision.reason),
                )
            else:
                await apply_transition(
                    db, enrollment, EnrollmentEvent.SUBMIT_PAYMENT, target, INVALID_SUBMISSION_STATE,
                    paid_at=now,
                )
                admins = await NotificationService.notify_admins(
                    db,
                    "New Payment Submitted",
                    f"{student.name} submitted payment for {batch.name}.",
                    batch.id,
                )
                html = render_payment_submitted(student.name, payment.amount, str(payment.id), batch.name)
                for admin in admins:
                    EmailQueue.enqueue(
                        db,
                        type=EmailJobType.PAYMENT_NOTIFICATION,
                        user_id=admin.id,
                        email=admin.email,
                        subject="New Payment submitted",
                        html=html,
                        is_admin=True,
                    )

        if decision.rejected:
            logger.warning(
                "Payment auto-rejected at submission",
                extra={"enrollment_id": str(enrollment.id), "reason": decision.reason},
            )
        log_transition(logger, "payment_submitted", enrollment, status=target.value, trx_id=data.trx_id)
        return PaymentOutcome(payment=payment, auto_rejected=decision.rejected, reason=decision.reason)

    @staticmethod
    async def approve_payment(
        db: AsyncSession,
        admin: User,
        enrollment_id: UUID,
        now: Optional[datetime] = None,
    ) -> PaymentOutcome:
        """
        Approve a submitted payment.

        The enrollment window is checked again at approval time: once the
        window has closed the payment is auto-rejected and the seat released.
        """
        now = resolve_now(now)
        enrollment = await _load_pending_review(db, enrollment_id)
        payment = enrollment.payment
        batch = enrollment.batch
        student = enrollment.user

        decision = evaluate_approval(batch, now)
        target = EnrollmentStatus.REJECTED if decision.rejected else EnrollmentStatus.ACTIVE
        ensure_transition(enrollment.status, EnrollmentEvent.APPROVE, target)

        async with atomic(db):
            if decision.rejected:
                await _verify_payment(db, payment, PaymentStatus.REJECTED, admin.id, now)
                await apply_transition(
                    db, enrollment, EnrollmentEvent.APPROVE, target,
                    rejected_at=now, reject_reason=decision.reason,
                )
                NotificationService.notify(
                    db,
                    student.id,
                    "Payment Auto-Rejected",
                    "Your payment was auto-rejected because the enrollment period has ended.",
                    batch.id,
                )
                NotificationService.notify(
                    db,
                    admin.id,
                    "Auto-Rejected Payment",
                    f"Payment for {batch.name} was auto-rejected due to ended enrollment period.",
                    batch.id,
                )
                EmailQueue.enqueue(
                    db,
                    type=EmailJobType.PAYMENT_NOTIFICATION,
                    user_id=student.id,
                    email=student.email,
                    subject="Payment Auto-Rejected",
                    html=render_payment_rejected(student.name, payment.amount, str(payment.id), decision.reason),
                )
            else:
                await _verify_payment(db, payment, PaymentStatus.APPROVED, admin.id, now)
                await apply_transition(db, enrollment, EnrollmentEvent.APPROVE, target, approved_at=now)
                NotificationService.notify(
                    db,
                    student.id,
                    "Enrollment Approved",
                    f"Your payment for {batch.name} has been approved. You now have access.",
                    batch.id,
                )
                EmailQueue.enqueue(
                    db,
                    type=EmailJobType.PAYMENT_NOTIFICATION,
                    user_id=student.id,
                    email=student.email,
                    subject="Payment Approved",
                    html=render_payment_approved(student.name, payment.amount, str(payment.id)),
                )

        await db.refresh(payment)
        if decision.rejected:
            logger.warning(
                "Payment auto-rejected at approval",
                extra={"enrollment_id": str(enrollment.id), "admin_id": str(admin.id), "reason": decision.reason},
            )
        log_transition(logger, "approved", enrollment, status=target.value, admin_id=str(admin.id))
        return PaymentOutcome(payment=payment, auto_rejected=decision.rejected, reason=decision.reason)

    @staticmethod
    async def reject_payment(
        db: AsyncSession,
        admin: User,
        enrollment_id: UUID,
        reason: str,
        now: Optional[datetime] = None,
    ) -> Payment:
        """Reject a submitted payment with an admin-supplied reason; the seat is released."""
        now = resolve_now(now)
        enrollment = await _load_pending_review(db, enrollment_id)
        payment = enrollment.payment
        batch = enrollment.batch
        student = enrollment.user
        ensure_transition(enrollment.status, EnrollmentEvent.REJECT, EnrollmentStatus.REJECTED)

        async with atomic(db):
            await _verify_payment(db, payment, PaymentStatus.REJECTED, admin.id, now)
            await apply_transition(
                db, enrollment, EnrollmentEvent.REJECT, EnrollmentStatus.REJECTED,
                rejected_at=now, reject_reason=reason,
            )
            NotificationService.notify(db, student.id, "Payment Rejected", f"Reason: {reason}", batch.id)
            EmailQueue.enqueue(
                db,
                type=EmailJobType.PAYMENT_NOTIFICATION,
                user_id=student.id,
                email=student.email,
                subject="Payment Rejected",
                html=render_payment_rejected(student.name, payment.amount, str(payment.id), reason),
            )

        await db.refresh(payment)
        log_transition(logger, "rejected", enrollment, status=EnrollmentStatus.REJECTED.value, admin_id=str(admin.id))
        return payment

    @staticmethod
    async def list_payments(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 10,
        search: Optional[str] = None,
        status: Optional[PaymentStatus] = None,
        method: Optional[PaymentMethod] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Tuple[List[Payment], int]:
        """
        Admin listing with search over trx id, student name/email and batch name.

        Returns:
            Tuple of (payments, total count)
        """
        filters = []
        if search:
            pattern = f"%{search}%"
            filters.append(or_(
                Payment.trx_id.ilike(pattern),
                User.name.ilike(pattern),
                User.email.ilike(pattern),
                Batch.name.ilike(pattern),
            ))
        if status:
            filters.append(Payment.status == status)
        if method:
            filters.append(Payment.method == method)
        if start_date:
            filters.append(Payment.created_at >= start_date)
        if end_date:
            filters.append(Payment.created_at <= end_date)

        base = (
            select(Payment)
            .join(Payment.enrollment)
            .join(Enrollment.user)
            .join(Enrollment.batch)
            .where(*filters)
        )
        total = await db.scalar(select(func.count()).select_from(base.subquery()))

        result = await db.execute(
            base.options(*_admin_payment_options())
            .order_by(Payment.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total or 0

    @staticmethod
    async def get_pending_payments(db: AsyncSession, limit: int = 20) -> List[Payment]:
        result = await db.execute(
            select(Payment)
            .options(*_admin_payment_options())
            .where(Payment.status == PaymentStatus.PENDING)
            .order_by(Payment.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def delete_payments(db: AsyncSession, ids: List[UUID]) -> int:
        """Bulk delete; refused when any selected payment is already APPROVED or REJECTED."""
        verified = await db.scalar(
            select(func.count(Payment.id)).where(
                Payment.id.in_(ids),
                Payment.status.in_((PaymentStatus.APPROVED, PaymentStatus.REJECTED)),
            )
        )
        if verified:
            raise PaymentDeletionError()

        async with atomic(db):
            result = await db.execute(delete(Payment).where(Payment.id.in_(ids)))
        logger.info("Payments deleted", extra={"deleted": result.rowcount})
        return result.rowcount


def _admin_payment_options() -> list:
    return [
        selectinload(Payment.enrollment).selectinload(Enrollment.user),
        selectinload(Payment.enrollment).selectinload(Enrollment.batch),
        selectinload(Payment.verified_by),
    ]
