"""Enrollment Service - seat-reserving side of the enrollment lifecycle"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, func, or_, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import (
    AlreadyEnrolledError,
    BatchNotFoundError,
    EmailNotVerifiedError,
    EnrollmentClosedError,
    EnrollmentNotFoundError,
    ForbiddenError,
    InvalidStateError,
    NoSeatsLeftError,
    OutsideEnrollmentPeriodError,
)
from app.core.logging import log_transition
from app.database import atomic
from app.models.batch import Batch
from app.models.enrollment import Enrollment
from app.models.enums import ACTIVE_TRACK_STATUSES, EmailJobType, EnrollmentStatus
from app.models.payment import Payment
from app.models.user import User
from app.services.email_queue import EmailQueue
from app.services.email_service import render_enrollment_expired
from app.services.lifecycle import EnrollmentEvent, apply_transition, ensure_transition
from app.services.notification_service import NotificationService
from app.services.payment_gate import is_within_window
from app.services.seat_ledger import SeatLedger
from app.utils.time import resolve_now

logger = logging.getLogger(__name__)


def _detail_options(include_user: bool = False) -> list:
    options = [selectinload(Enrollment.batch), selectinload(Enrollment.payment)]
    if include_user:
        options.append(selectinload(Enrollment.user))
    return options


class EnrollmentService:
    """Service layer for enrollment operations"""

    @staticmethod
    async def get_enrollment(
        db: AsyncSession,
        enrollment_id: UUID,
        include_user: bool = False,
    ) -> Optional[Enrollment]:
        """Fresh read of an enrollment with its batch and payment loaded."""
        result = await db.execute(
            select(Enrollment)
            .options(*_detail_options(include_user))
            .where(Enrollment.id == enrollment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_enrollment_for_update(db: AsyncSession, enrollment_id: UUID) -> Optional[Enrollment]:
        """Load and row-lock an enrollment (with batch, payment and student) ahead of a transition."""
        result = await db.execute(
            select(Enrollment)
            .options(*_detail_options(include_user=True))
            .where(Enrollment.id == enrollment_id)
            .with_for_update(of=Enrollment)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def start_enrollment(
        db: AsyncSession,
        user: User,
        batch_id: UUID,
        now: Optional[datetime] = None,
    ) -> Enrollment:
        """
        Reserve a seat and create a PENDING enrollment.

        Guards, in order: verified student, batch exists, published and open,
        inside the enrollment window, seats left, no active-track enrollment for
        this (user, batch). The fee is snapshotted from the batch price.

        Raises:
            EmailNotVerifiedError, BatchNotFoundError, EnrollmentClosedError,
            OutsideEnrollmentPeriodError, NoSeatsLeftError, AlreadyEnrolledError
        """
        now = resolve_now(now)
        if not user.is_verified:
            raise EmailNotVerifiedError()

        result = await db.execute(
            select(Batch).where(Batch.id == batch_id).execution_options(populate_existing=True)
        )
        batch = result.scalar_one_or_none()
        if not batch:
            raise BatchNotFoundError()
        if not batch.is_published or not batch.is_open:
            raise EnrollmentClosedError()
        if not is_within_window(batch, now):
            raise OutsideEnrollmentPeriodError()
        if batch.seats <= 0:
            raise NoSeatsLeftError()

        existing = await db.scalar(
            select(Enrollment.id).where(
                Enrollment.user_id == user.id,
                Enrollment.batch_id == batch_id,
                Enrollment.status.in_(ACTIVE_TRACK_STATUSES),
            ).limit(1)
        )
        if existing:
            raise AlreadyEnrolledError()
        ensure_transition(None, EnrollmentEvent.START, EnrollmentStatus.PENDING)

        async with atomic(db):
            if not await SeatLedger.reserve_seat(db, batch.id):
                raise NoSeatsLeftError()
            enrollment = Enrollment(
                user_id=user.id,
                batch_id=batch.id,
                enrollment_fee=batch.price,
                status=EnrollmentStatus.PENDING,
            )
            db.add(enrollment)
            try:
                await db.flush()
            except IntegrityError as e:
                # Lost a race against a concurrent start for the same (user, batch)
                raise AlreadyEnrolledError() from e

        log_transition(logger, "started", enrollment, status=EnrollmentStatus.PENDING.value)
        return await EnrollmentService.get_enrollment(db, enrollment.id)

    @staticmethod
    async def cancel_enrollment(
        db: AsyncSession,
        user: User,
        enrollment_id: UUID,
        now: Optional[datetime] = None,
    ) -> Enrollment:
        """Student withdraws a PENDING enrollment; the seat goes back to the batch."""
        now = resolve_now(now)
        enrollment = await EnrollmentService.get_enrollment_for_update(db, enrollment_id)
        if not enrollment:
            raise EnrollmentNotFoundError()
        if enrollment.user_id != user.id:
            raise ForbiddenError()
        ensure_transition(enrollment.status, EnrollmentEvent.CANCEL, EnrollmentStatus.CANCELLED)

        async with atomic(db):
            await apply_transition(
                db, enrollment, EnrollmentEvent.CANCEL, EnrollmentStatus.CANCELLED, cancelled_at=now
            )

        log_transition(logger, "cancelled", enrollment, status=EnrollmentStatus.CANCELLED.value)
        return await EnrollmentService.get_enrollment(db, enrollment_id)

    @staticmethod
    async def expire_stale_enrollments(db: AsyncSession, now: Optional[datetime] = None) -> int:
        """
        Expire PENDING enrollments whose batch window has closed.

        Each expiry releases the seat and notifies the student. Enrollments that
        moved on concurrently are skipped. PAYMENT_SUBMITTED enrollments are left
        for admin review.
        """
        now = resolve_now(now)
        result = await db.execute(
            select(Enrollment)
            .join(Enrollment.batch)
            .options(selectinload(Enrollment.batch), selectinload(Enrollment.user))
            .where(
                Enrollment.status == EnrollmentStatus.PENDING,
                Batch.enroll_end < now,
            )
            .execution_options(populate_existing=True)
        )
        stale = list(result.scalars().all())
        expired = 0

        async with atomic(db):
            for enrollment in stale:
                try:
                    await apply_transition(
                        db, enrollment, EnrollmentEvent.EXPIRE, EnrollmentStatus.EXPIRED, expired_at=now
                    )
                except InvalidStateError:
                    logger.info("Skipped expiring enrollment that changed state", extra={"enrollment_id": str(enrollment.id)})
                    continue
                expired += 1
                NotificationService.notify(
                    db,
                    enrollment.user_id,
                    "Enrollment Expired",
                    f"Your pending enrollment in {enrollment.batch.name} expired because the enrollment period ended.",
                    enrollment.batch_id,
                )
                EmailQueue.enqueue(
                    db,
                    type=EmailJobType.ENROLLMENT_NOTIFICATION,
                    user_id=enrollment.user_id,
                    email=enrollment.user.email,
                    subject="Enrollment Expired",
                    html=render_enrollment_expired(enrollment.user.name, enrollment.batch.name),
                )
                log_transition(logger, "expired", enrollment, status=EnrollmentStatus.EXPIRED.value)

        logger.info("Enrollment expiry sweep finished", extra={"expired": expired, "candidates": len(stale)})
        return expired

    @staticmethod
    async def delete_enrollments(db: AsyncSession, ids: List[UUID]) -> int:
        """
        Admin bulk delete. Each deleted ACTIVE enrollment returns its seat.
        Payments of the deleted enrollments are removed with them.
        """
        if not ids:
            return 0
        async with atomic(db):
            deleted, released = await EnrollmentService.delete_enrollments_in_transaction(db, ids)

        logger.info("Enrollments deleted", extra={"deleted": deleted, "seats_released": released})
        return deleted

    @staticmethod
    async def delete_enrollments_in_transaction(db: AsyncSession, ids: List[UUID]) -> Tuple[int, int]:
        """
        Delete enrollments and their payments without committing, releasing
        one seat per ACTIVE enrollment. Returns (deleted, seats released).
        """
        result = await db.execute(
            select(Enrollment.batch_id).where(
                Enrollment.id.in_(ids),
                Enrollment.status == EnrollmentStatus.ACTIVE,
            )
        )
        active_batch_ids = list(result.scalars().all())
        for batch_id in active_batch_ids:
            await SeatLedger.release_seat(db, batch_id)
        await db.execute(delete(Payment).where(Payment.enrollment_id.in_(ids)))
        deleted = await db.execute(delete(Enrollment).where(Enrollment.id.in_(ids)))
        return deleted.rowcount, len(active_batch_ids)

    @staticmethod
    async def get_my_enrollments(db: AsyncSession, user_id: UUID) -> List[Enrollment]:
        result = await db.execute(
            select(Enrollment)
            .options(*_detail_options())
            .where(Enrollment.user_id == user_id)
            .order_by(Enrollment.created_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_enrollments(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 10,
        search: Optional[str] = None,
        status: Optional[EnrollmentStatus] = None,
        batch_id: Optional[UUID] = None,
    ) -> Tuple[List[Enrollment], int]:
        """
        Admin listing with search over student name/email and batch name.

        Returns:
            Tuple of (enrollments, total count)
        """
        filters = []
        if search:
            pattern = f"%{search}%"
            filters.append(or_(User.name.ilike(pattern), User.email.ilike(pattern), Batch.name.ilike(pattern)))
        if status:
            filters.append(Enrollment.status == status)
        if batch_id:
            filters.append(Enrollment.batch_id == batch_id)

        base = select(Enrollment).join(Enrollment.user).join(Enrollment.batch).where(*filters)
        total = await db.scalar(select(func.count()).select_from(base.subquery()))

        result = await db.execute(
            base.options(*_detail_options(include_user=True))
            .order_by(Enrollment.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total or 0
