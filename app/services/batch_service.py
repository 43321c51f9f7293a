"""Batch Service - course batch administration and catalogue"""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    BatchHasEnrollmentsError,
    BatchNotFoundError,
    InvalidEnrollmentWindowError,
    InvalidStateError,
)
from app.database import atomic
from app.models.batch import Batch
from app.models.class_session import ClassSession
from app.models.enrollment import Enrollment
from app.models.enums import ACTIVE_TRACK_STATUSES
from app.schemas.batch import BatchCreate, BatchUpdate
from app.services.seat_ledger import SeatLedger
from app.utils.time import to_naive_utc

logger = logging.getLogger(__name__)


class BatchService:
    """Service layer for batch operations"""

    @staticmethod
    async def get_batch(db: AsyncSession, batch_id: UUID) -> Optional[Batch]:
        result = await db.execute(
            select(Batch).where(Batch.id == batch_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _get_or_raise(db: AsyncSession, batch_id: UUID) -> Batch:
        batch = await BatchService.get_batch(db, batch_id)
        if not batch:
            raise BatchNotFoundError()
        return batch

    @staticmethod
    async def create_batch(db: AsyncSession, data: BatchCreate) -> Batch:
        """
        Create a batch. New batches start closed and unpublished.

        Raises:
            InvalidEnrollmentWindowError: enroll_end is not after enroll_start
        """
        enroll_start = to_naive_utc(data.enroll_start)
        enroll_end = to_naive_utc(data.enroll_end)
        if enroll_end <= enroll_start:
            raise InvalidEnrollmentWindowError()

        batch = Batch(
            name=data.name,
            price=data.price,
            seats=data.seats,
            enroll_start=enroll_start,
            enroll_end=enroll_end,
            is_open=False,
            is_published=False,
        )
        async with atomic(db):
            db.add(batch)

        logger.info("Batch created", extra={"batch_id": str(batch.id), "seats": batch.seats})
        return batch

    @staticmethod
    async def update_batch(db: AsyncSession, batch_id: UUID, data: BatchUpdate) -> Batch:
        """
        Partial update; the resulting window is checked against stored values.

        A new seat count is applied as a delta from the count read here, so
        reservations committed in between are kept.

        Raises:
            InvalidStateError: concurrent reservations left too few seats for the delta
        """
        batch = await BatchService._get_or_raise(db, batch_id)
        changes = data.model_dump(exclude_unset=True)
        for field in ("enroll_start", "enroll_end"):
            if changes.get(field) is not None:
                changes[field] = to_naive_utc(changes[field])

        enroll_start = changes.get("enroll_start") or batch.enroll_start
        enroll_end = changes.get("enroll_end") or batch.enroll_end
        if enroll_end <= enroll_start:
            raise InvalidEnrollmentWindowError()

        fields = sorted(changes)
        seats = changes.pop("seats", None)
        async with atomic(db):
            for field, value in changes.items():
                if value is not None:
                    setattr(batch, field, value)
            if seats is not None:
                if not await SeatLedger.adjust_seats(db, batch.id, seats - batch.seats):
                    raise InvalidStateError("Seat count changed while editing; reload the batch")

        logger.info("Batch updated", extra={"batch_id": str(batch.id), "fields": fields})
        return await BatchService._get_or_raise(db, batch_id)

    @staticmethod
    async def publish_batch(db: AsyncSession, batch_id: UUID) -> Batch:
        """Publish and open a batch for enrollment."""
        return await BatchService._set_flags(db, batch_id, is_published=True, is_open=True)

    @staticmethod
    async def close_batch(db: AsyncSession, batch_id: UUID) -> Batch:
        return await BatchService._set_flags(db, batch_id, is_open=False)

    @staticmethod
    async def set_visibility(db: AsyncSession, batch_id: UUID, is_published: bool) -> Batch:
        return await BatchService._set_flags(db, batch_id, is_published=is_published)

    @staticmethod
    async def _set_flags(db: AsyncSession, batch_id: UUID, **flags: bool) -> Batch:
        batch = await BatchService._get_or_raise(db, batch_id)
        async with atomic(db):
            for field, value in flags.items():
                setattr(batch, field, value)
        logger.info("Batch flags changed", extra={"batch_id": str(batch.id), **flags})
        return await BatchService._get_or_raise(db, batch_id)

    @staticmethod
    async def delete_batches(db: AsyncSession, ids: List[UUID]) -> int:
        """Bulk delete with their classes; refused while any enrollment references a selected batch."""
        referenced = await db.scalar(
            select(func.count(Enrollment.id)).where(Enrollment.batch_id.in_(ids))
        )
        if referenced:
            raise BatchHasEnrollmentsError()

        async with atomic(db):
            await db.execute(delete(ClassSession).where(ClassSession.batch_id.in_(ids)))
            result = await db.execute(delete(Batch).where(Batch.id.in_(ids)))
        logger.info("Batches deleted", extra={"deleted": result.rowcount})
        return result.rowcount

    @staticmethod
    async def list_public_batches(db: AsyncSession) -> List[Tuple[Batch, int]]:
        """Published batches, newest first, each with its active-track enrollment count."""
        active_counts = (
            select(Enrollment.batch_id, func.count(Enrollment.id).label("active"))
            .where(Enrollment.status.in_(ACTIVE_TRACK_STATUSES))
            .group_by(Enrollment.batch_id)
            .subquery()
        )
        result = await db.execute(
            select(Batch, func.coalesce(active_counts.c.active, 0))
            .outerjoin(active_counts, active_counts.c.batch_id == Batch.id)
            .where(Batch.is_published.is_(True))
            .order_by(Batch.created_at.desc())
        )
        return [(batch, count) for batch, count in result.all()]

    @staticmethod
    async def list_batches(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 10,
        search: Optional[str] = None,
        is_published: Optional[bool] = None,
        is_open: Optional[bool] = None,
    ) -> Tuple[List[Batch], int]:
        """
        Admin listing.

        Returns:
            Tuple of (batches, total count)
        """
        filters = []
        if search:
            filters.append(Batch.name.ilike(f"%{search}%"))
        if is_published is not None:
            filters.append(Batch.is_published.is_(is_published))
        if is_open is not None:
            filters.append(Batch.is_open.is_(is_open))

        total = await db.scalar(select(func.count(Batch.id)).where(*filters))
        result = await db.execute(
            select(Batch)
            .where(*filters)
            .order_by(Batch.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total or 0

    @staticmethod
    async def get_batch_options(db: AsyncSession) -> List[Batch]:
        """All batches by name, for admin filter dropdowns."""
        result = await db.execute(select(Batch).order_by(Batch.name.asc()))
        return list(result.scalars().all())
