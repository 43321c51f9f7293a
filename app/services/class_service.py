"""Class Service - live class scheduling for batches"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, func, or_, update, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import BatchNotFoundError, ClassNotFoundError, InvalidClassTimeRangeError
from app.database import atomic
from app.models.batch import Batch
from app.models.class_session import ClassSession
from app.models.enrollment import Enrollment
from app.models.enums import ClassStatus, EnrollmentStatus
from app.schemas.class_session import ClassCreate, ClassUpdate
from app.services.notification_service import NotificationService
from app.utils.time import resolve_now, to_naive_utc

logger = logging.getLogger(__name__)


class ClassService:
    """Service layer for class sessions"""

    @staticmethod
    async def get_class(db: AsyncSession, class_id: UUID) -> ClassSession:
        result = await db.execute(
            select(ClassSession)
            .options(selectinload(ClassSession.batch))
            .where(ClassSession.id == class_id)
            .execution_options(populate_existing=True)
        )
        class_session = result.scalar_one_or_none()
        if not class_session:
            raise ClassNotFoundError()
        return class_session

    @staticmethod
    async def create_class(db: AsyncSession, data: ClassCreate) -> ClassSession:
        """
        Schedule a class and notify every student with an ACTIVE enrollment in the batch.

        Raises:
            InvalidClassTimeRangeError: ends_at is not after starts_at
            BatchNotFoundError: unknown batch
        """
        starts_at = to_naive_utc(data.starts_at)
        ends_at = to_naive_utc(data.ends_at)
        if ends_at <= starts_at:
            raise InvalidClassTimeRangeError()

        batch = await db.get(Batch, data.batch_id)
        if not batch:
            raise BatchNotFoundError()

        async with atomic(db):
            class_session = ClassSession(
                batch_id=batch.id,
                title=data.title,
                meeting_url=data.meeting_url,
                starts_at=starts_at,
                ends_at=ends_at,
                status=ClassStatus.ACTIVE,
            )
            db.add(class_session)
            students = await db.scalars(
                select(Enrollment.user_id).where(
                    Enrollment.batch_id == batch.id,
                    Enrollment.status == EnrollmentStatus.ACTIVE,
                )
            )
            notified = 0
            for user_id in students:
                NotificationService.notify(
                    db,
                    user_id,
                    "New Class Scheduled",
                    f"{data.title} on {starts_at:%Y-%m-%d %H:%M} UTC. The meeting link is in your schedule.",
                    batch.id,
                )
                notified += 1

        logger.info(
            "Class scheduled",
            extra={"class_id": str(class_session.id), "batch_id": str(batch.id), "notified": notified},
        )
        return await ClassService.get_class(db, class_session.id)

    @staticmethod
    async def update_class(db: AsyncSession, class_id: UUID, data: ClassUpdate) -> ClassSession:
        """Partial update; the resulting time range is checked against stored values."""
        class_session = await ClassService.get_class(db, class_id)
        changes = data.model_dump(exclude_unset=True)
        for field in ("starts_at", "ends_at"):
            if changes.get(field) is not None:
                changes[field] = to_naive_utc(changes[field])

        starts_at = changes.get("starts_at") or class_session.starts_at
        ends_at = changes.get("ends_at") or class_session.ends_at
        if ends_at <= starts_at:
            raise InvalidClassTimeRangeError()

        async with atomic(db):
            for field, value in changes.items():
                if value is not None:
                    setattr(class_session, field, value)

        logger.info("Class updated", extra={"class_id": str(class_session.id), "fields": sorted(changes)})
        return await ClassService.get_class(db, class_id)

    @staticmethod
    async def delete_classes(db: AsyncSession, ids: List[UUID]) -> int:
        async with atomic(db):
            result = await db.execute(delete(ClassSession).where(ClassSession.id.in_(ids)))
        logger.info("Classes deleted", extra={"deleted": result.rowcount})
        return result.rowcount

    @staticmethod
    async def expire_class(db: AsyncSession, class_id: UUID) -> ClassSession:
        class_session = await ClassService.get_class(db, class_id)
        if class_session.status != ClassStatus.EXPIRED:
            async with atomic(db):
                class_session.status = ClassStatus.EXPIRED
            logger.info("Class expired", extra={"class_id": str(class_session.id)})
        return class_session

    @staticmethod
    async def expire_ended_classes(db: AsyncSession, now: Optional[datetime] = None) -> int:
        """Mark every ACTIVE class whose end time has passed as EXPIRED."""
        now = resolve_now(now)
        async with atomic(db):
            result = await db.execute(
                update(ClassSession)
                .where(ClassSession.status == ClassStatus.ACTIVE, ClassSession.ends_at < now)
                .values(status=ClassStatus.EXPIRED)
            )
        if result.rowcount:
            logger.info("Ended classes expired", extra={"expired": result.rowcount})
        return result.rowcount

    @staticmethod
    async def get_my_classes(db: AsyncSession, user_id: UUID) -> List[ClassSession]:
        """ACTIVE classes of the batches the student is actively enrolled in, soonest first."""
        enrolled_batches = select(Enrollment.batch_id).where(
            Enrollment.user_id == user_id,
            Enrollment.status == EnrollmentStatus.ACTIVE,
        )
        result = await db.execute(
            select(ClassSession)
            .options(selectinload(ClassSession.batch))
            .where(
                ClassSession.batch_id.in_(enrolled_batches),
                ClassSession.status == ClassStatus.ACTIVE,
            )
            .order_by(ClassSession.starts_at.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_batch_classes(db: AsyncSession, batch_id: UUID) -> List[ClassSession]:
        result = await db.execute(
            select(ClassSession)
            .options(selectinload(ClassSession.batch))
            .where(ClassSession.batch_id == batch_id)
            .order_by(ClassSession.starts_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_classes(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 10,
        search: Optional[str] = None,
        batch_id: Optional[UUID] = None,
        status: Optional[ClassStatus] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Tuple[List[ClassSession], int]:
        """
        Admin listing, latest start first. Search matches the class title or batch name;
        the date range filters on starts_at.

        Returns:
            Tuple of (classes, total count)
        """
        filters = []
        if search:
            pattern = f"%{search}%"
            filters.append(or_(ClassSession.title.ilike(pattern), Batch.name.ilike(pattern)))
        if batch_id:
            filters.append(ClassSession.batch_id == batch_id)
        if status:
            filters.append(ClassSession.status == status)
        if start_date:
            filters.append(ClassSession.starts_at >= start_date)
        if end_date:
            filters.append(ClassSession.starts_at <= end_date)

        total = await db.scalar(
            select(func.count(ClassSession.id))
            .select_from(ClassSession)
            .join(Batch, ClassSession.batch_id == Batch.id)
            .where(*filters)
        )
        result = await db.execute(
            select(ClassSession)
            .join(Batch, ClassSession.batch_id == Batch.id)
            .options(selectinload(ClassSession.batch))
            .where(*filters)
            .order_by(ClassSession.starts_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total or 0
