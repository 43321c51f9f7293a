"""Notification Service - in-app notifications"""

import logging
from datetime import timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import ForbiddenError, NotificationNotFoundError
from app.models.communication import Notification
from app.models.enums import UserRole
from app.models.user import User
from app.utils.time import get_utc_now

logger = logging.getLogger(__name__)


class NotificationService:
    """Service layer for in-app notifications"""

    @staticmethod
    def notify(
        db: AsyncSession,
        user_id: UUID,
        title: str,
        body: str,
        batch_id: Optional[UUID] = None,
    ) -> Notification:
        """Stage a notification in the caller's transaction."""
        notification = Notification(user_id=user_id, title=title, body=body, batch_id=batch_id)
        db.add(notification)
        return notification

    @staticmethod
    async def get_admins(db: AsyncSession) -> List[User]:
        result = await db.execute(
            select(User).where(User.role == UserRole.ADMIN, User.is_active.is_(True))
        )
        return list(result.scalars().all())

    @staticmethod
    async def notify_admins(
        db: AsyncSession,
        title: str,
        body: str,
        batch_id: Optional[UUID] = None,
    ) -> List[User]:
        """Stage one notification per active admin. Returns the admins notified."""
        admins = await NotificationService.get_admins(db)
        for admin in admins:
            NotificationService.notify(db, admin.id, title, body, batch_id)
        return admins

    @staticmethod
    async def get_my_notifications(db: AsyncSession, user_id: UUID, limit: int = 30) -> List[Notification]:
        result = await db.execute(
            select(Notification)
            .options(selectinload(Notification.batch))
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def mark_read(db: AsyncSession, user_id: UUID, notification_id: UUID) -> Notification:
        """Mark one notification read. Already-read notifications are left untouched."""
        result = await db.execute(
            select(Notification)
            .options(selectinload(Notification.batch))
            .where(Notification.id == notification_id)
        )
        notification = result.scalar_one_or_none()
        if not notification:
            raise NotificationNotFoundError()
        if notification.user_id != user_id:
            raise ForbiddenError()
        if notification.read_at is None:
            notification.read_at = get_utc_now()
            await db.commit()
        return notification

    @staticmethod
    async def mark_all_read(db: AsyncSession, user_id: UUID) -> int:
        result = await db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read_at.is_(None))
            .values(read_at=get_utc_now())
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount

    @staticmethod
    async def delete_old_notifications(db: AsyncSession, days_old: int = 7) -> int:
        """Admin cleanup: remove notifications created at least `days_old` days ago."""
        cutoff = get_utc_now() - timedelta(days=days_old)
        result = await db.execute(
            delete(Notification)
            .where(Notification.created_at <= cutoff)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        logger.info("Old notifications deleted", extra={"deleted": result.rowcount, "days_old": days_old})
        return result.rowcount
