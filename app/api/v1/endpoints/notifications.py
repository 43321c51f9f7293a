from typing import Any, Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.config import settings
from app.models.user import User
from app.services.notification_service import NotificationService
from app.schemas.communication import NotificationResponse
from app.schemas.responses import SuccessResponse

router = APIRouter()


@router.get("", response_model=SuccessResponse[List[NotificationResponse]])
async def list_my_notifications(
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Latest notifications for the current user, newest first."""
    notifications = await NotificationService.get_my_notifications(
        db, current_user.id, limit=settings.NOTIFICATIONS_LIMIT
    )
    return SuccessResponse(data=[NotificationResponse.model_validate(n) for n in notifications])


@router.post("/read-all", response_model=SuccessResponse[Dict[str, int]])
async def mark_all_read(
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    updated = await NotificationService.mark_all_read(db, current_user.id)
    return SuccessResponse(data={"updated": updated}, message="All notifications marked as read")


@router.post("/{notification_id}/read", response_model=SuccessResponse[NotificationResponse])
async def mark_read(
    notification_id: UUID,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    notification = await NotificationService.mark_read(db, current_user.id, notification_id)
    return SuccessResponse(data=NotificationResponse.model_validate(notification))
