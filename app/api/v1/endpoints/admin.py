from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.enums import EmailJobStatus, EmailJobType
from app.models.user import User
from app.services.email_queue import EmailQueue
from app.services.notification_service import NotificationService
from app.schemas.communication import EmailJobResponse, EmailQueueStatus
from app.schemas.responses import SuccessResponse, PaginatedResponse, PaginationMeta
from app.utils.time import to_naive_utc

router = APIRouter()


@router.delete("/notifications/cleanup", response_model=SuccessResponse[Dict[str, int]])
async def cleanup_notifications(
    days_old: int = Query(7, ge=1),
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Delete notifications older than `days_old` days.
    """
    deleted = await NotificationService.delete_old_notifications(db, days_old=days_old)
    return SuccessResponse(data={"deleted": deleted}, message=f"Deleted {deleted} old notifications")


@router.get("/email-jobs", response_model=PaginatedResponse[EmailJobResponse])
async def list_email_jobs(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    status: Optional[EmailJobStatus] = None,
    type: Optional[EmailJobType] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Email log over the outbox, newest first."""
    jobs, total = await EmailQueue.list_email_jobs(
        db,
        page=page,
        page_size=page_size,
        search=search,
        status=status,
        type=type,
        start_date=to_naive_utc(start_date) if start_date else None,
        end_date=to_naive_utc(end_date) if end_date else None,
    )
    return PaginatedResponse(
        data=[EmailJobResponse.model_validate(j) for j in jobs],
        meta=PaginationMeta.build(page, page_size, total),
    )


@router.get("/email-jobs/status", response_model=SuccessResponse[EmailQueueStatus])
async def email_queue_status(
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    counts, recent = await EmailQueue.get_queue_status(db)
    return SuccessResponse(
        data=EmailQueueStatus(counts=counts, recent=[EmailJobResponse.model_validate(j) for j in recent])
    )
