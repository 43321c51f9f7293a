from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.enums import EnrollmentStatus
from app.models.user import User
from app.services.email_queue import dispatch_pending_emails
from app.services.enrollment_service import EnrollmentService
from app.services.payment_service import PaymentService
from app.schemas.enrollment import (
    AdminEnrollmentResponse,
    EnrollmentIds,
    PaymentOutcomeResponse,
    PaymentReject,
    PaymentResponse,
)
from app.schemas.responses import SuccessResponse, PaginatedResponse, PaginationMeta

router = APIRouter()


@router.get("", response_model=PaginatedResponse[AdminEnrollmentResponse])
async def list_enrollments(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    status: Optional[EnrollmentStatus] = None,
    batch_id: Optional[UUID] = None,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    enrollments, total = await EnrollmentService.list_enrollments(
        db, page=page, page_size=page_size, search=search, status=status, batch_id=batch_id
    )
    return PaginatedResponse(
        data=[AdminEnrollmentResponse.model_validate(e) for e in enrollments],
        meta=PaginationMeta.build(page, page_size, total),
    )


@router.delete("", response_model=SuccessResponse[Dict[str, int]])
async def delete_enrollments(
    ids_in: EnrollmentIds,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Bulk delete. Seats held by ACTIVE enrollments are returned to their batches."""
    deleted = await EnrollmentService.delete_enrollments(db, ids_in.ids)
    return SuccessResponse(data={"deleted": deleted}, message="Enrollments deleted")


@router.post("/expire", response_model=SuccessResponse[Dict[str, int]])
async def expire_enrollments(
    background_tasks: BackgroundTasks,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
    session_factory=Depends(deps.get_session_factory),
) -> Any:
    """Expire PENDING enrollments whose enrollment window has closed."""
    expired = await EnrollmentService.expire_stale_enrollments(db)
    background_tasks.add_task(dispatch_pending_emails, session_factory)
    return SuccessResponse(data={"expired": expired})


@router.post("/{enrollment_id}/approve", response_model=SuccessResponse[PaymentOutcomeResponse])
async def approve_enrollment(
    enrollment_id: UUID,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
    session_factory=Depends(deps.get_session_factory),
) -> Any:
    """
    Approve the submitted payment. Past the enrollment window the payment is
    auto-rejected instead, reported with `auto_rejected` and the reason.
    """
    outcome = await PaymentService.approve_payment(db, current_user, enrollment_id)
    background_tasks.add_task(dispatch_pending_emails, session_factory)
    message = outcome.reason if outcome.auto_rejected else "Payment approved"
    return SuccessResponse(data=PaymentOutcomeResponse.model_validate(outcome), message=message)


@router.post("/{enrollment_id}/reject", response_model=SuccessResponse[PaymentResponse])
async def reject_enrollment(
    enrollment_id: UUID,
    reject_in: PaymentReject,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
    session_factory=Depends(deps.get_session_factory),
) -> Any:
    payment = await PaymentService.reject_payment(db, current_user, enrollment_id, reject_in.reason)
    background_tasks.add_task(dispatch_pending_emails, session_factory)
    return SuccessResponse(data=PaymentResponse.model_validate(payment), message="Payment rejected")
