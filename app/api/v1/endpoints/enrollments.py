from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.user import User
from app.services.enrollment_service import EnrollmentService
from app.schemas.enrollment import EnrollmentResponse, EnrollmentStart
from app.schemas.responses import SuccessResponse

router = APIRouter()


@router.post("", response_model=SuccessResponse[EnrollmentResponse])
async def start_enrollment(
    enrollment_in: EnrollmentStart,
    current_user: User = Depends(deps.require_student),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Reserve a seat in a batch. The enrollment stays PENDING until a payment
    is submitted.
    """
    enrollment = await EnrollmentService.start_enrollment(db, current_user, enrollment_in.batch_id)
    return SuccessResponse(
        data=EnrollmentResponse.model_validate(enrollment),
        message="Enrollment started. Submit your payment to continue.",
    )


@router.get("/me", response_model=SuccessResponse[List[EnrollmentResponse]])
async def list_my_enrollments(
    current_user: User = Depends(deps.require_student),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    enrollments = await EnrollmentService.get_my_enrollments(db, current_user.id)
    return SuccessResponse(data=[EnrollmentResponse.model_validate(e) for e in enrollments])


@router.post("/{enrollment_id}/cancel", response_model=SuccessResponse[EnrollmentResponse])
async def cancel_enrollment(
    enrollment_id: UUID,
    current_user: User = Depends(deps.require_student),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Withdraw a PENDING enrollment and give the seat back."""
    enrollment = await EnrollmentService.cancel_enrollment(db, current_user, enrollment_id)
    return SuccessResponse(data=EnrollmentResponse.model_validate(enrollment), message="Enrollment cancelled")
