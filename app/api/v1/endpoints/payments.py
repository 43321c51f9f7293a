from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.user import User
from app.services.email_queue import dispatch_pending_emails
from app.services.payment_service import PaymentService
from app.schemas.enrollment import PaymentOutcomeResponse, PaymentSubmit
from app.schemas.responses import SuccessResponse

router = APIRouter()


@router.post("", response_model=SuccessResponse[PaymentOutcomeResponse])
async def submit_payment(
    payment_in: PaymentSubmit,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(deps.require_verified_student),
    db: AsyncSession = Depends(deps.get_db),
    session_factory=Depends(deps.get_session_factory),
) -> Any:
    """
    Submit payment proof for a PENDING enrollment.

    A payment outside the enrollment window is recorded and auto-rejected;
    the response carries `auto_rejected` and the reason.
    """
    outcome = await PaymentService.submit_payment(db, current_user, payment_in)
    background_tasks.add_task(dispatch_pending_emails, session_factory)
    message = outcome.reason if outcome.auto_rejected else "Payment submitted for review"
    return SuccessResponse(data=PaymentOutcomeResponse.model_validate(outcome), message=message)
