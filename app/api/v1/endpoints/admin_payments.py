from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.config import settings
from app.models.enums import PaymentMethod, PaymentStatus
from app.models.user import User
from app.services.payment_service import PaymentService
from app.schemas.enrollment import AdminPaymentResponse, PaymentIds
from app.schemas.responses import SuccessResponse, PaginatedResponse, PaginationMeta
from app.utils.time import to_naive_utc

router = APIRouter()


@router.get("", response_model=PaginatedResponse[AdminPaymentResponse])
async def list_payments(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    status: Optional[PaymentStatus] = None,
    method: Optional[PaymentMethod] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Payments with search over trx id, student and batch, plus status, method
    and submission date filters.
    """
    payments, total = await PaymentService.list_payments(
        db,
        page=page,
        page_size=page_size,
        search=search,
        status=status,
        method=method,
        start_date=to_naive_utc(start_date) if start_date else None,
        end_date=to_naive_utc(end_date) if end_date else None,
    )
    return PaginatedResponse(
        data=[AdminPaymentResponse.model_validate(p) for p in payments],
        meta=PaginationMeta.build(page, page_size, total),
    )


@router.get("/pending", response_model=SuccessResponse[List[AdminPaymentResponse]])
async def list_pending_payments(
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    payments = await PaymentService.get_pending_payments(db, limit=settings.PENDING_PAYMENTS_LIMIT)
    return SuccessResponse(data=[AdminPaymentResponse.model_validate(p) for p in payments])


@router.delete("", response_model=SuccessResponse[Dict[str, int]])
async def delete_payments(
    ids_in: PaymentIds,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Bulk delete; approved or rejected payments cannot be deleted."""
    deleted = await PaymentService.delete_payments(db, ids_in.ids)
    return SuccessResponse(data={"deleted": deleted}, message="Payments deleted")
