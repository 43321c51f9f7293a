from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.enums import ClassStatus
from app.models.user import User
from app.services.class_service import ClassService
from app.schemas.class_session import ClassCreate, ClassIds, ClassResponse, ClassUpdate
from app.schemas.responses import SuccessResponse, PaginatedResponse, PaginationMeta
from app.utils.time import to_naive_utc

router = APIRouter()


@router.get("", response_model=PaginatedResponse[ClassResponse])
async def list_classes(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    batch_id: Optional[UUID] = None,
    status: Optional[ClassStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Search matches class title or batch name; dates filter on the class start time."""
    classes, total = await ClassService.list_classes(
        db,
        page=page,
        page_size=page_size,
        search=search,
        batch_id=batch_id,
        status=status,
        start_date=to_naive_utc(start_date) if start_date else None,
        end_date=to_naive_utc(end_date) if end_date else None,
    )
    return PaginatedResponse(
        data=[ClassResponse.model_validate(c) for c in classes],
        meta=PaginationMeta.build(page, page_size, total),
    )


@router.post("", response_model=SuccessResponse[ClassResponse])
async def create_class(
    class_in: ClassCreate,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Schedule a class. Students with an ACTIVE enrollment in the batch are notified."""
    class_session = await ClassService.create_class(db, class_in)
    return SuccessResponse(data=ClassResponse.model_validate(class_session), message="Class scheduled")


@router.delete("", response_model=SuccessResponse[Dict[str, int]])
async def delete_classes(
    ids_in: ClassIds,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    deleted = await ClassService.delete_classes(db, ids_in.ids)
    return SuccessResponse(data={"deleted": deleted}, message="Classes deleted")


@router.post("/expire", response_model=SuccessResponse[Dict[str, int]])
async def expire_ended_classes(
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Expire every active class whose end time has passed."""
    expired = await ClassService.expire_ended_classes(db)
    return SuccessResponse(data={"expired": expired})


@router.get("/batch/{batch_id}", response_model=SuccessResponse[List[ClassResponse]])
async def list_batch_classes(
    batch_id: UUID,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    classes = await ClassService.get_batch_classes(db, batch_id)
    return SuccessResponse(data=[ClassResponse.model_validate(c) for c in classes])


@router.patch("/{class_id}", response_model=SuccessResponse[ClassResponse])
async def update_class(
    class_id: UUID,
    class_in: ClassUpdate,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    class_session = await ClassService.update_class(db, class_id, class_in)
    return SuccessResponse(data=ClassResponse.model_validate(class_session), message="Class updated")


@router.post("/{class_id}/expire", response_model=SuccessResponse[ClassResponse])
async def expire_class(
    class_id: UUID,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    class_session = await ClassService.expire_class(db, class_id)
    return SuccessResponse(data=ClassResponse.model_validate(class_session), message="Class expired")
