from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.user import User
from app.services.batch_service import BatchService
from app.schemas.batch import (
    BatchCreate,
    BatchIds,
    BatchOption,
    BatchResponse,
    BatchUpdate,
    BatchVisibilityUpdate,
)
from app.schemas.responses import SuccessResponse, PaginatedResponse, PaginationMeta

router = APIRouter()


@router.get("", response_model=PaginatedResponse[BatchResponse])
async def list_batches(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    is_published: Optional[bool] = None,
    is_open: Optional[bool] = None,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    batches, total = await BatchService.list_batches(
        db, page=page, page_size=page_size, search=search, is_published=is_published, is_open=is_open
    )
    return PaginatedResponse(
        data=[BatchResponse.model_validate(b) for b in batches],
        meta=PaginationMeta.build(page, page_size, total),
    )


@router.get("/options", response_model=SuccessResponse[List[BatchOption]])
async def list_batch_options(
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Id/name pairs for admin filters."""
    batches = await BatchService.get_batch_options(db)
    return SuccessResponse(data=[BatchOption.model_validate(b) for b in batches])


@router.post("", response_model=SuccessResponse[BatchResponse])
async def create_batch(
    batch_in: BatchCreate,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Create a batch. It starts closed and unpublished."""
    batch = await BatchService.create_batch(db, batch_in)
    return SuccessResponse(data=BatchResponse.model_validate(batch), message="Batch created")


@router.delete("", response_model=SuccessResponse[Dict[str, int]])
async def delete_batches(
    ids_in: BatchIds,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    deleted = await BatchService.delete_batches(db, ids_in.ids)
    return SuccessResponse(data={"deleted": deleted}, message="Batches deleted")


@router.patch("/{batch_id}", response_model=SuccessResponse[BatchResponse])
async def update_batch(
    batch_id: UUID,
    batch_in: BatchUpdate,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    batch = await BatchService.update_batch(db, batch_id, batch_in)
    return SuccessResponse(data=BatchResponse.model_validate(batch), message="Batch updated")


@router.post("/{batch_id}/publish", response_model=SuccessResponse[BatchResponse])
async def publish_batch(
    batch_id: UUID,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Publish the batch and open it for enrollment."""
    batch = await BatchService.publish_batch(db, batch_id)
    return SuccessResponse(data=BatchResponse.model_validate(batch), message="Batch published")


@router.post("/{batch_id}/close", response_model=SuccessResponse[BatchResponse])
async def close_batch(
    batch_id: UUID,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    batch = await BatchService.close_batch(db, batch_id)
    return SuccessResponse(data=BatchResponse.model_validate(batch), message="Batch closed")


@router.post("/{batch_id}/visibility", response_model=SuccessResponse[BatchResponse])
async def set_batch_visibility(
    batch_id: UUID,
    visibility_in: BatchVisibilityUpdate,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    batch = await BatchService.set_visibility(db, batch_id, visibility_in.is_published)
    return SuccessResponse(data=BatchResponse.model_validate(batch))
