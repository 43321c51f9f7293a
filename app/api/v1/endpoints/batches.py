from typing import Any, List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.services.batch_service import BatchService
from app.schemas.batch import BatchWithStats
from app.schemas.responses import SuccessResponse

router = APIRouter()


@router.get("", response_model=SuccessResponse[List[BatchWithStats]])
async def list_published_batches(db: AsyncSession = Depends(deps.get_db)) -> Any:
    """
    Public catalogue: published batches with their active enrollment counts.
    """
    rows = await BatchService.list_public_batches(db)
    data = [
        BatchWithStats.model_validate(batch).model_copy(update={"active_enrollments": count})
        for batch, count in rows
    ]
    return SuccessResponse(data=data)
