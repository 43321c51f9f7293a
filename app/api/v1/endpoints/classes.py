from typing import Any, List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.user import User
from app.services.class_service import ClassService
from app.schemas.class_session import ClassResponse
from app.schemas.responses import SuccessResponse

router = APIRouter()


@router.get("/me", response_model=SuccessResponse[List[ClassResponse]])
async def list_my_classes(
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Upcoming and running classes for the batches the caller is actively enrolled in."""
    classes = await ClassService.get_my_classes(db, current_user.id)
    return SuccessResponse(data=[ClassResponse.model_validate(c) for c in classes])
