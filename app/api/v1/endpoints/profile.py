"""Self-service account endpoints for the signed-in user."""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.user import User
from app.services.user_service import UserService
from app.schemas.user import PasswordChange, ProfileUpdate, UserResponse
from app.schemas.responses import SuccessResponse

router = APIRouter()


@router.get("/me", response_model=SuccessResponse[UserResponse])
async def read_profile(
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    user = await UserService.get_profile(db, current_user.id)
    return SuccessResponse(data=UserResponse.model_validate(user))


@router.patch("/me", response_model=SuccessResponse[UserResponse])
async def update_profile(
    profile_in: ProfileUpdate,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    user = await UserService.update_profile(
        db, current_user, name=profile_in.name, phone=profile_in.phone
    )
    return SuccessResponse(data=UserResponse.model_validate(user), message="Profile updated")


@router.post("/me/password", response_model=SuccessResponse[Dict[str, bool]])
async def change_password(
    password_in: PasswordChange,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Change the password. Requires a verified email and the current password."""
    await UserService.change_password(
        db, current_user, password_in.current_password, password_in.new_password
    )
    return SuccessResponse(data={"updated": True}, message="Password updated")
