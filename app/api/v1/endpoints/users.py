from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.enums import UserRole
from app.models.user import User
from app.services.user_service import UserService
from app.schemas.user import AdminCreate, UserIds, UserResponse, UserRoleUpdate, UserStatusUpdate
from app.schemas.responses import SuccessResponse, PaginatedResponse, PaginationMeta

router = APIRouter()


@router.get("", response_model=PaginatedResponse[UserResponse])
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    users, total = await UserService.list_users(db, page=page, page_size=page_size, search=search, role=role)
    return PaginatedResponse(
        data=[UserResponse.model_validate(u) for u in users],
        meta=PaginationMeta.build(page, page_size, total),
    )


@router.post("", response_model=SuccessResponse[UserResponse])
async def create_admin(
    admin_in: AdminCreate,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Create another admin account (verified on creation)."""
    user = await UserService.create_admin(
        db, email=admin_in.email, password=admin_in.password, name=admin_in.name, phone=admin_in.phone
    )
    return SuccessResponse(data=UserResponse.model_validate(user), message="Admin created")


@router.delete("", response_model=SuccessResponse[Dict[str, int]])
async def delete_users(
    ids_in: UserIds,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    deleted = await UserService.delete_users(db, current_user, ids_in.ids)
    return SuccessResponse(data={"deleted": deleted}, message="Users deleted")


@router.patch("/{user_id}/role", response_model=SuccessResponse[UserResponse])
async def update_user_role(
    user_id: UUID,
    role_in: UserRoleUpdate,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    user = await UserService.update_role(db, current_user, user_id, role_in.role)
    return SuccessResponse(data=UserResponse.model_validate(user), message="Role updated")


@router.patch("/{user_id}/status", response_model=SuccessResponse[UserResponse])
async def update_user_status(
    user_id: UUID,
    status_in: UserStatusUpdate,
    current_user: User = Depends(deps.require_admin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Activate or deactivate an account. Admins cannot deactivate themselves."""
    user = await UserService.set_active(db, current_user, user_id, status_in.is_active)
    return SuccessResponse(data=UserResponse.model_validate(user))
