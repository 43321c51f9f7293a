"""API Dependencies"""

from typing import Callable, Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from app.database import AsyncSessionLocal, get_db
from app.core.exceptions import EmailNotVerifiedError
from app.core.security import decode_token
from app.services.user_service import UserService
from app.models.user import User

# Security scheme for bearer token
security = HTTPBearer()


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_session_factory() -> Callable[[], AsyncSession]:
    """Session factory handed to background email dispatch (overridden in tests)."""
    return AsyncSessionLocal


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> User:
    """
    Get current authenticated user from JWT token.

    Args:
        db: Database session
        credentials: HTTP authorization credentials

    Returns:
        Current user

    Raises:
        HTTPException: If token is invalid, user not found or deactivated
    """
    payload = decode_token(credentials.credentials)
    if not payload:
        raise _credentials_error()

    if payload.get("type") != "access":
        raise _credentials_error("Invalid token type")

    user_id_str: Optional[str] = payload.get("sub")
    if not user_id_str:
        raise _credentials_error()

    try:
        user_id = UUID(user_id_str)
    except ValueError:
        raise _credentials_error("Invalid user ID")

    user = await UserService.get_user_by_id(db, user_id)
    if not user:
        raise _credentials_error("User not found")

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user"
        )

    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions"
        )
    return current_user


async def require_student(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_student:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Student account required"
        )
    return current_user


async def require_verified_student(current_user: User = Depends(require_student)) -> User:
    """Students may only enroll or pay after verifying their email."""
    if not current_user.is_verified:
        raise EmailNotVerifiedError()
    return current_user
