from datetime import timedelta
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core import security
from app.core.rate_limit import AUTH_RATE_LIMIT, limiter
from app.config import settings
from app.services.email_queue import dispatch_pending_emails
from app.services.user_service import UserService
from app.schemas.auth import (
    LoginRequest,
    RegisterStudentRequest,
    ResendVerificationRequest,
    Token,
    VerifyEmailRequest,
)
from app.schemas.user import UserResponse
from app.schemas.responses import SuccessResponse

router = APIRouter()


@router.post("/register", response_model=SuccessResponse[UserResponse])
@limiter.limit(AUTH_RATE_LIMIT)
async def register_student(
    request: Request,
    register_in: RegisterStudentRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(deps.get_db),
    session_factory=Depends(deps.get_session_factory),
) -> Any:
    """
    Student signup. A verification email is queued; enrollment is blocked
    until the address is verified.
    """
    user = await UserService.register_student(
        db,
        email=register_in.email,
        password=register_in.password,
        name=register_in.name,
        phone=register_in.phone,
    )
    background_tasks.add_task(dispatch_pending_emails, session_factory)
    return SuccessResponse(
        data=UserResponse.model_validate(user),
        message="Registration successful. Check your email to verify your account.",
    )


@router.post("/verify-email", response_model=SuccessResponse[UserResponse])
async def verify_email(
    verify_in: VerifyEmailRequest,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    user = await UserService.verify_email(db, verify_in.token)
    return SuccessResponse(data=UserResponse.model_validate(user), message="Email verified")


@router.post("/resend-verification", response_model=SuccessResponse[UserResponse])
@limiter.limit(AUTH_RATE_LIMIT)
async def resend_verification(
    request: Request,
    resend_in: ResendVerificationRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(deps.get_db),
    session_factory=Depends(deps.get_session_factory),
) -> Any:
    """Queue a new verification email for an account that has not verified yet."""
    user = await UserService.resend_verification(db, resend_in.email)
    background_tasks.add_task(dispatch_pending_emails, session_factory)
    return SuccessResponse(data=UserResponse.model_validate(user), message="Verification email sent")


@router.post("/login", response_model=SuccessResponse[Token])
@limiter.limit(AUTH_RATE_LIMIT)
async def login(
    request: Request,
    login_data: LoginRequest,
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Unified login for admins and students.
    Returns JWT access token and user role.
    """
    user = await UserService.authenticate_user(db, email=login_data.email, password=login_data.password)

    access_token = security.create_access_token(
        data={"sub": str(user.id), "role": user.role.value},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return SuccessResponse(
        data=Token(
            access_token=access_token,
            token_type="bearer",
            role=user.role.value,
            user_id=str(user.id),
        ),
        message="Login successful",
    )
