"""User Service - Business Logic Layer"""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, func, or_, delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AccountInactiveError,
    EmailAlreadyExistsError,
    EmailAlreadyVerifiedError,
    EmailNotVerifiedError,
    InvalidTokenError,
    SelfActionError,
    UnauthorizedError,
    UserNotFoundError,
    WrongPasswordError,
)
from app.core.security import (
    generate_email_verification_token,
    get_password_hash,
    verify_email_verification_token,
    verify_password,
)
from app.database import atomic
from app.models.communication import EmailJob, Notification
from app.models.enrollment import Enrollment
from app.models.enums import EmailJobType, UserRole
from app.models.payment import Payment
from app.models.user import User
from app.services.email_queue import EmailQueue
from app.services.email_service import render_verification_email
from app.services.enrollment_service import EnrollmentService

logger = logging.getLogger(__name__)


class UserService:
    """Service layer for user-related operations"""

    @staticmethod
    async def get_user_by_id(db: AsyncSession, user_id: UUID) -> Optional[User]:
        """
        Get user by ID.

        Args:
            db: Database session
            user_id: User ID

        Returns:
            User or None if not found
        """
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
        """
        Get user by email.

        Args:
            db: Database session
            email: User email

        Returns:
            User or None if not found
        """
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def create_user(
        db: AsyncSession,
        email: str,
        password: str,
        name: str,
        role: UserRole = UserRole.STUDENT,
        phone: Optional[str] = None,
        is_verified: bool = False,
    ) -> User:
        """Create a user. The caller commits."""
        if await UserService.get_user_by_email(db, email):
            raise EmailAlreadyExistsError()

        db_user = User(
            email=email.lower(),
            hashed_password=get_password_hash(password),
            name=name,
            phone=phone,
            role=role,
            is_verified=is_verified,
            is_active=True,
        )
        db.add(db_user)
        try:
            await db.flush()
        except IntegrityError as e:
            raise EmailAlreadyExistsError() from e
        return db_user

    @staticmethod
    def _queue_verification_email(db: AsyncSession, user: User) -> None:
        token = generate_email_verification_token(str(user.id))
        EmailQueue.enqueue(
            db,
            type=EmailJobType.VERIFICATION,
            user_id=user.id,
            email=user.email,
            subject="Verify your email",
            html=render_verification_email(user.name, token),
        )

    @staticmethod
    async def register_student(
        db: AsyncSession,
        email: str,
        password: str,
        name: str,
        phone: Optional[str] = None,
    ) -> User:
        """Create an unverified student and queue the verification email."""
        async with atomic(db):
            user = await UserService.create_user(db, email, password, name, phone=phone)
            UserService._queue_verification_email(db, user)
        logger.info("Student registered", extra={"user_id": str(user.id)})
        return user

    @staticmethod
    async def resend_verification(db: AsyncSession, email: str) -> User:
        """
        Queue a fresh verification email for an unverified account.

        Raises:
            UserNotFoundError: no account with this email
            EmailAlreadyVerifiedError: the account is already verified
        """
        user = await UserService.get_user_by_email(db, email)
        if not user:
            raise UserNotFoundError()
        if user.is_verified:
            raise EmailAlreadyVerifiedError()
        async with atomic(db):
            UserService._queue_verification_email(db, user)
        logger.info("Verification email re-sent", extra={"user_id": str(user.id)})
        return user

    @staticmethod
    async def verify_email(db: AsyncSession, token: str) -> User:
        user_id = verify_email_verification_token(token)
        if not user_id:
            raise InvalidTokenError()
        try:
            user = await UserService.get_user_by_id(db, UUID(user_id))
        except ValueError as e:
            raise InvalidTokenError() from e
        if not user:
            raise InvalidTokenError()
        if not user.is_verified:
            async with atomic(db):
                user.is_verified = True
            logger.info("Email verified", extra={"user_id": str(user.id)})
        return user

    @staticmethod
    async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
        """
        Authenticate user with email and password.

        Raises:
            UnauthorizedError: unknown email or wrong password
            AccountInactiveError: account deactivated by an admin
        """
        user = await UserService.get_user_by_email(db, email)
        if not user or not verify_password(password, user.hashed_password):
            raise UnauthorizedError()
        if not user.is_active:
            raise AccountInactiveError()
        return user

    @staticmethod
    async def get_profile(db: AsyncSession, user_id: UUID) -> User:
        user = await UserService.get_user_by_id(db, user_id)
        if not user:
            raise UserNotFoundError()
        return user

    @staticmethod
    async def update_profile(
        db: AsyncSession,
        user: User,
        name: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> User:
        """Update the caller's own name and phone. Fields left as None are kept."""
        async with atomic(db):
            if name is not None:
                user.name = name
            if phone is not None:
                user.phone = phone
        logger.info("Profile updated", extra={"user_id": str(user.id)})
        return user

    @staticmethod
    async def change_password(db: AsyncSession, user: User, current_password: str, new_password: str) -> None:
        """
        Replace the caller's password after checking the current one.

        Raises:
            EmailNotVerifiedError: the account has not verified its email
            WrongPasswordError: current_password does not match
        """
        if not user.is_verified:
            raise EmailNotVerifiedError()
        if not verify_password(current_password, user.hashed_password):
            raise WrongPasswordError()
        async with atomic(db):
            user.hashed_password = get_password_hash(new_password)
        logger.info("Password changed", extra={"user_id": str(user.id)})

    @staticmethod
    async def list_users(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 10,
        search: Optional[str] = None,
        role: Optional[UserRole] = None,
    ) -> Tuple[List[User], int]:
        """
        Get paginated list of users.

        Returns:
            Tuple of (users list, total count)
        """
        filters = []
        if search:
            pattern = f"%{search}%"
            filters.append(or_(User.name.ilike(pattern), User.email.ilike(pattern), User.phone.ilike(pattern)))
        if role:
            filters.append(User.role == role)

        total = await db.scalar(select(func.count(User.id)).where(*filters))
        result = await db.execute(
            select(User)
            .where(*filters)
            .order_by(User.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total or 0

    @staticmethod
    async def create_admin(
        db: AsyncSession,
        email: str,
        password: str,
        name: str,
        phone: Optional[str] = None,
    ) -> User:
        async with atomic(db):
            user = await UserService.create_user(
                db, email, password, name, role=UserRole.ADMIN, phone=phone, is_verified=True
            )
        logger.info("Admin created", extra={"user_id": str(user.id)})
        return user

    @staticmethod
    async def _get_other_user(db: AsyncSession, actor: User, user_id: UUID) -> User:
        if actor.id == user_id:
            raise SelfActionError()
        user = await UserService.get_user_by_id(db, user_id)
        if not user:
            raise UserNotFoundError()
        return user

    @staticmethod
    async def update_role(db: AsyncSession, actor: User, user_id: UUID, role: UserRole) -> User:
        user = await UserService._get_other_user(db, actor, user_id)
        async with atomic(db):
            user.role = role
        logger.info("User role changed", extra={"user_id": str(user.id), "role": role.value})
        return user

    @staticmethod
    async def set_active(db: AsyncSession, actor: User, user_id: UUID, is_active: bool) -> User:
        user = await UserService._get_other_user(db, actor, user_id)
        async with atomic(db):
            user.is_active = is_active
        logger.info("User status changed", extra={"user_id": str(user.id), "is_active": is_active})
        return user

    @staticmethod
    async def delete_users(db: AsyncSession, actor: User, ids: List[UUID]) -> int:
        """
        Bulk delete users with their enrollments, notifications and email jobs
        in one transaction. Seats held by their ACTIVE enrollments go back to
        the batches.
        """
        if actor.id in ids:
            raise SelfActionError()

        async with atomic(db):
            enrollment_ids = list(
                (await db.execute(select(Enrollment.id).where(Enrollment.user_id.in_(ids)))).scalars().all()
            )
            if enrollment_ids:
                await EnrollmentService.delete_enrollments_in_transaction(db, enrollment_ids)
            await db.execute(
                update(Payment).where(Payment.verified_by_id.in_(ids)).values(verified_by_id=None)
            )
            await db.execute(delete(Notification).where(Notification.user_id.in_(ids)))
            await db.execute(delete(EmailJob).where(EmailJob.user_id.in_(ids)))
            result = await db.execute(delete(User).where(User.id.in_(ids)))

        logger.info(
            "Users deleted",
            extra={"deleted": result.rowcount, "enrollments_deleted": len(enrollment_ids)},
        )
        return result.rowcount
