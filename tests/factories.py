"""Model factories and auth helpers shared by the test suite."""

import uuid
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import create_access_token, get_password_hash
from app.models.batch import Batch
from app.models.enrollment import Enrollment
from app.models.enums import EnrollmentStatus, UserRole
from app.models.user import User
from app.utils.time import get_utc_now

PASSWORD = "TestPassword123!"
# bcrypt is slow; hash once for every factory-made user
PASSWORD_HASH = get_password_hash(PASSWORD)


async def make_user(
    db: AsyncSession,
    *,
    role: UserRole = UserRole.STUDENT,
    verified: bool = True,
    active: bool = True,
    name: str = "Student",
    email: Optional[str] = None,
) -> User:
    user = User(
        email=email or f"{role.value.lower()}_{uuid.uuid4().hex[:8]}@cryptohub.io",
        hashed_password=PASSWORD_HASH,
        name=name,
        role=role,
        is_verified=verified,
        is_active=active,
    )
    db.add(user)
    await db.commit()
    return user


async def make_batch(
    db: AsyncSession,
    *,
    seats: int = 5,
    price: Decimal = Decimal("1500.00"),
    start_offset: timedelta = timedelta(hours=-1),
    end_offset: timedelta = timedelta(days=7),
    is_open: bool = True,
    is_published: bool = True,
    name: Optional[str] = None,
) -> Batch:
    """Batch whose window is placed relative to the current time."""
    now = get_utc_now()
    batch = Batch(
        name=name or f"Bitcoin Basics {uuid.uuid4().hex[:6]}",
        price=price,
        seats=seats,
        enroll_start=now + start_offset,
        enroll_end=now + end_offset,
        is_open=is_open,
        is_published=is_published,
    )
    db.add(batch)
    await db.commit()
    return batch


async def make_enrollment(
    db: AsyncSession,
    user: User,
    batch: Batch,
    *,
    status: EnrollmentStatus = EnrollmentStatus.ACTIVE,
) -> Enrollment:
    """Enrollment row in the given state. Does not touch the seat count."""
    enrollment = Enrollment(
        user_id=user.id,
        batch_id=batch.id,
        enrollment_fee=batch.price,
        status=status,
    )
    db.add(enrollment)
    await db.commit()
    return enrollment


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": str(user.id), "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}
