"""Integration tests: class scheduling and the student schedule."""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from app.core.exceptions import BatchNotFoundError, ClassNotFoundError, InvalidClassTimeRangeError
from app.models.class_session import ClassSession
from app.models.communication import Notification
from app.models.enums import ClassStatus, EnrollmentStatus
from app.schemas.class_session import ClassCreate, ClassUpdate
from app.services.batch_service import BatchService
from app.services.class_service import ClassService
from app.utils.time import get_utc_now
from tests.factories import make_batch, make_enrollment, make_user


def _class(batch_id, *, title: str = "On-chain Analysis", starts_in: timedelta = timedelta(days=1),
           length: timedelta = timedelta(hours=2)) -> ClassCreate:
    starts_at = get_utc_now() + starts_in
    return ClassCreate(
        batch_id=batch_id,
        title=title,
        meeting_url="https://meet.example.com/abc-defg-hij",
        starts_at=starts_at,
        ends_at=starts_at + length,
    )


@pytest.mark.asyncio
async def test_create_class_notifies_active_students_only(db, batch):
    active = await make_user(db)
    pending = await make_user(db)
    await make_enrollment(db, active, batch)
    await make_enrollment(db, pending, batch, status=EnrollmentStatus.PENDING)

    created = await ClassService.create_class(db, _class(batch.id))

    assert created.status == ClassStatus.ACTIVE
    assert created.batch.name == batch.name
    notified = (await db.scalars(
        select(Notification.user_id).where(Notification.title == "New Class Scheduled")
    )).all()
    assert notified == [active.id]


@pytest.mark.asyncio
async def test_create_class_validates_time_range_and_batch(db, batch):
    with pytest.raises(InvalidClassTimeRangeError):
        await ClassService.create_class(db, _class(batch.id, length=timedelta(0)))

    with pytest.raises(BatchNotFoundError):
        await ClassService.create_class(db, _class(uuid4()))

    assert await db.scalar(select(func.count(ClassSession.id))) == 0


@pytest.mark.asyncio
async def test_update_class_checks_range_against_stored_times(db, batch):
    created = await ClassService.create_class(db, _class(batch.id))

    with pytest.raises(InvalidClassTimeRangeError):
        await ClassService.update_class(
            db, created.id, ClassUpdate(ends_at=created.starts_at - timedelta(minutes=1))
        )

    updated = await ClassService.update_class(db, created.id, ClassUpdate(title="DeFi Deep Dive"))
    assert updated.title == "DeFi Deep Dive"
    assert updated.ends_at == created.ends_at


@pytest.mark.asyncio
async def test_my_classes_lists_active_classes_of_active_enrollments(db):
    student = await make_user(db)
    mine = await make_batch(db, name="Mine")
    pending = await make_batch(db, name="Pending")
    await make_enrollment(db, student, mine)
    await make_enrollment(db, student, pending, status=EnrollmentStatus.PENDING)

    later = await ClassService.create_class(db, _class(mine.id, title="Later", starts_in=timedelta(days=3)))
    sooner = await ClassService.create_class(db, _class(mine.id, title="Sooner"))
    expired = await ClassService.create_class(db, _class(mine.id, title="Expired"))
    await ClassService.expire_class(db, expired.id)
    await ClassService.create_class(db, _class(pending.id, title="Not mine"))

    classes = await ClassService.get_my_classes(db, student.id)
    assert [c.id for c in classes] == [sooner.id, later.id]


@pytest.mark.asyncio
async def test_expire_ended_classes(db, batch):
    ended = await ClassService.create_class(db, _class(batch.id, starts_in=timedelta(hours=-3)))
    running = await ClassService.create_class(db, _class(batch.id, starts_in=timedelta(hours=-1)))

    assert await ClassService.expire_ended_classes(db) == 1
    assert (await ClassService.get_class(db, ended.id)).status == ClassStatus.EXPIRED
    assert (await ClassService.get_class(db, running.id)).status == ClassStatus.ACTIVE

    later = get_utc_now() + timedelta(hours=2)
    assert await ClassService.expire_ended_classes(db, now=later) == 1
    assert await ClassService.expire_ended_classes(db, now=later) == 0


@pytest.mark.asyncio
async def test_list_classes_search_and_filters(db):
    defi = await make_batch(db, name="DeFi Cohort")
    nft = await make_batch(db, name="NFT Cohort")
    await ClassService.create_class(db, _class(defi.id, title="Lending Protocols"))
    await ClassService.create_class(db, _class(nft.id, title="Minting"))
    old = await ClassService.create_class(db, _class(nft.id, title="Royalties", starts_in=timedelta(days=-10)))
    await ClassService.expire_class(db, old.id)

    classes, total = await ClassService.list_classes(db, search="defi")
    assert total == 1 and classes[0].title == "Lending Protocols"

    classes, total = await ClassService.list_classes(db, batch_id=nft.id)
    assert [c.title for c in classes] == ["Minting", "Royalties"]

    _, total = await ClassService.list_classes(db, status=ClassStatus.EXPIRED)
    assert total == 1

    _, total = await ClassService.list_classes(db, start_date=get_utc_now())
    assert total == 2


@pytest.mark.asyncio
async def test_deleting_classes_and_their_batch(db):
    batch = await make_batch(db)
    first = await ClassService.create_class(db, _class(batch.id))
    await ClassService.create_class(db, _class(batch.id))

    assert await ClassService.delete_classes(db, [first.id]) == 1
    with pytest.raises(ClassNotFoundError):
        await ClassService.get_class(db, first.id)

    assert await BatchService.delete_batches(db, [batch.id]) == 1
    assert await db.scalar(select(func.count(ClassSession.id))) == 0
