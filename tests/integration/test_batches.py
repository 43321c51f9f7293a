"""Integration tests: batch administration and catalogue."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from app.core.exceptions import (
    BatchHasEnrollmentsError,
    BatchNotFoundError,
    InvalidEnrollmentWindowError,
    InvalidStateError,
)
from app.schemas.batch import BatchCreate, BatchUpdate
from app.services.batch_service import BatchService
from app.services.enrollment_service import EnrollmentService
from app.services.seat_ledger import SeatLedger
from tests.factories import make_batch, make_user


def _create(**overrides) -> BatchCreate:
    data = dict(
        name="Crypto Trading 101",
        price=Decimal("2000.00"),
        seats=30,
        enroll_start=datetime(2026, 1, 1, 0, 0),
        enroll_end=datetime(2026, 1, 31, 23, 59),
    )
    data.update(overrides)
    return BatchCreate(**data)


@pytest.mark.asyncio
async def test_new_batches_start_closed_and_unpublished(db):
    batch = await BatchService.create_batch(db, _create())

    assert batch.is_open is False
    assert batch.is_published is False
    assert batch.seats == 30


@pytest.mark.asyncio
async def test_create_rejects_inverted_window(db):
    with pytest.raises(InvalidEnrollmentWindowError):
        await BatchService.create_batch(
            db, _create(enroll_start=datetime(2026, 2, 1), enroll_end=datetime(2026, 1, 1))
        )


@pytest.mark.asyncio
async def test_create_stores_aware_datetimes_as_naive_utc(db):
    batch = await BatchService.create_batch(db, _create(
        enroll_start=datetime(2026, 1, 1, 6, 0, tzinfo=timezone(timedelta(hours=6))),
        enroll_end=datetime(2026, 1, 2, 6, 0, tzinfo=timezone(timedelta(hours=6))),
    ))

    assert batch.enroll_start == datetime(2026, 1, 1, 0, 0)
    assert batch.enroll_end == datetime(2026, 1, 2, 0, 0)


@pytest.mark.asyncio
async def test_update_validates_window_against_stored_values(db):
    batch = await BatchService.create_batch(db, _create())

    with pytest.raises(InvalidEnrollmentWindowError):
        await BatchService.update_batch(db, batch.id, BatchUpdate(enroll_end=datetime(2025, 12, 1)))

    updated = await BatchService.update_batch(db, batch.id, BatchUpdate(name="Crypto Trading 102", seats=10))
    assert updated.name == "Crypto Trading 102"
    assert updated.seats == 10
    assert updated.price == Decimal("2000.00")


@pytest.mark.asyncio
async def test_publish_close_and_visibility(db):
    batch = await BatchService.create_batch(db, _create())

    published = await BatchService.publish_batch(db, batch.id)
    assert published.is_published and published.is_open

    closed = await BatchService.close_batch(db, batch.id)
    assert closed.is_published and not closed.is_open

    hidden = await BatchService.set_visibility(db, batch.id, False)
    assert not hidden.is_published


@pytest.mark.asyncio
async def test_unknown_batch(db):
    with pytest.raises(BatchNotFoundError):
        await BatchService.publish_batch(db, uuid4())


@pytest.mark.asyncio
async def test_delete_refused_while_enrollments_exist(db, student):
    busy = await make_batch(db)
    idle = await make_batch(db)
    await EnrollmentService.start_enrollment(db, student, busy.id)

    with pytest.raises(BatchHasEnrollmentsError):
        await BatchService.delete_batches(db, [busy.id, idle.id])

    assert await BatchService.delete_batches(db, [idle.id]) == 1
    assert await BatchService.get_batch(db, idle.id) is None


@pytest.mark.asyncio
async def test_public_listing_counts_active_track_enrollments(db):
    listed = await make_batch(db, name="Listed")
    await make_batch(db, name="Hidden", is_published=False)
    for _ in range(2):
        await EnrollmentService.start_enrollment(db, await make_user(db), listed.id)
    leaver = await make_user(db)
    cancelled = await EnrollmentService.start_enrollment(db, leaver, listed.id)
    await EnrollmentService.cancel_enrollment(db, leaver, cancelled.id)

    rows = await BatchService.list_public_batches(db)

    assert [(b.name, count) for b, count in rows] == [("Listed", 2)]


@pytest.mark.asyncio
async def test_admin_listing_filters(db):
    await make_batch(db, name="Open One")
    await make_batch(db, name="Closed One", is_open=False)

    items, total = await BatchService.list_batches(db, is_open=False)
    assert total == 1
    assert items[0].name == "Closed One"

    items, total = await BatchService.list_batches(db, search="one", page_size=1)
    assert total == 2
    assert len(items) == 1

    options = await BatchService.get_batch_options(db)
    assert [o.name for o in options] == ["Closed One", "Open One"]


async def _reserve_between_read_and_write(monkeypatch, session_factory, taken: int = 1):
    """Commit `taken` reservations from another session right after update_batch reads the batch."""
    original = BatchService._get_or_raise
    calls = {"n": 0}

    async def racing_get(db, batch_id):
        batch = await original(db, batch_id)
        calls["n"] += 1
        if calls["n"] == 1:
            async with session_factory() as other:
                for _ in range(taken):
                    assert await SeatLedger.reserve_seat(other, batch_id)
                await other.commit()
        return batch

    monkeypatch.setattr(BatchService, "_get_or_raise", staticmethod(racing_get))


@pytest.mark.asyncio
async def test_seat_edit_keeps_concurrent_reservations(db, session_factory, monkeypatch):
    batch = await make_batch(db, seats=5)
    await _reserve_between_read_and_write(monkeypatch, session_factory)

    updated = await BatchService.update_batch(db, batch.id, BatchUpdate(seats=10))

    # +5 on top of the 4 left after the concurrent reservation
    assert updated.seats == 9


@pytest.mark.asyncio
async def test_seat_edit_refused_when_reservations_leave_too_few_seats(db, session_factory, monkeypatch):
    batch = await make_batch(db, seats=2)
    await _reserve_between_read_and_write(monkeypatch, session_factory)

    with pytest.raises(InvalidStateError):
        await BatchService.update_batch(db, batch.id, BatchUpdate(seats=0, name="Renamed"))

    monkeypatch.undo()
    await db.refresh(batch)
    assert batch.seats == 1
    assert batch.name != "Renamed"
