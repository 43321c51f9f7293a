"""Unit tests for SeatLedger."""

import pytest
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4
from sqlalchemy.ext.asyncio import AsyncSession

from app.services.seat_ledger import SeatLedger


def _db_with_rowcount(rowcount: int) -> AsyncMock:
    db = AsyncMock(spec=AsyncSession)
    result = MagicMock()
    result.rowcount = rowcount
    db.execute.return_value = result
    return db


@pytest.mark.asyncio
async def test_reserve_seat_reports_success_when_a_row_was_updated():
    db = _db_with_rowcount(1)

    assert await SeatLedger.reserve_seat(db, uuid4()) is True
    assert db.execute.await_count == 1
    # the ledger never commits on its own
    assert not db.commit.called


@pytest.mark.asyncio
async def test_reserve_seat_reports_full_batch():
    db = _db_with_rowcount(0)

    assert await SeatLedger.reserve_seat(db, uuid4()) is False


@pytest.mark.asyncio
async def test_reserve_seat_statement_is_conditional_on_remaining_seats():
    db = _db_with_rowcount(1)

    await SeatLedger.reserve_seat(db, uuid4())

    statement = db.execute.await_args.args[0]
    sql = str(statement.compile())
    assert "UPDATE batches SET seats=(batches.seats - " in sql
    assert "batches.seats > " in sql


@pytest.mark.asyncio
async def test_release_seat_increments_without_commit():
    db = _db_with_rowcount(1)

    await SeatLedger.release_seat(db, uuid4())

    sql = str(db.execute.await_args.args[0].compile())
    assert "seats=(batches.seats + " in sql
    assert not db.commit.called



@pytest.mark.asyncio
async def test_adjust_seats_applies_a_delta_guarded_against_negative_counts():
    db = _db_with_rowcount(1)

    assert await SeatLedger.adjust_seats(db, uuid4(), -3) is True

    sql = str(db.execute.await_args.args[0].compile())
    assert "seats=(batches.seats + " in sql
    assert "batches.seats + " in sql.split("WHERE", 1)[1]
    assert not db.commit.called


@pytest.mark.asyncio
async def test_adjust_seats_reports_refused_delta():
    db = _db_with_rowcount(0)

    assert await SeatLedger.adjust_seats(db, uuid4(), -10) is False


@pytest.mark.asyncio
async def test_adjust_seats_with_zero_delta_is_a_no_op():
    db = _db_with_rowcount(0)

    assert await SeatLedger.adjust_seats(db, uuid4(), 0) is True
    assert not db.execute.called
