"""Seat Ledger - capacity accounting over Batch.seats"""

import logging
from uuid import UUID
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.batch import Batch

logger = logging.getLogger(__name__)


class SeatLedger:
    """
    Atomic seat reservation and release.

    Both operations are single conditional UPDATE statements so concurrent
    requests can never push `seats` below zero. Neither commits: the calling
    transition owns the transaction.
    """

    @staticmethod
    async def reserve_seat(db: AsyncSession, batch_id: UUID) -> bool:
        """Take one seat if any is left. Returns False when the batch is full."""
        result = await db.execute(
            update(Batch)
            .where(Batch.id == batch_id, Batch.seats > 0)
            .values(seats=Batch.seats - 1)
        )
        reserved = result.rowcount == 1
        if not reserved:
            logger.info("Seat reservation refused", extra={"batch_id": str(batch_id)})
        return reserved

    @staticmethod
    async def release_seat(db: AsyncSession, batch_id: UUID) -> None:
        """Return one seat to the batch."""
        await db.execute(
            update(Batch)
            .where(Batch.id == batch_id)
            .values(seats=Batch.seats + 1)
        )
        logger.info("Seat released", extra={"batch_id": str(batch_id)})

    @staticmethod
    async def adjust_seats(db: AsyncSession, batch_id: UUID, delta: int) -> bool:
        """
        Add `delta` (possibly negative) to the remaining seats. Refused, and
        False returned, when the result would drop below zero.
        """
        if delta == 0:
            return True
        result = await db.execute(
            update(Batch)
            .where(Batch.id == batch_id, Batch.seats + delta >= 0)
            .values(seats=Batch.seats + delta)
        )
        adjusted = result.rowcount == 1
        logger.info("Seat count adjusted", extra={"batch_id": str(batch_id), "delta": delta, "applied": adjusted})
        return adjusted
