"""Enrollment lifecycle transition graph"""

import enum
from typing import Dict, FrozenSet, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidStateError
from app.models.enrollment import Enrollment
from app.models.enums import ACTIVE_TRACK_STATUSES, TERMINAL_STATUSES, EnrollmentStatus
from app.services.seat_ledger import SeatLedger


class EnrollmentEvent(str, enum.Enum):
    START = "start"
    SUBMIT_PAYMENT = "submit_payment"
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"
    EXPIRE = "expire"


S = EnrollmentStatus
E = EnrollmentEvent

# (current status, event) -> statuses the event may lead to.
# Pairs missing from the table are invalid; terminal statuses have no entries.
TRANSITIONS: Dict[Tuple[Optional[EnrollmentStatus], EnrollmentEvent], FrozenSet[EnrollmentStatus]] = {
    (None, E.START): frozenset({S.PENDING}),
    (S.PENDING, E.SUBMIT_PAYMENT): frozenset({S.PAYMENT_SUBMITTED, S.REJECTED}),
    (S.PENDING, E.CANCEL): frozenset({S.CANCELLED}),
    (S.PENDING, E.EXPIRE): frozenset({S.EXPIRED}),
    (S.PAYMENT_SUBMITTED, E.APPROVE): frozenset({S.ACTIVE, S.REJECTED}),
    (S.PAYMENT_SUBMITTED, E.REJECT): frozenset({S.REJECTED}),
    (S.PAYMENT_SUBMITTED, E.EXPIRE): frozenset({S.EXPIRED}),
}


def allowed_targets(status: Optional[EnrollmentStatus], event: EnrollmentEvent) -> FrozenSet[EnrollmentStatus]:
    return TRANSITIONS.get((status, event), frozenset())


def is_terminal(status: EnrollmentStatus) -> bool:
    return status in TERMINAL_STATUSES


def releases_seat(source: EnrollmentStatus, target: EnrollmentStatus) -> bool:
    """A transition gives its seat back when it leaves the active track."""
    return source in ACTIVE_TRACK_STATUSES and target not in ACTIVE_TRACK_STATUSES


def ensure_transition(
    status: Optional[EnrollmentStatus],
    event: EnrollmentEvent,
    target: EnrollmentStatus,
    message: Optional[str] = None,
) -> None:
    if target not in allowed_targets(status, event):
        raise InvalidStateError(message)


async def apply_transition(
    db: AsyncSession,
    enrollment: Enrollment,
    event: EnrollmentEvent,
    target: EnrollmentStatus,
    message: Optional[str] = None,
    **values,
) -> EnrollmentStatus:
    """
    Move `enrollment` to `target` with a conditional status update.

    The UPDATE only matches while the row still has the status we validated, so
    a concurrent transition makes this one fail with InvalidStateError. Seats are
    released here whenever the enrollment leaves the active track. Returns the
    source status.
    """
    source = enrollment.status
    ensure_transition(source, event, target, message)

    result = await db.execute(
        update(Enrollment)
        .where(Enrollment.id == enrollment.id, Enrollment.status == source)
        .values(status=target, **values)
    )
    if result.rowcount != 1:
        raise InvalidStateError(message)

    if releases_seat(source, target):
        await SeatLedger.release_seat(db, enrollment.batch_id)
    return source
