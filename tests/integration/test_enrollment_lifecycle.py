"""Integration tests: enrollment lifecycle against a real database session."""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from app.core.exceptions import (
    AlreadyEnrolledError,
    ConflictError,
    EmailNotVerifiedError,
    EnrollmentClosedError,
    ForbiddenError,
    InvalidStateError,
    NoSeatsLeftError,
    OutsideEnrollmentPeriodError,
    PaymentAlreadyExistsError,
    TransactionAlreadyUsedError,
)
from app.models.communication import Notification
from app.models.enrollment import Enrollment
from app.models.enums import EnrollmentStatus, PaymentMethod, PaymentStatus, UserRole
from app.models.payment import Payment
from app.schemas.enrollment import PaymentSubmit
from app.services.enrollment_service import EnrollmentService
from app.services.payment_service import PaymentService
from app.utils.time import get_utc_now
from tests.factories import make_batch, make_user


def _payment(enrollment, trx_id: str = "TRX-0001") -> PaymentSubmit:
    return PaymentSubmit(
        enrollment_id=enrollment.id,
        trx_id=trx_id,
        method=PaymentMethod.BKASH,
        sender_number="01712345678",
    )


async def _seats(db, batch) -> int:
    await db.refresh(batch)
    return batch.seats


async def _submitted(db, student, batch, trx_id: str = "TRX-0001"):
    """Enrollment that reached PAYMENT_SUBMITTED inside the window."""
    enrollment = await EnrollmentService.start_enrollment(db, student, batch.id)
    await PaymentService.submit_payment(db, student, _payment(enrollment, trx_id))
    return await EnrollmentService.get_enrollment(db, enrollment.id, include_user=True)


# ---------------------------------------------------------------------------
# StartEnrollment
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_last_seat_goes_to_first_student_only(db):
    """Scenario A: one seat, two students."""
    batch = await make_batch(db, seats=1)
    first = await make_user(db, name="Student A")
    second = await make_user(db, name="Student B")

    enrollment = await EnrollmentService.start_enrollment(db, first, batch.id)
    assert enrollment.status == EnrollmentStatus.PENDING
    assert enrollment.enrollment_fee == batch.price
    assert await _seats(db, batch) == 0

    with pytest.raises(NoSeatsLeftError) as exc:
        await EnrollmentService.start_enrollment(db, second, batch.id)
    assert exc.value.message == "No seats left"
    assert await _seats(db, batch) == 0


@pytest.mark.asyncio
async def test_concurrent_starts_never_oversell(db, session_factory):
    batch = await make_batch(db, seats=3)
    students = [await make_user(db, name=f"Student {i}") for i in range(5)]

    async def attempt(student):
        async with session_factory() as session:
            return await EnrollmentService.start_enrollment(session, student, batch.id)

    results = await asyncio.gather(*(attempt(s) for s in students), return_exceptions=True)

    succeeded = [r for r in results if isinstance(r, Enrollment)]
    refused = [r for r in results if isinstance(r, NoSeatsLeftError)]
    assert len(succeeded) == 3
    assert len(refused) == 2
    assert await _seats(db, batch) == 0


@pytest.mark.asyncio
async def test_student_holds_at_most_one_active_track_enrollment(db, student, batch):
    await EnrollmentService.start_enrollment(db, student, batch.id)

    with pytest.raises(AlreadyEnrolledError):
        await EnrollmentService.start_enrollment(db, student, batch.id)

    count = await db.scalar(
        select(func.count(Enrollment.id)).where(
            Enrollment.user_id == student.id, Enrollment.batch_id == batch.id
        )
    )
    assert count == 1
    assert await _seats(db, batch) == 4


@pytest.mark.asyncio
async def test_start_requires_verified_email(db, batch):
    unverified = await make_user(db, verified=False)

    with pytest.raises(EmailNotVerifiedError):
        await EnrollmentService.start_enrollment(db, unverified, batch.id)
    assert await _seats(db, batch) == 5


@pytest.mark.asyncio
@pytest.mark.parametrize("is_open,is_published", [(False, True), (True, False)])
async def test_start_requires_open_published_batch(db, student, is_open, is_published):
    batch = await make_batch(db, is_open=is_open, is_published=is_published)

    with pytest.raises(EnrollmentClosedError):
        await EnrollmentService.start_enrollment(db, student, batch.id)


@pytest.mark.asyncio
async def test_start_outside_window_is_refused(db, student):
    batch = await make_batch(db, start_offset=timedelta(days=1), end_offset=timedelta(days=5))

    with pytest.raises(OutsideEnrollmentPeriodError):
        await EnrollmentService.start_enrollment(db, student, batch.id)
    assert await _seats(db, batch) == 5


# ---------------------------------------------------------------------------
# SubmitPayment
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_submission_inside_window_goes_to_review(db, student, admin, batch):
    enrollment = await EnrollmentService.start_enrollment(db, student, batch.id)

    outcome = await PaymentService.submit_payment(db, student, _payment(enrollment))

    assert outcome.auto_rejected is False
    assert outcome.payment.status == PaymentStatus.PENDING
    assert outcome.payment.amount == enrollment.enrollment_fee
    refreshed = await EnrollmentService.get_enrollment(db, enrollment.id)
    assert refreshed.status == EnrollmentStatus.PAYMENT_SUBMITTED
    assert refreshed.paid_at is not None
    assert await _seats(db, batch) == 4

    admin_notes = (await db.execute(
        select(Notification).where(Notification.user_id == admin.id)
    )).scalars().all()
    assert [n.title for n in admin_notes] == ["New Payment Submitted"]
    assert admin_notes[0].body == f"{student.name} submitted payment for {batch.name}."


@pytest.mark.asyncio
async def test_submission_before_window_is_auto_rejected_and_returns_seat(db, student):
    """Scenario B."""
    batch = await make_batch(db, seats=3)
    enrollment = await EnrollmentService.start_enrollment(db, student, batch.id)
    assert await _seats(db, batch) == 2

    early = batch.enroll_start - timedelta(minutes=5)
    outcome = await PaymentService.submit_payment(db, student, _payment(enrollment), now=early)

    assert outcome.auto_rejected is True
    assert outcome.reason.startswith("Payment submitted before enrollment period. Enrollment starts on ")
    assert outcome.payment.status == PaymentStatus.REJECTED
    assert outcome.payment.verified_by_id is None

    refreshed = await EnrollmentService.get_enrollment(db, enrollment.id)
    assert refreshed.status == EnrollmentStatus.REJECTED
    assert refreshed.reject_reason == outcome.reason
    assert refreshed.rejected_at == early
    assert await _seats(db, batch) == 3

    titles = (await db.execute(
        select(Notification.title).where(Notification.user_id == student.id)
    )).scalars().all()
    assert titles == ["Payment Auto-Rejected"]


@pytest.mark.asyncio
async def test_submission_after_window_is_auto_rejected(db, student, batch):
    enrollment = await EnrollmentService.start_enrollment(db, student, batch.id)

    late = batch.enroll_end + timedelta(seconds=1)
    outcome = await PaymentService.submit_payment(db, student, _payment(enrollment), now=late)

    assert outcome.auto_rejected is True
    assert outcome.reason.startswith("Payment submitted after enrollment period ended on ")
    assert await _seats(db, batch) == 5


@pytest.mark.asyncio
async def test_duplicate_trx_id_is_refused_for_another_enrollment(db, batch):
    """Scenario E."""
    first = await make_user(db)
    second = await make_user(db)
    e1 = await EnrollmentService.start_enrollment(db, first, batch.id)
    e2 = await EnrollmentService.start_enrollment(db, second, batch.id)

    await PaymentService.submit_payment(db, first, _payment(e1, "SAME-TRX-42"))
    with pytest.raises(TransactionAlreadyUsedError) as exc:
        await PaymentService.submit_payment(db, second, _payment(e2, "SAME-TRX-42"))
    assert exc.value.message == "Transaction already used"

    rows = await db.scalar(select(func.count(Payment.id)).where(Payment.trx_id == "SAME-TRX-42"))
    assert rows == 1
    untouched = await EnrollmentService.get_enrollment(db, e2.id)
    assert untouched.status == EnrollmentStatus.PENDING
    assert untouched.payment is None


@pytest.mark.asyncio
async def test_second_submission_for_same_enrollment_is_invalid_state(db, student, batch):
    enrollment = await EnrollmentService.start_enrollment(db, student, batch.id)
    await PaymentService.submit_payment(db, student, _payment(enrollment, "TRX-A"))

    with pytest.raises(InvalidStateError) as exc:
        await PaymentService.submit_payment(db, student, _payment(enrollment, "TRX-B"))
    assert exc.value.message == "Invalid state. Payment already submitted or processed."


@pytest.mark.asyncio
async def test_submission_for_someone_elses_enrollment_is_forbidden(db, student, batch):
    enrollment = await EnrollmentService.start_enrollment(db, student, batch.id)
    intruder = await make_user(db)

    with pytest.raises(ForbiddenError):
        await PaymentService.submit_payment(db, intruder, _payment(enrollment))


@pytest.mark.asyncio
async def test_submission_to_closed_batch_is_refused(db, student, batch):
    enrollment = await EnrollmentService.start_enrollment(db, student, batch.id)
    batch.is_open = False
    await db.commit()

    with pytest.raises(EnrollmentClosedError) as exc:
        await PaymentService.submit_payment(db, student, _payment(enrollment))
    assert exc.value.message == "This batch is no longer accepting enrollments."


@pytest.mark.asyncio
async def test_submission_requires_remaining_seats(db, student):
    """The last seat holder cannot pay while the batch shows zero seats."""
    batch = await make_batch(db, seats=1)
    enrollment = await EnrollmentService.start_enrollment(db, student, batch.id)

    with pytest.raises(NoSeatsLeftError) as exc:
        await PaymentService.submit_payment(db, student, _payment(enrollment))
    assert exc.value.message == "No seats left in this batch."


@pytest.mark.asyncio
async def test_existing_payment_row_blocks_resubmission(db, student, batch):
    enrollment = await EnrollmentService.start_enrollment(db, student, batch.id)
    db.add(Payment(
        enrollment_id=enrollment.id,
        trx_id="ORPHAN-1",
        method=PaymentMethod.NAGAD,
        sender_number="01900000000",
        amount=enrollment.enrollment_fee,
        status=PaymentStatus.PENDING,
    ))
    await db.commit()

    with pytest.raises(PaymentAlreadyExistsError):
        await PaymentService.submit_payment(db, student, _payment(enrollment, "FRESH-1"))


# ---------------------------------------------------------------------------
# AdminApprove / AdminReject
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_approval_inside_window_activates_and_keeps_seat(db, student, admin, batch):
    """Scenario C."""
    enrollment = await _submitted(db, student, batch)
    seats_before = await _seats(db, batch)

    outcome = await PaymentService.approve_payment(db, admin, enrollment.id)

    assert outcome.auto_rejected is False
    assert outcome.payment.status == PaymentStatus.APPROVED
    assert outcome.payment.verified_by_id == admin.id
    assert outcome.payment.verified_at is not None
    refreshed = await EnrollmentService.get_enrollment(db, enrollment.id)
    assert refreshed.status == EnrollmentStatus.ACTIVE
    assert refreshed.approved_at is not None
    assert await _seats(db, batch) == seats_before

    titles = (await db.execute(
        select(Notification.title).where(Notification.user_id == student.id)
    )).scalars().all()
    assert "Enrollment Approved" in titles


@pytest.mark.asyncio
async def test_approval_after_window_auto_rejects_and_returns_seat(db, student, admin, batch):
    """Scenario D."""
    enrollment = await _submitted(db, student, batch)
    seats_before = await _seats(db, batch)

    late = batch.enroll_end + timedelta(minutes=1)
    outcome = await PaymentService.approve_payment(db, admin, enrollment.id, now=late)

    assert outcome.auto_rejected is True
    assert outcome.reason.startswith("Auto-rejected by system: Enrollment period ended on ")
    assert outcome.payment.status == PaymentStatus.REJECTED
    refreshed = await EnrollmentService.get_enrollment(db, enrollment.id)
    assert refreshed.status == EnrollmentStatus.REJECTED
    assert refreshed.reject_reason == outcome.reason
    assert await _seats(db, batch) == seats_before + 1

    admin_titles = (await db.execute(
        select(Notification.title).where(Notification.user_id == admin.id)
    )).scalars().all()
    assert "Auto-Rejected Payment" in admin_titles


@pytest.mark.asyncio
async def test_admin_rejection_returns_seat(db, student, admin, batch):
    enrollment = await _submitted(db, student, batch)
    seats_before = await _seats(db, batch)

    payment = await PaymentService.reject_payment(db, admin, enrollment.id, "Amount mismatch")

    assert payment.status == PaymentStatus.REJECTED
    assert payment.verified_by_id == admin.id
    refreshed = await EnrollmentService.get_enrollment(db, enrollment.id)
    assert refreshed.status == EnrollmentStatus.REJECTED
    assert refreshed.reject_reason == "Amount mismatch"
    assert await _seats(db, batch) == seats_before + 1

    bodies = (await db.execute(
        select(Notification.body).where(
            Notification.user_id == student.id, Notification.title == "Payment Rejected"
        )
    )).scalars().all()
    assert bodies == ["Reason: Amount mismatch"]


@pytest.mark.asyncio
async def test_approving_pending_enrollment_without_payment_is_refused(db, student, admin, batch):
    enrollment = await EnrollmentService.start_enrollment(db, student, batch.id)

    with pytest.raises(ConflictError) as exc:
        await PaymentService.approve_payment(db, admin, enrollment.id)
    assert exc.value.message == "No payment found"


@pytest.mark.asyncio
async def test_terminal_enrollment_ignores_further_events(db, student, admin, batch):
    enrollment = await _submitted(db, student, batch)
    await PaymentService.approve_payment(db, admin, enrollment.id)
    seats_before = await _seats(db, batch)

    with pytest.raises(ConflictError):
        await PaymentService.approve_payment(db, admin, enrollment.id)
    with pytest.raises(ConflictError):
        await PaymentService.reject_payment(db, admin, enrollment.id, "late change of mind")
    with pytest.raises(InvalidStateError):
        await EnrollmentService.cancel_enrollment(db, student, enrollment.id)
    with pytest.raises(InvalidStateError):
        await PaymentService.submit_payment(db, student, _payment(enrollment, "TRX-NEW"))

    refreshed = await EnrollmentService.get_enrollment(db, enrollment.id)
    assert refreshed.status == EnrollmentStatus.ACTIVE
    assert refreshed.payment.status == PaymentStatus.APPROVED
    assert await _seats(db, batch) == seats_before


@pytest.mark.asyncio
async def test_student_can_enroll_again_after_rejection(db, student, admin, batch):
    enrollment = await _submitted(db, student, batch)
    await PaymentService.reject_payment(db, admin, enrollment.id, "Wrong sender")

    again = await EnrollmentService.start_enrollment(db, student, batch.id)

    assert again.id != enrollment.id
    assert again.status == EnrollmentStatus.PENDING


# ---------------------------------------------------------------------------
# Cancel / Expire / Delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_cancel_pending_enrollment_returns_seat(db, student, batch):
    enrollment = await EnrollmentService.start_enrollment(db, student, batch.id)

    cancelled = await EnrollmentService.cancel_enrollment(db, student, enrollment.id)

    assert cancelled.status == EnrollmentStatus.CANCELLED
    assert cancelled.cancelled_at is not None
    assert await _seats(db, batch) == 5


@pytest.mark.asyncio
async def test_cancel_by_another_student_is_forbidden(db, student, batch):
    enrollment = await EnrollmentService.start_enrollment(db, student, batch.id)
    other = await make_user(db)

    with pytest.raises(ForbiddenError):
        await EnrollmentService.cancel_enrollment(db, other, enrollment.id)


@pytest.mark.asyncio
async def test_expiry_sweep_expires_stale_pending_only(db, admin, batch):
    pending_student = await make_user(db)
    submitted_student = await make_user(db)
    pending = await EnrollmentService.start_enrollment(db, pending_student, batch.id)
    submitted = await _submitted(db, submitted_student, batch, "TRX-KEEP")
    assert await _seats(db, batch) == 3

    # nothing is stale while the window is open
    assert await EnrollmentService.expire_stale_enrollments(db) == 0

    expired = await EnrollmentService.expire_stale_enrollments(
        db, now=batch.enroll_end + timedelta(hours=1)
    )

    assert expired == 1
    assert (await EnrollmentService.get_enrollment(db, pending.id)).status == EnrollmentStatus.EXPIRED
    assert (await EnrollmentService.get_enrollment(db, submitted.id)).status == EnrollmentStatus.PAYMENT_SUBMITTED
    assert await _seats(db, batch) == 4

    titles = (await db.execute(
        select(Notification.title).where(Notification.user_id == pending_student.id)
    )).scalars().all()
    assert titles == ["Enrollment Expired"]


@pytest.mark.asyncio
async def test_deleting_enrollments_returns_seats_of_active_ones_only(db, student, admin, batch):
    enrollment = await _submitted(db, student, batch)
    await PaymentService.approve_payment(db, admin, enrollment.id)
    other = await make_user(db)
    pending = await EnrollmentService.start_enrollment(db, other, batch.id)
    assert await _seats(db, batch) == 3

    deleted = await EnrollmentService.delete_enrollments(db, [enrollment.id, pending.id])

    assert deleted == 2
    # the PENDING enrollment's seat is not credited back
    assert await _seats(db, batch) == 4
    assert await db.scalar(select(func.count(Payment.id))) == 0


@pytest.mark.asyncio
async def test_deleting_pending_enrollment_keeps_seat_count(db, student, batch):
    pending = await EnrollmentService.start_enrollment(db, student, batch.id)
    before = await _seats(db, batch)

    assert await EnrollmentService.delete_enrollments(db, [pending.id]) == 1

    assert await _seats(db, batch) == before


@pytest.mark.asyncio
async def test_list_enrollments_filters_and_paginates(db, batch):
    students = [await make_user(db, name=f"Learner {i}") for i in range(3)]
    for s in students:
        await EnrollmentService.start_enrollment(db, s, batch.id)
    other_batch = await make_batch(db, name="Solidity Bootcamp")
    await EnrollmentService.start_enrollment(db, students[0], other_batch.id)

    items, total = await EnrollmentService.list_enrollments(db, page=1, page_size=2, batch_id=batch.id)
    assert total == 3
    assert len(items) == 2

    items, total = await EnrollmentService.list_enrollments(db, search="Solidity")
    assert total == 1
    assert items[0].batch.name == "Solidity Bootcamp"
    assert items[0].user.name == "Learner 0"

    _, total = await EnrollmentService.list_enrollments(db, status=EnrollmentStatus.ACTIVE)
    assert total == 0


@pytest.mark.asyncio
async def test_admin_role_is_not_needed_for_service_calls(db, batch):
    """Role checks live in the HTTP layer; the service only needs a verified user."""
    staff = await make_user(db, role=UserRole.ADMIN)
    enrollment = await EnrollmentService.start_enrollment(db, staff, batch.id, now=get_utc_now())
    assert enrollment.status == EnrollmentStatus.PENDING
