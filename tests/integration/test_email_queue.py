"""Integration tests: email outbox worker."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from app.models.communication import EmailJob
from app.models.enums import EmailJobStatus, EmailJobType
from app.services import email_queue
from app.services.email_queue import EmailQueue, dispatch_pending_emails, process_email_jobs
from app.services.email_service import EmailDeliveryError
from app.utils.time import get_utc_now


async def _queue_job(db, email: str = "learner@cryptohub.io") -> EmailJob:
    job = EmailQueue.enqueue(
        db,
        type=EmailJobType.PAYMENT_NOTIFICATION,
        email=email,
        subject="Payment Approved",
        html="<p>ok</p>",
    )
    await db.commit()
    return job


async def _reload(session_factory, job_id) -> EmailJob:
    async with session_factory() as session:
        return await session.scalar(select(EmailJob).where(EmailJob.id == job_id))


@pytest.mark.asyncio
async def test_jobs_without_provider_key_are_skipped(db, session_factory):
    job = await _queue_job(db)

    stats = await process_email_jobs(session_factory)

    assert stats == {"processed": 1, "sent": 0, "skipped": 1, "failed": 0}
    assert (await _reload(session_factory, job.id)).status == EmailJobStatus.SKIPPED


@pytest.mark.asyncio
async def test_delivered_jobs_are_marked_sent(db, session_factory, monkeypatch):
    sent_to = []

    def fake_deliver(to_email, subject, html):
        sent_to.append(to_email)
        return True

    monkeypatch.setattr(email_queue, "deliver_email", fake_deliver)
    job = await _queue_job(db, "first@cryptohub.io")

    await process_email_jobs(session_factory)

    assert sent_to == ["first@cryptohub.io"]
    assert (await _reload(session_factory, job.id)).status == EmailJobStatus.SENT


@pytest.mark.asyncio
async def test_failed_delivery_is_retried_with_backoff_then_marked_failed(db, session_factory, monkeypatch):
    def failing_deliver(to_email, subject, html):
        raise EmailDeliveryError("provider unavailable")

    monkeypatch.setattr(email_queue, "deliver_email", failing_deliver)
    job = await _queue_job(db)

    stats = await process_email_jobs(session_factory)
    assert stats["failed"] == 1
    retried = await _reload(session_factory, job.id)
    assert retried.status == EmailJobStatus.QUEUED
    assert retried.attempts == 1
    assert retried.last_error == "provider unavailable"
    assert retried.next_run_at > get_utc_now()

    # not due yet
    assert (await process_email_jobs(session_factory))["processed"] == 0

    for _ in range(retried.max_attempts - 1):
        async with session_factory() as session:
            due = await session.get(EmailJob, job.id)
            due.next_run_at = get_utc_now() - timedelta(seconds=1)
            await session.commit()
        await process_email_jobs(session_factory)

    final = await _reload(session_factory, job.id)
    assert final.status == EmailJobStatus.FAILED
    assert final.attempts == final.max_attempts


@pytest.mark.asyncio
async def test_dispatch_never_raises(session_factory, monkeypatch):
    async def broken(factory, limit=None):
        raise RuntimeError("database went away")

    monkeypatch.setattr(email_queue, "process_email_jobs", broken)

    await dispatch_pending_emails(session_factory)


@pytest.mark.asyncio
async def test_email_log_filters_and_queue_status(db, session_factory):
    await _queue_job(db, "alice@cryptohub.io")
    await _queue_job(db, "bob@cryptohub.io")
    await process_email_jobs(session_factory, limit=1)

    jobs, total = await EmailQueue.list_email_jobs(db, search="bob")
    assert total == 1
    assert jobs[0].email == "bob@cryptohub.io"

    _, total = await EmailQueue.list_email_jobs(db, status=EmailJobStatus.SKIPPED)
    assert total == 1
    _, total = await EmailQueue.list_email_jobs(db, type=EmailJobType.VERIFICATION)
    assert total == 0

    counts, recent = await EmailQueue.get_queue_status(db)
    assert counts["QUEUED"] == 1
    assert counts["SKIPPED"] == 1
    assert counts["FAILED"] == 0
    assert len(recent) == 2
