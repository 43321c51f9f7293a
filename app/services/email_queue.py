"""Email outbox - jobs are written with the state change and delivered after commit"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.communication import EmailJob
from app.models.enums import EmailJobStatus, EmailJobType
from app.services.email_service import deliver_email
from app.utils.time import get_utc_now

logger = logging.getLogger(__name__)


class EmailQueue:
    """Service layer for queuing transactional email and reading the outbox"""

    @staticmethod
    def enqueue(
        db: AsyncSession,
        *,
        type: EmailJobType,
        email: str,
        subject: str,
        html: str,
        user_id: Optional[UUID] = None,
        is_admin: bool = False,
    ) -> EmailJob:
        """Add a QUEUED job to the session. The caller's commit makes it visible to the worker."""
        job = EmailJob(
            type=type,
            user_id=user_id,
            email=email,
            subject=subject,
            html=html,
            is_admin=is_admin,
            status=EmailJobStatus.QUEUED,
            attempts=0,
            max_attempts=settings.EMAIL_JOB_MAX_ATTEMPTS,
            next_run_at=get_utc_now(),
        )
        db.add(job)
        return job

    @staticmethod
    async def list_email_jobs(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 10,
        search: Optional[str] = None,
        status: Optional[EmailJobStatus] = None,
        type: Optional[EmailJobType] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Tuple[List[EmailJob], int]:
        """
        Admin email log, newest first. Search matches recipient or subject.

        Returns:
            Tuple of (jobs, total count)
        """
        filters = []
        if search:
            pattern = f"%{search}%"
            filters.append(or_(EmailJob.email.ilike(pattern), EmailJob.subject.ilike(pattern)))
        if status:
            filters.append(EmailJob.status == status)
        if type:
            filters.append(EmailJob.type == type)
        if start_date:
            filters.append(EmailJob.created_at >= start_date)
        if end_date:
            filters.append(EmailJob.created_at <= end_date)

        total = await db.scalar(select(func.count(EmailJob.id)).where(*filters))
        result = await db.execute(
            select(EmailJob)
            .where(*filters)
            .order_by(EmailJob.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total or 0

    @staticmethod
    async def get_queue_status(db: AsyncSession, recent: int = 20) -> Tuple[Dict[str, int], List[EmailJob]]:
        """Job count for every status (zero included) and the most recent jobs."""
        result = await db.execute(
            select(EmailJob.status, func.count(EmailJob.id)).group_by(EmailJob.status)
        )
        counts = {status.value: 0 for status in EmailJobStatus}
        for status, count in result.all():
            counts[status.value] = count
        recent_jobs = await db.execute(
            select(EmailJob).order_by(EmailJob.created_at.desc()).limit(recent)
        )
        return counts, list(recent_jobs.scalars().all())


def compute_backoff(attempts: int) -> timedelta:
    """2s, 4s, 8s, 16s... with the default base."""
    return timedelta(seconds=settings.EMAIL_JOB_BASE_BACKOFF_SECONDS * 2 ** max(0, attempts))


async def _claim_jobs(db: AsyncSession, limit: int) -> list[EmailJob]:
    now = get_utc_now()
    result = await db.execute(
        select(EmailJob)
        .where(EmailJob.status == EmailJobStatus.QUEUED, EmailJob.next_run_at <= now)
        .order_by(EmailJob.created_at.asc())
        .limit(limit)
        .with_for_update(skip_locked=True)
    )
    jobs = list(result.scalars().all())
    for job in jobs:
        job.status = EmailJobStatus.PROCESSING
    await db.commit()
    return jobs


async def process_email_jobs(
    session_factory: Callable[[], AsyncSession],
    limit: Optional[int] = None,
) -> Dict[str, int]:
    """
    Deliver due email jobs.

    Claimed jobs are marked PROCESSING in their own transaction, then each one
    ends SENT, SKIPPED, re-QUEUED with exponential backoff, or FAILED after
    max_attempts.
    """
    limit = limit or settings.EMAIL_JOB_BATCH_SIZE
    stats = {"processed": 0, "sent": 0, "skipped": 0, "failed": 0}

    async with session_factory() as db:
        jobs = await _claim_jobs(db, limit)
        if not jobs:
            return stats

        for job in jobs:
            stats["processed"] += 1
            try:
                sent = await asyncio.to_thread(deliver_email, job.email, job.subject, job.html)
            except Exception as e:
                attempts = job.attempts + 1
                job.attempts = attempts
                job.last_error = str(e)
                if attempts >= job.max_attempts:
                    job.status = EmailJobStatus.FAILED
                else:
                    job.status = EmailJobStatus.QUEUED
                    job.next_run_at = get_utc_now() + compute_backoff(attempts)
                stats["failed"] += 1
                logger.error(
                    "Email job failed",
                    extra={"job_id": str(job.id), "attempts": attempts, "error": str(e)},
                    exc_info=True,
                )
            else:
                job.status = EmailJobStatus.SENT if sent else EmailJobStatus.SKIPPED
                job.last_error = None
                stats["sent" if sent else "skipped"] += 1
            await db.commit()

    logger.info("Email jobs processed", extra=stats)
    return stats


async def dispatch_pending_emails(session_factory: Callable[[], AsyncSession]) -> None:
    """Background-task entry point. Delivery problems are logged, never raised to the request."""
    try:
        await process_email_jobs(session_factory)
    except Exception:
        logger.exception("Email dispatch failed")
