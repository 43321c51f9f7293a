#!/usr/bin/env python3
"""
Expire PENDING enrollments whose batch enrollment window has closed, and
classes whose end time has passed.

Usage:
  python scripts/expire_enrollments.py

Each expired enrollment returns its seat to the batch and the student gets an
in-app notification plus an email. Schedule from cron (e.g. hourly).
"""
import asyncio
import os
import sys
from typing import Tuple

from dotenv import load_dotenv

_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
load_dotenv(os.path.join(_root, ".env"))

# Add project root to path
sys.path.insert(0, _root)

from app.core.logging import setup_logging  # noqa: E402
from app.database import AsyncSessionLocal, close_db  # noqa: E402
from app.services.class_service import ClassService  # noqa: E402
from app.services.email_queue import process_email_jobs  # noqa: E402
from app.services.enrollment_service import EnrollmentService  # noqa: E402


async def run() -> Tuple[int, int]:
    try:
        async with AsyncSessionLocal() as db:
            expired = await EnrollmentService.expire_stale_enrollments(db)
            classes = await ClassService.expire_ended_classes(db)
        if expired:
            await process_email_jobs(AsyncSessionLocal)
    finally:
        await close_db()
    return expired, classes


def main():
    setup_logging()
    expired, classes = asyncio.run(run())
    print(f"Expired {expired} enrollment(s) and {classes} class(es)")


if __name__ == "__main__":
    main()
