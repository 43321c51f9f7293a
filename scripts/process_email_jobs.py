#!/usr/bin/env python3
"""
Deliver queued transactional email (verification, payment and enrollment notices).

Usage:
  python scripts/process_email_jobs.py            # one batch of due jobs
  python scripts/process_email_jobs.py --drain    # repeat until nothing is due

Run from cron every minute as a backstop for the in-request background dispatch.
Requires DATABASE_URL, SECRET_KEY and RESEND_API_KEY in .env (or export).
"""
import argparse
import asyncio
import os
import sys

from dotenv import load_dotenv

_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
load_dotenv(os.path.join(_root, ".env"))

# Add project root to path
sys.path.insert(0, _root)

from app.core.logging import setup_logging  # noqa: E402
from app.database import AsyncSessionLocal, close_db  # noqa: E402
from app.services.email_queue import process_email_jobs  # noqa: E402


async def run(drain: bool) -> int:
    total = 0
    try:
        while True:
            stats = await process_email_jobs(AsyncSessionLocal)
            total += stats["processed"]
            if not drain or stats["processed"] == 0:
                break
    finally:
        await close_db()
    return total


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--drain", action="store_true", help="keep processing until no job is due")
    args = parser.parse_args()

    setup_logging()
    processed = asyncio.run(run(args.drain))
    print(f"Processed {processed} email job(s)")


if __name__ == "__main__":
    main()
