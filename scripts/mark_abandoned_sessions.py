#!/usr/bin/env python3
"""
Flag stale troubleshooting sessions as abandoned.

Sessions that are not completed and were started longer ago than the
threshold get ``abandoned = 1``. Intended to run from cron; the service
itself never flags sessions.

Usage:
    python scripts/mark_abandoned_sessions.py
    python scripts/mark_abandoned_sessions.py --minutes 120
"""

import argparse
import asyncio
from datetime import timedelta
from typing import Optional

import structlog

from troubleshooter.core.config import settings
from troubleshooter.persistence.repositories.session_repo import SessionRepository
from troubleshooter.services.session_reaper import SessionReaper

log = structlog.get_logger(__name__)


async def mark_abandoned(minutes: Optional[int] = None) -> int:
    reaper = SessionReaper(SessionRepository(str(settings.database_path)))
    older_than = timedelta(minutes=minutes) if minutes is not None else None
    return await reaper.mark_abandoned(older_than=older_than)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Mark incomplete, stale sessions as abandoned"
    )
    parser.add_argument(
        "--minutes",
        type=int,
        default=None,
        help="Age threshold in minutes (default: sessions.abandon_after_minutes)",
    )
    args = parser.parse_args()

    count = asyncio.run(mark_abandoned(args.minutes))
    print(f"Marked {count} session(s) as abandoned")


if __name__ == "__main__":
    main()
