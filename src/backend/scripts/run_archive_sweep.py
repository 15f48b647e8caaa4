#!/usr/bin/env python3
"""
Manual archive sweep.

Archives every closed week that still holds votes. The current week is
never touched. Use after an outage, or to archive a single closed week.

Run with:
    python -m scripts.run_archive_sweep
    python -m scripts.run_archive_sweep --week 2025-W46
    python -m scripts.run_archive_sweep --respect-window
"""

import asyncio
from datetime import datetime, timezone

import scripts._common  # noqa: F401 - Sets up sys.path for imports
from scripts._common import cosmos_session

from core.config import settings
from core.weeks import InvalidWeekIdentifier, parse_week_identifier, week_identifier_for


async def run_sweep(enforce_window: bool = False) -> None:
    from services.archive_scheduler import create_archive_scheduler
    from services.issue_registry import get_issue_registry

    async with cosmos_session():
        await get_issue_registry().load()
        result = await create_archive_scheduler().sweep(enforce_window=enforce_window)

    print(f"Current week: {result.current_week}")
    if result.skipped:
        print(f"⏭️  Skipped: {result.reason}")
        return

    print(f"✅ Archived weeks: {', '.join(result.weeks_archived) or 'none'}")
    print(f"   Votes deleted: {result.votes_deleted}")
    if result.weeks_failed:
        print(f"❌ Failed weeks: {', '.join(result.weeks_failed)}")


async def archive_single_week(week_identifier: str, now: datetime | None = None) -> None:
    from services.archive_scheduler import create_archive_scheduler
    from services.issue_registry import get_issue_registry

    try:
        requested = parse_week_identifier(week_identifier)
    except InvalidWeekIdentifier as e:
        print(f"❌ {e}")
        return

    current_week = week_identifier_for(now or datetime.now(timezone.utc), settings.poll_tz)
    if requested >= parse_week_identifier(current_week):
        print(f"❌ {week_identifier} is not closed yet (current week is {current_week})")
        return

    async with cosmos_session():
        await get_issue_registry().load()
        result = await create_archive_scheduler().engine.archive_week(week_identifier)

    if result.archived:
        print(f"✅ {week_identifier}: {result.total_votes} votes archived, {result.votes_deleted} deleted")
        for issue, count in sorted(result.issue_counts.items(), key=lambda item: -item[1]):
            print(f"   {count:>5}  {issue}")
    else:
        print(f"ℹ️  {week_identifier}: no votes to archive")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Archive closed poll weeks")
    parser.add_argument("--week", help="Archive only this closed week, e.g. 2025-W46")
    parser.add_argument(
        "--respect-window",
        action="store_true",
        help="Skip unless inside the Monday safety window, like the scheduled job",
    )
    args = parser.parse_args()

    if args.week:
        asyncio.run(archive_single_week(args.week))
    else:
        asyncio.run(run_sweep(enforce_window=args.respect_window))
