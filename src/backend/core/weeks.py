"""
Week identifier utilities.

Votes are grouped into ISO-8601 weeks (Monday to Sunday, week 1 is the week
containing the year's first Thursday) evaluated in the organization timezone.

Tokens look like "2025-W46". The same rule is applied everywhere, including
at year boundaries:

    2024-12-30 (Monday)  -> "2025-W01"
    2021-01-03 (Sunday)  -> "2020-W53"

A week closes at 23:59:59.999 local time on its Sunday.
"""

import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo

WEEK_IDENTIFIER_PATTERN = re.compile(r"^(\d{4})-W(\d{2})$")

# Closing instant of a week, local time on its Sunday
WEEK_ENDING_TIME = time(23, 59, 59, 999000)


class InvalidWeekIdentifier(ValueError):
    """Token is malformed or names a week that does not exist."""

    pass


def _as_aware(timestamp: datetime) -> datetime:
    """Treat naive timestamps as UTC."""
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def format_week_identifier(year: int, week: int) -> str:
    return f"{year}-W{week:02d}"


def week_identifier_for(timestamp: datetime, tz: tzinfo) -> str:
    """
    Get the week token for an instant.

    Args:
        timestamp: The instant to classify (naive values are read as UTC)
        tz: Organization timezone the week boundaries are drawn in

    Returns:
        Token in "YYYY-Www" form
    """
    local = _as_aware(timestamp).astimezone(tz)
    iso_year, iso_week, _ = local.isocalendar()
    return format_week_identifier(iso_year, iso_week)


def parse_week_identifier(identifier: str) -> tuple[int, int]:
    """
    Split a token into (iso_year, iso_week).

    Raises:
        InvalidWeekIdentifier: If the token is malformed or the week does not
            exist in that ISO year (e.g. "2025-W53").
    """
    match = WEEK_IDENTIFIER_PATTERN.match(identifier or "")
    if not match:
        raise InvalidWeekIdentifier(f"Malformed week identifier: {identifier!r}")

    year, week = int(match.group(1)), int(match.group(2))
    try:
        date.fromisocalendar(year, week, 1)
    except ValueError as e:
        raise InvalidWeekIdentifier(f"Week {week} does not exist in ISO year {year}") from e

    return year, week


def week_start_for(identifier: str, tz: tzinfo) -> datetime:
    """Get Monday 00:00 local time of the given week."""
    year, week = parse_week_identifier(identifier)
    monday = date.fromisocalendar(year, week, 1)
    return datetime.combine(monday, time.min, tzinfo=tz)


def week_ending_for(identifier: str, tz: tzinfo) -> datetime:
    """
    Get the closing instant of a week.

    Depends only on the token, so recomputing it at any later time gives the
    same value.

    Returns:
        Sunday 23:59:59.999 local time of that week (timezone-aware)
    """
    year, week = parse_week_identifier(identifier)
    sunday = date.fromisocalendar(year, week, 7)
    return datetime.combine(sunday, WEEK_ENDING_TIME, tzinfo=tz)


def next_week_boundary(timestamp: datetime, tz: tzinfo) -> datetime:
    """Get the start (Monday 00:00 local) of the week after the one containing timestamp."""
    current = week_identifier_for(timestamp, tz)
    start = week_start_for(current, tz)
    following = start.date() + timedelta(days=7)
    return datetime.combine(following, time.min, tzinfo=tz)
