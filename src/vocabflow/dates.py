"""Calendar-day helpers shared by the scheduler, allocator and stats."""
from datetime import date, datetime
from typing import Optional

DATE_FORMAT = "%Y-%m-%d"


def today_string(now: Optional[datetime] = None) -> str:
    """Get the learner's local calendar day as YYYY-MM-DD."""
    if now is None:
        now = datetime.now()
    elif now.tzinfo is not None:
        now = now.astimezone()
    return now.strftime(DATE_FORMAT)


def parse_day(value: Optional[str]) -> Optional[date]:
    """Parse a YYYY-MM-DD string, returning None for empty or malformed values."""
    if not value:
        return None
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        return None
