import re
from datetime import datetime, timezone
from typing import Optional

_AU_DATETIME = re.compile(
    r"^(\d{1,2})/(\d{1,2})/(\d{4})(?:\s+(\d{1,2}):(\d{2})\s*(am|pm)?)?$",
    re.IGNORECASE,
)


def parse_australian_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse ``dd/mm/yyyy`` with an optional ``h:mm[am|pm]`` time as UTC.

    Returns None when the text is not in that form or names an invalid date.
    """
    if not value:
        return None
    match = _AU_DATETIME.match(value.strip())
    if not match:
        return None

    day, month, year = int(match.group(1)), int(match.group(2)), int(match.group(3))
    hour = minute = 0
    if match.group(4) and match.group(5):
        hour, minute = int(match.group(4)), int(match.group(5))
        meridiem = (match.group(6) or "").lower()
        if meridiem == "pm" and hour < 12:
            hour += 12
        if meridiem == "am" and hour == 12:
            hour = 0

    try:
        return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
    except ValueError:
        return None
