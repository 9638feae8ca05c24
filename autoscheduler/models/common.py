# File: autoscheduler/models/common.py

from datetime import datetime, date, timezone
from typing import Optional, Union

def parse_iso_datetime(date_str: Optional[str]) -> Optional[datetime]:
    """Robustly parse ISO date strings with 'Z' or offsets."""
    if not date_str:
        return None
    try:
        # fromisoformat only accepts 'Z' from Python 3.11 on
        clean_str = date_str.replace('Z', '+00:00')
        return datetime.fromisoformat(clean_str)
    except ValueError:
        # Fallback for simple date strings without time
        try:
            return datetime.strptime(date_str, "%Y-%m-%d")
        except ValueError:
            return None


def parse_iso_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """Coerce a deadline value (date, datetime or ISO string) to a date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = parse_iso_datetime(str(value))
    if parsed is None:
        raise ValueError(f"Invalid date: {value!r}")
    return parsed.date()


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC instants."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
