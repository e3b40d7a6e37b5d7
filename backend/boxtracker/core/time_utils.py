from datetime import datetime
from typing import Optional
import pytz

UTC = pytz.utc

def get_utc_now() -> datetime:
    """Get current time in UTC."""
    return datetime.now(UTC)

def to_utc(dt: datetime) -> datetime:
    """Convert a datetime object to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        # SQLite hands back naive values; they were stored as UTC
        return UTC.localize(dt)
    return dt.astimezone(UTC)

def format_utc(dt: Optional[datetime]) -> Optional[str]:
    """Format datetime as ISO string in UTC."""
    if dt is None:
        return None
    return to_utc(dt).isoformat()
