from datetime import timezone
from email.utils import formatdate, parsedate_to_datetime
from typing import Optional


def format_http_date(timestamp: float) -> str:
    """Format epoch seconds as an RFC 7231 date (``Sun, 06 Nov 1994 08:49:37 GMT``)."""
    return formatdate(timestamp, usegmt=True)


def parse_http_date(value: Optional[str]) -> Optional[int]:
    """Parse an HTTP date header into epoch seconds; None when unusable."""
    if not value or not value.strip():
        return None
    try:
        parsed = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    timestamp = int(parsed.timestamp())
    return timestamp if timestamp > 0 else None
