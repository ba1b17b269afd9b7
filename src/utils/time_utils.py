import time
from datetime import datetime, timezone

MS_PER_MINUTE = 60_000


def get_current_timestamp() -> int:
    """Get current timestamp in milliseconds."""
    return int(time.time() * 1000)


def minutes_until(timestamp_ms: int, now_ms: int) -> float:
    """Signed minutes from now_ms until timestamp_ms."""
    return (timestamp_ms - now_ms) / MS_PER_MINUTE


def minutes_between(a_ms: int, b_ms: int) -> float:
    return abs(a_ms - b_ms) / MS_PER_MINUTE


def format_timestamp(timestamp_ms: int) -> str:
    """ISO-8601 UTC representation for logs."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).isoformat(timespec='seconds')
