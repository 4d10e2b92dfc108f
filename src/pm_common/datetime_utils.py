"""UTC datetime utilities."""

import time
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def unix_now() -> int:
    """Seconds since epoch, as used for session expiry."""
    return int(time.time())


def now_ms() -> int:
    """Milliseconds since epoch, as stamped on protocol frames."""
    return int(time.time() * 1000)
