"""Wall-clock helpers. Ledgers take time as epoch milliseconds."""

import time
from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], int]

DAY_MS = 24 * 60 * 60 * 1000


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def days_to_ms(days: float) -> int:
    """Convert a whole or fractional number of days to milliseconds."""
    return int(days * DAY_MS)


def utc_date_key(epoch_ms: Optional[float] = None) -> str:
    """``YYYY-MM-DD`` of ``epoch_ms`` (default: now) in UTC."""
    if epoch_ms is None:
        epoch_ms = now_ms()
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d")
