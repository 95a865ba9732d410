"""Fake clock for testing."""

from basemeter.core.clock import DAY_MS

# 2024-03-01T12:00:00Z
DEFAULT_NOW_MS = 1_709_294_400_000


class FakeClock:
    """Manually advanced clock, callable like ``now_ms``.

    Usage:
        clock = FakeClock()
        ledger = SubscriptionLedger(trial_limit=2, clock=clock)
        clock.advance_days(31)
    """

    def __init__(self, now_ms: int = DEFAULT_NOW_MS) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms

    def advance_days(self, days: float) -> None:
        self.advance(int(days * DAY_MS))
