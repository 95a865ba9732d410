"""Usage and charge schemas."""

from typing import Optional

from pydantic import model_validator

from basemeter.schemas.base import CamelModel


class UsageTotal(CamelModel):
    """Cumulative usage of one tenant. ``minutes`` mirrors ``count``."""

    count: float = 0
    minutes: float = 0
    cost: float = 0

    @model_validator(mode="before")
    @classmethod
    def _fill_count_from_minutes(cls, data):
        # Older stores only carried ``minutes``.
        if isinstance(data, dict) and data.get("count") is None and data.get("minutes") is not None:
            data = {**data, "count": data["minutes"]}
        return data

    @model_validator(mode="after")
    def _mirror_minutes(self) -> "UsageTotal":
        self.minutes = self.count
        return self


class DailyUsageRecord(CamelModel):
    """Usage accrued by one tenant on one UTC calendar day."""

    minutes: float = 0
    cost: float = 0


class DailyUsageTotal(DailyUsageRecord):
    """A ``DailyUsageRecord`` labelled with its ``YYYY-MM-DD`` date."""

    date: str


class UsageCharge(CamelModel):
    """Result of recording one unit of work."""

    count: float = 0
    minutes: float = 0
    cost: float = 0
    daily_minutes: float = 0
    daily_cost: float = 0
    unit_price: Optional[float] = None
    unit_label: Optional[str] = None


class UsageSummary(CamelModel):
    """Cumulative and same-day usage plus the price of the next minute."""

    base_id: str
    count: float
    minutes: float
    cost: float
    daily_minutes: float
    daily_cost: float
    unit_price: float
    unit_label: str
