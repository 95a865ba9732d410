"""Usage domain types."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PendingBillingTask:
    """A submitted task waiting to be billed on completion."""

    task_id: str
    base_id: str
    expected_duration_ms: Optional[float]
    registered_at: int
