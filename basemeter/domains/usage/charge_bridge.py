"""Usage charge bridge.

The task layer registers every billable task when it is submitted and calls
``charge_once`` whenever it sees the task complete. Completion may be observed
more than once (polling, retries), so the pending entry itself is the record
of "not yet billed": it is popped before billing and nothing else is checked.
Pop and bill happen in one synchronous call, so no other caller on the loop
can slip in between.

Tasks that never complete would otherwise stay pending forever; entries older
than the TTL are evicted on every registration.
"""

import logging
import math
from typing import Dict, Optional

from basemeter.core.clock import Clock, now_ms
from basemeter.core.logging import ContextualLogger
from basemeter.core.tenants import normalize_tenant_id
from basemeter.domains.billing.protocols import BillingLedgerProtocol
from basemeter.domains.billing.tiers import resolve_minutes
from basemeter.domains.usage.protocols import UsageChargeBridgeProtocol
from basemeter.domains.usage.types import PendingBillingTask
from basemeter.schemas.usage import UsageCharge

logger = ContextualLogger(logging.getLogger(__name__))

DEFAULT_PENDING_TTL_MS = 24 * 60 * 60 * 1000


def _positive_duration(value: object) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


class UsageChargeBridge(UsageChargeBridgeProtocol):
    """Exactly-once billing of completed tasks."""

    def __init__(
        self,
        billing: BillingLedgerProtocol,
        pending_ttl_ms: int = DEFAULT_PENDING_TTL_MS,
        clock: Clock = now_ms,
    ) -> None:
        """Initialize the bridge.

        Args:
            billing: Ledger that receives one ``record_usage`` per task
            pending_ttl_ms: Age after which an uncharged task is dropped
            clock: Epoch-ms time source
        """
        self._billing = billing
        self._pending_ttl_ms = pending_ttl_ms
        self._clock = clock
        self._pending: Dict[str, PendingBillingTask] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def register(
        self,
        task_id: object,
        tenant: object,
        expected_duration_ms: Optional[float] = None,
    ) -> bool:
        """Remember ``task_id`` as billable to ``tenant``.

        Re-registering a pending task replaces its entry.
        """
        base_id = normalize_tenant_id(tenant)
        if not isinstance(task_id, str) or not task_id or not base_id:
            return False

        self.evict_stale()
        self._pending[task_id] = PendingBillingTask(
            task_id=task_id,
            base_id=base_id,
            expected_duration_ms=_positive_duration(expected_duration_ms),
            registered_at=self._clock(),
        )
        return True

    def charge_once(
        self,
        task_id: object,
        observed_duration_ms: Optional[float] = None,
    ) -> Optional[UsageCharge]:
        """Bill ``task_id`` if it is still pending.

        The registered duration wins when positive; otherwise the observed
        one is used; with neither the ledger falls back to one minute.
        """
        if not isinstance(task_id, str) or not task_id:
            return None

        task = self._pending.pop(task_id, None)
        if task is None:
            return None

        duration = task.expected_duration_ms or _positive_duration(observed_duration_ms)
        charge = self._billing.record_usage(task.base_id, duration_ms=duration)
        logger.with_context(task_id=task_id, base_id=task.base_id).info(
            "Charged %s min, total cost %.4f",
            resolve_minutes(duration_ms=duration),
            charge.cost,
        )
        return charge

    def evict_stale(self, now: Optional[int] = None) -> int:
        """Drop pending tasks older than the TTL. Returns how many were dropped."""
        cutoff = (now if now is not None else self._clock()) - self._pending_ttl_ms
        stale = [task_id for task_id, task in self._pending.items() if task.registered_at < cutoff]
        for task_id in stale:
            del self._pending[task_id]
        if stale:
            logger.warning("Evicted %d uncharged tasks older than %d ms", len(stale), self._pending_ttl_ms)
        return len(stale)
