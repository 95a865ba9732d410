"""Subscription ledger: the admission gate.

One instance lives in the container. It owns the per-process trial counters,
the durable paid-until map, the admin list and the redeem codes. Every method
is synchronous and never awaits, so on a single event loop each call runs to
completion before any other can observe the state. That is what makes the
redeem check-and-mark atomic without a lock.

Mutations hand the durable part of the state to the snapshot sink; the sink
writes in the background and the ledger never waits for it.
"""

import logging
from typing import Dict, Iterable, Mapping, Optional

from basemeter.core.clock import Clock, now_ms
from basemeter.core.protocols.snapshot import SnapshotSink
from basemeter.core.shared_models import FailureKind
from basemeter.core.tenants import normalize_tenant_id
from basemeter.domains.subscriptions.protocols import SubscriptionLedgerProtocol
from basemeter.domains.subscriptions.types import (
    MSG_ADMIN,
    MSG_BYPASS,
    MSG_MISSING_TENANT,
    MSG_PAID,
    MSG_REDEEM_INVALID,
    MSG_REDEEM_MISSING_INPUT,
    MSG_REDEEM_USED,
    MSG_TRIAL_EXHAUSTED,
    UNLIMITED_PAID_UNTIL,
    hash_code,
    normalize_code,
    positive_ms,
    trial_message,
)
from basemeter.schemas.snapshot import SnapshotUpdate
from basemeter.schemas.subscription import RedeemCodeRecord, RedeemResult, TenantStatus

logger = logging.getLogger(__name__)


class SubscriptionLedger(SubscriptionLedgerProtocol):
    """In-memory subscription state with write-behind persistence.

    Admission precedence, highest first: the bypass flag, the admin list, the
    static paid list or an unexpired paid period, then the trial counter.
    """

    def __init__(
        self,
        *,
        trial_limit: int,
        paid_base_ids: Iterable[str] = (),
        admin_base_ids: Iterable[str] = (),
        allow_bypass: bool = False,
        paid_until_by_base_id: Optional[Mapping[str, int]] = None,
        redeem_codes: Optional[Iterable[RedeemCodeRecord]] = None,
        sink: Optional[SnapshotSink] = None,
        clock: Clock = now_ms,
    ) -> None:
        """Initialize the ledger from configuration and the loaded snapshot."""
        self._trial_limit = max(0, int(trial_limit))
        self._allow_bypass = allow_bypass
        self._sink = sink
        self._clock = clock

        # tenant -> trial uses spent; never persisted
        self._trial_usage: Dict[str, int] = {}
        self._paid_base_ids = frozenset(
            t for t in (normalize_tenant_id(b) for b in paid_base_ids) if t
        )
        self._paid_until: Dict[str, int] = {}
        for base_id, until in (paid_until_by_base_id or {}).items():
            key = normalize_tenant_id(base_id)
            if key and until:
                self._paid_until[key] = int(until)
        # dict as an insertion-ordered set
        self._admins: Dict[str, None] = {}
        for base_id in admin_base_ids:
            key = normalize_tenant_id(base_id)
            if key:
                self._admins[key] = None
        self._redeem_codes: Dict[str, RedeemCodeRecord] = {}
        for record in redeem_codes or ():
            self._redeem_codes.setdefault(record.code_hash, record.model_copy())

    @property
    def trial_limit(self) -> int:
        return self._trial_limit

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def get_status(self, tenant: object) -> TenantStatus:
        """Admission decision for ``tenant`` without spending anything."""
        base_id = normalize_tenant_id(tenant)
        if not base_id:
            return self._missing_tenant_status()

        status = self._privileged_status(base_id)
        if status is not None:
            return status

        remaining = self._free_remaining(base_id)
        return TenantStatus(
            base_id=base_id,
            is_paid=False,
            free_remaining=remaining,
            allowed=remaining > 0,
            message=trial_message(remaining),
            paid_until=self.get_paid_until(base_id),
        )

    def consume(self, tenant: object) -> TenantStatus:
        """Admission decision that spends one trial use on the trial branch.

        Returns the remaining count after the increment. Once the trial is
        exhausted the counter is left alone and the call is denied.
        """
        base_id = normalize_tenant_id(tenant)
        if not base_id:
            return self._missing_tenant_status()

        status = self._privileged_status(base_id)
        if status is not None:
            return status

        paid_until = self.get_paid_until(base_id)
        if self._free_remaining(base_id) <= 0:
            return TenantStatus(
                base_id=base_id,
                is_paid=False,
                free_remaining=0,
                allowed=False,
                message=MSG_TRIAL_EXHAUSTED,
                paid_until=paid_until,
            )

        self._trial_usage[base_id] = self._trial_usage.get(base_id, 0) + 1
        remaining = self._free_remaining(base_id)
        logger.debug("Trial use consumed by %s, %d remaining", base_id, remaining)
        return TenantStatus(
            base_id=base_id,
            is_paid=False,
            free_remaining=remaining,
            allowed=True,
            message=trial_message(remaining),
            paid_until=paid_until,
        )

    # ------------------------------------------------------------------
    # Paid periods
    # ------------------------------------------------------------------

    def activate_plan(
        self,
        tenant: object,
        duration_ms: object,
        paid_at: Optional[int] = None,
    ) -> Optional[int]:
        """Extend the paid period by ``duration_ms``.

        The new expiry is ``max(now, paid_at, current expiry) + duration_ms``,
        so stacked purchases never shorten or waste unexpired time.
        """
        base_id = normalize_tenant_id(tenant)
        duration = positive_ms(duration_ms)
        if not base_id or duration is None:
            return None

        paid_until = self._extend(base_id, duration, paid_at)
        self._persist()
        logger.info("Paid period for %s extended to %d", base_id, paid_until)
        return paid_until

    def get_paid_until(self, tenant: object) -> int:
        """Stored paid-until timestamp in epoch ms, 0 when unset."""
        return self._paid_until.get(normalize_tenant_id(tenant), 0)

    # ------------------------------------------------------------------
    # Admins
    # ------------------------------------------------------------------

    def set_admin(self, tenant: object, enabled: bool) -> bool:
        """Add or remove ``tenant`` from the admin list. Idempotent."""
        base_id = normalize_tenant_id(tenant)
        if not base_id:
            return False

        if enabled:
            self._admins[base_id] = None
        else:
            self._admins.pop(base_id, None)
        self._persist()
        logger.info("Admin flag for %s set to %s", base_id, bool(enabled))
        return True

    def is_admin(self, tenant: object) -> bool:
        return normalize_tenant_id(tenant) in self._admins

    # ------------------------------------------------------------------
    # Redeem codes
    # ------------------------------------------------------------------

    def add_redeem_code(self, code: object, duration_ms: object) -> bool:
        """Register a fresh single-use code worth ``duration_ms``.

        Fails on a missing code, a non-positive duration, or a code that is
        already registered (used or not).
        """
        plain = normalize_code(code)
        duration = positive_ms(duration_ms)
        if not plain or duration is None:
            return False

        code_hash = hash_code(plain)
        if code_hash in self._redeem_codes:
            logger.warning("Redeem code %s... is already registered", code_hash[:8])
            return False

        self._redeem_codes[code_hash] = RedeemCodeRecord(code_hash=code_hash, duration_ms=duration)
        self._persist()
        return True

    def redeem(self, tenant: object, code: object) -> RedeemResult:
        """Spend ``code`` for ``tenant`` and extend its paid period.

        Lookup, activation and marking happen in one synchronous block.
        """
        base_id = normalize_tenant_id(tenant)
        plain = normalize_code(code)
        if not base_id or not plain:
            return RedeemResult(
                ok=False,
                message=MSG_REDEEM_MISSING_INPUT,
                failure=FailureKind.INVALID_INPUT,
            )

        record = self._redeem_codes.get(hash_code(plain))
        if record is None:
            return RedeemResult(ok=False, message=MSG_REDEEM_INVALID, failure=FailureKind.NOT_FOUND)
        if record.is_used:
            return RedeemResult(ok=False, message=MSG_REDEEM_USED, failure=FailureKind.CONFLICT)

        now = self._clock()
        paid_until = self._extend(base_id, record.duration_ms, paid_at=now)
        record.used_at = now
        record.used_by = base_id
        self._persist()
        logger.info("Redeem code %s... used by %s", record.code_hash[:8], base_id)
        return RedeemResult(ok=True, paid_until=paid_until)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _missing_tenant_status(self) -> TenantStatus:
        return TenantStatus(
            base_id="",
            is_paid=False,
            free_remaining=0,
            allowed=False,
            message=MSG_MISSING_TENANT,
        )

    def _privileged_status(self, base_id: str) -> Optional[TenantStatus]:
        """Status for bypass, admin and paid tenants; ``None`` for trial tenants."""
        if self._allow_bypass:
            message, paid_until = MSG_BYPASS, UNLIMITED_PAID_UNTIL
        elif base_id in self._admins:
            message, paid_until = MSG_ADMIN, UNLIMITED_PAID_UNTIL
        elif base_id in self._paid_base_ids:
            message, paid_until = MSG_PAID, UNLIMITED_PAID_UNTIL
        else:
            until = self._paid_until.get(base_id, 0)
            if not until or until < self._clock():
                return None
            message, paid_until = MSG_PAID, until

        return TenantStatus(
            base_id=base_id,
            is_paid=True,
            free_remaining=self._trial_limit,
            allowed=True,
            message=message,
            paid_until=paid_until,
        )

    def _free_remaining(self, base_id: str) -> int:
        return max(0, self._trial_limit - self._trial_usage.get(base_id, 0))

    def _extend(self, base_id: str, duration_ms: int, paid_at: Optional[int]) -> int:
        now = self._clock()
        start = max(now, int(paid_at or now), self._paid_until.get(base_id, 0))
        paid_until = start + duration_ms
        self._paid_until[base_id] = paid_until
        return paid_until

    def _persist(self) -> None:
        if self._sink is None:
            return
        self._sink.persist(
            SnapshotUpdate(
                paid_until_by_base_id=dict(self._paid_until),
                admin_base_id_list=list(self._admins),
                redeem_codes=list(self._redeem_codes.values()),
            )
        )
