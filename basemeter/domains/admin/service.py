"""Admin service.

Operator actions on the ledgers (granting admin, setting tenant pricing,
minting redeem codes) are gated by a shared admin token. The check is the
only thing here that raises; the ledger calls behind it report bad input
through their return values as usual.
"""

import hmac
import logging
from typing import Any, Optional

from basemeter.core.clock import days_to_ms
from basemeter.core.exceptions import PermissionException
from basemeter.domains.billing.protocols import BillingLedgerProtocol
from basemeter.domains.subscriptions.protocols import SubscriptionLedgerProtocol

logger = logging.getLogger(__name__)

DEFAULT_REDEEM_CODE_DAYS = 30


class AdminService:
    """Token-checked facade over the admin operations of both ledgers."""

    def __init__(
        self,
        subscriptions: SubscriptionLedgerProtocol,
        billing: BillingLedgerProtocol,
        admin_token: Optional[str] = None,
        allow_without_token: bool = False,
    ) -> None:
        """Initialize the service.

        Args:
            subscriptions: Subscription ledger
            billing: Billing ledger
            admin_token: Shared secret callers must present
            allow_without_token: Let every caller through when no token is
                configured; never set in production
        """
        self._subscriptions = subscriptions
        self._billing = billing
        self._admin_token = admin_token or ""
        self._allow_without_token = allow_without_token

    def authorize(self, token: Optional[str]) -> None:
        """Raise ``PermissionException`` unless ``token`` matches the admin token."""
        if not self._admin_token:
            if self._allow_without_token:
                return
            logger.warning("Admin call refused: no admin token configured")
            raise PermissionException("Admin operations are disabled")

        if not isinstance(token, str) or not hmac.compare_digest(
            token.encode("utf-8"), self._admin_token.encode("utf-8")
        ):
            logger.warning("Admin call refused: invalid admin token")
            raise PermissionException("Invalid admin token")

    def grant_admin(self, token: Optional[str], tenant: object) -> bool:
        self.authorize(token)
        return self._subscriptions.set_admin(tenant, True)

    def revoke_admin(self, token: Optional[str], tenant: object) -> bool:
        self.authorize(token)
        return self._subscriptions.set_admin(tenant, False)

    def set_pricing(self, token: Optional[str], tenant: object, profile: Any) -> bool:
        """Store a pricing override. See ``BillingLedger.set_pricing``."""
        self.authorize(token)
        return self._billing.set_pricing(tenant, profile)

    def add_redeem_code(
        self,
        token: Optional[str],
        code: object,
        duration_days: Any = DEFAULT_REDEEM_CODE_DAYS,
    ) -> bool:
        """Mint a redeem code worth ``duration_days`` whole days.

        ``duration_days`` may be an int or a numeric string; ``None`` means the
        default of 30 days. Anything else, or a non-positive count, fails.
        """
        self.authorize(token)
        days = _parse_days(duration_days)
        if days is None:
            return False
        return self._subscriptions.add_redeem_code(code, days_to_ms(days))


def _parse_days(value: Any) -> Optional[int]:
    if value is None or value == "":
        return DEFAULT_REDEEM_CODE_DAYS
    if isinstance(value, bool):
        return None
    try:
        days = int(value)
    except (TypeError, ValueError):
        return None
    return days if days > 0 else None
