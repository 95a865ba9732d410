"""Subscription schemas."""

from typing import Optional

from basemeter.core.shared_models import FailureKind
from basemeter.schemas.base import CamelModel


class TenantStatus(CamelModel):
    """Admission decision for one tenant."""

    base_id: str
    is_paid: bool
    free_remaining: int
    allowed: bool
    message: str
    paid_until: Optional[int] = None


class RedeemResult(CamelModel):
    """Outcome of a redeem attempt."""

    ok: bool
    paid_until: Optional[int] = None
    message: Optional[str] = None
    failure: Optional[FailureKind] = None


class RedeemCodeRecord(CamelModel):
    """Stored redeem code. Only the SHA-256 digest of the code is kept."""

    code_hash: str
    duration_ms: int
    used_at: int = 0
    used_by: str = ""

    @property
    def is_used(self) -> bool:
        """A code stays redeemable only while both markers are unset."""
        return bool(self.used_at) or bool(self.used_by)
