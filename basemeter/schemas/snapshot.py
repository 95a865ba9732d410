"""Persisted ledger snapshot.

The whole durable state of both ledgers is one JSON document. Key names follow
the store files written by earlier deployments (``paidUntilByBaseId`` etc.), so
those files load unchanged. Every key is optional on read.
"""

import copy
from typing import Dict, List, Optional

from pydantic import Field

from basemeter.schemas.base import CamelModel
from basemeter.schemas.pricing import PricingProfile
from basemeter.schemas.subscription import RedeemCodeRecord
from basemeter.schemas.usage import DailyUsageRecord, UsageTotal

SNAPSHOT_FIELDS = (
    "paid_until_by_base_id",
    "admin_base_id_list",
    "redeem_codes",
    "pricing_by_base_id",
    "usage_by_base_id",
    "daily_usage_by_base_id",
)


class LedgerSnapshot(CamelModel):
    """Full durable state."""

    paid_until_by_base_id: Dict[str, int] = Field(default_factory=dict)
    admin_base_id_list: List[str] = Field(default_factory=list)
    redeem_codes: List[RedeemCodeRecord] = Field(default_factory=list)
    pricing_by_base_id: Dict[str, PricingProfile] = Field(default_factory=dict)
    usage_by_base_id: Dict[str, UsageTotal] = Field(default_factory=dict)
    daily_usage_by_base_id: Dict[str, Dict[str, DailyUsageRecord]] = Field(default_factory=dict)


class SnapshotUpdate(CamelModel):
    """Partial snapshot. Fields left as ``None`` keep their stored value."""

    paid_until_by_base_id: Optional[Dict[str, int]] = None
    admin_base_id_list: Optional[List[str]] = None
    redeem_codes: Optional[List[RedeemCodeRecord]] = None
    pricing_by_base_id: Optional[Dict[str, PricingProfile]] = None
    usage_by_base_id: Optional[Dict[str, UsageTotal]] = None
    daily_usage_by_base_id: Optional[Dict[str, Dict[str, DailyUsageRecord]]] = None


def merge_snapshot(current: LedgerSnapshot, update: SnapshotUpdate) -> LedgerSnapshot:
    """Apply ``update`` onto ``current`` field by field.

    Each provided field replaces the stored one wholesale; values are deep
    copied so later in-memory mutation of a ledger cannot leak into the cache.
    """
    changes = {
        name: getattr(update, name)
        for name in SNAPSHOT_FIELDS
        if getattr(update, name) is not None
    }
    if not changes:
        return current
    return current.model_copy(update=copy.deepcopy(changes))
