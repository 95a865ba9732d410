"""Subscriptions domain: trial admission, paid periods, admins and redeem codes."""

from basemeter.domains.subscriptions.ledger import SubscriptionLedger
from basemeter.domains.subscriptions.protocols import SubscriptionLedgerProtocol
from basemeter.domains.subscriptions.types import (
    UNLIMITED_PAID_UNTIL,
    build_seed_redeem_codes,
    hash_code,
    merge_redeem_codes,
    normalize_code,
)

__all__ = [
    "SubscriptionLedger",
    "SubscriptionLedgerProtocol",
    "UNLIMITED_PAID_UNTIL",
    "build_seed_redeem_codes",
    "hash_code",
    "merge_redeem_codes",
    "normalize_code",
]
