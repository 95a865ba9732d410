"""Subscription domain types and shared pure functions."""

import hashlib
import math
from typing import Iterable, List, Optional

from basemeter.schemas.subscription import RedeemCodeRecord

# Largest integer a JSON consumer can represent exactly; "paid forever".
UNLIMITED_PAID_UNTIL = 2**53 - 1

MSG_MISSING_TENANT = "missing baseId"
MSG_BYPASS = "bypass enabled"
MSG_ADMIN = "admin account"
MSG_PAID = "plan active"
MSG_TRIAL_EXHAUSTED = "trial exhausted"

MSG_REDEEM_MISSING_INPUT = "missing baseId or code"
MSG_REDEEM_INVALID = "invalid code"
MSG_REDEEM_USED = "code already used"


def trial_message(remaining: int) -> str:
    """Status message for a tenant still on the trial."""
    if remaining > 0:
        return f"{remaining} free uses remaining"
    return MSG_TRIAL_EXHAUSTED


def normalize_code(code: object) -> str:
    """Canonical plaintext of a redeem code, ``""`` when there is none."""
    return code.strip() if isinstance(code, str) else ""


def hash_code(code: str) -> str:
    """SHA-256 hex digest of a redeem code. The plaintext is never stored."""
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def positive_ms(value: object) -> Optional[int]:
    """``value`` as a positive millisecond count, or ``None``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        if not math.isfinite(value) or value <= 0:
            return None
    except OverflowError:
        return None
    return math.ceil(value)


def build_seed_redeem_codes(codes: Iterable[str], duration_ms: int) -> List[RedeemCodeRecord]:
    """Hash plaintext seed codes into fresh, unused records."""
    records: List[RedeemCodeRecord] = []
    for code in codes:
        plain = normalize_code(code)
        if plain:
            records.append(RedeemCodeRecord(code_hash=hash_code(plain), duration_ms=duration_ms))
    return records


def merge_redeem_codes(
    stored: Iterable[RedeemCodeRecord],
    seeded: Iterable[RedeemCodeRecord],
) -> List[RedeemCodeRecord]:
    """Union two code lists by hash.

    A stored record wins over a seeded one with the same hash, so a seed code
    that was already redeemed stays used across restarts.
    """
    merged = {}
    for record in stored:
        if record.code_hash and record.code_hash not in merged:
            merged[record.code_hash] = record
    for record in seeded:
        if record.code_hash and record.code_hash not in merged:
            merged[record.code_hash] = record
    return list(merged.values())
