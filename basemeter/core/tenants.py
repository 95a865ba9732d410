"""Tenant identity helpers.

A tenant is identified by the opaque ``baseId`` of the workspace that calls us.
Every ledger lookup goes through ``normalize_tenant_id`` so that ``" abc "``
and ``"abc"`` land on the same entry, and so that missing input becomes the
empty string instead of a bogus key.
"""

from typing import Any, List


def normalize_tenant_id(value: Any) -> str:
    """Return the canonical tenant key, or ``""`` when there is no tenant."""
    if not isinstance(value, str):
        return ""
    return value.strip()


def parse_tenant_list(value: str = "") -> List[str]:
    """Split a comma-separated tenant list, dropping blanks and duplicates."""
    seen: List[str] = []
    for item in (value or "").split(","):
        tenant = item.strip()
        if tenant and tenant not in seen:
            seen.append(tenant)
    return seen
