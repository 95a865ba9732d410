"""Pricing schemas."""

import math
from typing import Dict, List, Optional

from pydantic import ConfigDict, Field, field_serializer, field_validator

from basemeter.schemas.base import CamelModel


class PricingTier(CamelModel):
    """One band of a tiered schedule: ``unit_price`` applies up to ``up_to_minutes``.

    The terminal band has an infinite boundary, written to JSON as ``null``.
    """

    up_to_minutes: float = math.inf
    unit_price: float = Field(..., ge=0)

    @field_validator("up_to_minutes", mode="before")
    @classmethod
    def _none_is_unbounded(cls, value):
        return math.inf if value is None else value

    @field_serializer("up_to_minutes", when_used="json")
    def _unbounded_is_null(self, value: float) -> Optional[float]:
        return None if math.isinf(value) else value


class PricingProfile(CamelModel):
    """Canonical per-tenant price schedule."""

    model_config = ConfigDict(protected_namespaces=())

    plan_price_by_id: Dict[str, float] = Field(default_factory=dict)
    model_unit_price: float = Field(..., ge=0)
    model_unit_label: str
    tiered_prices: List[PricingTier] = Field(default_factory=list)
