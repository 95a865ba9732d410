"""Tests for the PricingProfile resolver."""

import math
from dataclasses import dataclass, field
from typing import Any, List, Tuple

import pytest

from basemeter.domains.pricing.resolver import (
    build_default_pricing,
    coerce_unit_price,
    normalize_pricing,
    normalize_tiered_prices,
)
from basemeter.schemas.pricing import PricingProfile, PricingTier

INF = math.inf


def _make_default(**overrides: Any) -> PricingProfile:
    defaults = dict(
        model_unit_price=0.1,
        model_unit_label="minute",
        tiered_prices=[],
    )
    defaults.update(overrides)
    return PricingProfile(**defaults)


def _pairs(tiers: List[PricingTier]) -> List[Tuple[float, float]]:
    return [(t.up_to_minutes, t.unit_price) for t in tiers]


# ---------------------------------------------------------------------------
# normalize_tiered_prices
# ---------------------------------------------------------------------------


@dataclass
class TierCase:
    label: str
    raw: Any
    expected: List[Tuple[float, float]] = field(default_factory=list)


TIER_CASES = [
    TierCase("not_a_list", raw={"upToMinutes": 5}, expected=[]),
    TierCase("none", raw=None, expected=[]),
    TierCase(
        "minutes_boundary",
        raw=[{"upToMinutes": 5, "unitPrice": 0.2}],
        expected=[(5, 0.2)],
    ),
    TierCase(
        "hours_boundary",
        raw=[{"upToHours": 2, "unitPrice": 0.2}],
        expected=[(120, 0.2)],
    ),
    TierCase(
        "generic_boundary",
        raw=[{"upTo": 30, "unitPrice": 0.2}],
        expected=[(30, 0.2)],
    ),
    TierCase(
        "missing_boundary_is_unbounded",
        raw=[{"unitPrice": 0.05}],
        expected=[(INF, 0.05)],
    ),
    TierCase(
        "null_boundary_is_unbounded",
        raw=[{"upToMinutes": None, "unitPrice": 0.05}],
        expected=[(INF, 0.05)],
    ),
    TierCase(
        "per_minute_price",
        raw=[{"upToMinutes": 5, "unitPricePerMinute": 0.3}],
        expected=[(5, 0.3)],
    ),
    TierCase(
        "per_hour_price",
        raw=[{"upToMinutes": 5, "unitPricePerHour": 6}],
        expected=[(5, 0.1)],
    ),
    TierCase(
        "missing_price_uses_fallback",
        raw=[{"upToMinutes": 5}],
        expected=[(5, 0.1)],
    ),
    TierCase(
        "numeric_strings",
        raw=[{"upToMinutes": "10", "unitPrice": "0.25"}],
        expected=[(10, 0.25)],
    ),
    TierCase(
        "junk_entries_dropped",
        raw=[None, 3, "x", {"upToMinutes": 5, "unitPrice": -1}, {"upToMinutes": 5, "unitPrice": 0.2}],
        expected=[(5, 0.2)],
    ),
    TierCase(
        "sorted_with_unbounded_last",
        raw=[
            {"unitPrice": 0.05},
            {"upToMinutes": 5, "unitPrice": 0.1},
            {"upToMinutes": 2, "unitPrice": 0.2},
        ],
        expected=[(2, 0.2), (5, 0.1), (INF, 0.05)],
    ),
    TierCase(
        "snake_case_keys",
        raw=[{"up_to_minutes": 3, "unit_price": 0.4}],
        expected=[(3, 0.4)],
    ),
]


class TestNormalizeTieredPrices:
    @pytest.mark.parametrize("case", TIER_CASES, ids=lambda c: c.label)
    def test_cases(self, case: TierCase):
        assert _pairs(normalize_tiered_prices(case.raw, 0.1)) == case.expected

    def test_accepts_tier_models(self):
        tiers = [PricingTier(unit_price=0.05), PricingTier(up_to_minutes=2, unit_price=0.2)]

        assert _pairs(normalize_tiered_prices(tiers, 0.1)) == [(2, 0.2), (INF, 0.05)]


# ---------------------------------------------------------------------------
# normalize_pricing
# ---------------------------------------------------------------------------


class TestNormalizePricing:
    def test_empty_override_yields_default(self):
        default = _make_default(tiered_prices=[PricingTier(up_to_minutes=5, unit_price=0.2)])

        assert normalize_pricing({}, default) == default
        assert normalize_pricing(None, default) == default

    def test_override_fields_win(self):
        default = _make_default()

        profile = normalize_pricing(
            {
                "planPriceById": {"monthly": 5},
                "modelUnitPrice": 0.3,
                "modelUnitLabel": "min",
                "tieredPrices": [{"upToMinutes": 10, "unitPrice": 0.25}],
            },
            default,
        )

        assert profile.plan_price_by_id == {"monthly": 5}
        assert profile.model_unit_price == 0.3
        assert profile.model_unit_label == "min"
        assert _pairs(profile.tiered_prices) == [(10, 0.25)]

    @pytest.mark.parametrize("bad_price", [None, "abc", INF, -1, True])
    def test_invalid_unit_price_falls_back(self, bad_price):
        profile = normalize_pricing({"modelUnitPrice": bad_price}, _make_default())

        assert profile.model_unit_price == 0.1

    def test_tier_fallback_uses_override_unit_price(self):
        profile = normalize_pricing(
            {"modelUnitPrice": 0.4, "tieredPrices": [{"upToMinutes": 5}]},
            _make_default(),
        )

        assert _pairs(profile.tiered_prices) == [(5, 0.4)]

    def test_explicit_empty_tier_list_means_flat_rate(self):
        default = _make_default(tiered_prices=[PricingTier(up_to_minutes=5, unit_price=0.2)])

        profile = normalize_pricing({"tieredPrices": []}, default)

        assert profile.tiered_prices == []

    def test_missing_tiers_inherit_default(self):
        default = _make_default(tiered_prices=[PricingTier(up_to_minutes=5, unit_price=0.2)])

        profile = normalize_pricing({"modelUnitPrice": 0.3}, default)

        assert _pairs(profile.tiered_prices) == [(5, 0.2)]

    def test_invalid_plan_prices_dropped(self):
        profile = normalize_pricing(
            {"planPriceById": {"monthly": 8.8, "quarterly": "bad", "": 1, "halfyear": -2}},
            _make_default(),
        )

        assert profile.plan_price_by_id == {"monthly": 8.8}

    def test_accepts_profile_model(self):
        default = _make_default()
        override = _make_default(model_unit_price=0.5, model_unit_label="clip")

        assert normalize_pricing(override, default) == override


# ---------------------------------------------------------------------------
# build_default_pricing / coerce_unit_price
# ---------------------------------------------------------------------------


class TestBuildDefaultPricing:
    def test_builds_normalized_profile(self):
        profile = build_default_pricing(
            6.5 / 60,
            "minute",
            [{"unitPrice": 0.05}, {"upToMinutes": 60, "unitPrice": 0.1}],
        )

        assert profile.model_unit_price == pytest.approx(6.5 / 60)
        assert profile.plan_price_by_id == {}
        assert _pairs(profile.tiered_prices) == [(60, 0.1), (INF, 0.05)]

    def test_rejects_invalid_price(self):
        with pytest.raises(ValueError):
            build_default_pricing(float("nan"), "minute")


class TestCoerceUnitPrice:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (0, 0.0),
            (1, 1.0),
            ("0.5", 0.5),
            (-0.1, None),
            (float("nan"), None),
            ("", None),
            (None, None),
            (10**400, None),
            ("1e400", None),
        ],
    )
    def test_values(self, value, expected):
        assert coerce_unit_price(value) == expected
