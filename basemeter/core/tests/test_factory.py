"""Tests for create_container wiring and the startup snapshot merge."""

import json

import pytest

from basemeter.adapters.snapshot import FilesystemSnapshotSink, NullSnapshotSink, serialize_snapshot
from basemeter.core.clock import days_to_ms
from basemeter.core.config import Environment, Settings
from basemeter.core.container import (
    create_container,
    initialize_container,
    reset_container,
)
from basemeter.core.exceptions import PermissionException
from basemeter.core.fakes.clock import FakeClock
from basemeter.domains.subscriptions.types import hash_code
from basemeter.schemas.snapshot import LedgerSnapshot
from basemeter.schemas.subscription import RedeemCodeRecord

TENANT = "base-1"


def _make_settings(**overrides) -> Settings:
    defaults = dict(_env_file=None, ENVIRONMENT=Environment.TEST, TRIAL_LIMIT=2)
    defaults.update(overrides)
    return Settings(**defaults)


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


class TestCreateContainer:
    def test_without_store_path_uses_null_sink(self):
        container = create_container(_make_settings(SUBSCRIPTION_STORE_PATH=None))

        assert isinstance(container.snapshot_sink, NullSnapshotSink)

    def test_with_store_path_uses_filesystem_sink(self, tmp_path):
        path = tmp_path / "store.json"

        container = create_container(_make_settings(SUBSCRIPTION_STORE_PATH=str(path)))

        assert isinstance(container.snapshot_sink, FilesystemSnapshotSink)
        assert container.snapshot_sink.path == path

    def test_settings_reach_components(self):
        container = create_container(
            _make_settings(
                TRIAL_LIMIT=1,
                PAID_BASE_IDS="vip-1, vip-2",
                DEFAULT_MODEL_UNIT_PRICE=0.2,
                DEFAULT_MODEL_UNIT_LABEL="clip",
                DEFAULT_TIERED_PRICES=[{"upToMinutes": 10, "unitPrice": 0.3}],
            )
        )

        assert container.subscriptions.consume(TENANT).free_remaining == 0
        assert container.subscriptions.consume(TENANT).allowed is False
        assert container.subscriptions.get_status("vip-2").is_paid is True
        pricing = container.billing.get_pricing(TENANT)
        assert pricing.model_unit_price == 0.2
        assert pricing.model_unit_label == "clip"
        assert [(t.up_to_minutes, t.unit_price) for t in pricing.tiered_prices] == [(10, 0.3)]

    def test_bypass_honoured_outside_production(self):
        container = create_container(_make_settings(TRIAL_LIMIT=0, SUBSCRIPTION_BYPASS=True))

        assert container.subscriptions.consume(TENANT).allowed is True

    def test_bypass_ignored_in_production(self):
        container = create_container(
            _make_settings(TRIAL_LIMIT=0, SUBSCRIPTION_BYPASS=True, ENVIRONMENT=Environment.PRD)
        )

        assert container.subscriptions.consume(TENANT).allowed is False

    def test_admin_token_required_in_production(self):
        container = create_container(_make_settings(ENVIRONMENT=Environment.PRD))

        with pytest.raises(PermissionException):
            container.admin.grant_admin(None, TENANT)

    def test_admin_token_checked(self):
        container = create_container(_make_settings(ADMIN_TOKEN="tok"))

        assert container.admin.grant_admin("tok", TENANT) is True
        with pytest.raises(PermissionException):
            container.admin.grant_admin("nope", TENANT)

    def test_seed_redeem_codes(self):
        clock = FakeClock()
        container = create_container(
            _make_settings(SEED_REDEEM_CODES=["SEED-1"], SEED_REDEEM_CODE_DAYS=7),
            clock=clock,
        )

        result = container.subscriptions.redeem(TENANT, "SEED-1")

        assert result.paid_until == clock.now_ms + days_to_ms(7)


# ---------------------------------------------------------------------------
# Startup merge with a stored snapshot
# ---------------------------------------------------------------------------


class TestStoredSnapshot:
    def _write(self, path, snapshot: LedgerSnapshot) -> None:
        path.write_text(serialize_snapshot(snapshot), encoding="utf-8")

    def test_used_seed_code_stays_used(self, tmp_path):
        path = tmp_path / "store.json"
        self._write(
            path,
            LedgerSnapshot(
                redeem_codes=[
                    RedeemCodeRecord(
                        code_hash=hash_code("SEED-1"), duration_ms=1, used_at=10, used_by="old"
                    )
                ]
            ),
        )

        container = create_container(
            _make_settings(SUBSCRIPTION_STORE_PATH=str(path), SEED_REDEEM_CODES=["SEED-1"])
        )

        assert container.subscriptions.redeem(TENANT, "SEED-1").ok is False

    def test_admins_are_merged(self, tmp_path):
        path = tmp_path / "store.json"
        self._write(path, LedgerSnapshot(admin_base_id_list=["stored-admin"]))

        container = create_container(
            _make_settings(SUBSCRIPTION_STORE_PATH=str(path), ADMIN_BASE_IDS="env-admin")
        )

        assert container.subscriptions.is_admin("stored-admin")
        assert container.subscriptions.is_admin("env-admin")

    def test_legacy_store_file_loads(self, tmp_path):
        clock = FakeClock()
        path = tmp_path / "store.json"
        path.write_text(
            json.dumps(
                {
                    "paidUntilByBaseId": {TENANT: str(clock.now_ms + 1000)},
                    "usageByBaseId": {TENANT: {"minutes": 4, "cost": 0.4}},
                }
            ),
            encoding="utf-8",
        )

        container = create_container(
            _make_settings(SUBSCRIPTION_STORE_PATH=str(path), TRIAL_LIMIT=0), clock=clock
        )

        assert container.subscriptions.get_status(TENANT).is_paid is True
        assert container.billing.get_usage(TENANT).count == 4

    @pytest.mark.asyncio
    async def test_bad_pricing_entry_keeps_other_state(self, tmp_path):
        clock = FakeClock()
        path = tmp_path / "store.json"
        paid_until = clock.now_ms + days_to_ms(30)
        path.write_text(
            json.dumps(
                {
                    "paidUntilByBaseId": {"payer": str(paid_until)},
                    "adminBaseIdList": ["boss"],
                    "pricingByBaseId": {
                        "payer": {"planPriceById": {"monthly": None}, "modelUnitPrice": 0.3}
                    },
                }
            ),
            encoding="utf-8",
        )
        settings = _make_settings(SUBSCRIPTION_STORE_PATH=str(path), TRIAL_LIMIT=0)

        container = create_container(settings, clock=clock)
        assert container.subscriptions.consume("payer").allowed is True
        assert container.subscriptions.is_admin("boss")
        assert container.billing.get_pricing("payer").model_unit_price == 0.3

        container.subscriptions.set_admin("other", True)
        await container.shutdown()

        stored = json.loads(path.read_text(encoding="utf-8"))
        assert stored["paidUntilByBaseId"] == {"payer": paid_until}
        assert stored["adminBaseIdList"] == ["boss", "other"]
        assert stored["pricingByBaseId"]["payer"]["planPriceById"] == {}

    @pytest.mark.asyncio
    async def test_state_survives_restart(self, tmp_path):
        clock = FakeClock()
        path = tmp_path / "store.json"
        settings = _make_settings(
            SUBSCRIPTION_STORE_PATH=str(path),
            TRIAL_LIMIT=0,
            DEFAULT_MODEL_UNIT_PRICE=0.1,
        )

        first = create_container(settings, clock=clock)
        paid_until = first.subscriptions.activate_plan(TENANT, days_to_ms(30))
        first.charge_bridge.register("task-1", TENANT, expected_duration_ms=120_000)
        first.charge_bridge.charge_once("task-1")
        first.billing.set_pricing("other", {"modelUnitPrice": 0.5})
        await first.shutdown()

        second = create_container(settings, clock=clock)

        assert second.subscriptions.get_paid_until(TENANT) == paid_until
        assert second.billing.get_usage(TENANT).count == 2
        assert second.billing.get_usage(TENANT).cost == pytest.approx(0.2)
        assert second.billing.get_pricing("other").model_unit_price == 0.5
        await second.shutdown()


# ---------------------------------------------------------------------------
# Global container
# ---------------------------------------------------------------------------


class TestGlobalContainer:
    def test_initialize_once(self):
        reset_container()
        try:
            built = initialize_container(_make_settings())
            from basemeter.core import container as container_module

            assert container_module.container is built
            with pytest.raises(RuntimeError):
                initialize_container(_make_settings())
        finally:
            reset_container()
