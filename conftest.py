"""Root conftest for pytest configuration and shared fixtures.

Loaded before the colocated domain tests under basemeter/, so its fixtures
are available everywhere.
"""

import os

import pytest

# Register pytest-asyncio plugin at the root level
pytest_plugins = ("pytest_asyncio",)

# ---------------------------------------------------------------------------
# Environment variables, set before any basemeter module import.
# Uses setdefault so real env vars (CI) are never overridden.
# ---------------------------------------------------------------------------
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")


# ---------------------------------------------------------------------------
# Shared fake fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_clock():
    """Manually advanced clock pinned to 2024-03-01T12:00:00Z."""
    from basemeter.core.fakes.clock import FakeClock

    return FakeClock()


@pytest.fixture
def fake_snapshot_sink():
    """Snapshot sink that records every update."""
    from basemeter.adapters.snapshot.fake import FakeSnapshotSink

    return FakeSnapshotSink()


@pytest.fixture
def fake_billing_ledger():
    """Billing ledger that records every charge."""
    from basemeter.domains.billing.fakes.ledger import FakeBillingLedger

    return FakeBillingLedger()


@pytest.fixture(autouse=True)
def _reset_global_container():
    """Keep the global container from leaking between tests."""
    from basemeter.core.container import reset_container

    reset_container()
    yield
    reset_container()
