"""Container Factory.

All construction logic lives here. The factory reads settings, loads the
stored snapshot and builds every component with it.

Design principles:
- Single place for all wiring decisions
- Fail fast: broken configuration crashes at startup
- Testable: can unit test factory logic with explicit settings
"""

from basemeter.adapters.snapshot import FilesystemSnapshotSink, NullSnapshotSink, load_snapshot
from basemeter.core.clock import Clock, now_ms
from basemeter.core.config import Environment, Settings
from basemeter.core.container.container import Container
from basemeter.core.logging import configure_logging, logger
from basemeter.core.protocols import SnapshotSink
from basemeter.domains.admin.service import AdminService
from basemeter.domains.billing.ledger import BillingLedger
from basemeter.domains.billing.orders import OrderBook
from basemeter.domains.pricing.resolver import build_default_pricing
from basemeter.domains.subscriptions.ledger import SubscriptionLedger
from basemeter.domains.subscriptions.types import build_seed_redeem_codes, merge_redeem_codes
from basemeter.domains.usage.charge_bridge import UsageChargeBridge
from basemeter.schemas.snapshot import LedgerSnapshot


def create_container(settings: Settings, clock: Clock = now_ms) -> Container:
    """Build the container from settings and the stored snapshot.

    Args:
        settings: Application settings (from core/config)
        clock: Epoch-ms time source shared by every component

    Returns:
        Fully constructed Container ready for use
    """
    configure_logging(settings.LOG_LEVEL, json_output=settings.ENVIRONMENT != Environment.LOCAL)

    default_pricing = build_default_pricing(
        settings.DEFAULT_MODEL_UNIT_PRICE,
        settings.DEFAULT_MODEL_UNIT_LABEL,
        settings.DEFAULT_TIERED_PRICES,
    )

    # -----------------------------------------------------------------
    # Persistence
    # The snapshot is read once; from then on the ledgers are
    # authoritative and the sink only writes.
    # -----------------------------------------------------------------
    snapshot = load_snapshot(settings.SUBSCRIPTION_STORE_PATH, default_pricing=default_pricing)
    sink = _create_snapshot_sink(settings, snapshot)

    # -----------------------------------------------------------------
    # Ledgers
    # -----------------------------------------------------------------
    subscriptions = _create_subscription_ledger(settings, snapshot, sink, clock)
    billing = BillingLedger(
        default_pricing=default_pricing,
        pricing_by_base_id=snapshot.pricing_by_base_id,
        usage_by_base_id=snapshot.usage_by_base_id,
        daily_usage_by_base_id=snapshot.daily_usage_by_base_id,
        sink=sink,
        clock=clock,
    )

    # -----------------------------------------------------------------
    # Services on top of the ledgers
    # -----------------------------------------------------------------
    charge_bridge = UsageChargeBridge(
        billing,
        pending_ttl_ms=int(settings.PENDING_TASK_TTL_SECONDS * 1000),
        clock=clock,
    )
    orders = OrderBook(
        subscriptions,
        billing,
        payment_url_template=settings.BILLING_PAYMENT_URL,
        clock=clock,
    )
    admin = AdminService(
        subscriptions,
        billing,
        admin_token=settings.ADMIN_TOKEN,
        allow_without_token=settings.ENVIRONMENT != Environment.PRD,
    )

    return Container(
        snapshot_sink=sink,
        subscriptions=subscriptions,
        billing=billing,
        charge_bridge=charge_bridge,
        orders=orders,
        admin=admin,
    )


def _create_snapshot_sink(settings: Settings, snapshot: LedgerSnapshot) -> SnapshotSink:
    """Filesystem sink when a store path is configured, otherwise in-memory only."""
    if settings.SUBSCRIPTION_STORE_PATH:
        logger.info(f"Persisting ledger snapshot to {settings.SUBSCRIPTION_STORE_PATH}")
        return FilesystemSnapshotSink(settings.SUBSCRIPTION_STORE_PATH, initial=snapshot)

    logger.warning("SUBSCRIPTION_STORE_PATH not set, ledger state will not survive restarts")
    return NullSnapshotSink(initial=snapshot)


def _create_subscription_ledger(
    settings: Settings,
    snapshot: LedgerSnapshot,
    sink: SnapshotSink,
    clock: Clock,
) -> SubscriptionLedger:
    """Merge configured seeds with stored state and build the ledger."""
    if settings.allow_bypass:
        logger.warning("SUBSCRIPTION_BYPASS is on, every tenant is admitted")

    admin_base_ids = list(dict.fromkeys([*settings.admin_base_ids, *snapshot.admin_base_id_list]))
    redeem_codes = merge_redeem_codes(
        snapshot.redeem_codes,
        build_seed_redeem_codes(settings.SEED_REDEEM_CODES, settings.seed_redeem_code_duration_ms),
    )
    logger.info(
        f"Subscription ledger: trial_limit={settings.TRIAL_LIMIT}, "
        f"admins={len(admin_base_ids)}, redeem_codes={len(redeem_codes)}, "
        f"paid_periods={len(snapshot.paid_until_by_base_id)}"
    )

    return SubscriptionLedger(
        trial_limit=settings.TRIAL_LIMIT,
        paid_base_ids=settings.paid_base_ids,
        admin_base_ids=admin_base_ids,
        allow_bypass=settings.allow_bypass,
        paid_until_by_base_id=snapshot.paid_until_by_base_id,
        redeem_codes=redeem_codes,
        sink=sink,
        clock=clock,
    )
