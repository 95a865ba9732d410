"""Filesystem snapshot sink.

Implements the SnapshotSink protocol on top of a single JSON file. Ledgers
call ``persist()`` synchronously; the sink merges the update into its cache,
renders the payload right away and queues it. One background writer task
drains the queue, so writes land in call order and never interleave.

Uses aiofiles for non-blocking file I/O. Each write goes to a sibling temp
file that is then renamed over the target.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar, Union

import aiofiles
import aiofiles.os
from pydantic import TypeAdapter, ValidationError

from basemeter.core.exceptions import StorageException, StorageNotFoundError
from basemeter.core.logging import ContextualLogger
from basemeter.core.protocols.snapshot import SnapshotSink
from basemeter.domains.pricing.resolver import normalize_pricing
from basemeter.schemas.pricing import PricingProfile
from basemeter.schemas.snapshot import LedgerSnapshot, SnapshotUpdate, merge_snapshot
from basemeter.schemas.subscription import RedeemCodeRecord
from basemeter.schemas.usage import DailyUsageRecord, UsageTotal

logger = ContextualLogger(logging.getLogger(__name__))


def serialize_snapshot(snapshot: LedgerSnapshot) -> str:
    """Render the snapshot exactly as it is stored on disk."""
    return json.dumps(
        snapshot.model_dump(mode="json", by_alias=True),
        indent=2,
        ensure_ascii=False,
    )


def parse_snapshot(
    data: Any,
    default_pricing: Optional[PricingProfile] = None,
) -> LedgerSnapshot:
    """Build a snapshot from a decoded store document, one entry at a time.

    Every top-level key is optional and read on its own. An entry that does
    not validate is dropped with a warning; its neighbours are kept. Pricing
    entries that do not validate as stored are resolved over
    ``default_pricing`` when one is given.

    Raises:
        StorageException: If ``data`` is not a JSON object
    """
    if not isinstance(data, Mapping):
        raise StorageException(f"Snapshot must be a JSON object, got {type(data).__name__}")

    def pricing_entry(value: Any) -> PricingProfile:
        try:
            return PricingProfile.model_validate(value)
        except ValidationError:
            if default_pricing is None or not isinstance(value, Mapping):
                raise
            return normalize_pricing(value, default_pricing)

    return LedgerSnapshot(
        paid_until_by_base_id=_parse_entries(data, "paidUntilByBaseId", _PAID_UNTIL.validate_python),
        admin_base_id_list=_parse_admins(data.get("adminBaseIdList")),
        redeem_codes=_parse_redeem_codes(data.get("redeemCodes")),
        pricing_by_base_id=_parse_entries(data, "pricingByBaseId", pricing_entry),
        usage_by_base_id=_parse_entries(data, "usageByBaseId", UsageTotal.model_validate),
        daily_usage_by_base_id=_parse_entries(data, "dailyUsageByBaseId", _parse_daily),
    )


def read_snapshot(
    path: Union[str, Path],
    default_pricing: Optional[PricingProfile] = None,
) -> LedgerSnapshot:
    """Read a snapshot file, keeping every entry that validates.

    Raises:
        StorageNotFoundError: If the file does not exist
        StorageException: If the file is not a JSON object
    """
    full_path = Path(path)
    if not full_path.exists():
        raise StorageNotFoundError(f"Path not found: {path}")

    try:
        content = full_path.read_text(encoding="utf-8")
        data = json.loads(content or "{}")
    except json.JSONDecodeError as e:
        raise StorageException(f"Invalid snapshot at {path}: {e}")
    except OSError as e:
        raise StorageException(f"Failed to read snapshot from {path}: {e}")
    return parse_snapshot(data, default_pricing)


def load_snapshot(
    path: Optional[Union[str, Path]],
    default_pricing: Optional[PricingProfile] = None,
) -> LedgerSnapshot:
    """Startup read. A missing or unreadable file yields an empty snapshot."""
    if not path:
        return LedgerSnapshot()
    try:
        return read_snapshot(path, default_pricing)
    except StorageNotFoundError:
        logger.info(f"No snapshot at {path}, starting with empty ledgers")
        return LedgerSnapshot()
    except StorageException as e:
        logger.warning(f"Ignoring unreadable snapshot: {e.message}")
        return LedgerSnapshot()


# ---------------------------------------------------------------------------
# Per-key parsing
# ---------------------------------------------------------------------------

_PAID_UNTIL = TypeAdapter(int)

T = TypeVar("T")


def _parse_entries(data: Mapping[str, Any], key: str, parse: Callable[[Any], T]) -> Dict[str, T]:
    """Parse a ``tenant -> value`` map, dropping the entries that fail."""
    raw = data.get(key)
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        logger.warning(f"Ignoring {key}: expected an object, got {type(raw).__name__}")
        return {}

    entries: Dict[str, T] = {}
    for tenant, value in raw.items():
        try:
            entries[tenant] = parse(value)
        except ValueError as e:
            logger.warning(f"Dropping {key} entry for {tenant!r}: {_describe(e)}")
    return entries


def _describe(error: ValueError) -> str:
    if isinstance(error, ValidationError):
        return f"{error.error_count()} invalid field(s)"
    return str(error)


def _parse_admins(raw: Any) -> List[str]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        logger.warning(f"Ignoring adminBaseIdList: expected a list, got {type(raw).__name__}")
        return []
    return [item for item in raw if isinstance(item, str) and item.strip()]


def _parse_redeem_codes(raw: Any) -> List[RedeemCodeRecord]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        logger.warning(f"Ignoring redeemCodes: expected a list, got {type(raw).__name__}")
        return []

    records: List[RedeemCodeRecord] = []
    for index, item in enumerate(raw):
        try:
            records.append(RedeemCodeRecord.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Dropping redeemCodes[{index}]: {_describe(e)}")
    return records


def _parse_daily(raw: Any) -> Dict[str, DailyUsageRecord]:
    """One tenant's ``date -> record`` map; bad days are dropped, not the tenant."""
    if not isinstance(raw, Mapping):
        raise ValueError(f"expected an object, got {type(raw).__name__}")
    days: Dict[str, DailyUsageRecord] = {}
    for day, record in raw.items():
        try:
            days[day] = DailyUsageRecord.model_validate(record)
        except ValidationError:
            logger.warning(f"Dropping daily usage record for {day!r}")
    return days


class FilesystemSnapshotSink(SnapshotSink):
    """Single-file snapshot sink with a serial background writer."""

    def __init__(
        self,
        path: Union[str, Path],
        initial: Optional[LedgerSnapshot] = None,
    ) -> None:
        """Initialize the sink.

        Args:
            path: Snapshot file location
            initial: State loaded at startup; later updates merge onto it
        """
        self.path = Path(path)
        self._log = logger.with_prefix(f"[snapshot {self.path.name}] ")
        self._snapshot = initial or LedgerSnapshot()
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._writer_task: Optional[asyncio.Task] = None
        self._closed = False
        self.write_count = 0
        self.failure_count = 0

    @property
    def snapshot(self) -> LedgerSnapshot:
        """The merged state the sink will write next."""
        return self._snapshot

    def persist(self, update: SnapshotUpdate) -> None:
        """Merge ``update`` into the cache and queue the rendered payload."""
        if self._closed:
            self._log.warning("Sink is closed, dropping update")
            return

        self._snapshot = merge_snapshot(self._snapshot, update)
        self._queue.put_nowait(serialize_snapshot(self._snapshot))
        self._ensure_writer_task()

    async def flush(self) -> None:
        """Wait until every queued payload has been written (or has failed)."""
        if self._closed:
            return
        self._ensure_writer_task()
        await self._queue.join()

    async def close(self) -> None:
        """Flush pending writes, then stop the writer task."""
        await self.flush()
        self._closed = True
        if self._writer_task is not None:
            self._writer_task.cancel()
            try:
                await self._writer_task
            except asyncio.CancelledError:
                pass
            self._writer_task = None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _ensure_writer_task(self) -> None:
        """Lazily start the writer on the running loop."""
        if self._writer_task is not None and not self._writer_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Payloads stay queued; the next persist()/flush() on a loop picks them up.
            self._log.debug("No running event loop, deferring write")
            return
        self._writer_task = loop.create_task(self._run_writer())

    async def _run_writer(self) -> None:
        """Write queued payloads one at a time, in order."""
        while True:
            payload = await self._queue.get()
            try:
                await self._write(payload)
                self.write_count += 1
            except StorageException as e:
                self.failure_count += 1
                self._log.error(f"Write failed: {e.message}")
            except Exception:
                self.failure_count += 1
                self._log.error(f"Unexpected error writing {self.path}", exc_info=True)
            finally:
                self._queue.task_done()

    async def _write(self, payload: str) -> None:
        """Write ``payload`` to a temp file and rename it over the snapshot."""
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        try:
            parent = self.path.parent
            if not parent.exists():
                await asyncio.to_thread(parent.mkdir, parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(payload)
            await aiofiles.os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageException(f"Failed to write snapshot to {self.path}: {e}")
