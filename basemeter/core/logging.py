"""Logging for basemeter.

Thin layer over the standard library: a ``ContextualLogger`` adapter that
carries identity dimensions (tenant, task, component) on every record, and a
formatter that renders them either as ``key=value`` pairs (local) or as one
JSON object per line (deployed environments).

Usage:
    from basemeter.core.logging import logger

    log = logger.with_context(component="billing", base_id=tenant)
    log.info("Recorded 3 minutes")
"""

import json
import logging
import sys
from typing import Any, Dict, MutableMapping, Optional, Tuple

_ROOT_LOGGER_NAME = "basemeter"


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that attaches a fixed set of dimensions to each record.

    Adapters are immutable: ``with_context`` and ``with_prefix`` return new
    adapters sharing the same underlying logger.
    """

    def __init__(
        self,
        logger: logging.Logger,
        dimensions: Optional[Dict[str, Any]] = None,
        prefix: str = "",
    ) -> None:
        """Wrap ``logger`` with the given dimensions and message prefix."""
        super().__init__(logger, {})
        self.dimensions: Dict[str, Any] = dict(dimensions or {})
        self.prefix = prefix

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        """Inject dimensions into ``extra`` and apply the prefix."""
        extra = dict(kwargs.get("extra") or {})
        dims = {**self.dimensions, **extra.pop("dimensions", {})}
        extra["dimensions"] = dims
        kwargs["extra"] = extra
        if self.prefix:
            msg = f"{self.prefix}{msg}"
        return msg, kwargs

    def with_context(self, **dimensions: Any) -> "ContextualLogger":
        """Return a logger carrying the current dimensions plus ``dimensions``."""
        return ContextualLogger(self.logger, {**self.dimensions, **dimensions}, self.prefix)

    def with_prefix(self, prefix: str) -> "ContextualLogger":
        """Return a logger that prepends ``prefix`` to every message."""
        return ContextualLogger(self.logger, self.dimensions, f"{self.prefix}{prefix}")


class _DimensionFormatter(logging.Formatter):
    """Human-readable formatter: base line followed by ``key=value`` dimensions."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        dims = getattr(record, "dimensions", None)
        if dims:
            rendered = " ".join(f"{key}={value}" for key, value in dims.items())
            line = f"{line} [{rendered}]"
        return line


class _JsonFormatter(logging.Formatter):
    """One JSON object per record, dimensions flattened into the top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(getattr(record, "dimensions", None) or {})
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Install a single stream handler on the ``basemeter`` logger.

    Safe to call more than once; the previous handler is replaced.
    """
    root = logging.getLogger(_ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_output else _DimensionFormatter())
    root.addHandler(handler)
    root.setLevel(level)


logger = ContextualLogger(logging.getLogger(_ROOT_LOGGER_NAME))
