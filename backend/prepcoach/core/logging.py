"""Logging setup for prepcoach.

Provides a module-level ``logger`` and a ``ContextualLogger`` that carries
structured dimensions (user id, event id, request id) into every record.

Usage:
    from prepcoach.core.logging import logger

    log = logger.with_context(event_id=event_id, event_type=event_type)
    log.info("Processing webhook event")
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, MutableMapping, Optional

_LOGGER_NAME = "prepcoach"

_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}


class _JSONFormatter(logging.Formatter):
    """Render log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                entry[key] = value
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class _PlainFormatter(logging.Formatter):
    """Human readable formatter for local development."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        dims = {
            k: v
            for k, v in record.__dict__.items()
            if k not in _RESERVED_ATTRS and not k.startswith("_")
        }
        if dims:
            rendered = " ".join(f"{k}={v}" for k, v in sorted(dims.items()))
            return f"{base} [{rendered}]"
        return base


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that merges bound dimensions into every record."""

    def __init__(self, base: logging.Logger, dimensions: Optional[dict[str, Any]] = None):
        """Bind ``dimensions`` to ``base``."""
        super().__init__(base, dict(dimensions or {}))

    @property
    def dimensions(self) -> dict[str, Any]:
        """Currently bound dimensions."""
        return dict(self.extra)

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, Any]:
        extra = dict(self.extra)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(self, **dimensions: Any) -> "ContextualLogger":
        """Return a new logger with additional dimensions bound."""
        merged = dict(self.extra)
        merged.update({k: v for k, v in dimensions.items() if v is not None})
        return ContextualLogger(self.logger, merged)


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Install a stdout handler on the prepcoach logger.

    Called once from application startup. Safe to call again; existing
    handlers are replaced.
    """
    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(_JSONFormatter())
    else:
        handler.setFormatter(_PlainFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    base = logging.getLogger(_LOGGER_NAME)
    base.handlers.clear()
    base.addHandler(handler)
    base.setLevel(level.upper())
    base.propagate = False

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


logger = ContextualLogger(logging.getLogger(_LOGGER_NAME))
