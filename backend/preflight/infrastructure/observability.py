"""Flow-Aware Logging — every record emitted on behalf of a preflight flow names that flow.

Invariants:
    - Records carry the flow they belong to (preflight_id), whether passed via extra=
      or bound to the current context by the route that resolved the flow
    - Fetch tasks spawned while handling a request inherit the bound flow id
      (asyncio copies the context into each task)
    - Flow context (preflight_id, address, check) is grouped under "flow" in JSON;
      failure details (error_code, tx_code, status_code, attempt, path) stay top-level
    - setup_logging() replaces the handler it installed before instead of stacking

Design Decisions:
    - ContextVar + logging.Filter over passing the id through every service call:
      services stay unaware of the HTTP flow registry
    - httpx request logging lowered to WARNING: one INFO line per chain query per
      flow drowns the readiness transitions
"""

import json
import logging
from contextvars import ContextVar
from datetime import datetime, timezone

FLOW_KEYS = ("preflight_id", "address", "check")
DETAIL_KEYS = ("error_code", "tx_code", "status_code", "attempt", "path")

_bound_preflight_id: ContextVar[str | None] = ContextVar("preflight_id", default=None)
_installed_handler: logging.Handler | None = None


def bind_preflight_id(preflight_id: str | None) -> None:
    """Attach a flow to the current request context (and tasks spawned from it)."""
    _bound_preflight_id.set(preflight_id)


def bound_preflight_id() -> str | None:
    return _bound_preflight_id.get()


class PreflightContextFilter(logging.Filter):
    """Stamps preflight_id from the bound context unless extra= already set it."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "preflight_id", None) is None:
            record.preflight_id = _bound_preflight_id.get()
        return True


def _collect(record: logging.LogRecord, keys: tuple[str, ...]) -> dict:
    return {
        key: record.__dict__[key]
        for key in keys
        if record.__dict__.get(key) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record, flow context nested under "flow"."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, timezone.utc,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        flow = _collect(record, FLOW_KEYS)
        if flow:
            entry["flow"] = flow
        entry.update(_collect(record, DETAIL_KEYS))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Development format: flow context appended as key=value pairs."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        flow = _collect(record, FLOW_KEYS)
        if not flow:
            return line
        return line + " " + " ".join(f"{k}={v}" for k, v in flow.items())


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Install the flow-aware handler on the root logger."""
    global _installed_handler
    root = logging.getLogger()
    if _installed_handler is not None:
        root.removeHandler(_installed_handler)

    handler = logging.StreamHandler()
    handler.addFilter(PreflightContextFilter())
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _installed_handler = handler
    return handler
