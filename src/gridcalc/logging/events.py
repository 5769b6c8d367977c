"""Unified event schema and module-level emit helpers.

All timestamps use UTC ISO-8601 with ``Z`` suffix.  The ``emit()``
family of functions is safe to call from any context -- failures are
swallowed and reported on stderr.
"""

from __future__ import annotations

import re
import sys
import time
import traceback
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class EventLevel(str, Enum):
    info = "info"
    warning = "warning"
    error = "error"


class EventType(str, Enum):
    # Session lifecycle
    session_started = "session_started"

    # Cell store
    cell_set = "cell_set"
    store_grown = "store_grown"

    # Formula display
    formula_parse_error = "formula_parse_error"
    formula_eval_error = "formula_eval_error"


# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------

# Evaluation errors log their own ``kind`` as the error code.
SYNTAX_ERROR = "syntax_error"


# ---------------------------------------------------------------------------
# Context redaction
# ---------------------------------------------------------------------------

_SENSITIVE_KEY_RE = re.compile(
    r"(password|passwd|secret|token|api_key|apikey|authorization|cookie|session_key)",
    re.IGNORECASE,
)

_MAX_VALUE_LEN = 256


def redact_context(context: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *context* safe to write to disk.

    Keys matching sensitive patterns have their values replaced with
    ``"[REDACTED]"``; strings longer than 256 chars are truncated.  Cell
    contents are free text, so both rules apply to them too.
    """
    out: dict[str, Any] = {}
    for k, v in context.items():
        if _SENSITIVE_KEY_RE.search(k):
            out[k] = "[REDACTED]"
        elif isinstance(v, dict):
            out[k] = redact_context(v)
        elif isinstance(v, str) and len(v) > _MAX_VALUE_LEN:
            out[k] = v[:_MAX_VALUE_LEN] + "...[truncated]"
        else:
            out[k] = v
    return out


# ---------------------------------------------------------------------------
# Attribution invariants
# ---------------------------------------------------------------------------

_CELL_EVENT_REQUIRED = {"x", "y"}

_EVENT_REQUIRED_KEYS: dict[str, set[str]] = {
    EventType.session_started.value: set(),
    EventType.cell_set.value: _CELL_EVENT_REQUIRED,
    EventType.store_grown.value: {"width", "height"},
    EventType.formula_parse_error.value: _CELL_EVENT_REQUIRED,
    EventType.formula_eval_error.value: _CELL_EVENT_REQUIRED,
}


def _validate_attribution(event: GridcalcEvent) -> GridcalcEvent:
    """Check required context keys; downgrade to warning if missing."""
    required = _EVENT_REQUIRED_KEYS.get(EventType(event.event_type).value, set())
    missing = required - set(event.context.keys())
    if not missing:
        return event
    ctx = dict(event.context)
    ctx["_missing_attribution"] = sorted(missing)
    return event.model_copy(update={"level": EventLevel.warning, "context": ctx})


def make_cell_event(
    event_type: EventType,
    level: EventLevel,
    message: str,
    *,
    x: int,
    y: int,
    contents: str | None = None,
    error_code: str | None = None,
    extra: dict[str, Any] | None = None,
) -> GridcalcEvent:
    """Build an event with guaranteed cell coordinates in its context."""
    ctx: dict[str, Any] = {"x": x, "y": y}
    if contents is not None:
        ctx["contents"] = contents
    if extra:
        ctx.update(extra)
    return GridcalcEvent(
        level=level,
        event_type=event_type,
        message=message,
        context=ctx,
        error_code=error_code,
    )


# ---------------------------------------------------------------------------
# Event model
# ---------------------------------------------------------------------------


def _utc_now() -> str:
    """Return current UTC timestamp in ISO-8601 with Z suffix."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class GridcalcEvent(BaseModel):
    """A single structured log event."""

    schema_version: int = 1
    ts: str = Field(default_factory=_utc_now)
    level: EventLevel
    event_type: EventType
    context: dict[str, Any] = Field(default_factory=dict)
    message: str = ""
    error_code: str | None = None


# ---------------------------------------------------------------------------
# Module-level sink reference
# ---------------------------------------------------------------------------

# Set by ``set_project_dir``; ``None`` means events are discarded.
_sink: Any = None  # EventSink | None
_session_id: str | None = None


def set_project_dir(project_dir: Path | str | None, *, session_id: str | None = None) -> None:
    """Configure the module-level event sink for a project directory.

    Call early in a CLI command.  Until it is called (or after it is
    called with ``None``, or when ``logging_enabled`` is false in
    ``gridcalc.yaml``), ``emit()`` silently discards events.
    """
    global _sink, _session_id
    from gridcalc.config import load_config
    from gridcalc.logging.sink import EventSink

    _session_id = session_id
    if project_dir is None:
        _sink = None
        return

    project_dir = Path(project_dir)
    cfg = load_config(project_dir)
    if not cfg.get("logging_enabled", True):
        _sink = None
        return
    _sink = EventSink(
        project_dir,
        fsync=bool(cfg.get("logging_fsync", False)),
        tail_bytes=cfg.get("logging_tail_bytes"),
    )


def get_sink() -> Any:
    """Return the module-level sink, or None."""
    return _sink


# ---------------------------------------------------------------------------
# Rate-limited stderr warnings
# ---------------------------------------------------------------------------

_last_stderr_ts: float = 0.0
_STDERR_INTERVAL_SECS = 60.0


def _stderr_warning(msg: str) -> None:
    """Print a warning to stderr, rate-limited to one per 60 seconds."""
    global _last_stderr_ts
    now = time.monotonic()
    if now - _last_stderr_ts < _STDERR_INTERVAL_SECS:
        return
    _last_stderr_ts = now
    try:
        print(f"[gridcalc] {msg}", file=sys.stderr)
    except OSError:
        pass


# ---------------------------------------------------------------------------
# Safe emit helpers
# ---------------------------------------------------------------------------


def emit(event: GridcalcEvent) -> None:
    """Write an event to the global log and the current session log.

    **Never raises.**  On failure, prints a rate-limited warning to stderr.
    """
    try:
        sink = get_sink()
        if sink is None:
            return
        event = event.model_copy(update={"context": redact_context(event.context)})
        event = _validate_attribution(event)
        sink.write(event, session_id=_session_id)
    except Exception:
        _stderr_warning(f"logging failed: {traceback.format_exc()}")


def emit_info(event_type: EventType, message: str, context: dict[str, Any] | None = None) -> None:
    """Convenience: emit an info-level event."""
    emit(GridcalcEvent(level=EventLevel.info, event_type=event_type, message=message, context=context or {}))

