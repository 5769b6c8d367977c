"""Structured event logging for gridcalc.

Provides a unified event schema, filesystem NDJSON sink, and safe
emit helpers that never raise uncaught exceptions.
"""

from gridcalc.logging.events import (
    EventLevel,
    EventType,
    GridcalcEvent,
    emit,
    emit_info,
    make_cell_event,
    redact_context,
    set_project_dir,
)
from gridcalc.logging.sink import EventSink

__all__ = [
    "EventLevel",
    "EventSink",
    "EventType",
    "GridcalcEvent",
    "emit",
    "emit_info",
    "make_cell_event",
    "redact_context",
    "set_project_dir",
]
