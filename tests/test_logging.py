"""Tests for the gridcalc structured event logging system."""

from __future__ import annotations

import json
from pathlib import Path

import pytest


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Create a minimal project directory."""
    (tmp_path / "logs").mkdir()
    return tmp_path


@pytest.fixture
def sink(project_dir: Path):
    from gridcalc.logging.sink import EventSink

    return EventSink(project_dir)


# ---------------------------------------------------------------------------
# A) Event schema
# ---------------------------------------------------------------------------


class TestGridcalcEvent:
    def test_event_defaults(self):
        from gridcalc.logging.events import EventLevel, EventType, GridcalcEvent

        evt = GridcalcEvent(
            level=EventLevel.info,
            event_type=EventType.session_started,
            message="hello",
        )
        assert evt.schema_version == 1
        assert evt.ts.endswith("Z")
        assert evt.level == "info"
        assert evt.event_type == "session_started"
        assert evt.context == {}
        assert evt.error_code is None

    def test_make_cell_event(self):
        from gridcalc.logging.events import EventLevel, EventType, make_cell_event

        evt = make_cell_event(
            EventType.formula_eval_error,
            EventLevel.warning,
            "bad",
            x=1,
            y=2,
            contents="=(true+1)",
            error_code="type_mismatch",
        )
        assert evt.context == {"x": 1, "y": 2, "contents": "=(true+1)"}
        assert evt.error_code == "type_mismatch"

    def test_all_event_types_exist(self):
        from gridcalc.logging.events import EventType

        expected = {
            "session_started",
            "cell_set",
            "store_grown",
            "formula_parse_error",
            "formula_eval_error",
        }
        assert {e.value for e in EventType} == expected

    def test_syntax_error_code_is_distinct_from_error_kinds(self):
        from gridcalc.formulas import FormulaFunctionError, FormulaOverflowError, FormulaTypeError
        from gridcalc.logging import events

        kinds = {FormulaTypeError.kind, FormulaFunctionError.kind, FormulaOverflowError.kind}
        assert events.SYNTAX_ERROR not in kinds


# ---------------------------------------------------------------------------
# B) Filesystem NDJSON sink
# ---------------------------------------------------------------------------


class TestEventSink:
    def test_write_creates_global_log(self, sink, project_dir):
        from gridcalc.logging.events import EventLevel, EventType, GridcalcEvent

        sink.write(GridcalcEvent(
            level=EventLevel.info,
            event_type=EventType.session_started,
            message="started",
        ))

        log_path = project_dir / "logs" / "events.ndjson"
        lines = log_path.read_text().strip().splitlines()
        assert len(lines) == 1
        parsed = json.loads(lines[0])
        assert parsed["message"] == "started"
        assert parsed["level"] == "info"

    def test_write_creates_session_log(self, sink, project_dir):
        from gridcalc.logging.events import EventLevel, EventType, GridcalcEvent

        sink.write(
            GridcalcEvent(level=EventLevel.info, event_type=EventType.cell_set, message="set"),
            session_id="abc123",
        )

        assert (project_dir / "logs" / "sessions" / "abc123.ndjson").exists()
        assert len(sink.read_session_log("abc123")) == 1

    def test_unsafe_session_id_ignored(self, sink, project_dir):
        from gridcalc.logging.events import EventLevel, EventType, GridcalcEvent

        sink.write(
            GridcalcEvent(level=EventLevel.info, event_type=EventType.cell_set, message="set"),
            session_id="../escape",
        )

        assert list((project_dir / "logs" / "sessions").iterdir()) == []
        assert sink.read_session_log("../escape") == []

    def test_json_sort_keys(self, sink, project_dir):
        from gridcalc.logging.events import EventLevel, EventType, GridcalcEvent

        sink.write(GridcalcEvent(level=EventLevel.info, event_type=EventType.cell_set, message="m"))

        parsed = json.loads((project_dir / "logs" / "events.ndjson").read_text().strip())
        keys = list(parsed.keys())
        assert keys == sorted(keys)

    def test_read_global_most_recent_first_and_filters(self, sink):
        from gridcalc.logging.events import EventLevel, EventType, GridcalcEvent

        for i in range(3):
            sink.write(GridcalcEvent(level=EventLevel.info, event_type=EventType.cell_set, message=f"set {i}"))
        sink.write(GridcalcEvent(
            level=EventLevel.warning,
            event_type=EventType.formula_parse_error,
            message="bad formula",
        ))

        events = sink.read_global()
        assert [e["message"] for e in events] == ["bad formula", "set 2", "set 1", "set 0"]
        assert len(sink.read_global(level="warning")) == 1
        assert len(sink.read_global(event_type="cell_set", limit=2)) == 2

    def test_tail_read_drops_partial_line(self, project_dir):
        from gridcalc.logging.events import EventLevel, EventType, GridcalcEvent
        from gridcalc.logging.sink import EventSink

        sink = EventSink(project_dir, tail_bytes=300)
        for i in range(20):
            sink.write(GridcalcEvent(level=EventLevel.info, event_type=EventType.cell_set, message=f"set {i}"))

        events = sink.read_global()
        assert 0 < len(events) < 20
        assert events[0]["message"] == "set 19"

    def test_malformed_lines_skipped(self, sink, project_dir):
        (project_dir / "logs" / "events.ndjson").write_text('not json\n{"message": "ok"}\n')
        assert sink.read_global() == [{"message": "ok"}]


# ---------------------------------------------------------------------------
# C) Redaction and attribution
# ---------------------------------------------------------------------------


class TestRedaction:
    def test_sensitive_keys(self):
        from gridcalc.logging.events import redact_context

        out = redact_context({"api_key": "abc", "x": 1, "nested": {"password": "p"}})
        assert out == {"api_key": "[REDACTED]", "x": 1, "nested": {"password": "[REDACTED]"}}

    def test_long_values_truncated(self):
        from gridcalc.logging.events import redact_context

        out = redact_context({"contents": "a" * 1000})
        assert out["contents"].endswith("...[truncated]")
        assert len(out["contents"]) < 300


class TestEmit:
    def test_emit_without_sink_is_noop(self, tmp_path):
        from gridcalc.logging.events import EventType, emit_info, get_sink

        assert get_sink() is None
        emit_info(EventType.session_started, "nobody listening")
        assert not (tmp_path / "logs").exists()

    def test_emit_writes_global_and_session(self, tmp_path):
        from gridcalc.logging.events import EventType, emit_info, get_sink, set_project_dir

        set_project_dir(tmp_path, session_id="s1")
        emit_info(EventType.session_started, "hi", {"session_id": "s1"})

        sink = get_sink()
        assert sink.read_global()[0]["message"] == "hi"
        assert sink.read_session_log("s1")[0]["message"] == "hi"

    def test_missing_attribution_downgrades(self, tmp_path):
        from gridcalc.logging.events import EventType, emit_info, get_sink, set_project_dir

        set_project_dir(tmp_path)
        emit_info(EventType.cell_set, "no coordinates")

        evt = get_sink().read_global()[0]
        assert evt["level"] == "warning"
        assert evt["context"]["_missing_attribution"] == ["x", "y"]

    def test_logging_disabled_in_config(self, tmp_path):
        from gridcalc.logging.events import get_sink, set_project_dir

        (tmp_path / "gridcalc.yaml").write_text("logging_enabled: false\n")
        set_project_dir(tmp_path)
        assert get_sink() is None

    def test_emit_never_raises(self, tmp_path, monkeypatch):
        from gridcalc.logging import events

        class BrokenSink:
            def write(self, event, *, session_id=None):
                raise OSError("disk full")

        monkeypatch.setattr(events, "_sink", BrokenSink())
        monkeypatch.setattr(events, "_last_stderr_ts", 0.0)
        events.emit_info(events.EventType.session_started, "x")
