from __future__ import annotations

import io
import json

from fieldplan.infrastructure.logging import StructuredLogger
from fieldplan.infrastructure.redact import redact_sensitive


def _lines(buffer: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in buffer.getvalue().splitlines()]


def test_stage_timing_pairs_start_and_end():
    buffer = io.StringIO()
    logger = StructuredLogger(trace_id="t-1", output=buffer)
    logger.stage_start("route", plan_id="p-1", attempt=1)
    logger.stage_end("route", plan_id="p-1", outcome="timeout")

    start, end = _lines(buffer)
    assert start["event"] == "stage_start"
    assert start["attempt"] == 1
    assert end["event"] == "stage_end"
    assert end["outcome"] == "timeout"
    assert end["duration_ms"] >= 0
    assert {start["trace_id"], end["trace_id"]} == {"t-1"}


def test_transition_line_carries_plan_state():
    buffer = io.StringIO()
    StructuredLogger(output=buffer).transition("p-1", "route_complete", "inventory", attempt=2)
    (line,) = _lines(buffer)
    assert line["status"] == "route_complete"
    assert line["current_step"] == "inventory"
    assert line["attempt"] == 2


def test_secrets_never_reach_the_log():
    buffer = io.StringIO()
    logger = StructuredLogger(output=buffer)
    logger.error("dispatch", "401 for key=abc123 with Authorization: Bearer tok.en-1 and sk-abcdefghijklmnop")
    text = buffer.getvalue()
    assert "abc123" not in text
    assert "tok.en-1" not in text
    assert "sk-abcdefghijklmnop" not in text
    assert "***REDACTED***" in text


def test_redact_leaves_plain_text_alone():
    assert redact_sensitive("route solved in 3 steps") == "route solved in 3 steps"
    assert redact_sensitive("") == ""
