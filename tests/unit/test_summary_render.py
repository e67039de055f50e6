from __future__ import annotations

import re
from datetime import UTC, datetime

from addrmap.models.processing_result import BatchResult
from addrmap.services.summary import format_seconds, render_failure_summary, render_summary_line


def _result(**kw) -> BatchResult:
    t = datetime(2024, 1, 1, tzinfo=UTC)
    base = dict(
        total_rows=3,
        resolved_rows=1,
        skipped_rows=1,
        failed_rows=1,
        start_time=t,
        end_time=t,
        elapsed_seconds=2.0,
    )
    base.update(kw)
    return BatchResult(**base)


def test_summary_line_format():
    assert render_summary_line(_result()) == "SUMMARY rows=3 resolved=1 skipped=1 failed=1 elapsed_sec=2"


def test_summary_line_marks_cancelled_batch():
    line = render_summary_line(_result(resolved_rows=0, skipped_rows=0, failed_rows=0, cancelled=True))
    assert line.endswith(" cancelled=1")


def test_summary_line_fractional_seconds():
    line = render_summary_line(_result(elapsed_seconds=0.1234))
    assert re.search(r"elapsed_sec=0\.123$", line)


def test_format_seconds():
    assert format_seconds(0) == "0"
    assert format_seconds(3.0) == "3"
    assert format_seconds(1.5) == "1.5"
    assert format_seconds(0.0005) == "0.0005"
    assert "e" not in format_seconds(0.00001)


def test_failure_summary_limit():
    failures = [f"Row {i}: not_found: x" for i in range(1, 8)]
    lines = render_failure_summary(failures, limit=5)
    assert lines[:5] == failures[:5]
    assert lines[5] == "...and 2 more errors"
    assert len(lines) == 6


def test_failure_summary_under_limit_and_empty():
    assert render_failure_summary(["a"], limit=5) == ["a"]
    assert render_failure_summary([], limit=5) == []
