from __future__ import annotations

from ..models.processing_result import BatchResult

"""Summary line rendering for a geocoding batch.

SUMMARY rows={total} resolved={resolved} skipped={skipped} failed={failed}
elapsed_sec={elapsed} (plus cancelled=1 when a newer upload superseded it)
"""

__all__ = [
    "format_seconds",
    "render_summary_line",
    "render_failure_summary",
]


def format_seconds(value: float) -> str:
    """Render seconds without scientific notation or trailing zeros."""
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: BatchResult) -> str:
    """Render the SUMMARY line for a batch.

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> r = BatchResult(total_rows=3, resolved_rows=1, skipped_rows=1, failed_rows=1,
        ...                 start_time=t, end_time=t, elapsed_seconds=2.0)
        >>> render_summary_line(r)
        'SUMMARY rows=3 resolved=1 skipped=1 failed=1 elapsed_sec=2'
    """
    line = (
        f"SUMMARY rows={result.total_rows} "
        f"resolved={result.resolved_rows} "
        f"skipped={result.skipped_rows} "
        f"failed={result.failed_rows} "
        f"elapsed_sec={format_seconds(result.elapsed_seconds)}"
    )
    if result.cancelled:
        line += " cancelled=1"
    return line


def render_failure_summary(failures: list[str], limit: int = 5) -> list[str]:
    """First ``limit`` failure messages plus a remainder line.

    Examples:
        >>> render_failure_summary(["a", "b", "c"], limit=2)
        ['a', 'b', '...and 1 more errors']
    """
    if not failures:
        return []
    lines = list(failures[:limit])
    remaining = len(failures) - len(lines)
    if remaining > 0:
        lines.append(f"...and {remaining} more errors")
    return lines
