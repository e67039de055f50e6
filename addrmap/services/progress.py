from __future__ import annotations

import sys
from collections.abc import Callable
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Row progress tracking for a geocoding batch.

Two outputs are driven from the same counter:
- a percentage stream (callback + recorded list) emitted after every row
- a tqdm bar on TTY only (disabled in non-TTY environments such as CI)

Percentage rules: round half up, never decreasing, and 100 is emitted exactly
once, for the last row (a 299/300 batch reports 99, not 100).
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
    "percent_complete",
]

ProgressCallback = Callable[[int], None]


def is_tty_enabled() -> bool:
    """True if stdout is a TTY and the progress bar should be displayed."""
    return sys.stdout.isatty()


def percent_complete(done: int, total: int) -> int:
    """Integer percentage, half rounded up, capped at 99 until done == total."""
    if total <= 0 or done >= total:
        return 100
    pct = (done * 200 + total) // (2 * total)
    return min(99, pct)


class ProgressTracker:
    """Progress tracker for rows within one batch."""

    def __init__(
        self,
        total_rows: int,
        *,
        description: str = "Geocoding",
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.total_rows = total_rows
        self.description = description
        self.completed_rows = 0
        self.emitted: list[int] = []
        self._on_progress = on_progress
        self._finished = False

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_rows,
                desc=description,
                unit="row",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    @property
    def percent(self) -> int:
        return self.emitted[-1] if self.emitted else 0

    def _emit(self, pct: int) -> None:
        if self.emitted and pct < self.emitted[-1]:
            pct = self.emitted[-1]
        self.emitted.append(pct)
        if self._on_progress is not None:
            self._on_progress(pct)

    def advance(self) -> int:
        """Mark one row finished (resolved, skipped or failed) and emit."""
        if self._finished:
            return self.percent
        self.completed_rows += 1
        if self.enabled and self.pbar is not None:
            self.pbar.update(1)
        pct = percent_complete(self.completed_rows, self.total_rows)
        if pct == 100:
            self._finished = True
        self._emit(pct)
        return pct

    def complete_empty(self) -> None:
        """An empty batch still reports completion once."""
        if not self._finished and self.total_rows == 0:
            self._finished = True
            self._emit(100)

    def set_postfix(self, **kwargs: Any) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
