from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .row_result import RowResult

"""Processing result models for the address map pipeline.

This module defines the models for aggregating batch results and the
view-only filter criteria applied to a resolved dataset.
"""


@dataclass(frozen=True)
class BatchResult:
    """Aggregated results of one batch (one upload).

    For a batch that ran to completion:
        resolved_rows + skipped_rows + failed_rows == total_rows
    """
    total_rows: int  # 入力行数
    resolved_rows: int  # 座標取得成功
    skipped_rows: int  # 住所空欄 (エラー扱いしない)
    failed_rows: int  # NOT_FOUND / RATE_LIMITED / TRANSIENT_ERROR
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    cancelled: bool = False  # superseded by a newer batch before completion
    failures: list[str] = field(default_factory=list)  # "Row N: reason: address"
    progress: list[int] = field(default_factory=list)  # emitted percentages
    row_results: list[RowResult] = field(default_factory=list)

    @property
    def dropped_rows(self) -> int:
        """Rows present in the input but absent from the dataset."""
        return self.skipped_rows + self.failed_rows

    @property
    def processed_rows(self) -> int:
        return self.resolved_rows + self.skipped_rows + self.failed_rows


@dataclass(frozen=True)
class FilterCriteria:
    """Search/filter input recomputed on every user change; never mutates data."""
    search_term: str = ""
    category: str = "all"

    @property
    def is_empty(self) -> bool:
        return self.search_term == "" and self.category == "all"
