from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .outcome import GeocodeOutcome, OutcomeKind

"""Per-row processing state for the batch resolver.

State transitions: pending → resolving → (resolved | skipped | failed)
"""

__all__ = [
    "RowStatus",
    "RowResult",
]


class RowStatus(Enum):
    """Status enum for a single row within a batch.

    - PENDING: row not yet reached
    - RESOLVING: request issued, waiting for the provider
    - RESOLVED: coordinates obtained, record appended to the dataset
    - SKIPPED: empty/missing address text (not counted as an error)
    - FAILED: NOT_FOUND / RATE_LIMITED / TRANSIENT_ERROR
    """
    PENDING = "pending"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    SKIPPED = "skipped"
    FAILED = "failed"


# error_type labels written to the error log (UPPER_SNAKE)
ROW_ERROR_TYPES = {
    OutcomeKind.NOT_FOUND: "ROW_NOT_FOUND",
    OutcomeKind.RATE_LIMITED: "ROW_RATE_LIMITED",
    OutcomeKind.TRANSIENT_ERROR: "ROW_TRANSIENT_ERROR",
}


@dataclass(frozen=True)
class RowResult:
    """Terminal state of one row after the resolver has passed it."""
    row_index: int  # 0-based position in the uploaded row sequence
    status: RowStatus
    outcome: GeocodeOutcome | None = None
    address: str | None = None  # raw address text sent (None when skipped)

    @property
    def error_type(self) -> str | None:
        if self.status is not RowStatus.FAILED or self.outcome is None:
            return None
        return ROW_ERROR_TYPES.get(self.outcome.kind, "ROW_TRANSIENT_ERROR")

    def describe_failure(self) -> str:
        """Human readable failure line: row identifier + reason + address."""
        reason = self.outcome.kind.value if self.outcome else "unknown"
        detail = self.outcome.message if self.outcome and self.outcome.message else ""
        text = f"Row {self.row_index + 1}: {reason}"
        if detail:
            text += f" ({detail})"
        if self.address:
            text += f": {self.address}"
        return text
