from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for error logging.

This module defines the ErrorRecord dataclass used for structured error logging
of row-level geocoding failures and file-level parse errors. It supports row=-1
as a sentinel value for file-level errors where no specific row applies.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Source file name (or "<rows>" for in-memory batches)
        row: Row number (1-based). Use -1 for file-level errors
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Failure description (provider status, transport error, ...)
    """
    timestamp: str  # ISO8601 UTC
    file: str
    row: int  # 行番号。不明な場合 -1 許容
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord with current UTC timestamp.

        Parameters:
            file: Source file name
            row: Row number (1-based). Use -1 for file-level errors
            error_type: Error classification in UPPER_SNAKE_CASE format
            message: Failure description

        Returns:
            New ErrorRecord instance with current UTC timestamp
        """
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize ErrorRecord to JSON Lines format (fixed key set)."""
        return json.dumps(asdict(self), ensure_ascii=False)
