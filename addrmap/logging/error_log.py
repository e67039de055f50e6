from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from addrmap.models.error_record import ErrorRecord

"""Error log buffering module.

- JSON Lines, fixed key set (see ErrorRecord)
- One file per run: ``<log_dir>/errors-YYYYMMDD-HHMMSS.log`` (UTC), created lazily
- Records are buffered in memory while a batch runs and written on flush(),
  so the resolver loop never does file I/O per failed row
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush writes JSON Lines.

    - flush() 呼び出し時にファイル (なければ生成) へ一括追記
    - ファイルパスは初回アクセスで決定
    - スレッド安全性不要 (シリアル実行)
    """
    def __init__(self, log_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._log_dir = log_dir if log_dir is not None else LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._log_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._log_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def extend(self, records: list[ErrorRecord]) -> None:
        self._records.extend(records)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Append buffered records to the log file and clear the buffer.

        Returns:
            The log file path, or None when there was nothing to write
            (no empty log files are created).
        """
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
