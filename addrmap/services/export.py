from __future__ import annotations

import csv
import io
import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from ..models.resolved_address import ResolvedAddress

"""CSV / JSON export of a resolved dataset.

CSV: address, latitude, longitude, then every distinct source_row key across
all records (first-seen order), written with csv.QUOTE_NONNUMERIC: strings are
always quoted, numbers are bare, missing cells and booleans are quoted text.

JSON: list of flat objects {address, latitude, longitude, **source_row}; the
three canonical keys win over same-named source columns.
"""

__all__ = [
    "CANONICAL_COLUMNS",
    "export_columns",
    "to_csv",
    "to_json_records",
    "to_json",
    "write_export",
]

CANONICAL_COLUMNS = ("address", "latitude", "longitude")


def export_columns(records: Iterable[ResolvedAddress]) -> list[str]:
    columns = list(CANONICAL_COLUMNS)
    for r in records:
        for key in r.source_row:
            if key not in columns:
                columns.append(key)
    return columns


def _csv_cell(value: Any) -> Any:
    """Normalise one cell for a QUOTE_NONNUMERIC writer (numbers stay bare)."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value != value:  # NaN
        return ""
    if isinstance(value, (int, float, str)):
        return value
    # datetime / Timestamp などは文字列として出力
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


def _row_value(record: ResolvedAddress, column: str) -> Any:
    if column == "address":
        return record.address_text
    if column == "latitude":
        return record.latitude
    if column == "longitude":
        return record.longitude
    return record.source_row.get(column)


def to_csv(records: Iterable[ResolvedAddress]) -> str:
    """Serialize records to CSV text ("" when there are no records)."""
    records = list(records)
    if not records:
        return ""
    columns = export_columns(records)
    buf = io.StringIO()
    # ヘッダーは必要な場合のみクォート、データ行は文字列を常にクォート
    csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\n").writerow(columns)
    writer = csv.writer(buf, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for r in records:
        writer.writerow([_csv_cell(_row_value(r, c)) for c in columns])
    return buf.getvalue()


def to_json_records(records: Iterable[ResolvedAddress]) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for r in records:
        item: dict[str, Any] = {
            "address": r.address_text,
            "latitude": r.latitude,
            "longitude": r.longitude,
        }
        for key, value in r.source_row.items():
            if key not in item:
                item[key] = value
        out.append(item)
    return out


def _json_default(value: Any) -> Any:
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def to_json(records: Iterable[ResolvedAddress]) -> str:
    return json.dumps(to_json_records(records), indent=2, ensure_ascii=False, default=_json_default)


def write_export(records: Iterable[ResolvedAddress], path: Path) -> Path:
    """Write CSV or JSON depending on the file suffix."""
    suffix = path.suffix.lower()
    if suffix == ".csv":
        content = to_csv(records)
    elif suffix == ".json":
        content = to_json(records)
    else:
        raise ValueError(f"unsupported export format: {path.suffix or path.name}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path
