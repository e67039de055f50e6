from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd

"""Tabular file reader (.xlsx / .xls / .csv -> list of row mappings).

- First row is the header, following rows are data rows
- Excel: first sheet only; empty cells are omitted from the row mapping
- CSV: every value is kept as text; empty cells become ""
- Rows where every cell is empty are dropped

Any failure here aborts one upload before a single geocoding request is made.
"""

__all__ = [
    "ParseError",
    "EmptyFileError",
    "UnsupportedFileError",
    "NoAddressColumnError",
    "SUPPORTED_SUFFIXES",
    "read_table",
    "normalize_frame",
]

SUPPORTED_SUFFIXES = (".xlsx", ".xls", ".csv")


class ParseError(Exception):
    """Malformed input file or no usable address column (one upload fails)."""


class EmptyFileError(ParseError):
    """File has a header but no data rows (or nothing at all)."""


class UnsupportedFileError(ParseError):
    """File extension is not one of SUPPORTED_SUFFIXES."""


class NoAddressColumnError(ParseError):
    """No column could be chosen as the address field."""


def _is_empty(val: Any) -> bool:
    if val is None:
        return True
    try:
        return bool(pd.isna(val))
    except (TypeError, ValueError):  # list-like cells
        return False


def normalize_frame(df: pd.DataFrame, *, omit_empty: bool) -> list[dict[str, Any]]:
    """Convert a DataFrame into row mappings in column order.

    Parameters
    ----------
    df: header-applied DataFrame
    omit_empty: True なら空セルのキーを行から除外 (Excel), False なら "" のまま保持 (CSV)
    """
    columns = [str(c).strip() for c in df.columns]
    rows: list[dict[str, Any]] = []
    # to_dict は numpy スカラを Python ネイティブ型に変換する
    for record in df.to_dict(orient="records"):
        values = list(record.values())
        if all(_is_empty(v) or (isinstance(v, str) and v.strip() == "") for v in values):
            continue
        row: dict[str, Any] = {}
        for col, val in zip(columns, values, strict=False):
            if _is_empty(val):
                if omit_empty:
                    continue
                val = ""
            row[col] = val
        rows.append(row)
    return rows


def _read_csv(path: Path) -> pd.DataFrame:
    return pd.read_csv(path, dtype=str, keep_default_na=False, skip_blank_lines=True)


def _read_excel(path: Path) -> pd.DataFrame:
    # 先頭シートのみ (sheet_name=0)
    return pd.read_excel(path, sheet_name=0, header=0)


def read_table(path: Path) -> list[dict[str, Any]]:
    """Read a spreadsheet or CSV file into RawRow mappings.

    Raises:
        UnsupportedFileError: extension not supported
        EmptyFileError: no data rows
        ParseError: missing, unreadable or corrupt file
    """
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise UnsupportedFileError(
            f"unsupported file type '{path.suffix or path.name}': expected one of {', '.join(SUPPORTED_SUFFIXES)}"
        )
    if not path.exists():
        raise ParseError(f"file not found: {path}")

    try:
        if suffix == ".csv":
            df = _read_csv(path)
        else:
            df = _read_excel(path)
    except pd.errors.EmptyDataError as e:
        raise EmptyFileError(f"file is empty: {path.name}") from e
    except Exception as e:  # corrupt workbook, bad encoding, missing engine, ...
        raise ParseError(f"cannot parse {path.name}: {e}") from e

    rows = normalize_frame(df, omit_empty=(suffix != ".csv"))
    if not rows:
        raise EmptyFileError(f"file has no data rows: {path.name}")
    return rows
