from __future__ import annotations

import json
from datetime import datetime

import pytest

from addrmap.models.error_record import ErrorRecord


def test_create_sets_utc_timestamp():
    rec = ErrorRecord.create(file="stores.xlsx", row=3, error_type="ROW_NOT_FOUND", message="ZERO_RESULTS: x")
    assert rec.timestamp.endswith("Z")
    datetime.fromisoformat(rec.timestamp.replace("Z", "+00:00"))


def test_json_line_has_fixed_keys():
    rec = ErrorRecord.create("stores.xlsx", 3, "ROW_NOT_FOUND", "ZERO_RESULTS: 東京都千代田区")
    data = json.loads(rec.to_json_line())
    assert set(data) == {"timestamp", "file", "row", "error_type", "message"}
    assert data["row"] == 3
    # 非 ASCII はエスケープしない
    assert "東京都" in rec.to_json_line()


def test_file_level_error_uses_sentinel_row():
    rec = ErrorRecord.create("broken.xlsx", -1, "PARSE_ERROR", "cannot parse broken.xlsx")
    assert json.loads(rec.to_json_line())["row"] == -1


def test_record_is_frozen():
    rec = ErrorRecord.create("a.csv", 1, "ROW_NOT_FOUND", "x")
    with pytest.raises(AttributeError):
        rec.row = 2  # type: ignore[misc]
