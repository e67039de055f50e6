# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pandas as pd
import pytest

from addrmap.logging.init import reset_logging
from addrmap.models.outcome import GeocodeOutcome


class ScriptedGeocoder:
    """Geocoder double: address -> outcome, unknown addresses are NOT_FOUND."""

    def __init__(self, outcomes: dict[str, GeocodeOutcome] | None = None, default: GeocodeOutcome | None = None):
        self.outcomes = dict(outcomes or {})
        self.default = default or GeocodeOutcome.not_found()
        self.calls: list[str] = []

    def geocode(self, address: str) -> GeocodeOutcome:
        self.calls.append(address)
        return self.outcomes.get(address, self.default)

    def close(self) -> None:
        pass


class RecordingLimiter:
    """Rate limiter double recording wait/observe order."""

    def __init__(self) -> None:
        self.events: list[str] = []
        self.observed: list[GeocodeOutcome] = []

    def wait(self) -> None:
        self.events.append("wait")

    def observe(self, outcome: GeocodeOutcome) -> None:
        self.events.append("observe")
        self.observed.append(outcome)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    # API キーがテスト環境から漏れないようにする
    monkeypatch.delenv("GOOGLE_MAPS_API_KEY", raising=False)
    monkeypatch.delenv("NEXT_PUBLIC_GOOGLE_MAPS_API_KEY", raising=False)
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """geocoding:
  api_key: yaml-key
  pacing_seconds: 0
  timeout_seconds: 5
detection:
  address_keywords: [address, location, street, addr]
  category_keywords: [category, type]
reporting:
  max_failure_messages: 2
  error_log_dir: logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "addrmap.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def scripted_geocoder():
    return ScriptedGeocoder


@pytest.fixture()
def recording_limiter() -> RecordingLimiter:
    return RecordingLimiter()


@pytest.fixture()
def scenario_a_rows() -> list[dict[str, str]]:
    return [
        {"Address": "1 Infinite Loop, Cupertino"},
        {"Address": ""},
        {"Address": "Nowhereville Fakeplace"},
    ]


@pytest.fixture()
def cupertino() -> GeocodeOutcome:
    return GeocodeOutcome.resolved(37.33182, -122.03118, "1 Infinite Loop, Cupertino, CA 95014, USA")


def make_excel_file(directory: Path, name: str, rows: list[list[object]]) -> Path:
    """Create a single-sheet workbook; the first list is the header row."""
    path = directory / name
    df = pd.DataFrame(rows[1:], columns=rows[0])
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name="Sheet1", index=False)
    return path


def make_csv_file(directory: Path, name: str, text: str) -> Path:
    path = directory / name
    path.write_text(text, encoding="utf-8")
    return path


def google_payload(lat: float, lng: float, formatted: str) -> dict:
    return {
        "status": "OK",
        "results": [
            {
                "formatted_address": formatted,
                "geometry": {"location": {"lat": lat, "lng": lng}},
                "types": ["street_address"],
            }
        ],
    }


@pytest.fixture()
def excel_factory():
    return make_excel_file


@pytest.fixture()
def csv_factory():
    return make_csv_file


@pytest.fixture()
def payload_factory():
    return google_payload
