from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from addrmap.cli import main as cli_main
from addrmap.geocoding.client import GeocodeClient
from addrmap.models.outcome import GeocodeOutcome

"""Exit code contract: 0 all rows mapped, 2 some rows failed, 1 fatal."""


def _resolve_everything(self, address):
    return GeocodeOutcome.resolved(1.0, 2.0, address)


def test_exit_code_all_success(temp_workdir: Path, write_config, csv_factory, capsys):
    path = csv_factory(temp_workdir / "data", "ok.csv", "Address\n1 Main St\n\n")
    with patch.object(GeocodeClient, "geocode", _resolve_everything):
        code = cli_main([str(path)])
    assert code == 0


def test_skipped_rows_are_not_failures(temp_workdir: Path, write_config, csv_factory, capsys):
    path = csv_factory(temp_workdir / "data", "gaps.csv", "Address,Name\n1 Main St,a\n,b\n")
    with patch.object(GeocodeClient, "geocode", _resolve_everything):
        code = cli_main([str(path)])
    out = capsys.readouterr().out
    assert code == 0
    assert "skipped=1 failed=0" in out


def test_exit_code_partial_failure(temp_workdir: Path, write_config, csv_factory, capsys):
    path = csv_factory(temp_workdir / "data", "mixed.csv", "Address\n1 Main St\nNowhere\n")

    def half(self, address):
        if address == "Nowhere":
            return GeocodeOutcome.rate_limited()
        return GeocodeOutcome.resolved(1.0, 2.0, address)

    with patch.object(GeocodeClient, "geocode", half):
        code = cli_main([str(path)])
    assert code == 2


def test_exit_code_fatal_bad_config(temp_workdir: Path, csv_factory, capsys):
    (temp_workdir / "config" / "addrmap.yml").write_text("geocoding:\n  pacing_seconds: -5\n", encoding="utf-8")
    path = csv_factory(temp_workdir / "data", "ok.csv", "Address\n1 Main St\n")
    code = cli_main([str(path)])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR config:" in out


def test_exit_code_fatal_missing_explicit_config(temp_workdir: Path, csv_factory, capsys):
    path = csv_factory(temp_workdir / "data", "ok.csv", "Address\n1 Main St\n")
    code = cli_main([str(path), "--config", str(temp_workdir / "nope.yml")])
    assert code == 1
    assert "ERROR config:" in capsys.readouterr().out


def test_exit_code_fatal_unreadable_file(temp_workdir: Path, write_config, capsys):
    broken = temp_workdir / "data" / "broken.xlsx"
    broken.write_bytes(b"garbage")
    with patch.object(GeocodeClient, "geocode") as mock_geocode:
        code = cli_main([str(broken)])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR file:" in out
    mock_geocode.assert_not_called()


def test_exit_code_fatal_invalid_key(temp_workdir: Path, csv_factory, capsys, monkeypatch):
    monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "has space")
    path = csv_factory(temp_workdir / "data", "ok.csv", "Address\n1 Main St\n")
    code = cli_main([str(path)])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR config: API key contains whitespace" in out
