from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import requests

from addrmap.cli import main as cli_main
from addrmap.models.outcome import GeocodeOutcome

"""Integration test: every row resolves, exports and filtered markers are written.

Only requests.Session is mocked; URL building, status mapping, pacing and the
CLI wiring all run for real.
"""


def _response(payload):
    resp = MagicMock()
    resp.status_code = 200
    resp.json.return_value = payload
    return resp


def test_all_rows_resolved(temp_workdir: Path, write_config, csv_factory, payload_factory, capsys):
    csv_path = csv_factory(
        temp_workdir / "data", "stores.csv",
        "Addr,Type,Name\n1 Main St,store,Alpha\n2 Oak Ave,office,Beta\n",
    )
    answers = {
        "1%20Main%20St": payload_factory(10.0, 20.0, "1 Main St, Springfield"),
        "2%20Oak%20Ave": payload_factory(30.0, 40.0, "2 Oak Ave, Shelbyville"),
    }

    def fake_get(url, timeout):
        for needle, payload in answers.items():
            if f"address={needle}" in url:
                return _response(payload)
        return _response({"status": "ZERO_RESULTS", "results": []})

    session = MagicMock(spec=requests.Session)
    session.get.side_effect = fake_get
    out_json = temp_workdir / "out" / "addresses.json"
    out_markers = temp_workdir / "out" / "markers.json"

    with patch("addrmap.geocoding.client.requests.Session", return_value=session):
        code = cli_main(
            [
                str(csv_path),
                "--export-json", str(out_json),
                "--markers", str(out_markers),
                "--search", "springfield",
            ]
        )

    out = capsys.readouterr().out
    assert code == 0
    assert "SUMMARY rows=2 resolved=2 skipped=0 failed=0" in out
    assert "INFO address_field=Addr category_field=Type" in out
    assert "INFO filter matches 1 of 2 addresses" in out

    # yaml-key from the sample config is sent on every request
    for call in session.get.call_args_list:
        assert call.args[0].endswith("&key=yaml-key")
        assert call.kwargs["timeout"] == 5.0
    session.close.assert_called_once()

    exported = json.loads(out_json.read_text(encoding="utf-8"))
    assert exported == [
        {"address": "1 Main St, Springfield", "latitude": 10.0, "longitude": 20.0,
         "Addr": "1 Main St", "Type": "store", "Name": "Alpha"},
        {"address": "2 Oak Ave, Shelbyville", "latitude": 30.0, "longitude": 40.0,
         "Addr": "2 Oak Ave", "Type": "office", "Name": "Beta"},
    ]

    markers = json.loads(out_markers.read_text(encoding="utf-8"))
    assert markers["categories"] == ["all", "store", "office"]
    assert markers["filter_fields"] == ["Addr", "Type", "Name"]
    assert markers["center"] == {"lat": 10.0, "lng": 20.0}
    assert len(markers["markers"]) == 1

    # no failures, no error log file
    assert list((temp_workdir / "logs").glob("errors-*.log")) == []


def test_explicit_address_field(temp_workdir: Path, write_config, csv_factory, capsys):
    csv_path = csv_factory(temp_workdir / "data", "odd.csv", "Where,Label\n1 Main St,a\n")
    seen: list[str] = []

    def fake_geocode(self, address):
        seen.append(address)
        return GeocodeOutcome.resolved(1.0, 2.0, address)

    with patch("addrmap.geocoding.client.GeocodeClient.geocode", fake_geocode):
        code = cli_main([str(csv_path), "--address-field", "Where"])

    assert code == 0
    assert seen == ["1 Main St"]


def test_inspect_data(temp_workdir: Path, write_config, csv_factory, capsys):
    csv_path = csv_factory(temp_workdir / "data", "stores.csv", "Name,Address,Category\nA,1 Main St,store\n")
    with patch("addrmap.geocoding.client.GeocodeClient.geocode") as mock_geocode:
        code = cli_main([str(csv_path), "--inspect-data"])

    out = capsys.readouterr().out
    assert code == 0
    mock_geocode.assert_not_called()
    assert "FILE: stores.csv rows=1 cols=['Name', 'Address', 'Category']" in out
    assert "address_field=Address category_field=Category low_confidence=False" in out
