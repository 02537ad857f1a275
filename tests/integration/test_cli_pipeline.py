import json
from pathlib import Path

import pytest
import requests

from pricemap.cli import main, parse_args, run_command

SQUARE = {"type": "Polygon", "coordinates": [[[-0.14, 51.49], [-0.13, 51.49], [-0.13, 51.50], [-0.14, 51.49]]]}


def _ledger_line(uid, price, when, postcode, ptype, paon="1", street="HIGH STREET", town="LONDON") -> str:
    fields = [uid, str(price), f"{when} 00:00", postcode, ptype, "N", "F", paon, "", street, "", town, "DISTRICT", "COUNTY", "A", "A"]
    return ",".join(f'"{field}"' for field in fields) + "\n"


def _write_inputs(data_dir: Path, lines: list[str], polygon_codes: list[str]) -> None:
    raw = data_dir / "raw"
    (raw / "postcode-polygons").mkdir(parents=True)
    (raw / "pp-complete.csv").write_text("".join(lines), encoding="utf-8")
    features = [{"type": "Feature", "properties": {"name": code}, "geometry": SQUARE} for code in polygon_codes]
    (raw / "postcode-polygons" / "districts.geojson").write_text(
        json.dumps({"type": "FeatureCollection", "features": features}), encoding="utf-8"
    )


def _read(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.mark.integration
def test_cli_aggregate_end_to_end(tmp_path: Path):
    data_dir = tmp_path / "data"
    _write_inputs(
        data_dir,
        [
            _ledger_line("{1}", 500000, "2020-03-01", "SW1 1AA", "F"),
            _ledger_line("{2}", 550000, "2021-03-01", "SW1 1AA", "F"),
            _ledger_line("{3}", 100000, "2020-07-01", "M1 1AE", "X"),
            _ledger_line("{4}", 50, "2020-07-01", "M1 1AE", "D"),
        ],
        polygon_codes=["SW1"],
    )
    args = parse_args(
        ["aggregate", "--config-dir", "config", "--data-dir", str(data_dir), "--run-date", "2026-02-17", "--run-id", "run-e2e"]
    )

    assert run_command(args) == 0

    out = data_dir / "out"
    sw1 = _read(out / "trends" / "SW1.json")
    assert sw1["code"] == "SW1"
    assert [year["year"] for year in sw1["years"]] == [2020, 2021]
    assert sw1["years"][0]["yoyChange"] is None
    assert sw1["years"][1]["yoyChange"] == 10.0
    assert sw1["years"][1]["avgPrice"] == 550000

    m1 = _read(out / "trends" / "M1.json")
    assert len(m1["years"]) == 1
    assert m1["years"][0]["byCategory"] == {"O": {"avgPrice": 100000, "count": 1}}
    assert m1["years"][0]["transactionCount"] == 1

    summary = _read(out / "districts-summary.geojson")
    assert summary["type"] == "FeatureCollection"
    assert [f["properties"]["code"] for f in summary["features"]] == ["SW1"]
    properties = summary["features"][0]["properties"]
    assert properties["yoyChange"] == 10.0
    assert properties["latestYear"] == 2021
    assert properties["byCategory"]["F"] == {"avgPrice": 550000, "count": 1}

    report = _read(out / "reports" / "run_summary.json")
    assert report["status"] == "partial"
    assert report["stage_stats"]["aggregate"]["geometry_unmatched"] == 1
    assert report["stage_stats"]["aggregate"]["skipped_by_reason"] == {"low_price": 1}
    assert (data_dir / "run_meta" / "run-e2e.log.jsonl").exists()


@pytest.mark.integration
def test_cli_all_stages_with_stubbed_certificate_api(tmp_path: Path, monkeypatch):
    data_dir = tmp_path / "data"
    overlay = tmp_path / "overlay"
    overlay.mkdir()
    (overlay / "pipeline.yml").write_text("enrichment:\n  min_interval_seconds: 0\n", encoding="utf-8")
    _write_inputs(
        data_dir,
        [
            _ledger_line("{1}", 250000, "2023-05-01", "AB1 2CD", "F", paon="10", town="ABERDEEN"),
            _ledger_line("{2}", 400000, "2024-01-10", "AB1 2CE", "D", paon="ROSE COTTAGE", street="LANE END", town="ABERDEEN"),
            _ledger_line("{3}", 300000, "2020-01-10", "SW1 1AA", "T"),
        ],
        polygon_codes=["AB1", "SW1"],
    )
    monkeypatch.setenv("EPC_EMAIL", "tester@example.com")
    monkeypatch.setenv("EPC_API_KEY", "secret")

    calls = []

    class FakeResponse:
        def __init__(self, status_code, payload):
            self.status_code = status_code
            self._payload = payload
            self.content = json.dumps(payload).encode("utf-8")

        def json(self):
            return self._payload

    def fake_request(self, method=None, url=None, params=None, headers=None, timeout=None, **_kwargs):
        calls.append(params["postcode"])
        if params["postcode"] == "AB1 2CD":
            rows = [
                {
                    "address1": "Flat 2",
                    "address2": "10 High St",
                    "postcode": "AB1 2CD",
                    "total-floor-area": "48.5",
                    "number-habitable-rooms": "2",
                    "current-energy-rating": "C",
                    "property-type": "Flat",
                    "lodgement-date": "2021-07-19",
                }
            ]
            return FakeResponse(200, {"rows": rows})
        return FakeResponse(404, {"error": "not found"})

    monkeypatch.setattr(requests.Session, "request", fake_request)

    exit_code = main(
        [
            "all",
            "--config-dir",
            "config",
            "--overlay-config-dir",
            str(overlay),
            "--data-dir",
            str(data_dir),
            "--run-date",
            "2026-02-17",
            "--run-id",
            "run-all",
        ]
    )

    assert exit_code == 0
    assert calls == ["AB1 2CD", "AB1 2CE"]

    out = data_dir / "out"
    sales = _read(out / "sales" / "AB1.json")
    assert [sale["address"] for sale in sales] == ["ROSE COTTAGE, LANE END, ABERDEEN", "10, HIGH STREET, ABERDEEN"]
    assert "floorArea" not in sales[0]
    assert sales[1]["floorArea"] == 48.5
    assert sales[1]["roomCount"] == 2
    assert sales[1]["energyRating"] == "C"
    assert not (out / "sales" / "SW1.json").exists()

    cache_dir = data_dir / "cache" / "epc"
    assert _read(cache_dir / "AB1_2CE.json") == []
    assert len(_read(cache_dir / "AB1_2CD.json")) == 1

    report = _read(out / "reports" / "run_summary.json")
    assert report["stages"] == ["aggregate", "extract-sales", "enrich"]
    assert report["status"] == "success"
    assert report["stage_stats"]["extract-sales"]["sales_written"] == 2
    enrich_stats = report["stage_stats"]["enrich"]
    assert enrich_stats["fetched"] == 1
    assert enrich_stats["failed_status"] == 1
    assert enrich_stats["sales_enriched"] == 1
    assert enrich_stats["sales_unmatched"] == 1


@pytest.mark.integration
def test_cli_aggregate_survives_unusable_ledger_rows(tmp_path: Path):
    data_dir = tmp_path / "data"
    _write_inputs(
        data_dir,
        [
            _ledger_line("{1}", 500000, "2020-03-01", "SW1 1AA", "F"),
            _ledger_line("{2}", "9" * 20, "2020-03-01", "SW1 1AA", "F"),
            _ledger_line("{3}", 400000, "2020-03-01", "SW1 1AA", "F", street="X" * 200_000),
            _ledger_line("{4}", 300000, "2020-04-01", "SW1 1AA", "F"),
        ],
        polygon_codes=["SW1"],
    )

    exit_code = main(["aggregate", "--config-dir", "config", "--data-dir", str(data_dir), "--run-id", "run-bad-rows"])

    assert exit_code == 0
    sw1 = _read(data_dir / "out" / "trends" / "SW1.json")
    assert sw1["years"][0]["transactionCount"] == 2
    assert sw1["years"][0]["avgPrice"] == 400000
    report = _read(data_dir / "out" / "reports" / "run_summary.json")
    assert report["status"] == "partial"
    assert "aggregate:unreadable_lines" in report["warnings"]
    stats = report["stage_stats"]["aggregate"]
    assert stats["skipped_by_reason"] == {"bad_price": 1}
    assert stats["unreadable_lines"] == 1
