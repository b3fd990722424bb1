import json
from pathlib import Path

import pytest

import run
from sweekar.app import AppSettings, SweekarApp
from sweekar.categories import lookup
from sweekar.places_client import PlaceDetail
from sweekar.store import Store


class FakePlacesClient:
    def __init__(self, resources):
        self.resources = {r.place_id: r for r in resources}
        self.origins = []

    def nearby_search(self, origin, keyword):
        self.origins.append(origin)
        return [{"place_id": pid, "name": r.name} for pid, r in self.resources.items()]

    def place_details(self, place_id):
        return self.resources[place_id]


def police(place_id, name, lat=12.9716, lng=77.5946):
    return PlaceDetail(place_id=place_id, name=name, address="MG Road", lat=lat, lng=lng, types=["police"])


@pytest.fixture
def fake_app(monkeypatch):
    client = FakePlacesClient(
        [
            police("p1", "Cubbon Park Police Station"),
            police("p2", "She Teams Desk"),
            police("p3", "Far Away Station", lat=14.0),
        ]
    )

    def build(settings, location_provider=None):
        return SweekarApp(settings, location_provider=location_provider, places_client=client, store=Store(":memory:"))

    monkeypatch.setattr(run, "SweekarApp", build)
    return client


def test_discovery_writes_outputs(tmp_path, fake_app, capsys):
    out_dir = tmp_path / "out"
    code = run.main(
        [
            "--category",
            "safety",
            "--lat",
            "12.9716",
            "--lng",
            "77.5946",
            "--search",
            "station",
            "--out",
            str(out_dir),
        ]
    )

    assert code == 0
    rows = json.loads((out_dir / "resources.json").read_text(encoding="utf-8"))
    assert [r["place_id"] for r in rows] == ["p1"]
    assert (out_dir / "resources.csv").exists()
    summary = (out_dir / "summary.txt").read_text(encoding="utf-8")
    assert "Published resources: 2" in summary
    summary_json = json.loads((out_dir / "summary.json").read_text(encoding="utf-8"))
    assert summary_json["state"] == "published"
    assert summary_json["published_count"] == 2
    assert summary_json["requests"]["failed_details"] == 0
    assert len(fake_app.origins) == len(lookup("safety").keywords)

    printed = capsys.readouterr().out
    assert "Cubbon Park Police Station" in printed
    assert "Page 1 / 1:" in printed


def test_watch_replays_fixes(tmp_path, fake_app):
    fixes = Path(__file__).parent / "fixtures" / "fixes.jsonl"
    out_dir = tmp_path / "out"
    code = run.main(["--category", "safety", "--fixes", str(fixes), "--out", str(out_dir)])
    assert code == 0
    summary = (out_dir / "summary.txt").read_text(encoding="utf-8")
    assert "Origin: 20.650000,78.962900" in summary
    assert "Published resources: 0" in summary
    assert any(origin.lat == 20.65 for origin in fake_app.origins)


def test_missing_api_key_fails(tmp_path, monkeypatch, capsys):
    monkeypatch.delenv("GOOGLE_MAPS_API_KEY", raising=False)
    code = run.main(["--store-path", str(tmp_path / "s.db"), "--out", str(tmp_path / "out")])
    assert code == 1
    assert "Error loading places service" in capsys.readouterr().err
    assert not (tmp_path / "out").exists()


def test_lat_without_lng_is_rejected(tmp_path, capsys):
    code = run.main(["--lat", "12.9", "--store-path", str(tmp_path / "s.db")])
    assert code == 1
    assert "--lat and --lng" in capsys.readouterr().err


def test_list_categories(capsys):
    assert run.main(["--list-categories", "women", "--category-search", "o"]) == 0
    printed = capsys.readouterr().out
    assert "support-groups" in printed
    assert "housing" in printed
    assert "Housing (generic search)" in printed
    assert "Support Groups (generic search)" not in printed


def test_preflight(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "k")
    assert run.main(["--preflight", "--store-path", str(tmp_path / "s.db")]) == 0
    assert "Preflight: PASS" in capsys.readouterr().out

    monkeypatch.delenv("GOOGLE_MAPS_API_KEY")
    assert run.main(["--preflight", "--store-path", str(tmp_path / "s.db")]) == 1


def test_settings_from_env():
    settings = AppSettings.from_env({"GOOGLE_MAPS_API_KEY": "  abc "}, max_requests_per_cycle=5)
    assert settings.api_key == "abc"
    assert settings.max_requests_per_cycle == 5
    assert AppSettings.from_env({}).api_key is None
