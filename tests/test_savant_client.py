from urllib.parse import parse_qsl, urlsplit

import pytest
import requests

from conftest import DummyResponse
from pitchcards.data_sources import savant_client
from pitchcards.data_sources.savant_client import (
    SavantClient,
    build_csv_url,
    build_search_params,
    savant_filename,
)


@pytest.fixture
def calls(monkeypatch):
    seen = []

    def fake_get(self, url, headers=None, timeout=None):
        seen.append(url)
        return DummyResponse("pitches,player_id\n10,1\n")

    monkeypatch.setattr(requests.Session, "get", fake_get)
    monkeypatch.setattr(savant_client.time, "sleep", lambda s: seen.append(("sleep", s)))
    return seen


@pytest.mark.unit
def test_build_search_params_filters():
    params = dict(build_search_params("sl", 2026, "S"))
    assert params["hfPT"] == "SL|"
    assert params["hfGT"] == "S|"
    assert params["hfSea"] == "2026|"
    assert params["player_type"] == "pitcher"
    assert params["group_by"] == "name"
    assert params["hfFlag"] == "is\\.\\.bunt\\.\\.not|"
    assert params["chk_stats_arm_angle"] == "on"
    assert params["chk_stats_spin_rate"] == "on"
    assert params["hfZ"] == ""


@pytest.mark.unit
def test_build_search_params_order_starts_with_all():
    keys = [k for k, _ in build_search_params("FF", 2025, "R")]
    assert keys[:3] == ["all", "type", "hfPT"]
    assert keys.index("hfSea") < keys.index("player_type")


@pytest.mark.unit
def test_build_search_params_unknown_code():
    with pytest.raises(ValueError):
        build_search_params("ZZ", 2025, "R")


@pytest.mark.unit
def test_build_csv_url_encodes_pipes():
    url = build_csv_url("FF", 2025, "R")
    parts = urlsplit(url)
    assert parts.netloc == "baseballsavant.mlb.com"
    assert "hfPT=FF%7C" in parts.query
    assert ("hfSea", "2025|") in parse_qsl(parts.query, keep_blank_values=True)


@pytest.mark.unit
def test_savant_filename():
    assert savant_filename("2026st", "FF") == "savant_2026st_FF.csv"


@pytest.mark.unit
def test_download_segment_writes_one_file_per_code(tmp_path, calls):
    client = SavantClient(session=requests.Session(), request_delay=0.5)
    written = client.download_segment("2026st", tmp_path / "2026st", codes=["FF", "SL"])

    assert [p.name for p in written] == ["savant_2026st_FF.csv", "savant_2026st_SL.csv"]
    assert written[0].read_text(encoding="utf-8").startswith("pitches,player_id")
    urls = [c for c in calls if isinstance(c, str)]
    assert "hfGT=S%7C" in urls[0]
    assert "hfPT=SL%7C" in urls[1]
    # only between requests
    assert calls.count(("sleep", 0.5)) == 1


@pytest.mark.unit
def test_download_segment_bad_segment(tmp_path, calls):
    with pytest.raises(ValueError):
        SavantClient(session=requests.Session()).download_segment("spring", tmp_path)
    assert calls == []


@pytest.mark.unit
def test_fetch_csv_raises_on_http_error(monkeypatch):
    monkeypatch.setattr(requests.Session, "get",
                        lambda self, url, headers=None, timeout=None: DummyResponse("", 503))
    with pytest.raises(requests.HTTPError):
        SavantClient(session=requests.Session()).fetch_csv("FF", 2025, "R")


@pytest.mark.unit
def test_from_config_reads_sources():
    cfg = {
        "sources": {"savant": {"csv_url": "http://example.test/csv", "request_delay": 0}},
        "http": {"timeout": 5, "retries": 1},
    }
    client = SavantClient.from_config(cfg)
    assert client.base_url == "http://example.test/csv"
    assert client.request_delay == 0
    assert client.timeout == 5
    assert isinstance(client.session, requests.Session)


@pytest.mark.unit
def test_download_segment_defaults_to_raw_segment_dir(tmp_path, calls):
    client = SavantClient(session=requests.Session(), raw_root=tmp_path / "raw")
    written = client.download_segment("2025", codes=["CU"])
    assert written == [tmp_path / "raw" / "2025" / "savant_2025_CU.csv"]
    assert written[0].exists()


@pytest.mark.unit
def test_from_config_raw_root_follows_paths(tmp_path):
    cfg = {"root_path": str(tmp_path), "paths": {"raw": "store/raw"}}
    assert SavantClient.from_config(cfg).raw_root == tmp_path / "store" / "raw"
