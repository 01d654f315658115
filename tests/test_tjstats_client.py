import pytest
import requests

from conftest import DummyResponse
from pitchcards.data_sources.tjstats_client import (
    SessionNotFoundError,
    TJStatsClient,
    extract_session_id,
)

pytestmark = pytest.mark.unit

SID = "0123456789abcdef0123456789abcdef"


@pytest.mark.parametrize("html", [
    f'<html><script>var u = "/session/{SID}/dataobj/x";</script></html>',
    f'<html><a href="/session/{SID}/download/download_all?w=">csv</a></html>',
    f'<html><div data-url="https://host/session/{SID.upper()}/upload"></div></html>',
    f"<html><!-- /session/{SID}/ --></html>",
])
def test_extract_session_id_finds_id(html):
    assert extract_session_id(html).lower() == SID


@pytest.mark.parametrize("html", [
    "",
    None,
    "<html><body>loading...</body></html>",
    "<html><a href='/session/abc/'>too short</a></html>",
])
def test_extract_session_id_none(html):
    assert extract_session_id(html) is None


def test_download_combined_writes_csv(monkeypatch, tmp_path):
    seen = []

    def fake_get(self, url, headers=None, timeout=None):
        seen.append((url, headers))
        if url.endswith("/"):
            return DummyResponse(f'<script>"/session/{SID}/"</script>')
        return DummyResponse(content=b"pitcher_id,pitch_type\n1,FF\n")

    monkeypatch.setattr(requests.Session, "get", fake_get)
    client = TJStatsClient(session=requests.Session(), base_url="https://tj.example/",
                           raw_root=tmp_path / "raw")
    out = client.download_combined("2026st")

    assert out == tmp_path / "raw" / "2026st" / "pitchmovementdata.csv"
    assert out.read_bytes() == b"pitcher_id,pitch_type\n1,FF\n"
    assert seen[0][0] == "https://tj.example/"
    assert seen[1][0] == f"https://tj.example/session/{SID}/download/download_all?w="
    assert seen[1][1]["Referer"] == "https://tj.example/"


def test_fetch_combined_csv_without_session(monkeypatch):
    monkeypatch.setattr(requests.Session, "get",
                        lambda self, url, headers=None, timeout=None: DummyResponse("<html></html>"))
    with pytest.raises(SessionNotFoundError):
        TJStatsClient(session=requests.Session()).fetch_combined_csv()


def test_fetch_app_shell_http_error(monkeypatch):
    monkeypatch.setattr(requests.Session, "get",
                        lambda self, url, headers=None, timeout=None: DummyResponse("down", 502))
    with pytest.raises(requests.HTTPError):
        TJStatsClient(session=requests.Session()).fetch_app_shell()


def test_download_combined_explicit_out_dir(monkeypatch, tmp_path):
    def fake_get(self, url, headers=None, timeout=None):
        if url.endswith("/"):
            return DummyResponse(f"<a href='/session/{SID}/'>x</a>")
        return DummyResponse(content=b"a,b\n")

    monkeypatch.setattr(requests.Session, "get", fake_get)
    out = TJStatsClient(session=requests.Session()).download_combined("2025", tmp_path / "elsewhere")
    assert out == tmp_path / "elsewhere" / "pitchmovementdata.csv"


def test_from_config_raw_root_follows_paths(tmp_path):
    cfg = {"root_path": str(tmp_path), "paths": {"raw": "data/raw"}}
    assert TJStatsClient.from_config(cfg).raw_root == tmp_path / "data" / "raw"
