import json

import pytest
import requests

from conftest import DummyResponse
from pitchcards.data_sources.mlb_stats_client import (
    MlbApiError,
    MlbStatsClient,
    digits_only,
)

pytestmark = pytest.mark.unit

PERSON = {
    "id": 657277,
    "fullName": "Logan Webb",
    "currentAge": 29,
    "height": "6' 1\"",
    "weight": 220,
    "pitchHand": {"code": "R"},
    "currentTeam": {"id": 137, "name": "San Francisco Giants", "abbreviation": "SF"},
}


class FakeSession:
    """Replays queued responses and records requested URLs."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.urls = []

    def get(self, url, timeout=None):
        self.urls.append(url)
        resp = self.responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        return resp


def test_digits_only():
    assert digits_only(" id-657277 ") == "657277"
    assert digits_only(None) == ""


def test_get_player_meta_primary_endpoint():
    session = FakeSession(DummyResponse("{}", data={"people": [PERSON]}))
    meta = MlbStatsClient(session=session).get_player_meta("657277")

    assert session.urls == [
        "https://statsapi.mlb.com/api/v1/people/657277?hydrate=currentTeam"]
    assert meta == {
        "id": "657277",
        "fullName": "Logan Webb",
        "teamId": 137,
        "teamName": "San Francisco Giants",
        "teamAbbr": "SF",
        "throws": "R",
        "age": 29,
        "height": "6' 1\"",
        "weight": 220,
        "source": "people/{id}",
    }


def test_get_player_meta_falls_back_to_person_ids():
    person = dict(PERSON, currentAge="29", weight=None, currentTeam={"id": 1, "triCode": "SFG"})
    session = FakeSession(
        DummyResponse("not found", status_code=404),
        DummyResponse("{}", data={"people": [person]}),
    )
    meta = MlbStatsClient(session=session).get_player_meta(657277)

    assert session.urls[1].endswith("/people?personIds=657277&hydrate=currentTeam")
    assert meta["source"] == "people?personIds="
    assert meta["teamAbbr"] == "SFG"
    assert meta["age"] is None
    assert meta["weight"] is None


def test_get_player_meta_both_endpoints_fail():
    session = FakeSession(
        DummyResponse("a" * 500, status_code=500),
        DummyResponse("gateway", status_code=502),
    )
    with pytest.raises(MlbApiError) as exc:
        MlbStatsClient(session=session).get_player_meta("1")
    details = exc.value.details
    assert details["statusA"] == 500
    assert details["statusB"] == 502
    assert len(details["bodyPreviewA"]) == 300
    assert details["bodyPreviewB"] == "gateway"
    assert len(details["tried"]) == 2


def test_get_player_meta_no_person():
    session = FakeSession(DummyResponse("{}", data={"people": []}))
    with pytest.raises(MlbApiError, match="No person"):
        MlbStatsClient(session=session).get_player_meta("1")


def test_get_player_meta_invalid_id():
    with pytest.raises(ValueError):
        MlbStatsClient(session=FakeSession()).get_player_meta("abc")


def test_load_player_meta_uses_and_updates_cache(tmp_path):
    cache_path = tmp_path / "cache" / "player_meta.json"
    cache_path.parent.mkdir()
    cache_path.write_text(json.dumps({"1": {"id": "1", "fullName": "Cached"}}), encoding="utf-8")

    session = FakeSession(
        DummyResponse("{}", data={"people": [PERSON]}),
        requests.ConnectionError("offline"),
    )
    client = MlbStatsClient(session=session)
    out = client.load_player_meta(["1", "657277", "3"], cache_path)

    assert out["1"]["fullName"] == "Cached"
    assert out["657277"]["teamAbbr"] == "SF"
    assert "3" not in out
    assert len(session.urls) == 2

    saved = json.loads(cache_path.read_text(encoding="utf-8"))
    assert set(saved) == {"1", "657277"}


def test_load_player_meta_skips_write_when_nothing_fetched(tmp_path):
    cache_path = tmp_path / "player_meta.json"
    out = MlbStatsClient(session=FakeSession()).load_player_meta([], cache_path)
    assert out == {}
    assert not cache_path.exists()


def test_from_config():
    cfg = {"sources": {"mlb_stats_api": {"base_url": "http://x.test/api/", "hydrate": "team"}},
           "http": {"timeout": 7}}
    client = MlbStatsClient.from_config(cfg, session=FakeSession())
    assert client.base_url == "http://x.test/api"
    assert client.hydrate == "team"
    assert client.timeout == 7
    assert client.cache_path is None


@pytest.mark.parametrize("contents", ["{not json", "[1, 2]"])
def test_load_player_meta_unreadable_cache_is_replaced(tmp_path, contents):
    cache_path = tmp_path / "player_meta.json"
    cache_path.write_text(contents, encoding="utf-8")

    session = FakeSession(DummyResponse("{}", data={"people": [PERSON]}))
    client = MlbStatsClient(session=session, cache_path=cache_path)
    out = client.load_player_meta(["657277"])

    assert out["657277"]["fullName"] == "Logan Webb"
    assert list(json.loads(cache_path.read_text(encoding="utf-8"))) == ["657277"]


def test_from_config_cache_path_follows_paths(tmp_path):
    cfg = {"root_path": str(tmp_path), "paths": {"player_meta_cache": ".cache/meta.json"}}
    client = MlbStatsClient.from_config(cfg, session=FakeSession())
    assert client.cache_path == tmp_path / ".cache" / "meta.json"
