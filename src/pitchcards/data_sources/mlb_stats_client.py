"""
Player biographical metadata from MLB's public stats API.

Used by the dashboard header: name, current team, throwing hand, age, height
and weight. Lookups are cached on disk so repeated dashboard builds do not
refetch every pitcher.
"""
import json
import logging
import re
from pathlib import Path

import requests

from pitchcards.utils.config_loader import resolve_path

logger = logging.getLogger(__name__)

BASE_URL = "https://statsapi.mlb.com/api/v1"


class MlbApiError(RuntimeError):
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.details = details or {}


def digits_only(raw) -> str:
    return "".join(re.findall(r"\d+", str(raw or "")))


def _preview(text, limit=300):
    return text[:limit] if text is not None else None


class MlbStatsClient:

    def __init__(self, session: requests.Session = None, base_url: str = BASE_URL,
                 hydrate: str = "currentTeam", timeout: float = 30, cache_path: Path = None):
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.hydrate = hydrate
        self.timeout = timeout
        self.cache_path = cache_path

    @classmethod
    def from_config(cls, cfg: dict, session: requests.Session = None) -> "MlbStatsClient":
        api_cfg = cfg.get("sources", {}).get("mlb_stats_api", {})
        return cls(
            session=session,
            base_url=api_cfg.get("base_url", BASE_URL),
            hydrate=api_cfg.get("hydrate", "currentTeam"),
            timeout=cfg.get("http", {}).get("timeout", 30),
            cache_path=resolve_path(cfg, "player_meta_cache", default=None),
        )

    def _fetch_json(self, url):
        resp = self.session.get(url, timeout=self.timeout)
        text = resp.text
        try:
            data = resp.json()
        except ValueError:
            data = None
        return {"ok": resp.ok, "status": resp.status_code, "text": text, "json": data}

    def get_player_meta(self, raw_id) -> dict:
        """
        Fetch name, team and physical details for one player.

        Tries people/{id} first and falls back to people?personIds={id}.
        Raises ValueError for an id with no digits and MlbApiError when
        neither endpoint returns a person.
        """
        pid = digits_only(raw_id)
        if not pid:
            raise ValueError(f"Invalid player id: {raw_id!r}")

        url_a = f"{self.base_url}/people/{pid}?hydrate={self.hydrate}"
        url_b = f"{self.base_url}/people?personIds={pid}&hydrate={self.hydrate}"
        logger.debug("Player meta URL for %s: %s", pid, url_a)
        a = self._fetch_json(url_a)
        b = None if a["ok"] else self._fetch_json(url_b)
        src = a if a["ok"] else b

        if not src or not src["ok"]:
            raise MlbApiError("MLB API error", {
                "id": pid,
                "tried": [url_a, url_b],
                "statusA": a["status"],
                "statusB": b["status"] if b else None,
                "bodyPreviewA": _preview(a["text"]),
                "bodyPreviewB": _preview(b["text"]) if b else None,
            })

        people = (src["json"] or {}).get("people") or []
        person = people[0] if people else None
        if not person:
            raise MlbApiError("No person returned from MLB API",
                              {"id": pid, "tried": [url_a, url_b]})

        team = person.get("currentTeam") or {}
        team_abbr = (team.get("abbreviation")
                     or team.get("abbrev")
                     or team.get("triCode"))
        throws = ((person.get("throwsHand") or {}).get("code")
                  or (person.get("pitchHand") or {}).get("code"))

        age = person.get("currentAge")
        height = person.get("height")
        weight = person.get("weight")
        return {
            "id": pid,
            "fullName": person.get("fullName"),
            "teamId": team.get("id"),
            "teamName": team.get("name"),
            "teamAbbr": team_abbr,
            "throws": throws,
            "age": age if isinstance(age, (int, float)) and not isinstance(age, bool) else None,
            "height": height if isinstance(height, str) else None,
            "weight": weight if isinstance(weight, (int, float)) and not isinstance(weight, bool) else None,
            "source": "people/{id}" if a["ok"] else "people?personIds=",
        }

    def _read_cache(self, cache_path) -> dict:
        if not cache_path or not Path(cache_path).exists():
            return {}
        logger.info("Loading player meta from cache: %s", cache_path)
        try:
            with open(cache_path, "r", encoding="utf-8") as f:
                cache = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable player meta cache %s: %s", cache_path, e)
            return {}
        if not isinstance(cache, dict):
            logger.warning("Ignoring player meta cache %s: expected a JSON object", cache_path)
            return {}
        return cache

    def load_player_meta(self, player_ids, cache_path: Path = None) -> dict:
        """
        Return {player_id: meta} for every id that could be resolved.

        cache_path defaults to the client's cache file. Cached entries are
        reused; new lookups are written back. Failed lookups are logged and
        left out.
        """
        cache_path = cache_path or self.cache_path
        cache = self._read_cache(cache_path)

        fetched = 0
        out = {}
        for pid in player_ids:
            key = str(pid)
            if key in cache:
                out[key] = cache[key]
                continue
            try:
                meta = self.get_player_meta(key)
            except (ValueError, MlbApiError, requests.RequestException) as e:
                logger.warning("Player meta lookup failed for %s: %s", key, e)
                continue
            cache[key] = meta
            out[key] = meta
            fetched += 1

        if cache_path and fetched:
            cache_path = Path(cache_path)
            cache_path.parent.mkdir(parents=True, exist_ok=True)
            with open(cache_path, "w", encoding="utf-8") as f:
                json.dump(cache, f, indent=2)
            logger.info("Saved %d new player meta entries to %s", fetched, cache_path)
        return out
