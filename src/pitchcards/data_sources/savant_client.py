#!/usr/bin/env python3
"""
savant_client.py

Downloads one Baseball Savant statcast-search CSV per pitch type for a season
segment (e.g. 2026 spring training). Each export is grouped by pitcher and
carries the pitch-level columns the data build uses for enrichment: spin
rate, whiffs, swings, swing-miss %, arm angle, barrels/PA % and hard-hit %.

Usage:
    python -m pitchcards.data_sources.savant_client 2026st
    python -m pitchcards.data_sources.savant_client 2025 --codes FF SL
"""
import argparse
import logging
import sys
import time
from pathlib import Path
from urllib.parse import urlencode

import requests

from pitchcards.utils.config_loader import load_config, resolve_path
from pitchcards.utils.http import session_from_config
from pitchcards.utils.logging_setup import configure_logging
from pitchcards.utils.pitch_meta import ALL_PITCH_CODES, safe_pitch_code
from pitchcards.utils.segments import parse_segment

logger = logging.getLogger(__name__)

CSV_URL = "https://baseballsavant.mlb.com/statcast_search/csv"
RAW_ROOT = Path("data/raw")

# Stat columns ticked in the Savant search form
CHECKED_STATS = [
    "pa", "abs", "hits", "k_percent", "bb_percent", "whiffs", "swings",
    "ba", "xba", "obp", "xobp", "slg", "xslg", "woba", "xwoba",
    "barrels_total", "babip", "iso", "swing_miss_percent", "velocity",
    "spin_rate", "release_pos_z", "release_pos_x", "release_extension",
    "plate_x", "plate_z", "arm_angle", "launch_speed", "hardhit_percent",
    "barrels_per_bbe_percent", "barrels_per_pa_percent",
]

# Filters left blank in the search form; Savant expects them present
_BLANK_FILTERS = [
    "hfPR", "hfZ", "hfStadium", "hfBBL", "hfNewZones", "hfPull", "hfC",
]
_BLANK_FILTERS_2 = [
    "hfSit", "player_type", "hfOuts", "home_road", "pitcher_throws",
    "batter_stands", "hfSA", "hfEventOuts", "hfEventRuns", "game_date_gt",
    "game_date_lt", "hfMo", "hfTeam", "hfOpponent", "hfRO", "position",
    "hfInfield", "hfOutfield", "hfInn", "hfBBT",
]


def build_search_params(code: str, season: int, game_type: str) -> list[tuple[str, str]]:
    """Ordered statcast-search query parameters for one pitch type."""
    pitch = safe_pitch_code(code)
    if pitch is None:
        raise ValueError(f"Unknown pitch code: {code!r}")

    params = [
        ("all", "true"),
        ("type", "details"),
        ("hfPT", f"{pitch}|"),
        ("hfAB", ""),
        ("hfGT", f"{game_type}|"),
    ]
    params += [(k, "") for k in _BLANK_FILTERS]
    params.append(("hfSea", f"{season}|"))
    for k in _BLANK_FILTERS_2:
        params.append((k, "pitcher" if k == "player_type" else ""))
    params += [
        ("hfFlag", "is\\.\\.bunt\\.\\.not|"),
        ("metric_1", ""),
        ("group_by", "name"),
        ("min_pitches", "0"),
        ("min_results", "0"),
        ("min_pas", "0"),
        ("sort_col", "pitches"),
        ("player_event_sort", "api_p_release_speed"),
        ("sort_order", "desc"),
    ]
    params += [(f"chk_stats_{stat}", "on") for stat in CHECKED_STATS]
    return params


def build_csv_url(code: str, season: int, game_type: str, base_url: str = CSV_URL) -> str:
    return f"{base_url}?{urlencode(build_search_params(code, season, game_type))}"


def savant_filename(segment: str, code: str) -> str:
    return f"savant_{segment}_{code}.csv"


class SavantClient:
    """Fetches per-pitch-type CSV exports from Baseball Savant."""

    def __init__(self, session: requests.Session = None, base_url: str = CSV_URL,
                 request_delay: float = 0.8, timeout: float = 60, raw_root: Path = RAW_ROOT):
        self.session = session or requests.Session()
        self.base_url = base_url
        self.request_delay = request_delay
        self.timeout = timeout
        self.raw_root = Path(raw_root)

    @classmethod
    def from_config(cls, cfg: dict) -> "SavantClient":
        savant_cfg = cfg.get("sources", {}).get("savant", {})
        return cls(
            session=session_from_config(cfg),
            base_url=savant_cfg.get("csv_url", CSV_URL),
            request_delay=savant_cfg.get("request_delay", 0.8),
            timeout=cfg.get("http", {}).get("timeout", 60),
            raw_root=resolve_path(cfg, "raw", default=str(RAW_ROOT)),
        )

    def fetch_csv(self, code: str, season: int, game_type: str) -> str:
        url = build_csv_url(code, season, game_type, self.base_url)
        logger.debug("Savant CSV URL (%s): %s", code, url)
        resp = self.session.get(url, headers={"Accept": "text/csv,*/*"},
                                timeout=self.timeout)
        resp.raise_for_status()
        return resp.text

    def download_segment(self, segment: str, out_dir: Path = None, codes=None) -> list[Path]:
        """
        Download one CSV per pitch code as savant_<segment>_<CODE>.csv into
        out_dir (default: <raw_root>/<segment>). Returns the written paths.
        """
        season, game_type = parse_segment(segment)
        out_dir = Path(out_dir) if out_dir else self.raw_root / str(segment)
        out_dir.mkdir(parents=True, exist_ok=True)
        codes = list(codes) if codes else ALL_PITCH_CODES

        logger.info("Fetching %s Savant CSVs -> %s", segment, out_dir)
        written = []
        for i, code in enumerate(codes):
            if i and self.request_delay:
                # be nice to Savant
                time.sleep(self.request_delay)
            text = self.fetch_csv(code, season, game_type)
            out = out_dir / savant_filename(segment, code)
            out.write_text(text, encoding="utf-8")
            logger.info("  %s -> wrote %s", code, out.name)
            written.append(out)
        logger.info("Done: %d files in %s", len(written), out_dir)
        return written


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Download per-pitch-type Baseball Savant CSVs for a season segment."
    )
    parser.add_argument("segment", nargs="?", help="Segment label, e.g. 2026st or 2025")
    parser.add_argument("--codes", nargs="+", help="Pitch codes to fetch (default: all)")
    parser.add_argument("--out-dir", type=Path, help="Output directory (default: <raw>/<segment>)")
    args = parser.parse_args(argv)

    cfg = load_config()
    configure_logging(cfg)
    segment = str(args.segment or cfg.get("build", {}).get("default_segment"))

    try:
        SavantClient.from_config(cfg).download_segment(segment, args.out_dir, args.codes)
    except (requests.RequestException, ValueError, OSError) as e:
        logger.error("Savant fetch failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
