#!/usr/bin/env python3
"""
tjstats_client.py

Downloads the combined per-pitch-type CSV (pitchmovementdata.csv) from the
TJStats pitching app. The app is a Shiny-style server whose download endpoint
lives under a per-visit session path, so the session id is scraped out of the
server-rendered app shell first.

Usage:
    python -m pitchcards.data_sources.tjstats_client 2026st
"""
import argparse
import logging
import re
import sys
from pathlib import Path

import requests
from bs4 import BeautifulSoup

from pitchcards.utils.config_loader import load_config, resolve_path
from pitchcards.utils.http import session_from_config
from pitchcards.utils.logging_setup import configure_logging

logger = logging.getLogger(__name__)

BASE_URL = "https://nesticot-mlb-pitching-app.hf.space"
COMBINED_FILENAME = "pitchmovementdata.csv"
RAW_ROOT = Path("data/raw")

SESSION_RE = re.compile(r"/session/([0-9a-f]{20,})/", re.IGNORECASE)


class SessionNotFoundError(RuntimeError):
    """The app shell did not contain a /session/<id>/ path."""


def extract_session_id(html: str):
    """
    Return the first session id referenced by the page, or None.

    Script bodies and tag attributes are searched first, then the raw text,
    so ids hidden in markup the parser drops are still found.
    """
    if not html:
        return None
    soup = BeautifulSoup(html, "html.parser")
    for script in soup.find_all("script"):
        m = SESSION_RE.search(script.string or "")
        if m:
            return m.group(1)
    for tag in soup.find_all(True):
        for value in tag.attrs.values():
            values = value if isinstance(value, list) else [value]
            for v in values:
                m = SESSION_RE.search(str(v))
                if m:
                    return m.group(1)
    m = SESSION_RE.search(html)
    return m.group(1) if m else None


class TJStatsClient:

    def __init__(self, session: requests.Session = None, base_url: str = BASE_URL,
                 timeout: float = 60, raw_root: Path = RAW_ROOT):
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.raw_root = Path(raw_root)

    @classmethod
    def from_config(cls, cfg: dict) -> "TJStatsClient":
        return cls(
            session=session_from_config(cfg),
            base_url=cfg.get("sources", {}).get("tjstats", {}).get("base_url", BASE_URL),
            timeout=cfg.get("http", {}).get("timeout", 60),
            raw_root=resolve_path(cfg, "raw", default=str(RAW_ROOT)),
        )

    def fetch_app_shell(self) -> str:
        resp = self.session.get(
            self.base_url + "/",
            headers={
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Cache-Control": "no-cache",
            },
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.text

    def download_url(self, session_id: str) -> str:
        return f"{self.base_url}/session/{session_id}/download/download_all?w="

    def fetch_combined_csv(self) -> bytes:
        logger.info("Loading app shell from %s", self.base_url)
        session_id = extract_session_id(self.fetch_app_shell())
        if not session_id:
            raise SessionNotFoundError(
                "Could not find session id in initial HTML. The app likely creates "
                "the session via JS/websocket after load.")
        logger.info("Session: %s", session_id)

        url = self.download_url(session_id)
        logger.info("Downloading: %s", url)
        resp = self.session.get(
            url,
            headers={
                "Accept": "text/csv,text/plain,application/octet-stream,*/*",
                "Referer": self.base_url + "/",
            },
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.content

    def download_combined(self, segment: str, out_dir: Path = None) -> Path:
        """Write pitchmovementdata.csv to out_dir (default: <raw_root>/<segment>)."""
        out_dir = Path(out_dir) if out_dir else self.raw_root / str(segment)
        out_dir.mkdir(parents=True, exist_ok=True)
        data = self.fetch_combined_csv()
        out_path = out_dir / COMBINED_FILENAME
        out_path.write_bytes(data)
        logger.info("Saved %d bytes -> %s", len(data), out_path)
        return out_path


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Download the combined TJStats pitch CSV for a season segment."
    )
    parser.add_argument("segment", nargs="?", help="Segment label, e.g. 2026st")
    parser.add_argument("--out-dir", type=Path, help="Output directory (default: <raw>/<segment>)")
    args = parser.parse_args(argv)

    cfg = load_config()
    configure_logging(cfg)
    segment = str(args.segment or cfg.get("build", {}).get("default_segment"))

    try:
        TJStatsClient.from_config(cfg).download_combined(segment, args.out_dir)
    except (SessionNotFoundError, requests.RequestException, OSError) as e:
        logger.error("TJStats fetch failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
