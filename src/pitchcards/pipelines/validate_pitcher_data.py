#!/usr/bin/env python3
"""
Checks the JSON emitted by build_pitcher_data: every index entry should have
a pitcher file, and every pitcher file should list at least one pitch.
"""
import argparse
import json
import logging
import sys
from pathlib import Path

from pitchcards.pipelines.build_pitcher_data import INDEX_FILENAME, PITCHERS_DIRNAME
from pitchcards.utils.config_loader import load_config, resolve_path
from pitchcards.utils.logging_setup import configure_logging

logger = logging.getLogger(__name__)


def validate(out_dir) -> dict:
    out_dir = Path(out_dir)
    idx_path = out_dir / INDEX_FILENAME
    pitchers_dir = out_dir / PITCHERS_DIRNAME

    if not idx_path.exists():
        raise FileNotFoundError(f"Missing: {idx_path}")
    if not pitchers_dir.exists():
        raise FileNotFoundError(f"Missing: {pitchers_dir}")

    with open(idx_path, "r", encoding="utf-8") as f:
        index = json.load(f)

    missing = []
    empty = []
    for p in index:
        file = pitchers_dir / f"{p['pitcher_id']}.json"
        if not file.exists():
            missing.append(p["pitcher_id"])
            continue
        with open(file, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not data.get("pitches"):
            empty.append(p["pitcher_id"])

    logger.info("Index pitchers: %d", len(index))
    logger.info("Missing pitcher json: %d", len(missing))
    logger.info("Empty pitcher json: %d", len(empty))
    if missing:
        logger.debug("Missing ids: %s", missing)
    if empty:
        logger.debug("Empty ids: %s", empty)

    return {
        "index_pitchers": len(index),
        "missing": len(missing),
        "empty": len(empty),
        "missing_ids": missing,
        "empty_ids": empty,
    }


def main(argv=None):
    parser = argparse.ArgumentParser(description="Validate built pitcher JSON")
    parser.add_argument("--out-dir", type=Path, help="Built data root (default: paths.public_data)")
    parser.add_argument("--strict", action="store_true",
                        help="Exit non-zero when any pitcher is missing or empty")
    args = parser.parse_args(argv)

    cfg = load_config()
    configure_logging(cfg)
    out_dir = args.out_dir or resolve_path(cfg, "public_data")

    try:
        report = validate(out_dir)
    except (FileNotFoundError, ValueError) as e:
        logger.error("Validation failed: %s", e)
        return 1
    if args.strict and (report["missing"] or report["empty"]):
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
