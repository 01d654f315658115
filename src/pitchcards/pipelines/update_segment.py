#!/usr/bin/env python3
"""
Refresh one season segment end to end: fetch the raw CSVs, rebuild the JSON
and optionally re-render the dashboard. Each step runs as its own
`python -m` process, like running the scripts by hand.

Usage:
    python -m pitchcards.pipelines.update_segment 2026st --tjstats --dashboard
"""
import argparse
import logging
import subprocess
import sys

from pitchcards.utils.config_loader import load_config
from pitchcards.utils.logging_setup import configure_logging

logger = logging.getLogger(__name__)


def plan_steps(segment: str, tjstats: bool = False, dashboard: bool = False,
               validate: bool = True) -> list[list[str]]:
    steps = [[sys.executable, "-m", "pitchcards.data_sources.savant_client", segment]]
    if tjstats:
        steps.append([sys.executable, "-m", "pitchcards.data_sources.tjstats_client", segment])
    steps.append([sys.executable, "-m", "pitchcards.pipelines.build_pitcher_data", segment])
    if validate:
        steps.append([sys.executable, "-m", "pitchcards.pipelines.validate_pitcher_data"])
    if dashboard:
        steps.append([sys.executable, "-m",
                      "pitchcards.renderers.pitcher_dashboard_html_generator"])
    return steps


def run_steps(steps, runner=subprocess.run):
    for cmd in steps:
        logger.info("Running: %s", " ".join(cmd[1:]))
        runner(cmd, check=True)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Fetch and rebuild one season segment")
    parser.add_argument("segment", nargs="?", help="Segment label, e.g. 2026st")
    parser.add_argument("--tjstats", action="store_true",
                        help="Also refresh the combined TJStats CSV")
    parser.add_argument("--dashboard", action="store_true",
                        help="Re-render the dashboard page afterwards")
    parser.add_argument("--skip-validate", action="store_true")
    args = parser.parse_args(argv)

    cfg = load_config()
    configure_logging(cfg)
    segment = str(args.segment or cfg.get("build", {}).get("default_segment"))

    steps = plan_steps(segment, tjstats=args.tjstats, dashboard=args.dashboard,
                       validate=not args.skip_validate)
    try:
        run_steps(steps)
    except subprocess.CalledProcessError as e:
        logger.error("Update step failed: %s", e)
        return e.returncode or 1
    logger.info("Segment %s updated.", segment)
    return 0


if __name__ == "__main__":
    sys.exit(main())
