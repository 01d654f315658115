import subprocess
import sys

import pytest

from pitchcards.pipelines.update_segment import plan_steps, run_steps

pytestmark = pytest.mark.unit


def _modules(steps):
    return [cmd[2] for cmd in steps]


def test_plan_steps_default():
    steps = plan_steps("2026st")
    assert all(cmd[:2] == [sys.executable, "-m"] for cmd in steps)
    assert _modules(steps) == [
        "pitchcards.data_sources.savant_client",
        "pitchcards.pipelines.build_pitcher_data",
        "pitchcards.pipelines.validate_pitcher_data",
    ]
    assert steps[0][-1] == "2026st"
    assert steps[1][-1] == "2026st"


def test_plan_steps_all_options():
    steps = plan_steps("2025", tjstats=True, dashboard=True, validate=False)
    assert _modules(steps) == [
        "pitchcards.data_sources.savant_client",
        "pitchcards.data_sources.tjstats_client",
        "pitchcards.pipelines.build_pitcher_data",
        "pitchcards.renderers.pitcher_dashboard_html_generator",
    ]


def test_run_steps_in_order_with_check():
    calls = []
    run_steps(plan_steps("2026st"), runner=lambda cmd, check: calls.append((cmd[2], check)))
    assert [c[0] for c in calls] == _modules(plan_steps("2026st"))
    assert all(check for _, check in calls)


def test_run_steps_stops_on_failure():
    calls = []

    def runner(cmd, check):
        calls.append(cmd[2])
        if cmd[2].endswith("build_pitcher_data"):
            raise subprocess.CalledProcessError(3, cmd)

    with pytest.raises(subprocess.CalledProcessError):
        run_steps(plan_steps("2026st"), runner=runner)
    assert calls[-1] == "pitchcards.pipelines.build_pitcher_data"
    assert len(calls) == 2
