import csv

import pytest

COMBINED_HEADER = [
    "pitcher_id", "pitcher_name", "pitch_type", "count", "pitch_percent",
    "rhh_percent", "lhh_percent", "start_speed", "max_start_speed", "ivb", "hb",
    "release_pos_z", "release_pos_x", "extension",
]

SAVANT_HEADER = [
    "player_name", "player_id", "pitches", "whiffs", "swings", "spin_rate",
    "swing_miss_percent", "arm_angle", "barrels_per_pa_percent", "hardhit_percent",
]


def write_csv(path, header, rows):
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        writer.writerows(rows)
    return path


class DummyResponse:
    def __init__(self, text="", status_code=200, data=None, content=None):
        self.text = text
        self.status_code = status_code
        self._data = data
        self.content = content if content is not None else text.encode("utf-8")

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._data is None:
            raise ValueError("No JSON object could be decoded")
        return self._data

    def raise_for_status(self):
        if not self.ok:
            import requests
            raise requests.HTTPError(f"{self.status_code} Error")


@pytest.fixture
def raw_dir(tmp_path):
    """A segment directory with the combined file, two Savant exports and active spin."""
    seg = tmp_path / "raw" / "2026st"
    write_csv(seg / "pitchmovementdata.csv", COMBINED_HEADER, [
        ["100", "Logan Webb", "SI", "120", "0.40", "0.45", "0.35", "92.1", "94.0", "8.1", "-15.2", "5.6", "-2.1", "6.6"],
        ["100", "Logan Webb", "CH", "90", "0.30", "0.20", "0.40", "87.0", "89.1", "5.0", "-14.0", "5.5", "-2.0", "6.5"],
        ["100", "Logan Webb", "ST", "90", "0.30", "0.35", "0.25", "82.4", "84.0", "1.2", "15.3", "5.5", "-2.2", "6.4"],
        ["200", "Shohei Ohtani", "FF", "60", "0.55", "0.5", "0.6", "97.5", "100.1", "17.0", "8.0", "5.9", "-1.5", "6.8"],
        ["200", "Shohei Ohtani", "XX", "10", "0.05", "", "", "", "", "", "", "", "", ""],
        ["", "Nobody", "FF", "1", "1.0", "", "", "", "", "", "", "", "", ""],
    ])
    write_csv(seg / "savant_2026st_SI.csv", SAVANT_HEADER, [
        ["Webb, Logan", "100", "120", "12", "48", "2100", "25.0", "35", "1.5", "33.3"],
    ])
    write_csv(seg / "savant_2026st_FF.csv", SAVANT_HEADER, [
        ["Ohtani, Shohei", "200", "60", "15", "30", "2300", "50.0", "40", "", "40.0"],
    ])
    write_csv(seg / "active-spin.csv",
              ["entity_id", "entity_name", "pitch_hand", "active_spin_fourseam", "active_spin_sinker"], [
                  ["100", "Webb, Logan", "R", "", "80"],
                  ["100", "Webb, Logan", "R", "", "90"],
                  ["200", "Ohtani, Shohei", "R", "95", ""],
              ])
    return seg
