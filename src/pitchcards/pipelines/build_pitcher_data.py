#!/usr/bin/env python3
"""
build_pitcher_data.py

Merges the raw CSV exports for a season segment into one JSON file per
pitcher plus an index consumed by the dashboard.

Inputs (under <raw>/<segment>/, falling back to older segments and then to
<raw>/ itself when a file or pitcher is missing):
  - pitchmovementdata.csv      combined per-pitch-type rows (TJStats)
  - *_<CODE>.csv               per-pitch-type Savant exports (enrichment)
  - active-spin.csv            spin efficiency per pitch name

Outputs (under <public_data>/):
  - pitchers_index.json        [{pitcher_id, pitcher_name}] sorted by name
  - pitchers/<pitcher_id>.json {pitcher_id, pitcher_name, pitches: [...]}

Usage:
    python -m pitchcards.pipelines.build_pitcher_data 2026st
"""
import argparse
import json
import logging
import math
import re
import sys
import unicodedata
import warnings
from pathlib import Path

import pandas as pd

from pitchcards.utils.config_loader import load_config, resolve_path
from pitchcards.utils.logging_setup import configure_logging
from pitchcards.utils.pitch_meta import ALL_PITCH_CODES, PITCH_META, safe_pitch_code

logger = logging.getLogger(__name__)

COMBINED_FILENAME = "pitchmovementdata.csv"
ACTIVE_SPIN_FILENAME = "active-spin.csv"
INDEX_FILENAME = "pitchers_index.json"
PITCHERS_DIRNAME = "pitchers"

# Combined-file columns copied onto every pitch record
COMBINED_FIELDS = [
    "count", "pitch_percent", "rhh_percent", "lhh_percent",
    "start_speed", "max_start_speed", "ivb", "hb",
    "release_pos_z", "release_pos_x", "extension",
]

# Savant columns copied onto a pitch record when the pitcher matched
SAVANT_FIELDS = [
    "spin_rate", "swing_miss_percent", "arm_angle",
    "barrels_per_pa_percent", "hardhit_percent",
]

ACTIVE_SPIN_ID_KEYS = [
    "player_id", "pitcher_id", "mlbam_id", "mlb_id", "id", "entity_id", "entityid",
]
ACTIVE_SPIN_NAME_KEYS = [
    "entity_name", "player_name", "pitcher_name", "name", "last_name_first_name",
]

# active_spin_<name> column suffix -> pitch code
ACTIVE_SPIN_PITCHNAME_TO_CODE = {
    "fourseam": "FF", "four_seam": "FF", "4seam": "FF", "ff": "FF",
    "sinker": "SI", "si": "SI",
    "cutter": "FC", "fc": "FC",
    "changeup": "CH", "ch": "CH",
    "splitter": "FS", "fs": "FS",
    "forkball": "FO", "fo": "FO",
    "screwball": "SC", "sc": "SC",
    "curve": "CU", "curveball": "CU", "cu": "CU",
    "knucklecurve": "KC", "knuckle_curve": "KC", "kc": "KC",
    "slowcurve": "CS", "slow_curve": "CS", "cs": "CS",
    "slider": "SL", "sl": "SL",
    "sweeper": "ST", "st": "ST",
    "slurve": "SV", "sv": "SV",
}

NAME_SUFFIXES = {"jr", "sr", "ii", "iii", "iv", "v"}


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------

def read_csv_file(path) -> list[dict]:
    """Read a CSV into a list of row dicts with every value kept as a string."""
    path = Path(path)
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        try:
            df = pd.read_csv(path, dtype=str, keep_default_na=False,
                             skip_blank_lines=True, encoding="utf-8-sig",
                             on_bad_lines="warn")
        except pd.errors.EmptyDataError:
            logger.warning("CSV %s is empty", path)
            return []
    if caught:
        logger.warning("CSV parse warnings for %s: %s", path,
                       [str(w.message) for w in caught[:3]])
    # ragged rows leave NaN in the missing cells
    rows = df.fillna("").to_dict("records")
    return [r for r in rows if any(str(v).strip() for v in r.values())]


def to_num(v) -> float:
    if v is None:
        return math.nan
    s = str(v).strip()
    if s == "" or s.lower() in ("null", "nan"):
        return math.nan
    try:
        n = float(s)
    except ValueError:
        return math.nan
    return n if math.isfinite(n) else math.nan


def num_or_null(v):
    n = to_num(v)
    return None if math.isnan(n) else n


def normalize_key(s) -> str:
    s = str(s if s is not None else "").strip().lower()
    s = re.sub(r"\s+", "_", s)
    return re.sub(r"[^a-z0-9_]", "", s)


def normalize_name(s) -> str:
    """
    Canonical form of a player name for cross-file joins.

    "Ohtani, Shohei" and "Shohei Ohtani" both become "shohei ohtani";
    accents, punctuation and generational suffixes are dropped.
    """
    s = str(s if s is not None else "").strip()
    if "," in s:
        last, first = s.split(",", 1)
        s = f"{first} {last}"
    s = unicodedata.normalize("NFKD", s)
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    s = re.sub(r"[^a-z0-9\s]", " ", s.lower())
    parts = [p for p in s.split() if p not in NAME_SUFFIXES]
    return " ".join(parts)


def _clean_nans(obj):
    if isinstance(obj, float) and math.isnan(obj):
        return None
    if isinstance(obj, dict):
        return {k: _clean_nans(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_clean_nans(v) for v in obj]
    return obj


# ---------------------------------------------------------------------------
# Lookup index
# ---------------------------------------------------------------------------

class PitchIndex:
    """
    pitcher id -> pitch code -> value, with a secondary normalized-name index.

    A name shared by two different ids is ambiguous and never matches.
    """

    def __init__(self, source=None):
        self.source = source
        self.by_id = {}
        self._name_to_id = {}

    def set(self, pitcher_id, code, value, name=None):
        self.by_id.setdefault(pitcher_id, {})[code] = value
        key = normalize_name(name) if name else ""
        if key:
            known = self._name_to_id.get(key, pitcher_id)
            self._name_to_id[key] = pitcher_id if known == pitcher_id else None

    def resolve_id(self, pitcher_id, name=None, roster_ids=()):
        """
        Id to read values from: pitcher_id itself, else the id indexed under
        name. A name match pointing at another pitcher in roster_ids is
        rejected, since those stats belong to that pitcher.
        """
        if pitcher_id in self.by_id:
            return pitcher_id
        if not name:
            return None
        pid = self._name_to_id.get(normalize_name(name))
        if pid is not None and pid != pitcher_id and pid in roster_ids:
            return None
        return pid

    def get(self, pitcher_id, code, name=None, roster_ids=()):
        pid = self.resolve_id(pitcher_id, name, roster_ids)
        if pid is None:
            return None
        return self.by_id.get(pid, {}).get(code)

    def __len__(self):
        return len(self.by_id)

    def __contains__(self, pitcher_id):
        return pitcher_id in self.by_id


def lookup_chain(chain, pitcher_id, code, name=None, roster_ids=()):
    """First value found walking the season chain (primary segment first)."""
    for index in chain:
        value = index.get(pitcher_id, code, name, roster_ids)
        if value is not None:
            return value
    return None


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------

def guess_savant_file_for_code(raw_dir, code):
    raw_dir = Path(raw_dir)
    if not raw_dir.is_dir():
        return None
    suffix = f"_{code.lower()}.csv"
    for f in sorted(raw_dir.iterdir()):
        if f.is_file() and f.name.lower().endswith(suffix):
            return f
    return None


def build_enrichment_map(raw_dir, warn_missing=True) -> PitchIndex:
    """Index the per-pitch-type Savant exports in raw_dir."""
    enrich = PitchIndex(source=raw_dir)
    log_missing = logger.warning if warn_missing else logger.debug

    for code in ALL_PITCH_CODES:
        file = guess_savant_file_for_code(raw_dir, code)
        if not file:
            log_missing("Missing savant CSV for %s. Expected a file ending with _%s.csv in %s",
                        code, code, raw_dir)
            continue

        for r in read_csv_file(file):
            pitcher_id = str(r.get("player_id") or "").strip()
            if not pitcher_id:
                continue

            pitches = num_or_null(r.get("pitches"))
            whiffs = num_or_null(r.get("whiffs"))
            swings = num_or_null(r.get("swings"))
            whiffs_per_pitch = (
                whiffs / pitches if pitches and pitches > 0 and whiffs is not None else None
            )

            entry = {"pitches": pitches, "whiffs": whiffs, "swings": swings}
            for field in SAVANT_FIELDS:
                entry[field] = num_or_null(r.get(field))
            entry["whiffs_per_pitch"] = whiffs_per_pitch

            enrich.set(pitcher_id, code, entry, name=r.get("player_name"))

    return enrich


def _first_matching_column(keys, acceptable):
    norm = {k: normalize_key(k) for k in keys}
    for wanted in acceptable:
        for k in keys:
            if norm[k] == wanted:
                return k
    return None


def build_active_spin_map(raw_dir, warn_missing=True) -> PitchIndex:
    """
    Index active-spin.csv in raw_dir: pitcher -> code -> spin efficiency (0..100).

    Columns look like entity_id, entity_name, active_spin_fourseam, ...
    Several rows for one pitcher are averaged per pitch.
    """
    out = PitchIndex(source=raw_dir)
    file = Path(raw_dir) / ACTIVE_SPIN_FILENAME
    if not file.exists():
        (logger.warning if warn_missing else logger.debug)(
            "No %s found at %s. Active Spin%% will be blank.", ACTIVE_SPIN_FILENAME, file)
        return out

    rows = read_csv_file(file)
    if not rows:
        logger.warning("%s had 0 rows.", file)
        return out

    keys = list(rows[0].keys())
    id_key = _first_matching_column(keys, ACTIVE_SPIN_ID_KEYS)
    if not id_key:
        logger.warning("%s: Could not find a pitcher id column. Found columns: %s ...",
                       file, ", ".join(keys[:25]))
        return out
    name_key = _first_matching_column(keys, ACTIVE_SPIN_NAME_KEYS)

    active_cols = [k for k in keys if normalize_key(k).startswith("active_spin_")]
    if not active_cols:
        logger.warning('%s: No columns starting with "active_spin_". Found columns: %s ...',
                       file, ", ".join(keys[:25]))
        return out

    sums = {}
    names = {}
    for r in rows:
        pitcher_id = str(r.get(id_key) or "").strip()
        if not pitcher_id:
            continue
        if name_key and pitcher_id not in names:
            names[pitcher_id] = r.get(name_key)

        for col in active_cols:
            pitch_name = normalize_key(col)[len("active_spin_"):]
            code = ACTIVE_SPIN_PITCHNAME_TO_CODE.get(pitch_name)
            if not code:
                continue
            val = num_or_null(r.get(col))
            if val is None:
                continue
            agg = sums.setdefault(pitcher_id, {}).setdefault(code, [0.0, 0])
            agg[0] += val
            agg[1] += 1

    for pitcher_id, per_pitch in sums.items():
        for code, (total, n) in per_pitch.items():
            if n > 0:
                out.set(pitcher_id, code, total / n, name=names.get(pitcher_id))

    logger.info('active-spin: idKey="%s", activeCols=%d, mappedPitchers=%d',
                id_key, len(active_cols), len(out))
    return out


def resolve_segment_dirs(raw_root, segment=None, fallbacks=()) -> list[Path]:
    """
    Directories searched for raw inputs, most specific first: the segment
    directory, each fallback segment directory, then raw_root itself.
    Only existing directories are returned.
    """
    raw_root = Path(raw_root)
    candidates = []
    if segment:
        candidates.append(raw_root / str(segment))
    candidates += [raw_root / str(f) for f in fallbacks or ()]
    candidates.append(raw_root)

    dirs = []
    for d in candidates:
        if d.is_dir() and d not in dirs:
            dirs.append(d)
    return dirs


def find_combined_csv(dirs) -> Path:
    for d in dirs:
        candidate = Path(d) / COMBINED_FILENAME
        if candidate.exists():
            return candidate
    raise FileNotFoundError(
        f"Missing combined CSV {COMBINED_FILENAME} in any of: {[str(d) for d in dirs]}")


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------

def build_pitch_record(row, code, enrichment_chain=(), active_spin_chain=(),
                       pitcher_id=None, pitcher_name=None, roster_ids=()) -> dict:
    """
    One output pitch. pitcher_name drives the name fallback into the
    enrichment and active-spin chains; pass None to match by id only.
    """
    base = {
        "code": code,
        "title": PITCH_META[code]["title"],
        "color": PITCH_META[code]["color"],
    }
    for field in COMBINED_FIELDS:
        base[field] = to_num(row.get(field))
    if "tj_stuff_plus" in row:
        base["tj_stuff_plus"] = num_or_null(row.get("tj_stuff_plus"))

    enrich = lookup_chain(enrichment_chain, pitcher_id, code, pitcher_name, roster_ids)
    if enrich:
        base.update(enrich)

    base["active_spin_percent"] = lookup_chain(active_spin_chain, pitcher_id, code,
                                               pitcher_name, roster_ids)
    return base


def _usage(pitch):
    v = pitch.get("pitch_percent")
    return 0.0 if v is None or (isinstance(v, float) and math.isnan(v)) else v


def build_pitchers(combined_rows, enrichment_chain=(), active_spin_chain=()) -> dict:
    """
    Join the combined rows with enrichment and active spin.

    Returns {pitcher_id: {pitcher_id, pitcher_name, pitches}} in first-seen
    order. Rows without an id, a name or a known pitch code are skipped. The
    first name seen for an id is kept; a repeated (pitcher, code) row replaces
    the earlier one.

    Name matching is only used for pitchers whose name is unique in the
    combined file, and never lands on another pitcher listed there.
    """
    rows = []
    names = {}
    for r in combined_rows:
        pitcher_id = str(r.get("pitcher_id") or "").strip()
        pitcher_name = str(r.get("pitcher_name") or "").strip()
        code = safe_pitch_code(r.get("pitch_type"))
        if not pitcher_id or not pitcher_name or not code:
            continue
        rows.append((pitcher_id, pitcher_name, code, r))
        names.setdefault(pitcher_id, pitcher_name)

    roster_ids = set(names)
    ids_by_name = {}
    for pitcher_id, pitcher_name in names.items():
        ids_by_name.setdefault(normalize_name(pitcher_name), set()).add(pitcher_id)

    pitchers = {}
    positions = {}
    for pitcher_id, pitcher_name, code, r in rows:
        p = pitchers.setdefault(pitcher_id, {
            "pitcher_id": pitcher_id,
            "pitcher_name": pitcher_name,
            "pitches": [],
        })
        shared = len(ids_by_name[normalize_name(p["pitcher_name"])]) > 1
        record = build_pitch_record(r, code, enrichment_chain, active_spin_chain,
                                    pitcher_id=pitcher_id,
                                    pitcher_name=None if shared else p["pitcher_name"],
                                    roster_ids=roster_ids)

        slot = positions.get((pitcher_id, code))
        if slot is None:
            positions[(pitcher_id, code)] = len(p["pitches"])
            p["pitches"].append(record)
        else:
            logger.debug("Duplicate %s row for pitcher %s; keeping the later one",
                         code, pitcher_id)
            p["pitches"][slot] = record

    for p in pitchers.values():
        p["pitches"].sort(key=_usage, reverse=True)
    return pitchers


def build_index(pitchers) -> list[dict]:
    index = [{"pitcher_id": p["pitcher_id"], "pitcher_name": p["pitcher_name"]}
             for p in pitchers.values()]
    index.sort(key=lambda e: (e["pitcher_name"].casefold(), e["pitcher_id"]))
    return index


def write_outputs(pitchers, out_dir, clean=False) -> list[dict]:
    """Write pitchers_index.json and pitchers/<id>.json under out_dir."""
    out_dir = Path(out_dir)
    pitchers_dir = out_dir / PITCHERS_DIRNAME
    pitchers_dir.mkdir(parents=True, exist_ok=True)
    if clean:
        for stale in pitchers_dir.glob("*.json"):
            stale.unlink()

    index = build_index(pitchers)
    with open(out_dir / INDEX_FILENAME, "w", encoding="utf-8") as f:
        json.dump(index, f, indent=2, ensure_ascii=False)

    for p in pitchers.values():
        with open(pitchers_dir / f"{p['pitcher_id']}.json", "w", encoding="utf-8") as f:
            json.dump(_clean_nans(p), f, indent=2, ensure_ascii=False, allow_nan=False)
    return index


def run(raw_root, out_dir, segment=None, fallbacks=(), clean=False) -> dict:
    dirs = resolve_segment_dirs(raw_root, segment, fallbacks)
    if not dirs:
        raise FileNotFoundError(f"Raw data directory not found: {raw_root}")
    logger.info("Raw data search order: %s", [str(d) for d in dirs])

    combined_path = find_combined_csv(dirs)
    if combined_path.parent != dirs[0]:
        logger.warning("Combined CSV missing for %s; falling back to %s",
                       segment, combined_path)
    combined_rows = read_csv_file(combined_path)

    enrichment_chain = [build_enrichment_map(d, warn_missing=(i == 0))
                        for i, d in enumerate(dirs)]
    active_spin_chain = [build_active_spin_map(d, warn_missing=False) for d in dirs]
    if not any((d / ACTIVE_SPIN_FILENAME).exists() for d in dirs):
        logger.warning("No %s found in %s. Active Spin%% will be blank.",
                       ACTIVE_SPIN_FILENAME, [str(d) for d in dirs])

    pitchers = build_pitchers(combined_rows, enrichment_chain, active_spin_chain)
    write_outputs(pitchers, out_dir, clean=clean)

    total = len(pitchers)
    with_enrich = sum(
        1 for p in pitchers.values()
        if any("spin_rate" in x or "arm_angle" in x for x in p["pitches"])
    )
    with_spin = sum(
        1 for p in pitchers.values()
        if any(x.get("active_spin_percent") is not None for x in p["pitches"])
    )

    logger.info("Built JSON for %d pitchers from %d combined rows.", total, len(combined_rows))
    logger.info("Pitchers with at least some enrichment: %d/%d", with_enrich, total)
    logger.info("Pitchers with at least some Active Spin%%: %d/%d", with_spin, total)
    logger.info("Wrote: %s", Path(out_dir) / INDEX_FILENAME)
    logger.info("Wrote: %s", Path(out_dir) / PITCHERS_DIRNAME / "{pitcher_id}.json")

    return {
        "segment": segment,
        "combined_path": str(combined_path),
        "combined_rows": len(combined_rows),
        "pitchers": total,
        "with_enrichment": with_enrich,
        "with_active_spin": with_spin,
    }


def fallbacks_for(cfg: dict, segment) -> list[str]:
    table = cfg.get("build", {}).get("fallback_segments", {}) or {}
    return [str(s) for s in table.get(str(segment), [])]


def main(argv=None):
    parser = argparse.ArgumentParser(description="Build per-pitcher JSON from raw CSV exports")
    parser.add_argument("segment", nargs="?", help="Segment label, e.g. 2026st")
    parser.add_argument("--raw-dir", type=Path, help="Raw CSV root (default: paths.raw)")
    parser.add_argument("--out-dir", type=Path, help="Output root (default: paths.public_data)")
    parser.add_argument("--fallback", nargs="*", metavar="SEGMENT",
                        help="Fallback segments, overriding build.fallback_segments")
    parser.add_argument("--clean", action="store_true",
                        help="Delete existing pitcher JSON files before writing")
    args = parser.parse_args(argv)

    cfg = load_config()
    configure_logging(cfg)
    segment = str(args.segment or cfg.get("build", {}).get("default_segment") or "") or None
    fallbacks = args.fallback if args.fallback is not None else fallbacks_for(cfg, segment)
    raw_root = args.raw_dir or resolve_path(cfg, "raw")
    out_dir = args.out_dir or resolve_path(cfg, "public_data")

    try:
        run(raw_root, out_dir, segment=segment, fallbacks=fallbacks, clean=args.clean)
    except (FileNotFoundError, OSError, ValueError) as e:
        logger.error("Build failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
