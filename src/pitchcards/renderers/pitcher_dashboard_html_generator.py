#!/usr/bin/env python3
"""
Renders the pitch arsenal dashboard: one static HTML page with a pitcher
dropdown, a header card, movement / release / frequency charts and the
arsenal table for every pitcher in pitchers_index.json.

Usage:
    python -m pitchcards.renderers.pitcher_dashboard_html_generator --with-player-meta
"""
import argparse
import html
import json
import logging
import math
import sys
from pathlib import Path

from pitchcards.data_sources.mlb_stats_client import MlbStatsClient
from pitchcards.pipelines.build_pitcher_data import INDEX_FILENAME, PITCHERS_DIRNAME
from pitchcards.utils.config_loader import load_config, resolve_path
from pitchcards.utils.http import session_from_config
from pitchcards.utils.logging_setup import configure_logging

logger = logging.getLogger(__name__)

DASH = "—"
AXIS_LIMIT = 30
ARM_LINE_LENGTH = 30

HEADSHOT_URL = ("https://img.mlbstatic.com/mlb-photos/image/upload/w_213,q_100/v1/"
                "people/{pid}/headshot/67/current")
TEAM_LOGO_URL = "https://www.mlbstatic.com/team-logos/team-cap-on-dark/{team_id}.svg"

TABLE_COLUMNS = [
    "Pitch", "Count", "Usage", "Velo", "Spin", "ASpin%", "IVB", "HB",
    "RelZ", "RelX", "Ext", "Whiff/P", "SwM%", "Arm°", "Bar/PA%", "HardHit%",
]


# Formatting helpers

def _num(v) -> float:
    if v is None or isinstance(v, bool):
        return math.nan
    try:
        x = float(v)
    except (TypeError, ValueError):
        return math.nan
    return x if math.isfinite(x) else math.nan


def _finite(v) -> bool:
    return not math.isnan(_num(v))


def fmt(v, digits=1):
    x = _num(v)
    return DASH if math.isnan(x) else f"{x:.{digits}f}"


def pct(v, digits=1):
    x = _num(v)
    return DASH if math.isnan(x) else f"{x:.{digits}f}%"


def pct_from_fraction(v, digits=1):
    x = _num(v)
    return DASH if math.isnan(x) else f"{x * 100:.{digits}f}%"


def _or_none(v):
    x = _num(v)
    return None if math.isnan(x) else x


def handedness_label(throws):
    return {"R": "RHP", "L": "LHP", "S": "Switch"}.get(throws)


def headshot_url(pitcher_id):
    return HEADSHOT_URL.format(pid=pitcher_id) if pitcher_id else None


def team_logo_url(team_id):
    return TEAM_LOGO_URL.format(team_id=team_id) if team_id is not None else None


# Derived data

def total_pitches(pitches) -> float:
    return sum(_num(p.get("count")) for p in pitches if _finite(p.get("count")))


def overall_whiff_pct(pitches) -> float:
    whiffs = sum(_num(p.get("whiffs")) for p in pitches if _finite(p.get("whiffs")))
    seen = sum(_num(p.get("pitches")) for p in pitches if _finite(p.get("pitches")))
    if not seen:
        return math.nan
    return whiffs / seen * 100


def avg_arm_angle(pitches) -> float:
    vals = [_num(p.get("arm_angle")) for p in pitches if _finite(p.get("arm_angle"))]
    if not vals:
        return math.nan
    return sum(vals) / len(vals)


def arm_line(angle_deg):
    """Segment from the origin along the arm angle, in movement-chart units."""
    if math.isnan(_num(angle_deg)):
        return None
    rad = math.radians(angle_deg)
    return [
        {"x": 0, "y": 0},
        {"x": ARM_LINE_LENGTH * math.cos(rad), "y": ARM_LINE_LENGTH * math.sin(rad)},
    ]


def movement_points(pitches):
    return [{
        "code": p.get("code"),
        "title": p.get("title"),
        "color": p.get("color"),
        "hb": _or_none(p.get("hb")),
        "ivb": _or_none(p.get("ivb")),
        "velo": _or_none(p.get("start_speed")),
        "usagePct": _or_none(_num(p.get("pitch_percent")) * 100),
        "spin": _or_none(p.get("spin_rate")),
        "activeSpin": _or_none(p.get("active_spin_percent")),
        "ext": _or_none(p.get("extension")),
        "arm": _or_none(p.get("arm_angle")),
        "whiffp": _or_none(p.get("whiffs_per_pitch")),
        "swm": _or_none(p.get("swing_miss_percent")),
        "barpa": _or_none(p.get("barrels_per_pa_percent")),
        "hardhit": _or_none(p.get("hardhit_percent")),
    } for p in pitches]


def release_points(pitches):
    return [{
        "code": p.get("code"),
        "title": p.get("title"),
        "color": p.get("color"),
        "x": _or_none(p.get("release_pos_x")),
        "z": _or_none(p.get("release_pos_z")),
        "velo": _or_none(p.get("start_speed")),
        "usagePct": _or_none(_num(p.get("pitch_percent")) * 100),
    } for p in pitches]


def frequency_bars(pitches):
    """Usage split by batter side, most-used pitch first; LHH bars point left."""
    def usage(p):
        x = _num(p.get("pitch_percent"))
        return -math.inf if math.isnan(x) else x

    rows = []
    for p in sorted(pitches, key=usage, reverse=True):
        left = _num(p.get("lhh_percent")) * 100
        right = _num(p.get("rhh_percent")) * 100
        rows.append({
            "code": p.get("code"),
            "title": p.get("title"),
            "color": p.get("color"),
            "count": _or_none(p.get("count")),
            "left": _or_none(-left),
            "right": _or_none(right),
            "leftAbs": _or_none(left),
            "rightAbs": _or_none(right),
        })
    return rows


def build_pitcher_view(pitcher: dict, meta: dict = None) -> dict:
    pitches = pitcher.get("pitches") or []
    meta = meta or {}
    arm = avg_arm_angle(pitches)
    return {
        "pitcher_id": pitcher.get("pitcher_id"),
        "pitcher_name": pitcher.get("pitcher_name"),
        "pitches": pitches,
        "meta": meta,
        "total_pitches": total_pitches(pitches),
        "whiff_pct": overall_whiff_pct(pitches),
        "avg_arm_angle": arm,
        "pitch_types": len(pitches),
        "handedness": handedness_label(meta.get("throws")),
        "headshot_url": headshot_url(pitcher.get("pitcher_id")),
        "team_logo_url": team_logo_url(meta.get("teamId")),
        "charts": {
            "movement": movement_points(pitches),
            "release": release_points(pitches),
            "frequency": frequency_bars(pitches),
            "armLine": arm_line(arm),
        },
    }


# HTML

def _e(v):
    return html.escape(str(v), quote=True)


def _script_json(obj) -> str:
    return json.dumps(obj, allow_nan=False).replace("</", "<\\/")


def _int_str(v):
    x = _num(v)
    if math.isnan(x):
        return DASH
    return str(int(x)) if x.is_integer() else f"{x:g}"


def _count_str(v):
    return DASH if not _num(v) or math.isnan(_num(v)) else _int_str(v)


def arsenal_row(p: dict) -> str:
    spin = p.get("spin_rate")
    arm = p.get("arm_angle")
    cells = [
        f"<td class='px-3 py-2 text-left'><span class='swatch' style='background-color:{_e(p.get('color', '#3b82f6'))}'></span>"
        f"<span class='font-semibold'>{_e(p.get('title', ''))}</span> "
        f"<span class='text-xs text-gray-400'>{_e(p.get('code', ''))}</span></td>",
        f"<td>{_int_str(p.get('count'))}</td>",
        f"<td>{pct_from_fraction(p.get('pitch_percent'), 1)}</td>",
        f"<td>{fmt(p.get('start_speed'), 1)} mph</td>",
        f"<td>{DASH if spin is None else fmt(spin, 0) + ' rpm'}</td>",
        f"<td>{DASH if p.get('active_spin_percent') is None else pct(p.get('active_spin_percent'), 1)}</td>",
        f"<td>{fmt(p.get('ivb'), 1)}</td>",
        f"<td>{fmt(p.get('hb'), 1)}</td>",
        f"<td>{fmt(p.get('release_pos_z'), 2)}</td>",
        f"<td>{fmt(p.get('release_pos_x'), 2)}</td>",
        f"<td>{fmt(p.get('extension'), 2)}</td>",
        f"<td>{DASH if p.get('whiffs_per_pitch') is None else fmt(p.get('whiffs_per_pitch'), 3)}</td>",
        f"<td>{DASH if p.get('swing_miss_percent') is None else pct(p.get('swing_miss_percent'), 1)}</td>",
        f"<td>{DASH if arm is None else fmt(arm, 0) + '°'}</td>",
        f"<td>{DASH if p.get('barrels_per_pa_percent') is None else pct(p.get('barrels_per_pa_percent'), 2)}</td>",
        f"<td>{DASH if p.get('hardhit_percent') is None else pct(p.get('hardhit_percent'), 1)}</td>",
    ]
    return "<tr class='border-b border-gray-700'>" + "".join(cells) + "</tr>\n"


def arsenal_table(pitches) -> str:
    head = "".join(f"<th class='px-3 py-2'>{_e(c)}</th>" for c in TABLE_COLUMNS)
    if pitches:
        body = "".join(arsenal_row(p) for p in pitches)
    else:
        body = (f"<tr><td class='px-3 py-6 text-gray-400' colspan='{len(TABLE_COLUMNS)}'>"
                "No pitch data found.</td></tr>\n")
    return (
        "<table class='arsenal min-w-full text-sm text-gray-300'>\n"
        f"<thead class='bg-gray-900 text-gray-100 uppercase text-xs'><tr>{head}</tr></thead>\n"
        f"<tbody>\n{body}</tbody>\n</table>\n"
    )


def header_card(view: dict) -> str:
    meta = view["meta"]
    pills = []
    if view["handedness"]:
        pills.append(view["handedness"])
    pills.append(str(meta["age"]) if meta.get("age") is not None else DASH)
    pills.append(meta.get("height") or DASH)
    pills.append(f"{meta['weight']} lbs" if meta.get("weight") is not None else DASH)
    pill_html = "".join(f"<span class='pill'>{_e(p)}</span>" for p in pills)

    total = view["total_pitches"]
    boxes = [
        ("PITCHES", _count_str(total)),
        ("WHIFF%", pct(view["whiff_pct"], 1)),
        ("ARM°", DASH if math.isnan(view["avg_arm_angle"]) else f"{view['avg_arm_angle']:.0f}°"),
        ("TYPES", str(view["pitch_types"]) if view["pitch_types"] else DASH),
    ]
    box_html = "".join(
        f"<div class='statbox'><div class='text-2xl font-extrabold'>{_e(v)}</div>"
        f"<div class='text-xs tracking-widest text-gray-400'>{_e(k)}</div></div>"
        for k, v in boxes
    )

    team = f"{_e(meta['teamName'])} &bull; " if meta.get("teamName") else ""
    logo = (f"<img class='h-10' src='{_e(view['team_logo_url'])}' alt='team logo'/>"
            if view["team_logo_url"] else "")
    name = (view["pitcher_name"] or DASH).upper()
    headshot = _e(view["headshot_url"] or "")
    alt = _e(view["pitcher_name"] or "Pitcher")
    return f"""
  <div class='card flex flex-wrap items-center justify-between gap-4'>
    <div class='flex items-center gap-4'>
      <img class='headshot' src='{headshot}' alt='{alt}'
           onerror="this.style.display='none'"/>
      <div>
        <div class='text-3xl font-extrabold title-highlight'>{_e(name)}</div>
        <div class='text-sm text-gray-400'>{team}Pitch Movement / Arsenal Dashboard</div>
        <div class='mt-2 flex flex-wrap gap-2'>{pill_html}
          <span class='text-xs text-gray-400'>&bull; Total pitches: {_e(_count_str(total))}</span>
        </div>
      </div>
      {logo}
    </div>
    <div class='grid grid-cols-4 gap-3'>{box_html}</div>
  </div>"""


def pitcher_section(view: dict) -> str:
    pid = _e(view["pitcher_id"])
    table = arsenal_table(view["pitches"])
    return f"""
<section class='pitcher hidden' data-pitcher-id='{pid}'>
{header_card(view)}
  <div class='grid md:grid-cols-3 gap-4 mt-4'>
    <div class='card'><div class='card-title'>PITCH MOVEMENT</div>
      <div class='card-sub'>HB vs IVB (in), halo size by usage, dashed line = arm angle</div>
      <canvas id='movement-{pid}' height='320'></canvas></div>
    <div class='card'><div class='card-title'>RELEASE POINT</div>
      <div class='card-sub'>Release X vs Release Z (ft)</div>
      <canvas id='release-{pid}' height='320'></canvas></div>
    <div class='card'><div class='card-title'>PITCH FREQUENCY</div>
      <div class='card-sub'>Back-to-back: vs LHH (left) / vs RHH (right)</div>
      <canvas id='frequency-{pid}' height='320'></canvas></div>
  </div>
  <div class='card mt-4 overflow-x-auto'>
    <div class='card-title'>PITCH ARSENAL</div>
{table}
    <div class='text-xs text-gray-500 mt-2'>Axes fixed at &plusmn;{AXIS_LIMIT}. ASpin% = Active Spin%.</div>
  </div>
</section>"""


_CHART_JS = """
const charts = {};
function destroyCharts() {
  Object.values(charts).forEach(c => c.destroy());
  Object.keys(charts).forEach(k => delete charts[k]);
}
function fmt(v, d) { return (v === null || v === undefined) ? '\\u2014' : Number(v).toFixed(d); }
function drawCharts(pid) {
  destroyCharts();
  const c = DASHBOARD.charts[pid];
  if (!c) return;
  const mv = c.movement.filter(p => p.hb !== null && p.ivb !== null);
  const mvSets = mv.map(p => ({
    label: p.title, data: [{x: p.hb, y: p.ivb, p: p}],
    backgroundColor: p.color, borderColor: '#0f172a',
    pointRadius: 4.5 + (p.usagePct || 0) * 0.25, pointHoverRadius: 8,
  }));
  if (c.armLine) {
    mvSets.push({type: 'line', label: 'Arm angle', data: c.armLine, borderColor: '#38bdf8',
                 borderDash: [6, 4], borderWidth: 3, pointRadius: 0, showLine: true});
  }
  charts.movement = new Chart(document.getElementById('movement-' + pid), {
    type: 'scatter', data: {datasets: mvSets},
    options: {
      scales: {x: {min: -AXIS, max: AXIS, title: {display: true, text: 'HB'}},
               y: {min: -AXIS, max: AXIS, title: {display: true, text: 'IVB'}}},
      plugins: {tooltip: {callbacks: {label: ctx => {
        const p = ctx.raw.p; if (!p) return '';
        return [p.title, 'HB ' + fmt(p.hb, 1) + ' | IVB ' + fmt(p.ivb, 1),
                'Velo ' + fmt(p.velo, 1) + ' mph | Usage ' + fmt(p.usagePct, 1) + '%',
                'Spin ' + fmt(p.spin, 0) + ' rpm | Active Spin ' + fmt(p.activeSpin, 1) + '%',
                'Ext ' + fmt(p.ext, 2) + ' ft | Arm ' + fmt(p.arm, 0) + '\\u00b0',
                'Whiff/P ' + fmt(p.whiffp, 3) + ' | SwM ' + fmt(p.swm, 1) + '%',
                'Bar/PA ' + fmt(p.barpa, 2) + '% | HardHit ' + fmt(p.hardhit, 1) + '%'];
      }}}}
    }
  });
  const rel = c.release.filter(p => p.x !== null && p.z !== null);
  charts.release = new Chart(document.getElementById('release-' + pid), {
    type: 'scatter',
    data: {datasets: rel.map(p => ({label: p.title, data: [{x: p.x, y: p.z}],
                                    backgroundColor: p.color, pointRadius: 6}))},
    options: {scales: {x: {title: {display: true, text: 'Release X (ft)'}},
                       y: {title: {display: true, text: 'Release Z (ft)'}}}}
  });
  charts.frequency = new Chart(document.getElementById('frequency-' + pid), {
    type: 'bar',
    data: {labels: c.frequency.map(r => r.code), datasets: [
      {label: 'vs LHH', data: c.frequency.map(r => r.left),
       backgroundColor: c.frequency.map(r => r.color + 'D9')},
      {label: 'vs RHH', data: c.frequency.map(r => r.right),
       backgroundColor: c.frequency.map(r => r.color)}]},
    options: {indexAxis: 'y', scales: {
      x: {min: -100, max: 100, stacked: true, ticks: {callback: v => Math.abs(v).toFixed(0) + '%'}},
      y: {stacked: true}},
      plugins: {tooltip: {callbacks: {label: ctx => ctx.dataset.label + ': ' + fmt(Math.abs(ctx.raw), 1) + '%'}}}}
  });
}
function showPitcher(pid) {
  document.querySelectorAll('section.pitcher').forEach(s =>
    s.classList.toggle('hidden', s.dataset.pitcherId !== pid));
  drawCharts(pid);
}
const picker = document.getElementById('pitcher-select');
picker.addEventListener('change', e => showPitcher(e.target.value));
document.getElementById('dark-toggle').addEventListener('click', () => {
  const light = document.body.classList.toggle('light');
  localStorage.setItem('pc_dark', light ? '0' : '1');
});
if (localStorage.getItem('pc_dark') === '0') document.body.classList.add('light');
if (picker.value) showPitcher(picker.value);
"""


def render_page(views, title="Pitch Arsenal Dashboard") -> str:
    options = "".join(
        f"<option value='{_e(v['pitcher_id'])}'>{_e(v['pitcher_name'])}</option>"
        for v in views
    )
    sections = "".join(pitcher_section(v) for v in views)
    chart_data = {"charts": {v["pitcher_id"]: v["charts"] for v in views}}
    empty = "" if views else "<p class='text-gray-400'>No pitchers found.</p>"
    return f"""<!DOCTYPE html>
<html lang='en'>
<head>
  <meta charset='UTF-8'/>
  <meta name='viewport' content='width=device-width, initial-scale=1.0'/>
  <title>{_e(title)}</title>
  <link href='https://cdn.jsdelivr.net/npm/tailwindcss@2.2.19/dist/tailwind.min.css' rel='stylesheet'>
  <script src='https://cdn.jsdelivr.net/npm/chart.js@4.4.1/dist/chart.umd.min.js'></script>
  <style>
    body {{ background-color:#0f172a; color:#e2e8f0; font-family:'Segoe UI',sans-serif; }}
    body.light {{ background-color:#f8fafc; color:#0f172a; }}
    .title-highlight {{ background:linear-gradient(to right,#34d399,#06b6d4);
                       -webkit-background-clip:text; -webkit-text-fill-color:transparent; }}
    .card {{ background:#111827; border:1px solid #334155; border-radius:1rem; padding:1rem; }}
    body.light .card {{ background:#ffffff; border-color:#e2e8f0; }}
    .card-title {{ font-size:11px; font-weight:800; letter-spacing:0.1em; color:#94a3b8; }}
    .card-sub {{ font-size:12px; color:#64748b; margin-bottom:0.5rem; }}
    .pill {{ border-radius:9999px; padding:0.25rem 0.6rem; font-size:12px; font-weight:600;
            background:rgba(255,255,255,0.1); }}
    .statbox {{ text-align:center; border:1px solid #334155; border-radius:0.75rem; padding:0.5rem 1rem; }}
    .headshot {{ height:96px; border-radius:9999px; }}
    .swatch {{ display:inline-block; width:10px; height:10px; border-radius:9999px; margin-right:6px; }}
    table.arsenal td, table.arsenal th {{ padding:0.5rem; text-align:center; }}
  </style>
</head>
<body class='p-6'>
  <div class='flex flex-wrap items-center gap-3 mb-6'>
    <h1 class='text-2xl font-extrabold title-highlight mr-4'>{_e(title)}</h1>
    <label for='pitcher-select' class='text-xs font-bold tracking-widest text-gray-400'>Pitcher</label>
    <select id='pitcher-select' class='rounded px-2 py-1 text-black'>{options}</select>
    <button id='dark-toggle' class='rounded px-3 py-1 border border-gray-500 text-sm'>Light / Dark</button>
  </div>
  {empty}{sections}
  <script>
    const AXIS = {AXIS_LIMIT};
    const DASHBOARD = {_script_json(chart_data)};
{_CHART_JS}
  </script>
</body>
</html>
"""


class PitcherDashboardHtmlGenerator:
    def __init__(self, data_dir: Path, output_path: Path, player_meta: dict = None):
        self.data_dir = Path(data_dir)
        self.output_path = Path(output_path)
        self.player_meta = player_meta or {}

    def load_index(self) -> list:
        idx_path = self.data_dir / INDEX_FILENAME
        if not idx_path.exists():
            raise FileNotFoundError(f"Missing: {idx_path}")
        with open(idx_path, "r", encoding="utf-8") as f:
            index = json.load(f)
        logger.info("Loaded %d pitchers from %s", len(index), idx_path)
        return index

    def load_pitchers(self) -> list:
        pitchers = []
        for entry in self.load_index():
            path = self.data_dir / PITCHERS_DIRNAME / f"{entry['pitcher_id']}.json"
            if not path.exists():
                logger.warning("Pitcher JSON missing for %s (%s); skipping",
                               entry.get("pitcher_name"), path)
                continue
            with open(path, "r", encoding="utf-8") as f:
                pitchers.append(json.load(f))
        return pitchers

    def build_views(self) -> list:
        return [build_pitcher_view(p, self.player_meta.get(str(p.get("pitcher_id"))))
                for p in self.load_pitchers()]

    def generate(self) -> Path:
        views = self.build_views()
        if not views:
            logger.warning("No pitcher data; dashboard will be blank.")
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self.output_path.write_text(render_page(views), encoding="utf-8")
        logger.info("Wrote dashboard to %s", self.output_path)
        return self.output_path


def main(argv=None):
    parser = argparse.ArgumentParser(description="Render the pitch arsenal dashboard page")
    parser.add_argument("--data-dir", type=Path, help="Built data root (default: paths.public_data)")
    parser.add_argument("--output", type=Path, help="HTML output (default: paths.dashboard_html)")
    parser.add_argument("--with-player-meta", action="store_true",
                        help="Look up team/handedness/bio via the MLB stats API (cached)")
    args = parser.parse_args(argv)

    cfg = load_config()
    configure_logging(cfg)
    data_dir = args.data_dir or resolve_path(cfg, "public_data")
    output = args.output or resolve_path(cfg, "dashboard_html")

    try:
        generator = PitcherDashboardHtmlGenerator(data_dir, output)
        if args.with_player_meta:
            client = MlbStatsClient.from_config(cfg, session=session_from_config(cfg))
            ids = [e["pitcher_id"] for e in generator.load_index()]
            generator.player_meta = client.load_player_meta(ids)
        generator.generate()
    except (FileNotFoundError, OSError, ValueError) as e:
        logger.error("Dashboard render failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
