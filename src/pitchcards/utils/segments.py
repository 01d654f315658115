import re

# Savant game-type filter values (hfGT)
GAME_TYPES = {
    "st": "S",   # spring training
    "r": "R",    # regular season
    "po": "F|D|L|W",  # postseason rounds
}

_SEGMENT_RE = re.compile(r"^(\d{4})([a-z]*)$")


def parse_segment(segment: str) -> tuple[int, str]:
    """
    Split a data segment label into (season, Savant game type).

    "2026st" -> (2026, "S"), "2025" -> (2025, "R"), "2024po" -> (2024, "F|D|L|W").
    """
    m = _SEGMENT_RE.match(str(segment).strip().lower())
    if not m:
        raise ValueError(f"Invalid segment {segment!r}; expected e.g. 2026 or 2026st")
    season, suffix = m.groups()
    game_type = GAME_TYPES.get(suffix or "r")
    if game_type is None:
        raise ValueError(
            f"Unknown segment suffix {suffix!r} in {segment!r}; expected one of {sorted(GAME_TYPES)}")
    return int(season), game_type
