"""Team name and series format canonicalization."""

import re

# OpenDota proMatches ``series_type`` codes
OPENDOTA_SERIES_TYPES: dict[int, str] = {0: "BO1", 1: "BO3", 2: "BO5", 3: "BO2"}

_FORMAT_RE = re.compile(r"^\s*(?:bo|best\s*of)\s*(\d)\s*$", re.IGNORECASE)


def normalize_team_name(name: str | None) -> str:
    """Lower-case and strip a team name; ``""`` for None or empty input.

    Two names normalize equal iff they are equal modulo case and
    surrounding whitespace. No alias resolution happens here.
    """
    if not name:
        return ""
    return name.strip().lower()


def team_pair(team_a: str | None, team_b: str | None) -> tuple[str, str]:
    """Return the two normalized names sorted, independent of side."""
    a, b = normalize_team_name(team_a), normalize_team_name(team_b)
    return (a, b) if a <= b else (b, a)


def normalize_series_format(value: str | int | None) -> str | None:
    """Coerce a best-of hint to ``"BO<n>"``.

    Accepts ``"Bo3"``, ``"best of 5"``, ``"BO1"`` or a bare integer count
    of games. Returns None when the hint is missing or unreadable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return f"BO{value}" if value > 0 else None
    text = str(value).strip()
    if text.isdigit():
        return f"BO{int(text)}" if int(text) > 0 else None
    m = _FORMAT_RE.match(text)
    if m:
        return f"BO{m.group(1)}"
    return None
