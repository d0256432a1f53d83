"""Parser for rendered Liquipedia tournament pages.

Turns the HTML returned by ``LiquipediaClient.get_page_html`` into raw
scraped match dicts (the shape ScrapedMatchModel validates):

    {match_id, team1, team2, score1, score2, timestamp, format,
     tournament, stage, status}

A match block is located from its ``timer-object`` countdown span; the
teams are the first two ``data-highlightingclass`` attributes of the
nearest enclosing element that carries two of them.
"""

import logging
import re

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

_SCORE_RE = re.compile(r"(\d+)\s*:\s*(\d+)")
_FORMAT_RE = re.compile(r"\(\s*Bo\s*(\d+)\s*\)", re.IGNORECASE)

# How far up from the timer we look for the enclosing match block
_MAX_BLOCK_DEPTH = 8

PLACEHOLDER_TEAMS = {"tbd", "tba"}

# Short forms used on brackets -> full team name
TEAM_NAME_MAPPING: dict[str, str] = {
    "liquid": "Team Liquid",
    "lgd": "PSG.LGD",
    "lgd gaming": "PSG.LGD",
    "spirit": "Team Spirit",
    "tspirit": "Team Spirit",
    "tundra": "Tundra Esports",
    "navi": "Natus Vincere",
    "falcons": "Team Falcons",
    "gg": "Gaimin Gladiators",
    "bb": "BetBoom Team",
    "betboom": "BetBoom Team",
    "gl": "GamerLegion",
    "xg": "Xtreme Gaming",
    "yb": "Yakult Brothers",
    "vg": "Vici Gaming",
    "aurora": "Aurora Gaming",
    "yandex": "Team Yandex",
    "9p": "9 Pandas",
    "9pandas": "9 Pandas",
    "g2": "G2 Esports",
    "g2 esc": "G2 Esports",
}

# Tournament id fragment -> wiki page
KNOWN_PAGES: dict[str, str] = {
    "blast-slam-vi": "BLAST/Slam/6",
    "blast-slam-6": "BLAST/Slam/6",
    "blast-slam-7": "BLAST/Slam/7",
    "esl-one": "ESL_One",
    "the-international": "The_International",
    "pgl-wallachia": "PGL_Wallachia/7",
    "cct-season": "CCT/Season_2",
    "epl-world": "EPL/World_Series/12",
    "european_pro": "European_Pro_League/Season_34",
    "cringe_station": "Cringe_Station",
    "lunar_snake": "Lunar_Snake/6",
}


def canonical_team_name(name: str) -> str:
    """Expand a bracket short name to the full team name."""
    cleaned = " ".join(name.split())
    return TEAM_NAME_MAPPING.get(cleaned.lower(), cleaned)


def is_placeholder_team(name: str | None) -> bool:
    """TBD slots and unfilled template links ("edit") are not real teams."""
    if not name:
        return True
    lowered = name.strip().lower()
    words = lowered.replace("[", " ").replace("]", " ").split()
    return lowered in PLACEHOLDER_TEAMS or "tbd" in words or "edit" in words


def detect_default_format(soup: BeautifulSoup) -> str:
    """Page-level best-of used when a match block declares none."""
    text = soup.get_text(" ")
    if "Bo5" in text or "Best of 5" in text:
        return "BO5"
    if "Bo1" in text or "Best of 1" in text:
        return "BO1"
    return "BO3"


def _match_block(timer: Tag) -> Tag | None:
    node = timer
    for _ in range(_MAX_BLOCK_DEPTH):
        node = node.parent
        if node is None or not isinstance(node, Tag):
            return None
        if len(node.find_all(attrs={"data-highlightingclass": True}, limit=2)) >= 2:
            return node
    return None


def _parse_score(block: Tag) -> tuple[int, int]:
    for el in block.find_all(class_=re.compile(r"^score")):
        m = _SCORE_RE.search(el.get_text(" ", strip=True))
        if m:
            return int(m.group(1)), int(m.group(2))
    return 0, 0


def _parse_stage(block: Tag) -> str:
    cell = block.find(class_="Round")
    if cell is not None:
        text = cell.get_text(" ", strip=True)
        if text:
            return text
    return "Playoffs"


def parse_tournament_page(html: str, tournament_id: str) -> list[dict]:
    """Extract every dated match block from a tournament page.

    Blocks with fewer than two named teams are skipped. Scores are
    series scores as shown on the bracket (0:0 for matches not played).
    Call ``filter_matches`` on the result to drop placeholders and
    duplicates.
    """
    soup = BeautifulSoup(html, "lxml")
    default_format = detect_default_format(soup)

    matches: list[dict] = []
    per_timestamp: dict[int, int] = {}

    for timer in soup.find_all(class_="timer-object", attrs={"data-timestamp": True}):
        raw_ts = str(timer["data-timestamp"]).strip()
        if not raw_ts.isdigit():
            continue
        timestamp = int(raw_ts)

        block = _match_block(timer)
        if block is None:
            continue

        teams = [
            canonical_team_name(el["data-highlightingclass"])
            for el in block.find_all(attrs={"data-highlightingclass": True})
            if "TBD" not in el["data-highlightingclass"]
        ]
        if len(teams) < 2:
            continue

        block_text = block.get_text(" ")
        m = _FORMAT_RE.search(block_text)
        series_format = f"BO{m.group(1)}" if m else default_format
        score1, score2 = _parse_score(block)

        # Index among matches sharing this start time keeps ids stable
        n = per_timestamp.get(timestamp, 0)
        per_timestamp[timestamp] = n + 1

        matches.append(
            {
                "match_id": f"lp_{tournament_id}_{timestamp}_{n}",
                "team1": teams[0],
                "team2": teams[1],
                "score1": score1,
                "score2": score2,
                "timestamp": timestamp,
                "format": series_format,
                "tournament": tournament_id,
                "stage": _parse_stage(block),
                "status": "finished" if score1 > 0 or score2 > 0 else "scheduled",
            }
        )

    logger.debug("Parsed %d match blocks for %s", len(matches), tournament_id)
    return matches


def filter_matches(matches: list[dict]) -> list[dict]:
    """Drop placeholder teams and repeated (team1, team2, timestamp) entries."""
    seen: set[tuple] = set()
    kept: list[dict] = []
    for m in matches:
        if is_placeholder_team(m.get("team1")) or is_placeholder_team(m.get("team2")):
            continue
        key = (m.get("team1"), m.get("team2"), m.get("timestamp"))
        if key in seen:
            continue
        seen.add(key)
        kept.append(m)
    return kept


def liquipedia_page_for(tournament: dict) -> str | None:
    """Resolve the wiki page of a tournament row, or None if unknown.

    An explicit ``liquipedia_page`` wins; otherwise the id is matched
    against KNOWN_PAGES, then DreamLeague seasons are read from the id,
    then a few well-known series are inferred from the display name.
    """
    if tournament.get("liquipedia_page"):
        return tournament["liquipedia_page"]

    tid = (tournament.get("id") or "").lower()
    name = tournament.get("name") or ""

    for fragment, page in KNOWN_PAGES.items():
        if fragment in tid:
            return page

    m = re.search(r"dreamleague-s?(\d+)", tid)
    if m:
        return f"DreamLeague/{m.group(1)}"

    if "BLAST" in name and "Slam" in name:
        m = re.search(r"Slam\s*(\d+)", name, re.IGNORECASE)
        return f"BLAST/Slam/{m.group(1)}" if m else None
    if "DreamLeague" in name:
        m = re.search(r"\bS(\d+)\b|Season\s*(\d+)", name, re.IGNORECASE)
        return f"DreamLeague/{m.group(1) or m.group(2)}" if m else "DreamLeague"
    if "ESL One" in name:
        return "ESL_One"
    if "International" in name:
        m = re.search(r"(\d{4})|TI(\d+)", name, re.IGNORECASE)
        return f"The_International/{m.group(1) or m.group(2)}" if m else "The_International"
    return None


def extract_logo_url(html: str) -> str | None:
    """Logo image URL from a rendered team page infobox."""
    soup = BeautifulSoup(html, "lxml")

    img = soup.select_one(".infobox-image img")
    if img is None:
        img = soup.find(
            "img",
            src=lambda s: bool(s) and "/commons/images/" in s and "logo" in s.lower(),
        )
    if img is None or not img.get("src"):
        return None

    src = img["src"]
    if src.startswith("//"):
        return "https:" + src
    if src.startswith("/"):
        return "https://liquipedia.net" + src
    return src
