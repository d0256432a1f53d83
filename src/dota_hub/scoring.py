"""Series score calculation by team identity, not by side.

A team can be radiant in game 1 and dire in game 2 of the same series, so
wins are attributed by comparing the winner's normalized name with the
series teams rather than by reading a side flag.
"""

from collections.abc import Iterable
from typing import NamedTuple

from dota_hub.models import CanonicalGame
from dota_hub.normalize import normalize_team_name


class SeriesScore(NamedTuple):
    wins_a: int
    wins_b: int
    unmatched: list[str]  # match ids whose winner is neither series team


def score_series(
    games: Iterable[CanonicalGame], team_a: str, team_b: str
) -> SeriesScore:
    """Count wins for *team_a* and *team_b* over *games*.

    A game whose winner matches neither team (a name mismatch upstream) is
    left out of both counts and listed in ``unmatched``; the caller reports
    it. Pure function.
    """
    norm_a = normalize_team_name(team_a)
    norm_b = normalize_team_name(team_b)
    wins_a = wins_b = 0
    unmatched: list[str] = []

    for game in games:
        winner = normalize_team_name(game.winner)
        if winner and winner == norm_a:
            wins_a += 1
        elif winner and winner == norm_b:
            wins_b += 1
        else:
            unmatched.append(game.match_id)

    return SeriesScore(wins_a, wins_b, unmatched)
