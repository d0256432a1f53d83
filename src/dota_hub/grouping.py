"""Series grouping: bucket canonical games into candidate series.

Two games land in the same bucket iff they share tournament, normalized
team pair (order-independent), declared series format, time-window bucket
and source. Sources are kept apart because a scraped row already is a
whole series. Buckets keep the order in which their games were first seen.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import NamedTuple

from dota_hub.models import CanonicalGame
from dota_hub.normalize import normalize_series_format, normalize_team_name, team_pair
from dota_hub.report import AggregationReport, WarningKind

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 86400
DEFAULT_SERIES_FORMAT = "BO3"


class SeriesGroupKey(NamedTuple):
    tournament_key: str
    team_pair: tuple[str, str]
    series_format: str
    window_bucket: int
    source: str = ""


@dataclass
class SeriesGroup:
    """The games of one bucket plus the display names of its teams."""

    tournament_key: str
    team_a: str
    team_b: str
    series_format: str
    games: list[CanonicalGame] = field(default_factory=list)
    source: str = ""


def group_key(
    game: CanonicalGame,
    window_seconds: int = DEFAULT_WINDOW_SECONDS,
    default_format: str = DEFAULT_SERIES_FORMAT,
) -> SeriesGroupKey:
    """Derive the grouping key of one game."""
    if window_seconds <= 0:
        raise ValueError(f"window_seconds must be positive, got {window_seconds}")
    series_format = normalize_series_format(game.series_format) or default_format
    return SeriesGroupKey(
        tournament_key=game.tournament_key,
        team_pair=team_pair(game.team_a, game.team_b),
        series_format=series_format,
        window_bucket=game.start_time // window_seconds,
        source=game.source,
    )


def group_games(
    games: Iterable[CanonicalGame],
    *,
    window_seconds: int = DEFAULT_WINDOW_SECONDS,
    default_format: str = DEFAULT_SERIES_FORMAT,
    report: AggregationReport | None = None,
) -> dict[SeriesGroupKey, list[CanonicalGame]]:
    """Bucket games by SeriesGroupKey.

    A repeated match_id replaces the earlier copy (last write wins) so no
    bucket ever holds the same game twice. Games with an empty team name
    cannot belong to a series: they are dropped and reported as
    ``missing_team_name``. A lone game still forms a one-game bucket.
    """
    latest: dict[str, CanonicalGame] = {}
    for game in games:
        if not normalize_team_name(game.team_a) or not normalize_team_name(game.team_b):
            if report is not None:
                report.record(
                    WarningKind.MISSING_TEAM_NAME,
                    f"Match {game.match_id} has teams "
                    f"{game.team_a!r} vs {game.team_b!r}",
                )
            # A later copy without names must not resurrect an older one
            latest.pop(game.match_id, None)
            continue
        # Keeps the first-seen position, stores the newest copy
        latest[game.match_id] = game

    buckets: dict[SeriesGroupKey, list[CanonicalGame]] = {}
    for game in latest.values():
        key = group_key(game, window_seconds, default_format)
        buckets.setdefault(key, []).append(game)

    logger.debug("Grouped %d games into %d buckets", len(latest), len(buckets))
    return buckets


def build_groups(
    buckets: dict[SeriesGroupKey, list[CanonicalGame]],
) -> list[SeriesGroup]:
    """Turn buckets into SeriesGroups named after their first game's teams."""
    groups: list[SeriesGroup] = []
    for key, games in buckets.items():
        first = games[0]
        groups.append(
            SeriesGroup(
                tournament_key=key.tournament_key,
                team_a=first.team_a.strip(),
                team_b=first.team_b.strip(),
                series_format=key.series_format,
                games=list(games),
                source=key.source,
            )
        )
    return groups
