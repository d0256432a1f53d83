"""Incremental merge of grouped games into a persisted series collection.

The same engine serves both batch paths: a full rebuild merges every group
into an empty list, an incremental update merges into the collection read
back from disk. Merging is idempotent -- games are deduplicated by
match_id and win counts are always recomputed from the full game list,
never patched.
"""

import logging
from typing import NamedTuple

from dota_hub.exceptions import MergeInvariantViolation
from dota_hub.grouping import SeriesGroup
from dota_hub.models import CanonicalGame, Series
from dota_hub.normalize import team_pair
from dota_hub.report import AggregationReport, WarningKind
from dota_hub.scoring import SeriesScore, score_series

logger = logging.getLogger(__name__)

GENERATED_ID_PREFIX = "generated_"


class MergeResult(NamedTuple):
    series: Series
    created: bool
    games_added: int


def match_id_sort_key(match_id: str) -> tuple[int, int, str]:
    """Numeric ids in numeric order first, then other ids lexicographically."""
    if match_id.isdigit():
        return (0, int(match_id), "")
    return (1, 0, match_id)


def generate_series_id(games: list[CanonicalGame]) -> str:
    """Stable id derived from the lowest match id of the first games seen."""
    if not games:
        raise ValueError("Cannot derive a series id from an empty game list")
    first = min((g.match_id for g in games), key=match_id_sort_key)
    return GENERATED_ID_PREFIX + first


def _spans_within(
    series: Series, games: list[CanonicalGame], window_seconds: int
) -> bool:
    """True when the two start-time spans are at most a window apart."""
    if not series.games or not games:
        return True
    series_lo = min(g.start_time for g in series.games)
    series_hi = max(g.start_time for g in series.games)
    group_lo = min(g.start_time for g in games)
    group_hi = max(g.start_time for g in games)
    return group_lo - series_hi <= window_seconds and series_lo - group_hi <= window_seconds


def find_matching_series(
    existing_series: list[Series],
    group: SeriesGroup,
    window_seconds: int | None = None,
) -> list[Series]:
    """Return every existing series with the group's identity, in list order.

    Identity is tournament, source and the normalized team pair in either
    order.
    With *window_seconds*, a series whose games lie further than the window
    from the group's games is a different meeting of the same teams.
    """
    pair = team_pair(group.team_a, group.team_b)
    matches = []
    for series in existing_series:
        if series.tournament_key != group.tournament_key:
            continue
        if series.source != group.source:
            continue
        if team_pair(series.team_a, series.team_b) != pair:
            continue
        if window_seconds is not None and not _spans_within(
            series, group.games, window_seconds
        ):
            continue
        matches.append(series)
    return matches


def check_series_invariants(series: Series, score: SeriesScore) -> None:
    """Raise MergeInvariantViolation if the merged series is inconsistent."""
    ids = series.match_ids
    if len(ids) != len(set(ids)):
        raise MergeInvariantViolation(
            f"Series {series.series_id} holds duplicate games: {ids}",
            series_id=series.series_id,
        )
    counted = series.wins_a + series.wins_b + len(score.unmatched)
    if counted != len(series.games):
        raise MergeInvariantViolation(
            f"Series {series.series_id}: {series.wins_a}+{series.wins_b} wins "
            f"and {len(score.unmatched)} unmatched over {len(series.games)} games",
            series_id=series.series_id,
        )


def recompute_series(series: Series) -> SeriesScore:
    """Re-sort games by start time and recount wins from scratch."""
    series.games.sort(key=lambda g: (g.start_time, match_id_sort_key(g.match_id)))
    score = score_series(series.games, series.team_a, series.team_b)
    series.wins_a = score.wins_a
    series.wins_b = score.wins_b
    check_series_invariants(series, score)
    return score


def merge_group(
    existing_series: list[Series],
    group: SeriesGroup,
    *,
    window_seconds: int | None = None,
    report: AggregationReport | None = None,
) -> MergeResult:
    """Merge one group of games into *existing_series*.

    Finds the existing series for the group's teams (side-independent). If
    none exists a new series is created and appended to *existing_series*;
    otherwise only games whose match_id is not already present are added.
    Either way games are re-sorted and wins recounted over the full list.

    If several series match, the first one wins and a
    ``duplicate_series_match`` warning is recorded for manual cleanup.

    Raises:
        MergeInvariantViolation: the merged series is inconsistent.
    """
    matches = find_matching_series(existing_series, group, window_seconds)

    if len(matches) > 1 and report is not None:
        report.record(
            WarningKind.DUPLICATE_SERIES_MATCH,
            f"{len(matches)} series match {group.team_a} vs {group.team_b} in "
            f"{group.tournament_key}: {[s.series_id for s in matches]}; "
            f"using {matches[0].series_id}",
        )

    if matches:
        series = matches[0]
        known = set(series.match_ids)
        added: list[CanonicalGame] = []
        for game in group.games:
            if game.match_id in known:
                continue
            series.games.append(game)
            known.add(game.match_id)
            added.append(game)
        created = False
    else:
        unique = list({g.match_id: g for g in group.games}.values())
        series = Series(
            series_id=generate_series_id(unique),
            tournament_key=group.tournament_key,
            team_a=group.team_a,
            team_b=group.team_b,
            series_format=group.series_format,
            games=unique,
            source=group.source,
        )
        existing_series.append(series)
        added = list(series.games)
        created = True

    score = recompute_series(series)

    if report is not None:
        added_ids = {g.match_id for g in added}
        for match_id in score.unmatched:
            if match_id in added_ids:
                report.record(
                    WarningKind.UNMATCHED_WINNER,
                    f"Match {match_id} winner is neither {series.team_a} nor "
                    f"{series.team_b} (series {series.series_id})",
                )

    logger.debug(
        "%s series %s (%s %d-%d %s), +%d games",
        "Created" if created else "Updated",
        series.series_id,
        series.team_a,
        series.wins_a,
        series.wins_b,
        series.team_b,
        len(added),
    )
    return MergeResult(series, created, len(added))
