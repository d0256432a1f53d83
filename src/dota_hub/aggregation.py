"""Aggregation entry points shared by the rebuild and incremental jobs.

``rebuild_series`` builds a fresh collection from every known game;
``update_series`` folds newly fetched games into a collection read back
from disk. Both go through the same group -> merge path, so the two jobs
cannot drift apart.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from dota_hub.config import AggregatorConfig
from dota_hub.grouping import build_groups, group_games
from dota_hub.merge import merge_group
from dota_hub.models import CanonicalGame, Series
from dota_hub.report import AggregationReport

logger = logging.getLogger(__name__)

SeriesCollection = dict[str, list[Series]]


@dataclass
class AggregationResult:
    """Updated collection plus counters for the end-of-run summary."""

    collection: SeriesCollection
    report: AggregationReport = field(default_factory=AggregationReport)
    groups: int = 0
    series_created: int = 0
    series_updated: int = 0
    games_added: int = 0

    def stats(self) -> dict:
        return {
            "groups": self.groups,
            "series_created": self.series_created,
            "series_updated": self.series_updated,
            "games_added": self.games_added,
            "warnings": self.report.total,
        }


def aggregate_games(
    games: Iterable[CanonicalGame],
    collection: SeriesCollection,
    config: AggregatorConfig | None = None,
    report: AggregationReport | None = None,
) -> AggregationResult:
    """Group *games* and merge every group into *collection* in place.

    Args:
        games: Canonical games; duplicates and nameless games are handled
            by the grouping step.
        collection: tournament id -> series list. Mutated in place and
            also returned on the result.
        config: Window and default format; defaults apply when None.
        report: Warning accumulator; a fresh one is created when None.

    Raises:
        MergeInvariantViolation: propagated from the merge engine.
    """
    if config is None:
        config = AggregatorConfig()
    if report is None:
        report = AggregationReport()

    buckets = group_games(
        games,
        window_seconds=config.series_window_seconds,
        default_format=config.default_series_format,
        report=report,
    )
    result = AggregationResult(collection=collection, report=report)

    for group in build_groups(buckets):
        result.groups += 1
        series_list = collection.setdefault(group.tournament_key, [])
        merged = merge_group(
            series_list,
            group,
            window_seconds=config.series_window_seconds,
            report=report,
        )
        result.games_added += merged.games_added
        if merged.created:
            result.series_created += 1
        elif merged.games_added:
            result.series_updated += 1

    logger.info(
        "Aggregated %d groups: %d series created, %d updated, %d games added",
        result.groups,
        result.series_created,
        result.series_updated,
        result.games_added,
    )
    return result


def rebuild_series(
    games: Iterable[CanonicalGame],
    config: AggregatorConfig | None = None,
    report: AggregationReport | None = None,
) -> AggregationResult:
    """Build a collection from scratch (merge into an empty collection)."""
    return aggregate_games(games, {}, config, report)


def update_series(
    collection: SeriesCollection,
    games: Iterable[CanonicalGame],
    config: AggregatorConfig | None = None,
    report: AggregationReport | None = None,
) -> AggregationResult:
    """Fold new games into an existing collection."""
    return aggregate_games(games, collection, config, report)


def sorted_for_display(series_list: list[Series]) -> list[Series]:
    """Newest series first, by the start time of their latest game."""
    return sorted(series_list, key=lambda s: s.last_played, reverse=True)
