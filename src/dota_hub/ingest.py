"""Match record ingestion: source-specific raw records -> CanonicalGame.

Provides:
- SourceKind: which collaborator a raw record came from
- ingest: pure conversion of one validated raw record
- ingest_batch: validate + ingest a list of raw dicts, skipping bad records

Winner derivation prefers an explicit per-side flag. Sources without one
fall back to the scores: the higher score wins, and equal scores are never
resolved by picking a side.
"""

import logging
from collections.abc import Iterable, Mapping
from enum import Enum

from dota_hub.exceptions import AmbiguousWinner, UnplayedMatch
from dota_hub.models import (
    CanonicalGame,
    DbMatchModel,
    OpenDotaMatchModel,
    ScrapedMatchModel,
)
from dota_hub.normalize import OPENDOTA_SERIES_TYPES, normalize_series_format
from dota_hub.report import AggregationReport, WarningKind
from dota_hub.validation import validate_and_quarantine

logger = logging.getLogger(__name__)


class SourceKind(str, Enum):
    OPENDOTA = "opendota"
    SCRAPE = "scrape"
    DB = "db"


RawRecord = OpenDotaMatchModel | ScrapedMatchModel | DbMatchModel

_MODELS: dict[SourceKind, type] = {
    SourceKind.OPENDOTA: OpenDotaMatchModel,
    SourceKind.SCRAPE: ScrapedMatchModel,
    SourceKind.DB: DbMatchModel,
}


def decide_winner(
    score_a: int,
    score_b: int,
    explicit: bool | None,
    match_id: str,
) -> bool:
    """Return True when side A won.

    Raises:
        AmbiguousWinner: equal non-zero scores and no explicit flag.
        UnplayedMatch: 0:0 and no explicit flag.
    """
    if explicit is not None:
        return explicit
    if score_a > score_b:
        return True
    if score_b > score_a:
        return False
    if score_a == 0:
        raise UnplayedMatch(
            f"Match {match_id} has no result yet (0:0, no winner flag)",
            match_id=match_id,
        )
    raise AmbiguousWinner(
        f"Match {match_id} is tied {score_a}:{score_b} with no winner flag",
        match_id=match_id,
    )


def ingest(
    raw: RawRecord,
    source_kind: SourceKind,
    tournament_aliases: Mapping[int, str] | None = None,
) -> CanonicalGame:
    """Convert one validated raw record into a CanonicalGame.

    Pure function. Missing scores and durations become 0, missing team
    names become ``""`` (callers drop those before grouping).

    Args:
        raw: A record validated by the model for *source_kind*.
        source_kind: Where the record came from.
        tournament_aliases: OpenDota league id -> tournament id. Leagues
            not in the mapping are keyed by their numeric id.

    Stored rows keep the source they were written with, so a rebuild
    groups them exactly as the original fetch did.

    Raises:
        AmbiguousWinner / UnplayedMatch: the winner cannot be decided.
        TypeError: *raw* does not match *source_kind*.
    """
    source_kind = SourceKind(source_kind)
    expected = _MODELS[source_kind]
    if not isinstance(raw, expected):
        raise TypeError(
            f"{source_kind.value} records must be {expected.__name__}, "
            f"got {type(raw).__name__}"
        )

    match_id = str(raw.match_id).strip()

    if source_kind is SourceKind.OPENDOTA:
        score_a = raw.radiant_score or 0
        score_b = raw.dire_score or 0
        league = raw.leagueid
        if league is not None and tournament_aliases and league in tournament_aliases:
            tournament_key = tournament_aliases[league]
        else:
            tournament_key = str(league) if league is not None else ""
        return CanonicalGame(
            match_id=match_id,
            team_a=raw.radiant_name or "",
            team_b=raw.dire_name or "",
            score_a=score_a,
            score_b=score_b,
            winner_is_team_a=decide_winner(score_a, score_b, raw.radiant_win, match_id),
            start_time=raw.start_time or 0,
            duration=raw.duration or 0,
            tournament_key=tournament_key,
            series_format=OPENDOTA_SERIES_TYPES.get(raw.series_type),
            source=SourceKind.OPENDOTA.value,
        )

    if source_kind is SourceKind.SCRAPE:
        score_a = raw.score1 or 0
        score_b = raw.score2 or 0
        return CanonicalGame(
            match_id=match_id,
            team_a=raw.team1 or "",
            team_b=raw.team2 or "",
            score_a=score_a,
            score_b=score_b,
            winner_is_team_a=decide_winner(score_a, score_b, None, match_id),
            start_time=raw.timestamp or 0,
            duration=0,
            tournament_key=raw.tournament,
            series_format=normalize_series_format(raw.format),
            source=SourceKind.SCRAPE.value,
        )

    score_a = raw.radiant_score or 0
    score_b = raw.dire_score or 0
    tournament_key = raw.tournament_id or ""
    if not tournament_key and raw.league_id is not None:
        tournament_key = (tournament_aliases or {}).get(raw.league_id, str(raw.league_id))
    return CanonicalGame(
        match_id=match_id,
        team_a=raw.radiant_team_name or "",
        team_b=raw.dire_team_name or "",
        score_a=score_a,
        score_b=score_b,
        winner_is_team_a=decide_winner(score_a, score_b, raw.radiant_win, match_id),
        start_time=raw.start_time or 0,
        duration=raw.duration or 0,
        tournament_key=tournament_key,
        series_format=normalize_series_format(raw.series_type),
        source=raw.source or SourceKind.DB.value,
    )


def ingest_batch(
    records: Iterable[dict],
    source_kind: SourceKind,
    report: AggregationReport,
    tournament_aliases: Mapping[int, str] | None = None,
    repo=None,
) -> list[CanonicalGame]:
    """Validate and ingest raw dicts, skipping the ones that cannot be used.

    Validation failures are quarantined (when *repo* is given) and counted
    as ``invalid_record``; undecidable winners are counted under their own
    kind. Nothing here raises for bad input.

    Returns:
        Canonical games in input order.
    """
    source_kind = SourceKind(source_kind)
    model_cls = _MODELS[source_kind]
    records = list(records)
    games: list[CanonicalGame] = []

    for data in records:
        context = {"match_id": data.get("match_id"), "source": source_kind.value}
        validated = validate_and_quarantine(data, model_cls, context, repo)
        if validated is None:
            report.record(
                WarningKind.INVALID_RECORD,
                f"{source_kind.value} record {data.get('match_id')!r} failed validation",
            )
            continue

        try:
            games.append(ingest(validated, source_kind, tournament_aliases))
        except UnplayedMatch as e:
            report.record(WarningKind.UNPLAYED_MATCH, str(e))
        except AmbiguousWinner as e:
            report.record(WarningKind.AMBIGUOUS_WINNER, str(e))

    logger.info(
        "Ingested %d of %d %s records", len(games), len(records), source_kind.value
    )
    return games
