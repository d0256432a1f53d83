"""Batch job orchestration for dota-hub.

Three jobs, each returning a results dict for the CLI summary:

* ``run_incremental`` -- pull recent OpenDota pro matches, store them, and
  fold them into the series collection already on disk.
* ``run_scrape`` -- parse Liquipedia pages of ongoing and upcoming
  tournaments into match rows.
* ``run_export`` -- rebuild every series from the stored match rows and
  write home.json, matches.json, upcoming.json and tournaments.json.

All network fetching, logo lookups included, finishes before grouping and
merging start; the aggregation itself is a synchronous pass.
"""

import asyncio
import logging
import time

from dota_hub.aggregation import SeriesCollection, rebuild_series, update_series
from dota_hub.config import AggregatorConfig
from dota_hub.exceptions import DotaHubError
from dota_hub.http_client import LiquipediaClient, OpenDotaClient
from dota_hub.ingest import SourceKind, ingest_batch
from dota_hub.liquipedia_parser import (
    filter_matches,
    liquipedia_page_for,
    parse_tournament_page,
)
from dota_hub.logos import (
    LogoLookup,
    apply_logos_to_collection,
    build_logo_cache,
    fetch_logos,
    missing_logo_teams,
)
from dota_hub.models import CanonicalGame, ScrapedMatchModel
from dota_hub.normalize import OPENDOTA_SERIES_TYPES
from dota_hub.report import AggregationReport
from dota_hub.repository import MatchRepository
from dota_hub.storage import SeriesStore
from dota_hub.validation import validate_and_quarantine

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Row builders
# ---------------------------------------------------------------------------

def opendota_row(raw: dict, tournament_id: str | None) -> dict:
    """``matches`` table row for one OpenDota ``/proMatches`` entry."""
    return {
        "match_id": str(raw["match_id"]),
        "source": SourceKind.OPENDOTA.value,
        "tournament_id": tournament_id,
        "league_id": raw.get("leagueid"),
        "radiant_team_name": raw.get("radiant_name"),
        "dire_team_name": raw.get("dire_name"),
        "radiant_score": raw.get("radiant_score"),
        "dire_score": raw.get("dire_score"),
        "radiant_win": raw.get("radiant_win"),
        "start_time": raw.get("start_time"),
        "duration": raw.get("duration"),
        "series_type": OPENDOTA_SERIES_TYPES.get(raw.get("series_type")),
    }


def scraped_row(raw: dict) -> dict:
    """``matches`` table row for one parsed Liquipedia match."""
    return {
        "match_id": str(raw["match_id"]),
        "source": SourceKind.SCRAPE.value,
        "tournament_id": raw["tournament"],
        "radiant_team_name": raw.get("team1"),
        "dire_team_name": raw.get("team2"),
        "radiant_score": raw.get("score1"),
        "dire_score": raw.get("score2"),
        "start_time": raw.get("timestamp"),
        "series_type": raw.get("format"),
        "stage": raw.get("stage"),
    }


def collection_games(collection: SeriesCollection) -> list[CanonicalGame]:
    """Every game held by the collection, each once."""
    games: dict[str, CanonicalGame] = {}
    for series_list in collection.values():
        for series in series_list:
            for game in series.games:
                games.setdefault(game.match_id, game)
    return list(games.values())


def _new_team_names(games: list[CanonicalGame]) -> list[str]:
    names = []
    for game in games:
        names.extend([game.team_a, game.team_b])
    return [n for n in names if n]


async def _fetch_teams(client: OpenDotaClient) -> list[dict]:
    # Logos are cosmetic; a failed /teams call must not stop the job
    try:
        return await client.get_teams()
    except DotaHubError as e:
        logger.error("Failed to fetch OpenDota teams: %s", e)
        return []


def _store_logos(repo: MatchRepository, cache: dict[str, str], known: dict[str, str]) -> None:
    for name, logo in cache.items():
        if known.get(name) != logo:
            repo.upsert_team_logo(name, logo)


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------

async def run_incremental(
    client: OpenDotaClient,
    repo: MatchRepository,
    store: SeriesStore,
    config: AggregatorConfig,
    report: AggregationReport | None = None,
    logo_lookup: LogoLookup | None = None,
) -> dict:
    """Fetch recent pro matches and merge them into the stored collection.

    Args:
        client: OpenDota client.
        repo: Repository for match rows, logos and quarantine.
        store: Where home.json and matches.json live.
        config: Limits, tracked leagues, grouping window.
        report: Warning accumulator; a fresh one is created when None.
        logo_lookup: Optional async name -> logo URL resolver for teams
            the OpenDota team list does not cover.

    Returns:
        Dict with fetch counts, aggregation stats, warning counts and
        halt status.

    Raises:
        MergeInvariantViolation: the merge produced an inconsistent series.
    """
    if report is None:
        report = AggregationReport()
    results: dict = {"job": "incremental", "halted": False, "halt_reason": None}

    logger.info("=== Fetching OpenDota teams and pro matches ===")
    try:
        teams, pro_matches = await asyncio.gather(
            _fetch_teams(client), client.get_pro_matches()
        )
    except DotaHubError as exc:
        logger.error("Fetching pro matches failed: %s", exc)
        results["halted"] = True
        results["halt_reason"] = f"Fetching pro matches failed: {exc}"
        return results

    pro_matches = pro_matches[: config.pro_matches_limit]
    aliases = {**repo.get_league_aliases(), **config.tracked_leagues}
    if config.tracked_leagues:
        records = [m for m in pro_matches if m.get("leagueid") in config.tracked_leagues]
    else:
        records = list(pro_matches)
    logger.info(
        "Got %d pro matches, %d in tracked leagues", len(pro_matches), len(records)
    )

    games = ingest_batch(records, SourceKind.OPENDOTA, report, aliases, repo)

    # Persist only what could be ingested
    ingested = {g.match_id for g in games}
    rows = []
    for raw in records:
        if str(raw.get("match_id")) not in ingested:
            continue
        league = raw.get("leagueid")
        tournament_id = aliases.get(league) if league is not None else None
        if tournament_id is not None:
            repo.ensure_tournament(
                {
                    "id": tournament_id,
                    "name": raw.get("league_name") or tournament_id,
                    "league_id": league,
                    "status": "ongoing",
                }
            )
        rows.append(opendota_row(raw, tournament_id))
    stored = repo.upsert_matches(rows)

    collection = store.load()

    known_logos = repo.get_team_logos()
    cache = {**known_logos, **build_logo_cache(teams, config.logo_team_limit)}
    if logo_lookup is not None:
        names = missing_logo_teams(collection) + _new_team_names(games)
        cache = await fetch_logos(logo_lookup, names, cache, config.logo_concurrency)
    _store_logos(repo, cache, known_logos)

    logger.info("=== Merging %d games into stored series ===", len(games))
    result = update_series(collection, games, config, report)
    logos_filled = apply_logos_to_collection(collection, cache)

    if result.games_added or logos_filled or not store.exists():
        store.save(collection)
        store.save_matches(collection_games(collection))
    else:
        logger.info("No changes to write")

    logger.info(report.summary_line())
    results.update(
        {
            "fetched": len(pro_matches),
            "tracked": len(records),
            "ingested": len(games),
            "stored": stored,
            **result.stats(),
            "logos_filled": logos_filled,
            "warnings": report.as_dict(),
        }
    )
    return results


async def run_scrape(
    client: LiquipediaClient,
    repo: MatchRepository,
    config: AggregatorConfig,
    statuses: tuple[str, ...] = ("ongoing", "upcoming"),
) -> dict:
    """Scrape Liquipedia pages of active tournaments into match rows.

    Tournaments are fetched one after another through the client's rate
    limiter. A page that cannot be resolved or fetched is logged and
    counted; the other tournaments still run.
    """
    results = {
        "job": "scrape",
        "tournaments": 0,
        "skipped": 0,
        "failed": 0,
        "matches_saved": 0,
        "invalid": 0,
        "halted": False,
        "halt_reason": None,
    }
    tournaments = repo.get_tournaments(statuses)
    logger.info("=== Scraping %d tournaments ===", len(tournaments))

    for i, tournament in enumerate(tournaments, start=1):
        page = liquipedia_page_for(tournament)
        if page is None:
            logger.info(
                "[%d/%d] Skipping %s: no Liquipedia page",
                i, len(tournaments), tournament["id"],
            )
            results["skipped"] += 1
            continue

        start = time.monotonic()
        try:
            html = await client.get_page_html(page)
        except DotaHubError as e:
            logger.warning(
                "[%d/%d] %s (%s) FAIL: %s", i, len(tournaments), tournament["id"], page, e
            )
            results["failed"] += 1
            continue

        rows = []
        for match in filter_matches(parse_tournament_page(html, tournament["id"])):
            context = {"match_id": match["match_id"], "source": SourceKind.SCRAPE.value}
            if validate_and_quarantine(match, ScrapedMatchModel, context, repo) is None:
                results["invalid"] += 1
                continue
            rows.append(scraped_row(match))

        saved = repo.upsert_matches(rows)
        results["tournaments"] += 1
        results["matches_saved"] += saved
        logger.info(
            "[%d/%d] %s (%s) ok: %d matches (%.1fs)",
            i, len(tournaments), tournament["id"], page, saved, time.monotonic() - start,
        )

    return results


def run_export(
    repo: MatchRepository,
    store: SeriesStore,
    config: AggregatorConfig,
    report: AggregationReport | None = None,
    now: int | None = None,
) -> dict:
    """Rebuild every series from stored match rows and write the exports.

    Besides home.json and matches.json this writes upcoming.json (rows
    starting after *now*, soonest first) and tournaments.json.

    Raises:
        MergeInvariantViolation: the merge produced an inconsistent series.
    """
    if report is None:
        report = AggregationReport()

    rows = repo.get_matches()
    games = ingest_batch(rows, SourceKind.DB, report, repo.get_league_aliases(), repo)

    logger.info("=== Rebuilding series from %d games ===", len(games))
    result = rebuild_series(games, config, report)
    logos_filled = apply_logos_to_collection(result.collection, repo.get_team_logos())

    store.save(result.collection)
    store.save_matches(games)

    if now is None:
        now = int(time.time())
    upcoming = repo.get_upcoming_matches(now, config.upcoming_limit)
    store.save_upcoming(upcoming)
    tournaments = repo.get_tournaments(limit=config.tournaments_limit)
    store.save_tournaments(tournaments)

    logger.info(report.summary_line())
    return {
        "job": "export",
        "rows": len(rows),
        "ingested": len(games),
        "tournaments": len(result.collection),
        **result.stats(),
        "logos_filled": logos_filled,
        "upcoming": len(upcoming),
        "tournaments_exported": len(tournaments),
        "warnings": report.as_dict(),
        "halted": False,
        "halt_reason": None,
    }
