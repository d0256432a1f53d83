"""Team logo cache: build from OpenDota teams, fill series, resolve misses.

Logos are opaque pass-through data for the front end. A series that
already carries a logo keeps it; only empty slots are filled.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping

from dota_hub.exceptions import DotaHubError
from dota_hub.models import Series
from dota_hub.normalize import normalize_team_name

logger = logging.getLogger(__name__)

LogoLookup = Callable[[str], Awaitable[str | None]]


def build_logo_cache(teams: Iterable[dict], limit: int | None = None) -> dict[str, str]:
    """Map normalized team name -> logo URL from OpenDota ``/teams`` entries.

    Only the first *limit* entries are considered; entries without a name
    or a logo are skipped.
    """
    cache: dict[str, str] = {}
    for i, team in enumerate(teams):
        if limit is not None and i >= limit:
            break
        name = normalize_team_name(team.get("name"))
        logo = team.get("logo_url")
        if name and logo:
            cache[name] = logo
    return cache


def missing_logo_teams(collection: Mapping[str, list[Series]]) -> list[str]:
    """Display names of teams that still lack a logo somewhere, deduplicated."""
    seen: dict[str, str] = {}
    for series_list in collection.values():
        for series in series_list:
            if not series.team_a_logo:
                seen.setdefault(normalize_team_name(series.team_a), series.team_a)
            if not series.team_b_logo:
                seen.setdefault(normalize_team_name(series.team_b), series.team_b)
    return list(seen.values())


def apply_logos(series_list: Iterable[Series], cache: Mapping[str, str]) -> int:
    """Fill empty logo slots from *cache*. Returns the number of slots filled."""
    filled = 0
    for series in series_list:
        if not series.team_a_logo:
            logo = cache.get(normalize_team_name(series.team_a))
            if logo:
                series.team_a_logo = logo
                filled += 1
        if not series.team_b_logo:
            logo = cache.get(normalize_team_name(series.team_b))
            if logo:
                series.team_b_logo = logo
                filled += 1
    return filled


def apply_logos_to_collection(
    collection: Mapping[str, list[Series]], cache: Mapping[str, str]
) -> int:
    return sum(apply_logos(series_list, cache) for series_list in collection.values())


async def fetch_logos(
    lookup: LogoLookup,
    names: Iterable[str],
    cache: Mapping[str, str],
    concurrency: int = 4,
) -> dict[str, str]:
    """Resolve logos for *names* missing from *cache*, a few at a time.

    *lookup* is awaited at most *concurrency* times in parallel. A failed
    lookup is logged and skipped.

    Returns:
        A new cache: *cache* plus every logo found.
    """
    result = dict(cache)
    pending: dict[str, str] = {}
    for name in names:
        key = normalize_team_name(name)
        if key and key not in result:
            pending.setdefault(key, name.strip())

    if not pending:
        return result

    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def resolve(key: str, name: str) -> tuple[str, str | None]:
        async with semaphore:
            try:
                return key, await lookup(name)
            except DotaHubError as e:
                logger.warning("Logo lookup failed for %s: %s", name, e)
                return key, None

    resolved = await asyncio.gather(
        *(resolve(key, name) for key, name in pending.items())
    )
    found = 0
    for key, logo in resolved:
        if logo:
            result[key] = logo
            found += 1

    logger.info("Resolved %d of %d missing team logos", found, len(pending))
    return result
