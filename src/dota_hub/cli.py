"""CLI entry point for dota-hub.

Provides ``main()`` as the sync entry point for the ``dota-hub`` console
script, and ``async_main(args)`` which sets up logging, opens the
database, runs one batch job and logs an end-of-run summary.

Usage::

    dota-hub incremental                 # merge recent OpenDota matches
    dota-hub incremental --fetch-logos   # also resolve logos on Liquipedia
    dota-hub scrape                      # Liquipedia pages -> match rows
    dota-hub export                      # rebuild home.json / matches.json
"""

import argparse
import asyncio
import logging
import os
import sys
import time

from dota_hub.config import AggregatorConfig
from dota_hub.db import Database
from dota_hub.exceptions import MergeInvariantViolation
from dota_hub.http_client import LiquipediaClient, OpenDotaClient
from dota_hub.logging_config import setup_logging
from dota_hub.pipeline import run_export, run_incremental, run_scrape
from dota_hub.repository import MatchRepository
from dota_hub.storage import SeriesStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the dota-hub CLI."""
    parser = argparse.ArgumentParser(
        prog="dota-hub",
        description="Aggregate DOTA2 pro matches into best-of-N series",
    )
    parser.add_argument(
        "job",
        choices=["incremental", "scrape", "export"],
        help="Batch job to run",
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default="data",
        help="Data directory for the database and logs (default: data)",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default="public/data",
        help="Directory for home.json and matches.json (default: public/data)",
    )
    parser.add_argument(
        "--window-seconds",
        type=int,
        default=None,
        help="Series grouping window in seconds (default: 86400)",
    )
    parser.add_argument(
        "--default-format",
        type=str,
        default=None,
        help="Series format for records without a best-of hint (default: BO3)",
    )
    parser.add_argument(
        "--api-key",
        type=str,
        default=os.environ.get("OPENDOTA_API_KEY"),
        help="OpenDota API key (default: $OPENDOTA_API_KEY)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Pro matches considered per incremental run (default: 200)",
    )
    parser.add_argument(
        "--all-leagues",
        action="store_true",
        help="Keep matches from every league, not only the tracked ones",
    )
    parser.add_argument(
        "--fetch-logos",
        action="store_true",
        help="Look up missing team logos on Liquipedia (incremental only)",
    )
    parser.add_argument(
        "--min-delay",
        type=float,
        default=None,
        help="Minimum delay between requests in seconds (default: 0.1)",
    )
    return parser


def build_config(args: argparse.Namespace) -> AggregatorConfig:
    """AggregatorConfig from defaults plus the flags that were given."""
    overrides = {
        "data_dir": args.data_dir,
        "db_path": f"{args.data_dir}/dota2.db",
        "output_dir": args.output_dir,
        "opendota_api_key": args.api_key,
    }
    if args.window_seconds is not None:
        if args.window_seconds <= 0:
            raise ValueError("--window-seconds must be positive")
        overrides["series_window_seconds"] = args.window_seconds
    if args.default_format is not None:
        overrides["default_series_format"] = args.default_format.upper()
    if args.limit is not None:
        overrides["pro_matches_limit"] = args.limit
    if args.all_leagues:
        overrides["tracked_leagues"] = {}
    if args.min_delay is not None:
        overrides["min_delay"] = args.min_delay
    return AggregatorConfig(**overrides)


def _format_results(results: dict, wall_time: float, log_file: str) -> str:
    """Format end-of-run results into a human-readable summary string."""
    lines = [
        "=" * 60,
        f"Job complete: {results.get('job', 'unknown')}",
        "-" * 60,
    ]

    if results.get("job") == "scrape":
        lines.append(
            "Tournaments: {} scraped, {} skipped, {} failed".format(
                results.get("tournaments", 0),
                results.get("skipped", 0),
                results.get("failed", 0),
            )
        )
        lines.append(
            "Matches:     {} saved, {} invalid".format(
                results.get("matches_saved", 0), results.get("invalid", 0)
            )
        )
    else:
        lines.append(
            "Games:       {} ingested".format(results.get("ingested", 0))
        )
        lines.append(
            "Series:      {} created, {} updated, {} games added".format(
                results.get("series_created", 0),
                results.get("series_updated", 0),
                results.get("games_added", 0),
            )
        )
        lines.append("Logos:       {} filled".format(results.get("logos_filled", 0)))
        if results.get("job") == "export":
            lines.append(
                "Exported:    {} upcoming, {} tournaments".format(
                    results.get("upcoming", 0), results.get("tournaments_exported", 0)
                )
            )
        warnings = results.get("warnings") or {}
        flagged = {k: v for k, v in warnings.items() if v}
        lines.append(
            "Warnings:    {}".format(
                ", ".join(f"{k}={v}" for k, v in flagged.items()) or "none"
            )
        )

    lines.extend(
        [
            "-" * 60,
            f"Wall time:   {wall_time:.0f}s",
            f"Log file:    {log_file}",
        ]
    )
    if results.get("halted"):
        lines.append(f"Halted:      {results.get('halt_reason', 'unknown')}")

    lines.append("=" * 60)
    return "\n".join(lines)


async def async_main(args: argparse.Namespace) -> int:
    """Async entry point: set up components, run one job, log a summary.

    Returns:
        Process exit code.
    """
    log_file = setup_logging(data_dir=args.data_dir, job=args.job)
    config = build_config(args)
    logger.info(
        "Starting dota-hub %s: data_dir=%s, output_dir=%s, window=%ds, log=%s",
        args.job, config.data_dir, config.output_dir,
        config.series_window_seconds, log_file,
    )

    db = Database(config.db_path)
    db.initialize()
    repo = MatchRepository(db.conn)
    store = SeriesStore(config.output_dir)

    results: dict = {"job": args.job}
    exit_code = 0
    start_time = time.monotonic()

    try:
        if args.job == "incremental":
            async with OpenDotaClient(config) as client:
                if args.fetch_logos:
                    async with LiquipediaClient(config) as wiki:
                        results = await run_incremental(
                            client, repo, store, config,
                            logo_lookup=wiki.get_team_logo,
                        )
                else:
                    results = await run_incremental(client, repo, store, config)
        elif args.job == "scrape":
            async with LiquipediaClient(config) as wiki:
                results = await run_scrape(wiki, repo, config)
        else:
            results = run_export(repo, store, config)

        if results.get("halted"):
            exit_code = 1
    except MergeInvariantViolation as e:
        logger.error("Aborting: %s", e)
        results["halted"] = True
        results["halt_reason"] = str(e)
        exit_code = 2
    finally:
        wall_time = time.monotonic() - start_time
        logger.info("\n%s", _format_results(results, wall_time, str(log_file)))
        db.close()
        logging.shutdown()

    return exit_code


def main() -> None:
    """Sync entry point for the dota-hub console script."""
    parser = build_parser()
    args = parser.parse_args()
    if args.window_seconds is not None and args.window_seconds <= 0:
        parser.error("--window-seconds must be positive")
    try:
        exit_code = asyncio.run(async_main(args))
    except KeyboardInterrupt:
        exit_code = 130
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
