"""Aggregator configuration with defaults for the OpenDota/Liquipedia jobs."""

from dataclasses import dataclass, field

OPENDOTA_BASE_URL = "https://api.opendota.com/api"
LIQUIPEDIA_API_URL = "https://liquipedia.net/dota2/api.php"

# OpenDota league id -> tournament id used in the exported JSON
DEFAULT_TRACKED_LEAGUES: dict[int, str] = {
    19269: "dreamleague-s28",
    18988: "dreamleague-s27",
    19130: "esl-challenger-china",
    19099: "blast-slam-vi",
}


@dataclass
class AggregatorConfig:
    """Configuration for the fetch, aggregate and export jobs.

    All timing values are in seconds.
    """

    # HTTP endpoints
    opendota_base_url: str = OPENDOTA_BASE_URL
    opendota_api_key: str | None = None
    liquipedia_api_url: str = LIQUIPEDIA_API_URL
    user_agent: str = "dota-hub/0.1 (static esports data export)"
    request_timeout: float = 30.0

    # tenacity stop_after_attempt / wait_exponential_jitter
    max_retries: int = 3
    retry_initial_wait: float = 1.0
    retry_max_wait: float = 15.0

    # Pacing between requests; OpenDota allows ~60 requests/minute unkeyed
    min_delay: float = 0.1
    max_delay: float = 1.0
    backoff_factor: float = 2.0
    recovery_factor: float = 0.85
    max_backoff: float = 30.0

    # Series grouping: games further apart than this are different series
    series_window_seconds: int = 86400
    # Used when a record carries no best-of hint
    default_series_format: str = "BO3"

    # How many /proMatches entries one incremental run looks at
    pro_matches_limit: int = 200
    # How many /teams entries feed the logo cache
    logo_team_limit: int = 100
    # Concurrent logo lookups
    logo_concurrency: int = 4
    # Rows in upcoming.json / tournaments.json
    upcoming_limit: int = 10
    tournaments_limit: int = 20

    # Empty mapping = keep every league, keyed by its numeric id
    tracked_leagues: dict[int, str] = field(
        default_factory=lambda: dict(DEFAULT_TRACKED_LEAGUES)
    )

    # Persistent data storage
    data_dir: str = "data"
    db_path: str = "data/dota2.db"
    output_dir: str = "public/data"
