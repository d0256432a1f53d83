"""Data access layer with UPSERT operations for the dota2 database.

Provides MatchRepository with insert-or-update semantics for matches,
tournaments and team logos, plus the quarantine table for raw records
that failed validation. Each UPSERT uses INSERT ... ON CONFLICT DO UPDATE
SET so rows are modified in place.

Read methods return dicts (via sqlite3.Row).
"""

import sqlite3
from collections.abc import Iterable
from datetime import datetime, timezone

from dota_hub.normalize import normalize_team_name

# ---------------------------------------------------------------------------
# UPSERT SQL constants
# ---------------------------------------------------------------------------

UPSERT_MATCH = """
    INSERT INTO matches (
        match_id, source, tournament_id, league_id,
        radiant_team_name, dire_team_name, radiant_score, dire_score,
        radiant_win, start_time, duration, series_type, stage,
        fetched_at, updated_at
    ) VALUES (
        :match_id, :source, :tournament_id, :league_id,
        :radiant_team_name, :dire_team_name, :radiant_score, :dire_score,
        :radiant_win, :start_time, :duration, :series_type, :stage,
        :fetched_at, :fetched_at
    )
    ON CONFLICT(match_id) DO UPDATE SET
        source            = excluded.source,
        tournament_id     = excluded.tournament_id,
        league_id         = excluded.league_id,
        radiant_team_name = excluded.radiant_team_name,
        dire_team_name    = excluded.dire_team_name,
        radiant_score     = excluded.radiant_score,
        dire_score        = excluded.dire_score,
        radiant_win       = excluded.radiant_win,
        start_time        = excluded.start_time,
        duration          = excluded.duration,
        series_type       = excluded.series_type,
        stage             = excluded.stage,
        updated_at        = excluded.fetched_at
"""

UPSERT_TOURNAMENT = """
    INSERT INTO tournaments (
        id, name, tier, league_id, liquipedia_page, status,
        start_date, end_date, updated_at
    ) VALUES (
        :id, :name, :tier, :league_id, :liquipedia_page, :status,
        :start_date, :end_date, :updated_at
    )
    ON CONFLICT(id) DO UPDATE SET
        name            = excluded.name,
        tier            = excluded.tier,
        league_id       = excluded.league_id,
        liquipedia_page = excluded.liquipedia_page,
        status          = excluded.status,
        start_date      = excluded.start_date,
        end_date        = excluded.end_date,
        updated_at      = excluded.updated_at
"""

INSERT_TOURNAMENT_IF_MISSING = """
    INSERT OR IGNORE INTO tournaments (
        id, name, tier, league_id, liquipedia_page, status,
        start_date, end_date, updated_at
    ) VALUES (
        :id, :name, :tier, :league_id, :liquipedia_page, :status,
        :start_date, :end_date, :updated_at
    )
"""

# A known logo is never replaced by NULL
UPSERT_TEAM_LOGO = """
    INSERT INTO teams (normalized_name, name, logo_url, updated_at)
    VALUES (:normalized_name, :name, :logo_url, :updated_at)
    ON CONFLICT(normalized_name) DO UPDATE SET
        name       = excluded.name,
        logo_url   = COALESCE(excluded.logo_url, teams.logo_url),
        updated_at = excluded.updated_at
"""

INSERT_QUARANTINE = """
    INSERT INTO quarantine (
        entity_type, match_id, source, raw_data, error_details,
        quarantined_at, resolved
    ) VALUES (
        :entity_type, :match_id, :source, :raw_data, :error_details,
        :quarantined_at, :resolved
    )
"""

# Scheduled games with tournament name and team logos for upcoming.json
SELECT_UPCOMING = """
    SELECT m.*,
           t.name AS tournament_name,
           t.tier AS tournament_tier,
           rt.logo_url AS radiant_logo,
           dt.logo_url AS dire_logo
    FROM matches m
    LEFT JOIN tournaments t ON t.id = m.tournament_id
    LEFT JOIN teams rt ON rt.normalized_name = lower(trim(m.radiant_team_name))
    LEFT JOIN teams dt ON dt.normalized_name = lower(trim(m.dire_team_name))
    WHERE m.start_time > ?
    ORDER BY m.start_time ASC, m.match_id
    LIMIT ?
"""

_MATCH_DEFAULTS = {
    "source": "db",
    "tournament_id": None,
    "league_id": None,
    "radiant_team_name": None,
    "dire_team_name": None,
    "radiant_score": None,
    "dire_score": None,
    "radiant_win": None,
    "start_time": None,
    "duration": None,
    "series_type": None,
    "stage": None,
}

_TOURNAMENT_DEFAULTS = {
    "tier": None,
    "league_id": None,
    "liquipedia_page": None,
    "status": "upcoming",
    "start_date": None,
    "end_date": None,
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _match_params(data: dict) -> dict:
    params = {**_MATCH_DEFAULTS, **data}
    params["match_id"] = str(params["match_id"])
    if params["radiant_win"] is not None:
        params["radiant_win"] = int(bool(params["radiant_win"]))
    params.setdefault("fetched_at", _now())
    return params


# ---------------------------------------------------------------------------
# Repository class
# ---------------------------------------------------------------------------

class MatchRepository:
    """Data access layer for dota2 match data.

    Receives a raw ``sqlite3.Connection`` (not a Database instance) so
    tests can pass any connection, including in-memory databases.

    Write methods use ``with self.conn:`` for automatic commit on
    success / rollback on exception. Exceptions propagate to callers.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    # ------------------------------------------------------------------
    # Matches
    # ------------------------------------------------------------------

    def upsert_match(self, data: dict) -> None:
        """Insert or update one game row."""
        with self.conn:
            self.conn.execute(UPSERT_MATCH, _match_params(data))

    def upsert_matches(self, rows: Iterable[dict]) -> int:
        """Atomically upsert many game rows. Returns the row count."""
        count = 0
        with self.conn:
            for row in rows:
                self.conn.execute(UPSERT_MATCH, _match_params(row))
                count += 1
        return count

    def get_match(self, match_id: str | int) -> dict | None:
        """Return a game row as a dict, or None if not found."""
        row = self.conn.execute(
            "SELECT * FROM matches WHERE match_id = ?", (str(match_id),)
        ).fetchone()
        return dict(row) if row is not None else None

    def get_matches(self, tournament_id: str | None = None) -> list[dict]:
        """Return game rows ordered by start_time, optionally per tournament."""
        if tournament_id is None:
            rows = self.conn.execute(
                "SELECT * FROM matches ORDER BY start_time, match_id"
            ).fetchall()
        else:
            rows = self.conn.execute(
                "SELECT * FROM matches WHERE tournament_id = ? "
                "ORDER BY start_time, match_id",
                (tournament_id,),
            ).fetchall()
        return [dict(r) for r in rows]

    def get_upcoming_matches(self, now: int, limit: int = 10) -> list[dict]:
        """Return games starting after *now* (epoch seconds), soonest first."""
        rows = self.conn.execute(SELECT_UPCOMING, (now, limit)).fetchall()
        return [dict(r) for r in rows]

    def count_matches(self) -> int:
        return self.conn.execute("SELECT COUNT(*) FROM matches").fetchone()[0]

    # ------------------------------------------------------------------
    # Tournaments
    # ------------------------------------------------------------------

    def upsert_tournament(self, data: dict) -> None:
        """Insert or update a tournament record."""
        params = {**_TOURNAMENT_DEFAULTS, **data}
        params.setdefault("updated_at", _now())
        with self.conn:
            self.conn.execute(UPSERT_TOURNAMENT, params)

    def ensure_tournament(self, data: dict) -> bool:
        """Insert a tournament unless its id or league is already known.

        Returns True when a row was inserted.
        """
        params = {**_TOURNAMENT_DEFAULTS, **data}
        params.setdefault("updated_at", _now())
        with self.conn:
            cursor = self.conn.execute(INSERT_TOURNAMENT_IF_MISSING, params)
        return cursor.rowcount > 0

    def get_tournaments(
        self, statuses: Iterable[str] | None = None, limit: int | None = None
    ) -> list[dict]:
        """Return tournaments, optionally filtered by status, newest first."""
        sql = "SELECT * FROM tournaments"
        params: list = []
        if statuses is not None:
            params = list(statuses)
            placeholders = ",".join("?" for _ in params)
            sql += f" WHERE status IN ({placeholders})"
        sql += " ORDER BY start_date DESC, id"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return [dict(r) for r in self.conn.execute(sql, params).fetchall()]

    def get_league_aliases(self) -> dict[int, str]:
        """Return OpenDota league id -> tournament id for linked tournaments."""
        rows = self.conn.execute(
            "SELECT league_id, id FROM tournaments WHERE league_id IS NOT NULL"
        ).fetchall()
        return {r[0]: r[1] for r in rows}

    # ------------------------------------------------------------------
    # Team logos
    # ------------------------------------------------------------------

    def upsert_team_logo(self, name: str, logo_url: str | None) -> None:
        """Record a team's display name and logo URL."""
        normalized = normalize_team_name(name)
        if not normalized:
            return
        with self.conn:
            self.conn.execute(
                UPSERT_TEAM_LOGO,
                {
                    "normalized_name": normalized,
                    "name": name.strip(),
                    "logo_url": logo_url,
                    "updated_at": _now(),
                },
            )

    def get_team_logos(self) -> dict[str, str]:
        """Return normalized team name -> logo URL for teams with a logo."""
        rows = self.conn.execute(
            "SELECT normalized_name, logo_url FROM teams WHERE logo_url IS NOT NULL"
        ).fetchall()
        return {r[0]: r[1] for r in rows}

    # ------------------------------------------------------------------
    # Quarantine
    # ------------------------------------------------------------------

    def insert_quarantine(self, data: dict) -> None:
        """Store a raw record that failed validation."""
        with self.conn:
            self.conn.execute(INSERT_QUARANTINE, data)

    def count_quarantine(self, resolved: bool | None = None) -> int:
        if resolved is None:
            return self.conn.execute("SELECT COUNT(*) FROM quarantine").fetchone()[0]
        return self.conn.execute(
            "SELECT COUNT(*) FROM quarantine WHERE resolved = ?", (int(resolved),)
        ).fetchone()[0]
