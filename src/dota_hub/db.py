"""SQLite connection manager for the dota2 database.

The schema lives in ``migrations/NNN_name.sql``. ``PRAGMA user_version``
holds the number of the last applied file; each file runs in its own
transaction together with the version bump, so a failing migration leaves
the database at the previous version.
"""

import logging
import sqlite3
from pathlib import Path
from typing import NamedTuple

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent.parent / "migrations"


class Migration(NamedTuple):
    version: int
    path: Path


def discover_migrations(migrations_dir: Path) -> list[Migration]:
    """Numbered ``.sql`` files in *migrations_dir*, lowest version first."""
    found = []
    for path in migrations_dir.glob("*.sql"):
        prefix = path.stem.split("_", 1)[0]
        if not prefix.isdigit():
            logger.warning("Ignoring unnumbered migration file %s", path.name)
            continue
        found.append(Migration(int(prefix), path))
    return sorted(found)


class Database:
    """Owns one ``sqlite3`` connection (WAL, foreign keys, busy timeout).

    Usage::

        with Database("data/dota2.db") as db:
            db.apply_migrations()
            repo = MatchRepository(db.conn)
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        for pragma in ("journal_mode = WAL", "foreign_keys = ON", "busy_timeout = 5000"):
            conn.execute(f"PRAGMA {pragma}")
        self._conn = conn
        return conn

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "Database":
        self.connect()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def get_schema_version(self) -> int:
        return self.conn.execute("PRAGMA user_version").fetchone()[0]

    def pending_migrations(self, migrations_dir: Path | None = None) -> list[Migration]:
        """Migrations newer than the current schema version."""
        current = self.get_schema_version()
        return [
            m for m in discover_migrations(Path(migrations_dir or MIGRATIONS_DIR))
            if m.version > current
        ]

    def apply_migrations(self, migrations_dir: Path | None = None) -> int:
        """Apply every pending migration. Returns how many were applied.

        Raises:
            sqlite3.Error: a migration failed; it was rolled back and the
                ones after it were not attempted.
        """
        applied = 0
        for migration in self.pending_migrations(migrations_dir):
            sql = migration.path.read_text(encoding="utf-8")
            try:
                self.conn.executescript(
                    f"BEGIN;\n{sql}\nPRAGMA user_version = {migration.version};\nCOMMIT;"
                )
            except sqlite3.Error:
                if self.conn.in_transaction:
                    self.conn.rollback()
                logger.error("Migration %s failed", migration.path.name)
                raise
            logger.info("Applied migration %s", migration.path.name)
            applied += 1
        return applied

    def initialize(self) -> sqlite3.Connection:
        """Connect and bring the schema up to date."""
        self.connect()
        self.apply_migrations()
        return self.conn
