"""Filesystem storage for the exported JSON documents.

The front end reads these static files from ``output_dir``::

    output_dir/
      home.json      {"series_by_tournament": {...}, "last_updated": ..., ...}
      matches.json   {"matches": [...], "last_updated": ...}
      upcoming.json  {"matches": [...], "last_updated": ...}  scheduled, soonest first
      tournaments.json {"tournaments": [...], "last_updated": ...}

``home.json`` may carry keys written by other jobs (news, streams); a save
only replaces ``series_by_tournament`` and ``last_updated``.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from dota_hub.aggregation import sorted_for_display
from dota_hub.models import CanonicalGame, Series

logger = logging.getLogger(__name__)

SERIES_KEY = "series_by_tournament"


class SeriesStore:
    """JSON save/load/exists layer for the series collection.

    Usage::

        store = SeriesStore("public/data")
        collection = store.load()
        store.save(collection)
    """

    HOME_FILE = "home.json"
    MATCHES_FILE = "matches.json"
    UPCOMING_FILE = "upcoming.json"
    TOURNAMENTS_FILE = "tournaments.json"

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)

    @property
    def home_path(self) -> Path:
        return self.output_dir / self.HOME_FILE

    @property
    def matches_path(self) -> Path:
        return self.output_dir / self.MATCHES_FILE

    @property
    def upcoming_path(self) -> Path:
        return self.output_dir / self.UPCOMING_FILE

    @property
    def tournaments_path(self) -> Path:
        return self.output_dir / self.TOURNAMENTS_FILE

    def exists(self) -> bool:
        """Check whether home.json has been written."""
        return self.home_path.exists()

    def load(self) -> dict[str, list[Series]]:
        """Read the series collection back from home.json.

        Returns an empty collection when the file is missing.

        Raises:
            pydantic.ValidationError: a stored series is malformed.
            json.JSONDecodeError: the file is not valid JSON.
        """
        document = self._read_document()
        stored = document.get(SERIES_KEY) or {}
        collection = {
            tournament: [Series.model_validate(s) for s in series_list]
            for tournament, series_list in stored.items()
        }
        logger.debug(
            "Loaded %d series across %d tournaments from %s",
            sum(len(v) for v in collection.values()),
            len(collection),
            self.home_path,
        )
        return collection

    def save(self, collection: dict[str, list[Series]]) -> Path:
        """Write the collection into home.json, keeping unrelated keys.

        Each tournament's series are written newest first.

        Returns:
            Path to the written file.
        """
        document = self._read_document()
        document[SERIES_KEY] = {
            tournament: [s.model_dump(mode="json") for s in sorted_for_display(series_list)]
            for tournament, series_list in collection.items()
        }
        document["last_updated"] = _timestamp()
        self._write(self.home_path, document)
        return self.home_path

    def save_matches(self, games: list[CanonicalGame]) -> Path:
        """Write the flat game list to matches.json, newest first."""
        ordered = sorted(games, key=lambda g: g.start_time, reverse=True)
        document = {
            "matches": [g.model_dump(mode="json") for g in ordered],
            "last_updated": _timestamp(),
        }
        self._write(self.matches_path, document)
        return self.matches_path

    def save_upcoming(self, rows: list[dict]) -> Path:
        """Write scheduled match rows to upcoming.json, soonest first."""
        ordered = sorted(rows, key=lambda r: r.get("start_time") or 0)
        self._write(
            self.upcoming_path, {"matches": ordered, "last_updated": _timestamp()}
        )
        return self.upcoming_path

    def save_tournaments(self, rows: list[dict]) -> Path:
        """Write tournament rows to tournaments.json in the order given."""
        self._write(
            self.tournaments_path,
            {"tournaments": list(rows), "last_updated": _timestamp()},
        )
        return self.tournaments_path

    def _read_document(self) -> dict:
        if not self.home_path.exists():
            return {}
        return json.loads(self.home_path.read_text(encoding="utf-8"))

    def _write(self, path: Path, document: dict) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8"
        )
        logger.info("Wrote %s", path)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()
