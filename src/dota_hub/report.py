"""Per-batch warning accounting.

Bad input never aborts a batch. Every skipped or excluded record is
recorded here under a ``WarningKind`` and the batch ends with one summary
line for operator review.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class WarningKind(str, Enum):
    """Non-fatal data problems seen during a batch."""

    AMBIGUOUS_WINNER = "ambiguous_winner"
    UNPLAYED_MATCH = "unplayed_match"
    INVALID_RECORD = "invalid_record"
    MISSING_TEAM_NAME = "missing_team_name"
    UNMATCHED_WINNER = "unmatched_winner"
    DUPLICATE_SERIES_MATCH = "duplicate_series_match"


@dataclass
class AggregationReport:
    """Warning counters plus the detail message of each occurrence."""

    counts: Counter = field(default_factory=Counter)
    details: list[tuple[WarningKind, str]] = field(default_factory=list)

    def record(self, kind: WarningKind, detail: str) -> None:
        """Count one warning and log it."""
        self.counts[kind] += 1
        self.details.append((kind, detail))
        logger.warning("%s: %s", kind.value, detail)

    def count(self, kind: WarningKind) -> int:
        return self.counts[kind]

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def as_dict(self) -> dict[str, int]:
        """All warning kinds, zero counts included, keyed by value."""
        return {kind.value: self.counts[kind] for kind in WarningKind}

    def summary_line(self) -> str:
        """One line with the count of every warning kind."""
        parts = [f"{kind.value}={self.counts[kind]}" for kind in WarningKind]
        return f"Warnings ({self.total}): " + ", ".join(parts)
