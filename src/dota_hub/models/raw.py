"""Pydantic v2 validation models for source-specific raw match records.

Each model mirrors the shape one collaborator hands over. Fields the
aggregation never reads are ignored; missing optional fields stay None and
the ingestor applies its defaults.
"""

from pydantic import BaseModel, Field, field_validator


class RawMatchModel(BaseModel):
    """Fields shared by every raw record: an opaque, non-empty match id."""

    match_id: int | str

    @field_validator("match_id")
    @classmethod
    def check_match_id(cls, value: int | str) -> int | str:
        """Ids may be numeric or text, but never blank or non-positive."""
        if isinstance(value, str) and not value.strip():
            raise ValueError("match_id must not be empty")
        if isinstance(value, int) and value <= 0:
            raise ValueError(f"match_id must be positive, got {value}")
        return value


class OpenDotaMatchModel(RawMatchModel):
    """One entry of OpenDota ``GET /proMatches``."""

    radiant_name: str | None = None
    dire_name: str | None = None
    radiant_score: int | None = Field(default=None, ge=0)
    dire_score: int | None = Field(default=None, ge=0)
    radiant_win: bool | None = None
    start_time: int | None = Field(default=None, ge=0)
    duration: int | None = Field(default=None, ge=0)
    leagueid: int | None = None
    league_name: str | None = None
    series_id: int | None = None
    series_type: int | None = None


class ScrapedMatchModel(RawMatchModel):
    """A match parsed from a Liquipedia tournament page."""

    team1: str | None = None
    team2: str | None = None
    score1: int | None = Field(default=None, ge=0)
    score2: int | None = Field(default=None, ge=0)
    timestamp: int | None = Field(default=None, ge=0)
    format: str | None = None
    tournament: str = Field(min_length=1)
    stage: str | None = None
    status: str | None = None


class DbMatchModel(RawMatchModel):
    """A row of the ``matches`` table (full-rebuild source)."""

    source: str | None = None
    tournament_id: str | None = None
    league_id: int | None = None
    radiant_team_name: str | None = None
    dire_team_name: str | None = None
    radiant_score: int | None = Field(default=None, ge=0)
    dire_score: int | None = Field(default=None, ge=0)
    radiant_win: bool | None = None
    start_time: int | None = Field(default=None, ge=0)
    duration: int | None = Field(default=None, ge=0)
    series_type: str | None = None
