"""Canonical representation of one played game, tagged with its source."""

from pydantic import BaseModel, Field


class CanonicalGame(BaseModel):
    """One game after ingestion.

    ``team_a``/``team_b`` are the sides as the source reported them
    (radiant/dire for OpenDota); they carry no team identity across games.
    ``source`` names the collaborator the record came from. OpenDota rows
    are single games while a scraped row is a whole series with its series
    score, so games of different sources never share a series.
    """

    match_id: str = Field(min_length=1)
    team_a: str = ""
    team_b: str = ""
    score_a: int = Field(default=0, ge=0)
    score_b: int = Field(default=0, ge=0)
    winner_is_team_a: bool
    start_time: int = Field(default=0, ge=0)
    duration: int = Field(default=0, ge=0)
    tournament_key: str = ""
    series_format: str | None = None  # declared best-of hint, if any
    source: str = ""

    @property
    def winner(self) -> str:
        """Display name of the winning team."""
        return self.team_a if self.winner_is_team_a else self.team_b

    @property
    def loser(self) -> str:
        return self.team_b if self.winner_is_team_a else self.team_a
