"""Pydantic v2 model for an aggregated best-of-N series.

Validation here guards data read back from the persisted JSON document.
In-place mutation by the merge engine does not re-run validators; the
merge engine checks its own invariants after every mutation.
"""

from pydantic import BaseModel, Field, model_validator
from typing_extensions import Self

from .game import CanonicalGame


class Series(BaseModel):
    """A set of games between the same two teams in one tournament."""

    series_id: str = Field(min_length=1)
    tournament_key: str
    team_a: str = Field(min_length=1)
    team_b: str = Field(min_length=1)
    series_format: str = "BO3"
    # Collaborator the games came from; series never mix sources
    source: str = ""
    games: list[CanonicalGame] = Field(default_factory=list)
    wins_a: int = Field(default=0, ge=0)
    wins_b: int = Field(default=0, ge=0)
    # Opaque pass-through for the front end, never validated
    team_a_logo: str | None = None
    team_b_logo: str | None = None

    @model_validator(mode="after")
    def check_unique_games(self) -> Self:
        """No two games may share a match_id."""
        seen: set[str] = set()
        for game in self.games:
            if game.match_id in seen:
                raise ValueError(
                    f"Series {self.series_id} lists match {game.match_id} twice"
                )
            seen.add(game.match_id)
        return self

    @model_validator(mode="after")
    def check_win_counts(self) -> Self:
        """Wins can never exceed the number of games played."""
        if self.wins_a + self.wins_b > len(self.games):
            raise ValueError(
                f"Series {self.series_id} has {self.wins_a}-{self.wins_b} "
                f"wins over {len(self.games)} games"
            )
        return self

    @property
    def match_ids(self) -> list[str]:
        return [g.match_id for g in self.games]

    @property
    def last_played(self) -> int:
        """Start time of the latest game, 0 for an empty series."""
        return max((g.start_time for g in self.games), default=0)
