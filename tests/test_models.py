"""Unit tests for the Pydantic models (raw records, games, series)."""

import pytest
from pydantic import ValidationError

from dota_hub.models import (
    CanonicalGame,
    DbMatchModel,
    OpenDotaMatchModel,
    ScrapedMatchModel,
    Series,
)


def make_game(match_id="1", **overrides) -> CanonicalGame:
    data = {
        "match_id": match_id,
        "team_a": "Alpha",
        "team_b": "Beta",
        "score_a": 30,
        "score_b": 20,
        "winner_is_team_a": True,
        "start_time": 1000,
        "tournament_key": "t1",
    }
    data.update(overrides)
    return CanonicalGame(**data)


class TestRawModels:
    """Tests for source-specific raw record models."""

    def test_opendota_accepts_api_shape(self):
        record = OpenDotaMatchModel.model_validate(
            {
                "match_id": 7890123456,
                "radiant_name": "Team Spirit",
                "dire_name": "Tundra Esports",
                "radiant_score": 35,
                "dire_score": 22,
                "radiant_win": True,
                "start_time": 1740000000,
                "duration": 2400,
                "leagueid": 19269,
                "series_type": 1,
                "radiant_team_id": 7119388,
            }
        )
        assert record.radiant_win is True
        assert record.leagueid == 19269

    def test_opendota_missing_fields_are_none(self):
        record = OpenDotaMatchModel.model_validate({"match_id": 1})
        assert record.radiant_name is None
        assert record.radiant_win is None

    @pytest.mark.parametrize("match_id", [0, -5, "", "   "])
    def test_bad_match_id_rejected(self, match_id):
        with pytest.raises(ValidationError):
            OpenDotaMatchModel.model_validate({"match_id": match_id})

    def test_negative_score_rejected(self):
        with pytest.raises(ValidationError):
            DbMatchModel.model_validate({"match_id": "1", "radiant_score": -1})

    def test_scraped_requires_tournament(self):
        with pytest.raises(ValidationError):
            ScrapedMatchModel.model_validate({"match_id": "lp_1", "team1": "A"})

    def test_db_row_coerces_radiant_win_int(self):
        record = DbMatchModel.model_validate({"match_id": "5", "radiant_win": 0})
        assert record.radiant_win is False


class TestCanonicalGame:
    """Tests for CanonicalGame."""

    def test_winner_and_loser(self):
        game = make_game(winner_is_team_a=False)
        assert game.winner == "Beta"
        assert game.loser == "Alpha"

    def test_winner_flag_required(self):
        with pytest.raises(ValidationError):
            CanonicalGame(match_id="1", team_a="A", team_b="B")


class TestSeries:
    """Tests for Series validation."""

    def test_duplicate_games_rejected(self):
        with pytest.raises(ValidationError, match="twice"):
            Series(
                series_id="s1",
                tournament_key="t1",
                team_a="Alpha",
                team_b="Beta",
                games=[make_game("1"), make_game("1")],
            )

    def test_wins_cannot_exceed_games(self):
        with pytest.raises(ValidationError):
            Series(
                series_id="s1",
                tournament_key="t1",
                team_a="Alpha",
                team_b="Beta",
                games=[make_game("1")],
                wins_a=1,
                wins_b=1,
            )

    def test_last_played(self):
        series = Series(
            series_id="s1",
            tournament_key="t1",
            team_a="Alpha",
            team_b="Beta",
            games=[make_game("1", start_time=100), make_game("2", start_time=300)],
        )
        assert series.last_played == 300
        assert series.match_ids == ["1", "2"]

    def test_json_round_trip_keeps_logos(self):
        series = Series(
            series_id="s1",
            tournament_key="t1",
            team_a="Alpha",
            team_b="Beta",
            games=[make_game("1")],
            wins_a=1,
            team_a_logo="https://img/alpha.png",
        )
        restored = Series.model_validate(series.model_dump(mode="json"))
        assert restored == series
