"""Unit tests for the Liquipedia tournament page parser."""

import pytest

from dota_hub.liquipedia_parser import (
    canonical_team_name,
    extract_logo_url,
    filter_matches,
    is_placeholder_team,
    liquipedia_page_for,
    parse_tournament_page,
)


def match_block(ts, team1, team2, score=None, fmt=None, round_name=None):
    """HTML for one bracket match in the shape Liquipedia renders."""
    score_html = f'<div class="score">{score}</div>' if score else ""
    fmt_html = f"<abbr>(Bo{fmt})</abbr>" if fmt else ""
    round_html = f'<table><tr><td class="Round">{round_name}</td></tr></table>' if round_name else ""
    return f"""
    <div class="brkts-match">
      <div class="brkts-opponent-entry" data-highlightingclass="{team1}"></div>
      <div class="brkts-opponent-entry" data-highlightingclass="{team2}"></div>
      {score_html}
      <div class="brkts-popup">
        <span class="timer-object timer-object-countdown" data-timestamp="{ts}">Feb 28</span>
        {fmt_html}
      </div>
      {round_html}
    </div>
    """


def page(*blocks, extra=""):
    return f"<div class='mw-parser-output'>{extra}{''.join(blocks)}</div>"


class TestParseTournamentPage:
    """Tests for parse_tournament_page()."""

    def test_finished_match(self):
        html = page(match_block(1772287200, "Team Spirit", "Tundra Esports",
                                score="2:1", fmt=3, round_name="Grand Final"))
        (m,) = parse_tournament_page(html, "blast-slam-vi")

        assert m["team1"] == "Team Spirit"
        assert m["team2"] == "Tundra Esports"
        assert (m["score1"], m["score2"]) == (2, 1)
        assert m["timestamp"] == 1772287200
        assert m["format"] == "BO3"
        assert m["tournament"] == "blast-slam-vi"
        assert m["stage"] == "Grand Final"
        assert m["status"] == "finished"
        assert m["match_id"] == "lp_blast-slam-vi_1772287200_0"

    def test_scheduled_match_defaults(self):
        (m,) = parse_tournament_page(page(match_block(100, "OG", "Liquid")), "t")
        assert (m["score1"], m["score2"]) == (0, 0)
        assert m["status"] == "scheduled"
        assert m["stage"] == "Playoffs"
        assert m["format"] == "BO3"
        assert m["team2"] == "Team Liquid"

    def test_page_level_default_format(self):
        html = page(match_block(100, "OG", "Liquid"), extra="<p>All series are Bo5</p>")
        (m,) = parse_tournament_page(html, "t")
        assert m["format"] == "BO5"

    def test_tbd_slot_skipped(self):
        assert parse_tournament_page(page(match_block(100, "OG", "TBD")), "t") == []

    def test_same_timestamp_ids_unique(self):
        html = page(match_block(100, "OG", "Liquid"), match_block(100, "Aurora", "Heroic"))
        ids = [m["match_id"] for m in parse_tournament_page(html, "t")]
        assert ids == ["lp_t_100_0", "lp_t_100_1"]

    def test_timer_without_teams_ignored(self):
        html = page('<span class="timer-object" data-timestamp="5">soon</span>')
        assert parse_tournament_page(html, "t") == []


class TestFilterMatches:
    """Tests for filter_matches()."""

    def test_drops_placeholders_and_duplicates(self):
        matches = [
            {"team1": "OG", "team2": "Liquid", "timestamp": 1},
            {"team1": "OG", "team2": "Liquid", "timestamp": 1},
            {"team1": "OG", "team2": "Liquid", "timestamp": 2},
            {"team1": "TBD", "team2": "Liquid", "timestamp": 3},
            {"team1": "[edit]", "team2": "Liquid", "timestamp": 4},
        ]
        kept = filter_matches(matches)
        assert [m["timestamp"] for m in kept] == [1, 2]

    @pytest.mark.parametrize("name", ["Team Edith", "Credit Gaming", "Edited Esports"])
    def test_names_containing_edit_are_kept(self, name):
        assert is_placeholder_team(name) is False

    @pytest.mark.parametrize("name", ["edit", "[edit]", " TBD ", "Winner TBD", ""])
    def test_placeholders_detected(self, name):
        assert is_placeholder_team(name) is True


class TestTeamNames:
    """Tests for canonical_team_name()."""

    @pytest.mark.parametrize(
        "short, full",
        [("XG", "Xtreme Gaming"), ("lgd", "PSG.LGD"), ("Team  Falcons", "Team Falcons")],
    )
    def test_expansion(self, short, full):
        assert canonical_team_name(short) == full


class TestLiquipediaPageFor:
    """Tests for liquipedia_page_for()."""

    def test_explicit_page_wins(self):
        assert liquipedia_page_for({"id": "x", "liquipedia_page": "Foo/Bar"}) == "Foo/Bar"

    def test_known_page(self):
        assert liquipedia_page_for({"id": "blast-slam-vi"}) == "BLAST/Slam/6"

    @pytest.mark.parametrize("tid", ["dreamleague-s28", "dreamleague-28"])
    def test_dreamleague_season_from_id(self, tid):
        assert liquipedia_page_for({"id": tid}) == "DreamLeague/28"

    def test_from_name(self):
        assert liquipedia_page_for({"id": "ti", "name": "The International 2025"}) == (
            "The_International/2025"
        )

    def test_unknown(self):
        assert liquipedia_page_for({"id": "esl-challenger-china", "name": "ESL Challenger"}) is None


class TestExtractLogoUrl:
    """Tests for extract_logo_url()."""

    def test_relative_commons_path(self):
        html = '<img src="/commons/images/thumb/OG_logo.png">'
        assert extract_logo_url(html) == "https://liquipedia.net/commons/images/thumb/OG_logo.png"

    def test_no_logo(self):
        assert extract_logo_url("<p>nothing</p>") is None
