"""Tests for card text parsing."""

import pytest

from detection.types import RecognizedTextLine
from extraction.parsing import extract_year, find_team, looks_like_player_name, parse_card_text
from extraction.teams import TEAM_NAMES


class TestYear:
    def test_year_in_sentence(self):
        assert extract_year("Drafted 1996 Lakers") == 1996

    def test_out_of_range_year_ignored(self):
        assert extract_year("Class of 2045") is None
        assert extract_year("Printed 1899") is None

    def test_range_edges(self):
        assert extract_year("1900") == 1900
        assert extract_year("2039") == 2039

    def test_digits_inside_longer_number_ignored(self):
        assert extract_year("Serial 119960") is None

    def test_first_year_wins(self):
        assert extract_year("1997-98 Season 2001") == 1997


class TestTeam:
    def test_full_name_precedes_short_name(self):
        assert find_team("GOLDEN STATE WARRIORS") == "Golden State Warriors"
        assert find_team("Warriors") == "Warriors"

    def test_dictionary_order_decides(self):
        """Both "Los Angeles Lakers" and "Lakers" are contained; the earlier entry wins."""
        assert TEAM_NAMES.index("Los Angeles Lakers") < TEAM_NAMES.index("Lakers")
        assert find_team("Los Angeles Lakers") == "Los Angeles Lakers"
        assert find_team("LA Lakers") == "Lakers"

    def test_custom_dictionary_order(self):
        assert find_team("LA Lakers", team_names=("Lakers", "LA Lakers")) == "Lakers"
        assert find_team("LA Lakers", team_names=("LA Lakers", "Lakers")) == "LA Lakers"

    def test_no_team(self):
        assert find_team("Rookie Card") is None


class TestPlayerName:
    def test_capitalized_name_accepted(self):
        assert looks_like_player_name("LeBron James")

    def test_partial_city_is_not_a_team(self):
        """Only text containing a full dictionary entry counts as a team."""
        assert looks_like_player_name("LOS ANGELES")
        assert not looks_like_player_name("LOS ANGELES LAKERS")

    def test_single_word_rejected(self):
        assert not looks_like_player_name("Jordan")

    def test_lowercase_token_rejected(self):
        assert not looks_like_player_name("rookie Card")

    def test_single_letter_tokens_allowed(self):
        assert looks_like_player_name("Anfernee a Hardaway")

    def test_dated_line_rejected(self):
        assert not looks_like_player_name("Season 2021")
        assert not looks_like_player_name("Rookie-1998 Card")


class TestParseCardText:
    def test_end_to_end_lines(self):
        parsed = parse_card_text(["Stephen Curry", "2021", "Golden State Warriors"])
        assert parsed.player_name == "Stephen Curry"
        assert parsed.year == 2021
        assert parsed.team == "Golden State Warriors"
        assert parsed.all_text == "Stephen Curry\n2021\nGolden State Warriors"

    def test_recognized_lines_accepted(self):
        lines = [RecognizedTextLine("Michael Jordan", 0.9), RecognizedTextLine("Chicago Bulls 1991", 0.8)]
        parsed = parse_card_text(lines)
        assert parsed.player_name == "Michael Jordan"
        assert parsed.team == "Chicago Bulls"
        assert parsed.year == 1991

    def test_first_match_wins(self):
        parsed = parse_card_text(["Kobe Bryant", "Shaquille O'Neal", "1998", "2000"])
        assert parsed.player_name == "Kobe Bryant"
        assert parsed.year == 1998

    def test_team_line_not_used_as_name(self):
        parsed = parse_card_text(["Boston Celtics", "Larry Bird"])
        assert parsed.team == "Boston Celtics"
        assert parsed.player_name == "Larry Bird"

    def test_empty_input(self):
        parsed = parse_card_text([])
        assert parsed.is_empty
        assert parsed.player_name is None
        assert parsed.year is None
        assert parsed.team is None

    @pytest.mark.parametrize("lines", [["  ", ""], ["\n"]])
    def test_blank_lines_give_empty_text(self, lines):
        assert parse_card_text(lines).all_text == ""
