"""Tests for smart playlist rule evaluation."""

import pytest

from beatbox.domain.library.models import Rule, RuleSet
from beatbox.domain.playlists.rules import (
    check_condition,
    evaluate_playlist,
    evaluate_rule,
    validate_rule,
    validate_rule_set,
)
from conftest import make_track


class TestTextOperators:
    """Text comparisons are case-insensitive."""

    @pytest.mark.parametrize(
        "operator, value, expected",
        [
            ("is", "ROCK", True),
            ("is", "roc", False),
            ("is_not", "pop", True),
            ("is_not", "Rock", False),
            ("contains", "OC", True),
            ("does_not_contain", "jazz", True),
            ("does_not_contain", "ro", False),
            ("starts_with", "ro", True),
            ("ends_with", "CK", True),
            ("ends_with", "ro", False),
        ],
    )
    def test_genre(self, operator, value, expected):
        track = make_track("t1", genre="Rock")

        assert evaluate_rule(track, Rule("genre", operator, value)) is expected

    def test_text_operator_on_non_text_is_false(self):
        track = make_track("t1", year=2020)

        assert evaluate_rule(track, Rule("year", "contains", "20")) is False
        assert evaluate_rule(track, Rule("year", "does_not_contain", "19")) is False


class TestNumericOperators:
    def test_ordering(self):
        track = make_track("t1", year=2015)

        assert evaluate_rule(track, Rule("year", "is_greater_than", 2010)) is True
        assert evaluate_rule(track, Rule("year", "is_less_than", 2010)) is False

    def test_no_cross_type_coercion(self):
        track = make_track("t1", year=2015)

        assert evaluate_rule(track, Rule("year", "is", "2015")) is False
        assert evaluate_rule(track, Rule("year", "is_greater_than", "2010")) is False

    def test_int_equals_float(self):
        track = make_track("t1", duration=180.0)

        assert evaluate_rule(track, Rule("duration", "is", 180)) is True

    def test_missing_value_fails_comparisons(self):
        track = make_track("t1", year=None)

        assert evaluate_rule(track, Rule("year", "is_greater_than", 0)) is False
        assert evaluate_rule(track, Rule("year", "is", 2015)) is False
        assert evaluate_rule(track, Rule("year", "is_not", 2015)) is True


class TestBooleanOperators:
    def test_is_true_and_is_false(self):
        favorite = make_track("t1", is_favorite=True)
        other = make_track("t2", is_favorite=False)

        assert evaluate_rule(favorite, Rule("is_favorite", "is_true")) is True
        assert evaluate_rule(other, Rule("is_favorite", "is_true")) is False
        assert evaluate_rule(other, Rule("is_favorite", "is_false")) is True

    def test_boolean_is_not_number(self):
        assert check_condition(True, "is", 1) is False


def test_unknown_operator_is_false():
    assert evaluate_rule(make_track("t1"), Rule("genre", "sounds_like", "Rock")) is False


def test_unknown_field_reads_as_missing():
    assert evaluate_rule(make_track("t1"), Rule("bpm", "is_greater_than", 100)) is False


@pytest.mark.parametrize("genre", ["Rock", "rock", "Pop", "", "Drum & Bass"])
def test_is_matches_exactly_case_folded_equal(genre):
    track = make_track("t1", genre=genre)
    value = "rock"

    assert evaluate_rule(track, Rule("genre", "is", value)) is (genre.lower() == value.lower())


class TestEvaluatePlaylist:
    """AND / OR composition."""

    rules = (Rule("genre", "is", "Rock"), Rule("year", "is_greater_than", 2018))

    @pytest.mark.parametrize(
        "genre, year",
        [("Rock", 2020), ("Rock", 2000), ("Pop", 2020), ("Pop", 2000)],
    )
    def test_all_and_any(self, genre, year):
        track = make_track("t1", genre=genre, year=year)
        results = [evaluate_rule(track, rule) for rule in self.rules]

        assert evaluate_playlist(RuleSet(True, self.rules), track) is all(results)
        assert evaluate_playlist(RuleSet(False, self.rules), track) is any(results)

    @pytest.mark.parametrize("match_all", [True, False])
    def test_empty_rule_set_matches_nothing(self, match_all):
        assert evaluate_playlist(RuleSet(match_all, ()), make_track("t1")) is False


class TestValidation:
    def test_valid_rules(self):
        validate_rule(Rule("genre", "contains", "rock"))
        validate_rule(Rule("year", "is_less_than", 2000))
        validate_rule(Rule("is_favorite", "is_true"))

    @pytest.mark.parametrize(
        "rule",
        [
            Rule("bpm", "is", 120),
            Rule("genre", "is_greater_than", "a"),
            Rule("year", "contains", "19"),
            Rule("year", "is", "soon"),
            Rule("is_favorite", "is", True),
            Rule("title", "is", 5),
        ],
    )
    def test_invalid_rules(self, rule):
        with pytest.raises(ValueError):
            validate_rule(rule)

    def test_empty_rule_set_invalid(self):
        with pytest.raises(ValueError):
            validate_rule_set(RuleSet())
