"""Tests for number and percent style.

WHY: House style writes one to ten in words and larger numbers as
digits, except at the start of a sentence, and always uses "%". The
exclusions (times, money, ages, decimals) are where regressions hide.

HOW: Single-cue documents through NumberStyleRule / PercentStyleRule,
plus direct checks of the word-number parser.
"""

import pytest

from caption_qa.rules.number_style import (
    NumberStyleRule,
    is_sentence_start,
    parse_number_words,
)
from caption_qa.rules.percent_style import PercentStyleRule


def _one(make_subs, text):
    return make_subs([("00:00:01:00", "00:00:05:00", text)])


class TestParseNumberWords:
    @pytest.mark.parametrize(
        "phrase, expected",
        [
            ("twenty five", 25),
            ("one hundred and twelve", 112),
            ("two thousand three hundred", 2300),
            ("three million", 3000000),
            ("eleven", 11),
        ],
    )
    def test_well_formed(self, phrase, expected):
        assert parse_number_words(phrase.split()) == expected

    @pytest.mark.parametrize(
        "phrase",
        ["five two seven", "twenty thirty", "twenty eleven", "hundred hundred", "and", "banana"],
    )
    def test_ill_formed(self, phrase):
        assert parse_number_words(phrase.split()) is None

    def test_sentence_start(self):
        assert is_sentence_start("25 people", 0)
        assert is_sentence_start('"25 people', 1)
        assert is_sentence_start("Done. 25 more", 6)
        assert not is_sentence_start("We saw 25", 7)


class TestNumberStyleRule:
    """Digits vs words."""

    def _run(self, make_subs, run, text):
        return run(_one(make_subs, text), [NumberStyleRule()])

    def test_small_digit_should_be_words(self, make_subs, run):
        metrics = self._run(make_subs, run, "I have 3 apples.")
        assert len(metrics) == 1
        m = metrics[0]
        assert (m.value, m.found, m.expected, m.token, m.index) == (3, "digits", "words", "3", 7)

    def test_large_digit_is_fine(self, make_subs, run):
        assert self._run(make_subs, run, "There were 25 people.") == []

    def test_digit_at_sentence_start(self, make_subs, run):
        metrics = self._run(make_subs, run, "25 people came.")
        assert [m.expected for m in metrics] == ["words"]

    def test_large_word_should_be_digits(self, make_subs, run):
        metrics = self._run(make_subs, run, "We saw twenty five birds.")
        assert len(metrics) == 1
        assert (metrics[0].value, metrics[0].token, metrics[0].expected) == (
            25,
            "twenty five",
            "digits",
        )

    def test_small_word_and_sentence_start_fine(self, make_subs, run):
        assert self._run(make_subs, run, "We saw five birds.") == []
        assert self._run(make_subs, run, "Twenty people came.") == []

    def test_comma_group_single_token(self, make_subs, run):
        assert self._run(make_subs, run, "About 1,000 people came.") == []

    @pytest.mark.parametrize(
        "text",
        [
            "It costs $5 today.",
            "We met at 10:30 sharp.",
            "A 5-year-old boy came.",
            "It grew 3.5 times.",
            "It rose 4% overall.",
            "It rose 4 percent overall.",
            "It cost 3 million dollars.",
            "Dictated five two seven here.",
        ],
    )
    def test_exclusions(self, make_subs, run, text):
        assert self._run(make_subs, run, text) == []


class TestPercentStyleRule:
    def test_percent_word_flagged(self, make_subs, run):
        metrics = run(_one(make_subs, "It rose 12.5 Percent today."), [PercentStyleRule()])
        assert len(metrics) == 1
        m = metrics[0]
        assert m.value == 12.5
        assert m.token == "12.5 Percent"
        assert (m.found, m.expected) == ("word", "symbol")

    def test_symbol_is_fine(self, make_subs, run):
        assert run(_one(make_subs, "It rose 12% today."), [PercentStyleRule()]) == []

    def test_percentage_word_not_matched(self, make_subs, run):
        assert run(_one(make_subs, "A 12 percentage point gain."), [PercentStyleRule()]) == []
