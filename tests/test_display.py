"""Tests for character filtering and word wrapping."""

from __future__ import annotations

import pytest

from mistranslate.dialect import LINE_LENGTH
from mistranslate.display import (
    sanitize_for_display,
    split_by_middle_whitespace,
    wrap_lines,
)

PARAGRAPHS = [
    "The quick brown fox jumps over the lazy dog again",
    "Extraordinarily magnificent transformations occur underground sometimes",
    "a b c d e f g h i j k l m n o p q r s t u v w x y z a b c",
    "Short",
]


class TestSanitize:
    def test_drops_unsupported_characters(self):
        assert sanitize_for_display("H\xe9llo ~world—!") == "Hllo world!"

    def test_none_and_empty(self):
        assert sanitize_for_display(None) == ""
        assert sanitize_for_display("") == ""


class TestWrapLines:
    def test_short_text_is_untouched(self):
        assert wrap_lines("  Hello there  ") == ["  Hello there  "]

    def test_breaks_before_short_overflowing_word(self):
        assert wrap_lines("The quick brown fox jumps over the lazy dog again") == [
            "The quick brown fox jumps",
            "over the lazy dog again",
        ]

    def test_long_word_may_overflow_until_soft_cap(self):
        lines = wrap_lines("Somewhere extraordinarily magnificent")
        assert lines == ["Somewhere extraordinarily magnificent"]

    def test_soft_cap_forces_break(self):
        lines = wrap_lines("Unbelievably extraordinarily wonderful magnificent")
        assert lines == ["Unbelievably extraordinarily wonderful", "magnificent"]

    @pytest.mark.parametrize("text", PARAGRAPHS)
    def test_rewrapping_a_line_is_stable(self, text):
        for line in wrap_lines(text):
            assert wrap_lines(line) == [line]

    @pytest.mark.parametrize("text", PARAGRAPHS)
    def test_words_are_preserved(self, text):
        assert " ".join(wrap_lines(text)).split() == text.split()

    def test_short_word_lines_respect_limit(self):
        text = "a b c d e f g h i j k l m n o p q r s t u v w x y z a b c"
        assert all(len(line) <= LINE_LENGTH for line in wrap_lines(text))


class TestSplitByMiddleWhitespace:
    def test_splits_after_middle_gap(self):
        assert split_by_middle_whitespace("a b c d") == ("a b ", "c d")

    def test_no_whitespace(self):
        assert split_by_middle_whitespace("word") == ("word", "")
