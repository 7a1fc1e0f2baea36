"""Tests for quote scanning and segment decomposition."""

from __future__ import annotations

import pytest

from mistranslate import segmenter
from mistranslate.defines import parse_define
from mistranslate.errors import SegmentationError
from mistranslate.segmenter import (
    QuotedLiteral,
    find_boundary_prefix,
    find_boundary_suffix,
    find_quoted_literals,
    segment_literal,
    segment_message,
)
from mistranslate.structures import ControlToken, TextRun

from tests.conftest import define_message

LITERALS = [
    "Hello [A] friend.",
    "Press [C-Up], then [B]!",
    "...[Control-Pad]",
    "[A][B]",
    "Plain text without tokens",
    "",
    "!",
    r"Two lines\n",
    "(Hold [Z] to aim)",
]


class TestFindQuotedLiterals:
    def test_offsets_and_content(self):
        text = 'X "one" Y "two"'
        assert list(find_quoted_literals(text)) == [
            QuotedLiteral(start=2, content="one"),
            QuotedLiteral(start=10, content="two"),
        ]

    def test_escaped_quote_does_not_close(self):
        text = r'"say \"hi\"" "x"'
        literals = list(find_quoted_literals(text))
        assert [literal.content for literal in literals] == [r'say \"hi\"', "x"]

    def test_unclosed_literal_stops_scan(self):
        assert list(find_quoted_literals('"ok" "never closed')) == [
            QuotedLiteral(start=0, content="ok")
        ]


class TestBoundaries:
    def test_first_listed_boundary_wins(self):
        assert find_boundary_prefix(", then") == ","
        assert find_boundary_suffix("wait...") == "."

    def test_no_boundary(self):
        assert find_boundary_prefix("word") == ""
        assert find_boundary_suffix("word") == ""


class TestSegmentLiteral:
    @pytest.mark.parametrize("content", LITERALS)
    def test_length_accounting(self, content):
        segment = segment_literal(QuotedLiteral(start=0, content=content))
        parts_length = sum(part.source_length for part in segment.parts)
        assert (
            len(segment.ignored_start) + parts_length + len(segment.ignored_end)
            == segment.length_including_ignored
            == len(content)
        )

    @pytest.mark.parametrize("content", LITERALS)
    def test_end_offset_slices_the_literal(self, content):
        source = f'MSG(HEADER(0) "{content}" COLOR_RED)'
        literal = next(find_quoted_literals(source))
        segment = segment_literal(literal)
        assert source[segment.start:segment.end] == f'"{content}"'

    def test_whitespace_token_names_are_dropped(self):
        segment = segment_literal(
            QuotedLiteral(start=0, content="a[S]b"), tokens=(("[S]", "  "),)
        )
        assert segment.parts == [TextRun("a"), TextRun("b")]
        assert segment.length_including_ignored == segment.original_length == 5

    def test_glue_is_absorbed_into_token(self):
        segment = segment_literal(QuotedLiteral(start=0, content="Hello [A] friend."))
        assert segment.ignored_end == "."
        assert segment.parts == [
            TextRun("Hello"),
            ControlToken(name="BTN_A", literal="[A]", left_glue=" ", right_glue=" "),
            TextRun("friend"),
        ]

    def test_glue_takes_first_matching_boundary(self):
        segment = segment_literal(
            QuotedLiteral(start=0, content="Press [C-Up], then [B]!")
        )
        token = segment.parts[1]
        assert isinstance(token, ControlToken)
        assert token.name == "BTN_CUP"
        assert (token.left_glue, token.right_glue) == (" ", ",")
        assert segment.parts[2] == TextRun(" then")
        assert segment.parts[3] == ControlToken(
            name="BTN_B", literal="[B]", left_glue=" ", right_glue=""
        )

    def test_trailing_backslash_is_dropped_from_run(self):
        segment = segment_literal(QuotedLiteral(start=0, content="Hello\\\\"))
        assert segment.parts == [TextRun("Hello\\", source_length=7)]
        assert segment.length == 7

    def test_bad_accounting_raises(self, monkeypatch):
        monkeypatch.setattr(
            segmenter, "_scan_parts", lambda text, tokens, boundaries: ([TextRun(text)], 1)
        )
        with pytest.raises(SegmentationError):
            segment_literal(QuotedLiteral(start=0, content="word"))


class TestSegmentMessage:
    def test_macros_around_segments(self):
        define = parse_define(
            define_message("0x0002", '"Wait" DELAY(0x0010) COLOR_RED "now" BOX_BREAK')
        )
        layout = segment_message(define)

        assert [segment.content for segment in layout.segments] == ["Wait", "now"]
        assert layout.leading_macros == "\n"
        assert layout.inter_macros == [" DELAY(0x0010) COLOR_RED "]
        assert layout.trailing_macros == " BOX_BREAK"

    def test_literals_before_header_are_ignored(self):
        source = (
            'DEFINE_MESSAGE(0x0007, "label", 0x00, MSG('
            "HEADER(0x00, 0x0000, 0xFFFF, 0xFFFF, 0xFFFF, 0xFFFF) \"text\"))"
        )
        layout = segment_message(parse_define(source))
        assert [segment.content for segment in layout.segments] == ["text"]

    def test_no_literals(self):
        layout = segment_message(parse_define(define_message("0x0003", "BOX_BREAK")))
        assert layout.segments == []

    def test_fragments_use_placeholder_for_tokens(self):
        layout = segment_message(parse_define(define_message("0x0001", '"Hello [A] friend."')))
        assert layout.fragments("this button") == ["Hello", "this button", "friend"]
