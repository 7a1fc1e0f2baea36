"""Tests for DEFINE_MESSAGE() parsing."""

from __future__ import annotations

import pytest

from mistranslate.defines import no_value, parse_define, split_top_level
from mistranslate.dialect import NO_VALUE
from mistranslate.errors import MalformedDefine, MalformedHeader, MissingHeader
from mistranslate.structures import MessageBlock

from tests.conftest import define_message


class TestSplitTopLevel:
    def test_nested_commas_do_not_split(self):
        assert split_top_level("a, f(b, c), d") == ["a", "f(b, c)", "d"]

    def test_single_argument(self):
        assert split_top_level(" x ") == ["x"]


class TestNoValue:
    @pytest.mark.parametrize("text", ["0xFFFF", "0xffff", " 0xFFFF "])
    def test_sentinel_maps_to_marker(self, text):
        assert no_value(text) == NO_VALUE

    def test_other_values_pass_through_trimmed(self):
        assert no_value(" 0x0010 ") == "0x0010"


class TestParseDefine:
    def test_fields(self):
        source = define_message(
            "0x1234",
            '"Hi"',
            header="HEADER(0x0055, 0x00FE, 0x1235, 0x0020, 0xFFFF, 0xFFFF)",
        )
        define = parse_define(MessageBlock(text=source, start=0))

        assert define.message_id == "0x1234"
        assert define.box_type == "0x00"
        assert define.y_pos == "0x00"
        assert define.icon == "0x00FE"
        assert define.next_message_id == "0x1235"
        assert define.first_item_cost == "0x0020"
        assert define.second_item_cost == NO_VALUE
        assert define.source == source
        assert source[:define.header_end].endswith("0xFFFF)")
        assert define.content == '"Hi"'

    def test_accepts_plain_text(self):
        define = parse_define(define_message("0x0001", '"Hi"'))
        assert define.message_id == "0x0001"

    def test_missing_msg_is_not_an_error(self):
        source = (
            "DEFINE_MESSAGE(0x0001, 0x00, 0x00, "
            "HEADER(0x00, 0x0000, 0xFFFF, 0xFFFF, 0xFFFF, 0xFFFF) \"Hi\")"
        )
        define = parse_define(source)
        assert define.content is None

    def test_not_a_define(self):
        with pytest.raises(MalformedDefine):
            parse_define("MSG(\"Hi\")")

    def test_too_few_arguments(self):
        with pytest.raises(MalformedDefine) as excinfo:
            parse_define("DEFINE_MESSAGE(0x0004, 0x00)")
        assert excinfo.value.message_id == "0x0004"

    def test_missing_header(self):
        with pytest.raises(MissingHeader) as excinfo:
            parse_define('DEFINE_MESSAGE(0x0003, 0x00, 0x00, MSG("Hi"))')
        assert excinfo.value.message_id == "0x0003"

    def test_short_header(self):
        source = define_message("0x0006", '"Hi"', header="HEADER(0x00, 0x0000)")
        with pytest.raises(MalformedHeader) as excinfo:
            parse_define(source)
        assert excinfo.value.message_id == "0x0006"
