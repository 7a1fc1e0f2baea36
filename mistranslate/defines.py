"""Parsing of a single DEFINE_MESSAGE() block into header and body fields."""

from __future__ import annotations

import re
from typing import List

from .dialect import NO_VALUE, NO_VALUE_LITERAL
from .errors import MalformedDefine, MalformedHeader, MissingHeader
from .structures import DefineData, MessageBlock

DEFINE_PATTERN = re.compile(r"DEFINE_MESSAGE\s*\(([\s\S]*)\)\s*$")
HEADER_PATTERN = re.compile(r"HEADER\s*\(([^)]+)\)")
MSG_PATTERN = re.compile(r"MSG\s*\(([\s\S]*)\)\s*$")

MIN_DEFINE_ARGS = 4
MIN_HEADER_ARGS = 6


def split_top_level(text: str) -> List[str]:
    """Split on commas that are not nested inside parentheses."""

    parts: List[str] = []
    depth = 0
    start = 0
    for index, char in enumerate(text):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append(text[start:index].strip())
            start = index + 1
    parts.append(text[start:].strip())
    return parts


def no_value(field_text: str) -> str:
    """Map the ``0xFFFF`` sentinel to the symbolic no-value marker."""

    stripped = field_text.strip()
    if stripped.upper() == NO_VALUE_LITERAL.upper():
        return NO_VALUE
    return stripped


def parse_define(block: MessageBlock | str) -> DefineData:
    """Parse one message block.

    Raises ``MalformedDefine``, ``MissingHeader`` or ``MalformedHeader`` when
    the block does not have the expected shape.
    """

    source = block.text if isinstance(block, MessageBlock) else block

    define_match = DEFINE_PATTERN.search(source)
    if not define_match:
        raise MalformedDefine("Invalid DEFINE_MESSAGE() format")

    define_args = split_top_level(define_match.group(1))
    if len(define_args) < MIN_DEFINE_ARGS:
        raise MalformedDefine(
            "DEFINE_MESSAGE() missing arguments",
            message_id=define_args[0] or None,
        )

    message_id = define_args[0]
    body = ",".join(define_args[3:])

    if not HEADER_PATTERN.search(body):
        raise MissingHeader("Missing HEADER()", message_id=message_id)

    # Offsets are taken from the raw block so segments can be sliced from it.
    header_match = HEADER_PATTERN.search(source)
    if header_match is None:
        raise MissingHeader("Missing HEADER()", message_id=message_id)

    header_args = split_top_level(header_match.group(1))
    if len(header_args) < MIN_HEADER_ARGS:
        raise MalformedHeader("HEADER() missing arguments", message_id=message_id)

    content = None
    msg_match = MSG_PATTERN.search(body)
    if msg_match:
        content = HEADER_PATTERN.sub("", msg_match.group(1), count=1).strip()

    return DefineData(
        message_id=message_id,
        box_type=header_args[0].strip()[:4],
        y_pos=define_args[2].strip(),
        icon=header_args[1].strip(),
        next_message_id=no_value(header_args[2]),
        first_item_cost=no_value(header_args[3]),
        second_item_cost=no_value(header_args[4]),
        source=source,
        header_end=header_match.end(),
        content=content,
    )
