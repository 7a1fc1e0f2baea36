"""Splitting quoted message text into translatable runs and control tokens."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, List, Sequence, Tuple

from .dialect import CONTROL_TOKENS, IGNORABLE_BOUNDARIES
from .errors import SegmentationError
from .structures import ControlToken, DefineData, MessageLayout, Part, TextRun, TextSegment

TRAILING_PARENS_PATTERN = re.compile(r"\s*\)\s*\)\s*$")


@dataclass(frozen=True)
class QuotedLiteral:
    """A ``"..."`` match: offset of the opening quote and the raw content."""

    start: int
    content: str


def find_quoted_literals(text: str) -> Iterator[QuotedLiteral]:
    """Scan for double-quoted literals, honoring backslash escapes.

    Outside a quote every character is skipped until ``"``. Inside a quote a
    backslash consumes the following character, so ``\\"`` never closes the
    literal. A quote left open at the end of input yields nothing.
    """

    index = 0
    length = len(text)
    while index < length:
        if text[index] != '"':
            index += 1
            continue

        start = index
        cursor = index + 1
        closed = False
        while cursor < length:
            char = text[cursor]
            if char == "\\":
                cursor += 2
                continue
            if char == '"':
                closed = True
                break
            cursor += 1

        if not closed:
            return
        yield QuotedLiteral(start=start, content=text[start + 1:cursor])
        index = cursor + 1


def find_boundary_prefix(
    text: str, boundaries: Sequence[str] = IGNORABLE_BOUNDARIES
) -> str:
    for boundary in boundaries:
        if text.startswith(boundary):
            return boundary
    return ""


def find_boundary_suffix(
    text: str, boundaries: Sequence[str] = IGNORABLE_BOUNDARIES
) -> str:
    for boundary in boundaries:
        if text.endswith(boundary):
            return boundary
    return ""


def _scan_parts(
    text: str,
    tokens: Sequence[Tuple[str, str]],
    boundaries: Sequence[str],
) -> Tuple[List[Part], int]:
    """Split ``text`` into runs and tokens; return the parts and their raw length."""

    parts: List[Part] = []
    remaining = text
    cursor = 0
    total = 0

    while cursor < len(remaining):
        matched = False
        for literal, name in tokens:
            if not remaining.startswith(literal, cursor):
                continue

            left_glue = find_boundary_suffix(remaining[:cursor], boundaries)
            right_glue = find_boundary_prefix(
                remaining[cursor + len(literal):], boundaries
            )

            before = remaining[:cursor - len(left_glue)]
            if before:
                parts.append(TextRun(before))
                total += len(before)

            token = ControlToken(
                name=name,
                literal=literal,
                left_glue=left_glue,
                right_glue=right_glue,
            )
            parts.append(token)
            total += token.source_length

            remaining = remaining[cursor + len(literal) + len(right_glue):]
            cursor = 0
            matched = True
            break

        if not matched:
            cursor += 1

    if remaining:
        parts.append(TextRun(remaining))
        total += len(remaining)

    return parts, total


def _finish_parts(parts: List[Part]) -> List[Part]:
    finished: List[Part] = []
    for part in parts:
        if isinstance(part, ControlToken):
            if part.name.isspace():
                continue
            finished.append(part)
            continue
        text = part.text[:-1] if part.text.endswith("\\") else part.text
        finished.append(TextRun(text, source_length=part.source_length))
    return finished


def segment_literal(
    literal: QuotedLiteral,
    *,
    tokens: Sequence[Tuple[str, str]] = CONTROL_TOKENS,
    boundaries: Sequence[str] = IGNORABLE_BOUNDARIES,
) -> TextSegment:
    """Decompose one quoted literal into a :class:`TextSegment`."""

    content = literal.content
    original_length = len(content)

    ignored_start = find_boundary_prefix(content, boundaries)
    rest = content[len(ignored_start):]

    ignored_end = ""
    if rest and original_length != len(ignored_start):
        ignored_end = find_boundary_suffix(rest, boundaries)
        if ignored_end:
            rest = rest[:-len(ignored_end)]

    parts, length = _scan_parts(rest, tokens, boundaries)

    segment = TextSegment(
        start=literal.start,
        content=content,
        parts=_finish_parts(parts),
        ignored_start=ignored_start,
        ignored_end=ignored_end,
        length=length,
        original_length=original_length,
    )
    if segment.length_including_ignored != original_length:
        raise SegmentationError(
            f"Literal at offset {literal.start} scanned to "
            f"{segment.length_including_ignored} characters, expected {original_length}."
        )
    return segment


def segment_message(define: DefineData) -> MessageLayout:
    """Build the segment list and the macro text surrounding it."""

    source = define.source
    segments = [
        segment_literal(literal)
        for literal in find_quoted_literals(source)
        if literal.start >= define.header_end
    ]

    layout = MessageLayout(define=define, segments=segments)
    if not segments:
        return layout

    layout.leading_macros = source[define.header_end:segments[0].start]
    layout.inter_macros = [
        source[left.end:right.start]
        for left, right in zip(segments, segments[1:])
    ]
    layout.trailing_macros = TRAILING_PARENS_PATTERN.sub(
        "", source[segments[-1].end:]
    )
    return layout
