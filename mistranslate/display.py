"""Character filtering and line wrapping for the target text boxes."""

from __future__ import annotations

import re
import string
from typing import List, Tuple

from .dialect import LINE_LENGTH, SHORT_WORD_LENGTH, SOFT_LINE_CAP

ALLOWED_CHARACTERS = frozenset(
    string.ascii_lowercase
    + string.ascii_uppercase
    + string.digits
    + " .,-_+?!*/()[]{}\r\t'"
)

WHITESPACE_PATTERN = re.compile(r"\s+")


def sanitize_for_display(text: str | None) -> str:
    """Drop every character the text box font cannot render."""

    if not text:
        return ""
    return "".join(char for char in text if char in ALLOWED_CHARACTERS)


def wrap_lines(text: str, line_length: int = LINE_LENGTH) -> List[str]:
    """Greedily fill lines word by word.

    A short word that would overflow the line starts a new one. A line that
    has already reached the soft cap is closed before any next word.
    """

    if len(text) <= line_length:
        return [text]

    lines: List[str] = []
    current = ""
    for word in text.split():
        if len(word) < SHORT_WORD_LENGTH and len(current) + len(word) + 1 > line_length:
            lines.append(current)
            current = word
            continue

        if len(current) >= SOFT_LINE_CAP:
            lines.append(current)
            current = word
            continue

        if current:
            current += " "
        current += word

    if current:
        lines.append(current)
    return lines


def split_by_middle_whitespace(text: str) -> Tuple[str, str]:
    """Cut after the middle whitespace run; the second half is empty if none."""

    matches = list(WHITESPACE_PATTERN.finditer(text))
    if not matches:
        return text, ""

    middle = matches[(len(matches) - 1) // 2]
    return text[:middle.end()], text[middle.end():]
