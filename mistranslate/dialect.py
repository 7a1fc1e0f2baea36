"""Vocabulary of the source message format and the EZTR target dialect.

Every lookup that resolves "first match wins" is an ordered tuple. Entries are
tried top to bottom, so their order is part of the public configuration.
"""

from __future__ import annotations

import re
from typing import Tuple

# Source format
CALL_START = "DEFINE_MESSAGE("
NO_VALUE_LITERAL = "0xFFFF"

# Target dialect
MACRO_PREFIX = "EZTR_CC_"
NO_VALUE = "EZTR_NO_VALUE"
CALL_NAME = "EZTR_Basic_ReplaceText"
ARGW_SUFFIX = "_ARGW"

NEWLINE = MACRO_PREFIX + "NEWLINE"
BOX_BREAK = MACRO_PREFIX + "BOX_BREAK"
BOX_BREAK2 = MACRO_PREFIX + "BOX_BREAK2"
BOX_BREAK_DELAYED = MACRO_PREFIX + "BOX_BREAK_DELAYED" + ARGW_SUFFIX
END = MACRO_PREFIX + "END"

PLAIN_BOX_BREAKS = frozenset({BOX_BREAK, BOX_BREAK2})
BOX_BREAKS = PLAIN_BOX_BREAKS | {BOX_BREAK_DELAYED}

MACRO_NAME_PATTERN = re.compile(r"[A-Z][A-Z0-9_]*")

OUTPUT_INCLUDE = '#include "eztr_api.h"'
OUTPUT_FUNCTION = "EZTR_ON_INIT void replace_msgs()"

# Display hardware limits
LINE_LENGTH = 26
SHORT_WORD_LENGTH = 8
SOFT_LINE_CAP = 32
LINES_PER_BOX = 4

# Sent to the translator in place of a control token
TOKEN_PLACEHOLDER = "this button"

IGNORABLE_BOUNDARIES: Tuple[str, ...] = (
    "!",
    "?",
    ".",
    "..",
    ",",
    "\n",
    "\\n",
    " ",
    "(",
    ")",
    '"',
    "'",
    "\n!",
    "\\n!",
    "!\n",
    "!\\n",
    ".\n",
    ".\\n",
    ", ",
    "...",
)

CONTROL_TOKENS: Tuple[Tuple[str, str], ...] = (
    ("[A]", "BTN_A"),
    ("[B]", "BTN_B"),
    ("[C]", "BTN_C"),
    ("[L]", "BTN_L"),
    ("[R]", "BTN_R"),
    ("[Z]", "BTN_Z"),
    ("[C-Up]", "BTN_CUP"),
    ("[C-Down]", "BTN_CDOWN"),
    ("[C-Left]", "BTN_CLEFT"),
    ("[C-Right]", "BTN_CRIGHT"),
    ("[Control-Pad]", "CONTROL_PAD"),
)

ARGW_MACROS: Tuple[str, ...] = (
    "SFX",
    "DELAY",
    "FADE",
    "BOX_BREAK_DELAYED",
    "FADE_SKIPPABLE",
)

NOWRAP_MACROS: Tuple[str, ...] = (
    "TWO_CHOICE",
    "THREE_CHOICE",
    "PAUSE_MENU",
    "INPUT_BANK",
    "INPUT_BOMBER_CODE",
    "INPUT_DOGGY_RACETRACK_BET",
)


def with_prefix(name: str) -> str:
    """Return the macro name in the target namespace."""

    if name.startswith(MACRO_PREFIX):
        return name
    return MACRO_PREFIX + name


def is_macro_name(token: str) -> bool:
    """True for bare all-caps identifiers such as ``COLOR_RED``."""

    return MACRO_NAME_PATTERN.fullmatch(token) is not None


def is_break(name: str) -> bool:
    return name == NEWLINE or name in BOX_BREAKS
