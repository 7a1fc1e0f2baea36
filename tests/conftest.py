"""Shared pytest fixtures."""

from __future__ import annotations

import pathlib
import threading
from types import SimpleNamespace
from typing import Callable, List, Sequence

import pytest

from mistranslate.errors import TranslationUnavailable
from mistranslate.providers import TranslationProvider

HEADER = "HEADER(0x00, 0x0000, 0xFFFF, 0xFFFF, 0xFFFF, 0xFFFF)"


def define_message(message_id: str, body: str, header: str = HEADER) -> str:
    return (
        f"DEFINE_MESSAGE({message_id}, 0x00, 0x00,\n"
        f"MSG(\n{header}\n{body}\n)\n)"
    )


SAMPLE_SOURCE = "\n\n".join(
    [
        "// Message data\n#include \"message_data.h\"",
        define_message("0x0001", '"Hello [A] friend."'),
        define_message("0x0002", '"Wait" DELAY(0x0010) COLOR_RED "now"'),
        define_message("0x0003", "BOX_BREAK"),
        "DEFINE_MESSAGE(0x0004, 0x00)",
        define_message("0x0005", r'"Line one\n" "Line two"'),
    ]
)


class ScriptedProvider(TranslationProvider):
    """Provider driven by a callable; records every request it receives."""

    name = "scripted"

    def __init__(self, reply: Callable[[List[str], int], List[str]]) -> None:
        self.reply = reply
        self.calls: List[List[str]] = []
        self.attempts: List[int] = []
        self._lock = threading.Lock()

    def translate(self, fragments: Sequence[str], *, attempt: int = 0) -> List[str]:
        with self._lock:
            self.calls.append(list(fragments))
            self.attempts.append(attempt)
        return self.reply(list(fragments), attempt)


class FailingProvider(TranslationProvider):
    name = "failing"

    def __init__(self) -> None:
        self.calls = 0

    def translate(self, fragments: Sequence[str], *, attempt: int = 0) -> List[str]:
        self.calls += 1
        raise TranslationUnavailable("backend offline")


@pytest.fixture
def sample_source() -> str:
    return SAMPLE_SOURCE


@pytest.fixture
def source_file(tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "message_data.h"
    path.write_text(SAMPLE_SOURCE, encoding="utf-8")
    return path


@pytest.fixture
def fake_settings() -> SimpleNamespace:
    return SimpleNamespace(
        MISTRANSLATE_PROVIDER="echo",
        MISTRANSLATE_BASE_URL="http://localhost:11434/v1",
        MISTRANSLATE_MODEL=None,
        OPENAI_API_KEY=None,
        MISTRANSLATE_WORKERS=3,
        MISTRANSLATE_FALLBACK_WORKERS=4,
        MISTRANSLATE_TIMEOUT=20.0,
        MISTRANSLATE_MAX_ATTEMPTS=5,
        MISTRANSLATE_STRATEGY="json",
        MISTRANSLATE_INSTRUCTIONS=None,
        MISTRANSLATE_RANDOM_INSTRUCTIONS=None,
        MISTRANSLATE_RANDOM_CHANCE=0.0,
        MISTRANSLATE_PROVIDER_DEBUG=False,
    )
