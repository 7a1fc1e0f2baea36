"""Translation provider abstractions and reply repair helpers."""

from __future__ import annotations

import json
import pathlib
import random
import re
import sys
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from .dialect import LINE_LENGTH, SOFT_LINE_CAP
from .display import split_by_middle_whitespace
from .errors import (
    TranslationProviderConfigurationError,
    TranslationUnavailable,
)

DEFAULT_INSTRUCTIONS = (
    "You translate short lines of video game dialogue. "
    "The user sends a JSON array of strings. Reply with only a JSON array of "
    "strings holding the translation of each entry, in the same order and with "
    "exactly as many entries. Never merge or split entries. Keep punctuation at "
    "the edges of each entry. Keep every line under {lineLength} characters. "
    "Do not add commentary. Do not wrap the JSON in markdown code fences."
)

DEFAULT_RANDOM_INSTRUCTIONS = (
    "Make the translation sound slightly more dramatic than the original.",
    "Translate as literally as you can, word by word.",
    "Prefer old-fashioned words where possible.",
)

FAILED_ATTEMPTS_WARNING = (
    "You have failed to give proper syntax {count} times. Be extra careful."
)

MAX_SPLITS = 5

_ARRAY_PATTERN = re.compile(r"(\[[^\[\]]*\])")
_TRAILING_EMPTY_ENTRY = re.compile(r'",\s*"\s*\]')
_ADJACENT_STRINGS = re.compile(r'"(\s+)"')
_MISSING_OPENING_QUOTE = re.compile(r'\[\s*([^"\s\]])')
_MISSING_CLOSING_QUOTE = re.compile(r'([^"\s\[])\s*\]')


def strip_code_fence(text: str) -> str:
    """Remove leading/trailing markdown code fences if present."""

    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped

    first_newline = stripped.find("\n")
    if first_newline == -1:
        return stripped
    body = stripped[first_newline + 1:]
    closing_index = body.rfind("```")
    if closing_index != -1:
        body = body[:closing_index]
    return body.strip()


def normalise_dashes(text: str) -> str:
    return text.replace("â€”", " - ").replace("—", " - ")


def repair_json_array(text: str) -> str:
    """Patch the usual ways a model mangles a JSON array of strings."""

    repaired = normalise_dashes(text)
    repaired = _TRAILING_EMPTY_ENTRY.sub('"]', repaired, count=1)
    repaired = _ADJACENT_STRINGS.sub(r'",\1"', repaired)
    repaired = _MISSING_OPENING_QUOTE.sub(r'["\1', repaired, count=1)

    opening = repaired.find("[")
    if opening != -1 and repaired.find("]", opening) == -1:
        repaired = repaired.rstrip()
        repaired += "]" if repaired.endswith('"') else '"]'

    repaired = _MISSING_CLOSING_QUOTE.sub(r'\1"]', repaired, count=1)
    return repaired


def reconcile_fragments(items: Sequence[str], expected: int) -> List[str]:
    """Force a reply to exactly ``expected`` entries.

    Extra entries are joined onto the last slot. A short reply first has its
    last entry split at the middle whitespace (when it is long enough to hold
    more than one line), then is padded with empty strings.
    """

    fragments = list(items)
    if expected <= 0:
        return []

    if len(fragments) > expected:
        tail = " ".join(fragments[expected - 1:])
        return fragments[:expected - 1] + [tail]

    if fragments and len(fragments[-1]) > SOFT_LINE_CAP:
        for _ in range(MAX_SPLITS):
            if len(fragments) >= expected:
                break
            head, rest = split_by_middle_whitespace(fragments[-1])
            if not rest:
                break
            fragments[-1] = head
            fragments.append(rest)

    while len(fragments) < expected:
        fragments.append("")
    return fragments


def parse_fragment_array(text: str, expected: int) -> List[str]:
    """Parse a reply into exactly ``expected`` strings.

    Raises ``TranslationUnavailable`` when no array can be recovered.
    """

    cleaned = normalise_dashes(strip_code_fence(text or ""))
    parsed: Any = None
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        match = _ARRAY_PATTERN.search(repair_json_array(cleaned))
        if not match:
            raise TranslationUnavailable(
                "Translation reply did not contain a JSON array."
            )
        try:
            parsed = json.loads(match.group(1))
        except json.JSONDecodeError as exc:
            raise TranslationUnavailable(
                f"Translation reply could not be repaired into JSON: {exc}"
            ) from exc

    if not isinstance(parsed, list) or not parsed:
        raise TranslationUnavailable(
            "Translation reply was not a non-empty JSON array."
        )

    return reconcile_fragments(
        ["" if item is None else str(item) for item in parsed],
        expected,
    )


class TranslationProvider(ABC):
    """Abstract adapter for translation backends."""

    name = "abstract"

    @abstractmethod
    def translate(self, fragments: Sequence[str], *, attempt: int = 0) -> List[str]:
        """Translate ``fragments`` and return one string per fragment.

        ``attempt`` counts earlier failed attempts for the same message.
        Raises ``TranslationUnavailable`` when nothing usable came back.
        """


class EchoTranslationProvider(TranslationProvider):
    """A provider that returns the original text (useful for testing)."""

    name = "echo"

    def translate(self, fragments: Sequence[str], *, attempt: int = 0) -> List[str]:
        return list(fragments)


class OpenAITranslationProvider(TranslationProvider):
    """Translation provider that uses the OpenAI Responses API."""

    name = "openai"
    DEFAULT_MODEL = "gpt-5-mini"

    def __init__(
        self,
        *,
        settings: Any,
        model: str | None = None,
        debug: bool = False,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings
        self.debug = debug
        self.rng = rng or random.Random()
        self.timeout = float(settings.MISTRANSLATE_TIMEOUT)
        self.random_chance = float(settings.MISTRANSLATE_RANDOM_CHANCE)
        self.instructions = self._load_instructions(settings.MISTRANSLATE_INSTRUCTIONS)
        self.random_instructions = self._load_random_instructions(
            settings.MISTRANSLATE_RANDOM_INSTRUCTIONS
        )
        self._client = self._build_client()
        self.model = model or settings.MISTRANSLATE_MODEL or self.DEFAULT_MODEL

    def _build_client(self) -> Any:
        api_key = self.settings.OPENAI_API_KEY
        if not api_key:
            raise TranslationProviderConfigurationError(
                "OpenAI configuration missing. Set OPENAI_API_KEY or choose a "
                "different provider."
            )
        try:
            from openai import OpenAI  # type: ignore
        except ImportError as exc:  # pragma: no cover - import guard
            raise TranslationProviderConfigurationError(
                "OpenAI Python SDK not installed. Install with `pip install openai`."
            ) from exc

        return OpenAI(api_key=api_key, timeout=self.timeout)

    @staticmethod
    def _load_instructions(path_value: str | None) -> str:
        template = DEFAULT_INSTRUCTIONS
        if path_value:
            path = pathlib.Path(path_value).expanduser()
            if path.is_file():
                template = path.read_text(encoding="utf-8")
        return template.replace("{lineLength}", str(LINE_LENGTH))

    @staticmethod
    def _load_random_instructions(path_value: str | None) -> List[str]:
        if path_value:
            path = pathlib.Path(path_value).expanduser()
            if path.is_file():
                lines = path.read_text(encoding="utf-8").splitlines()
                return [line.strip() for line in lines if line.strip()]
        return list(DEFAULT_RANDOM_INSTRUCTIONS)

    def build_messages(self, fragments: Sequence[str], *, attempt: int = 0) -> List[Dict[str, str]]:
        """Assemble the system prompts and the JSON payload for one request."""

        messages = [{"role": "system", "content": self.instructions}]

        if self.random_instructions and self.rng.random() < self.random_chance:
            messages.append(
                {"role": "system", "content": self.rng.choice(self.random_instructions)}
            )

        if attempt > 0:
            messages.append(
                {"role": "system", "content": FAILED_ATTEMPTS_WARNING.format(count=attempt)}
            )

        messages.append(
            {"role": "user", "content": json.dumps(list(fragments), ensure_ascii=False)}
        )
        return messages

    def translate(self, fragments: Sequence[str], *, attempt: int = 0) -> List[str]:
        if not fragments:
            return []

        messages = self.build_messages(fragments, attempt=attempt)
        max_tokens = max(len(messages[-1]["content"]) + 20, 64)
        self._log_debug("provider.request.messages", messages)

        content = self._invoke_model(messages=messages, max_tokens=max_tokens)
        self._log_debug("provider.response.content", content)

        translated = parse_fragment_array(content, len(fragments))
        self._log_debug("provider.response.fragments", translated)
        return translated

    def _invoke_model(self, *, messages: List[Dict[str, str]], max_tokens: int) -> str:
        """Call the Responses API and return the reply text."""

        try:
            response = self._client.responses.create(
                model=self.model,
                max_output_tokens=max_tokens,
                input=[
                    {
                        "role": message["role"],
                        "content": [{"type": "input_text", "text": message["content"]}],
                    }
                    for message in messages
                ],
            )
        except Exception as exc:  # pragma: no cover - network call
            raise TranslationUnavailable(
                f"Translation service temporarily unavailable: {exc}",
                network=True,
            ) from exc
        self._log_debug("provider.response.raw", self._safe_dump_response(response))

        output_text = getattr(response, "output_text", None)
        if hasattr(output_text, "value"):
            output_text = output_text.value
        if not output_text:
            raise TranslationUnavailable(
                "Translation provider response empty or unrecognised."
            )
        return str(output_text)

    def _log_debug(self, label: str, payload: Any) -> None:
        """Emit structured debug information when enabled."""

        if not self.debug:
            return
        try:
            if isinstance(payload, (dict, list)):
                message = json.dumps(payload, ensure_ascii=False, indent=2)
            else:
                message = str(payload)
        except (TypeError, ValueError):
            message = repr(payload)
        print(f"[mistranslate][provider-debug] {label}:\n{message}", file=sys.stderr)

    def _safe_dump_response(self, response: Any) -> Any:
        """Best-effort conversion of SDK response objects into JSON-friendly data."""

        for attr in ("model_dump_json", "model_dump"):
            candidate = getattr(response, attr, None)
            if candidate:
                try:
                    data = candidate()
                    if isinstance(data, str):
                        return json.loads(data)
                    return data
                except Exception:
                    continue
        return str(response)


class OllamaTranslationProvider(OpenAITranslationProvider):
    """Chat Completions against a local OpenAI-compatible server such as Ollama."""

    name = "ollama"
    DEFAULT_MODEL = "mistral:instruct"

    def _build_client(self) -> Any:
        try:
            from openai import OpenAI  # type: ignore
        except ImportError as exc:  # pragma: no cover - import guard
            raise TranslationProviderConfigurationError(
                "OpenAI Python SDK not installed. Install with `pip install openai`."
            ) from exc

        return OpenAI(
            base_url=self.settings.MISTRANSLATE_BASE_URL,
            api_key=self.settings.OPENAI_API_KEY or "ollama",
            timeout=self.timeout,
        )

    def _invoke_model(self, *, messages: List[Dict[str, str]], max_tokens: int) -> str:
        """Call the Chat Completions API and return the reply text."""

        try:
            response = self._client.chat.completions.create(
                model=self.model,
                max_tokens=max_tokens,
                messages=messages,
            )
        except Exception as exc:
            raise TranslationUnavailable(
                f"Translation service temporarily unavailable: {exc}",
                network=True,
            ) from exc
        self._log_debug("provider.response.raw", self._safe_dump_response(response))

        content: Optional[str] = None
        for choice in getattr(response, "choices", None) or []:
            message = getattr(choice, "message", None)
            message_content = getattr(message, "content", None)
            if message_content:
                content = str(message_content)
                break

        if content is None:
            raise TranslationUnavailable(
                "Translation provider response empty or unrecognised."
            )
        return content


def build_provider(
    name: str | None,
    *,
    settings: Any,
    model: str | None = None,
    debug: bool = False,
) -> TranslationProvider:
    """Factory to create providers by name."""

    normalized = (name or settings.MISTRANSLATE_PROVIDER or "ollama").strip().lower()
    if normalized in {"ollama", "local", "chat", "default"}:
        return OllamaTranslationProvider(settings=settings, model=model, debug=debug)
    if normalized in {"openai", "gpt"}:
        return OpenAITranslationProvider(settings=settings, model=model, debug=debug)
    if normalized in {"echo", "noop", "mock"}:
        return EchoTranslationProvider()
    raise TranslationProviderConfigurationError(
        f"Unknown translation provider '{name}'."
    )
