"""High-level orchestration for translating a message data file."""

from __future__ import annotations

import pathlib
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from .checkpoint import load_checkpoint, save_checkpoint
from .defines import parse_define
from .dialect import TOKEN_PLACEHOLDER
from .documents import MessageSourceDocument
from .encoder import encode_layout, skip_line
from .errors import (
    DefineParseError,
    ErrorCategory,
    MarkerCountMismatch,
    MistranslateError,
    OverwriteRefusedError,
    SegmentationError,
    TranslationInterrupted,
    TranslationUnavailable,
)
from .policy import ErrorPolicy
from .providers import TranslationProvider, build_provider
from .segmenter import segment_message
from .structures import MessageBlock, MessageResult
from .workers import ProgressCounter, run_with_concurrency

MARKER = "{N64}"
MARKER_SPLIT_PATTERN = re.compile(r"\{?\s*N\d{2}\s*\}?", re.IGNORECASE)
MARKER_ATTEMPTS = 3

PROGRESS_EVERY = 5
SAMPLE_EVERY = 10
SAMPLE_WIDTH = 160


class _Cancelled(Exception):
    """Internal signal: the run was cancelled while a message was in flight."""


def split_marked_reply(text: str, expected: int) -> List[str]:
    """Split a marker-joined reply back into ``expected`` fragments."""

    parts = [part.strip() for part in MARKER_SPLIT_PATTERN.split(text or "")]
    if len(parts) != expected:
        raise MarkerCountMismatch(expected, len(parts))
    return parts


@dataclass
class TranslationSummary:
    """Report returned after processing a message file."""

    input_path: pathlib.Path
    output_path: pathlib.Path
    checkpoint_path: pathlib.Path
    total_messages: int
    translated_messages: int
    skipped_messages: int
    resumed_from: int
    total_errors: int
    provider_name: str
    model: str | None
    strategy: str
    elapsed_seconds: float
    error_messages: List[str] = field(default_factory=list)


class TranslationRunner:
    """Coordinates extraction, translation, encoding, and checkpointing."""

    def __init__(
        self,
        *,
        input_path: pathlib.Path,
        output_path: pathlib.Path,
        checkpoint_path: pathlib.Path,
        provider_name: str | None = None,
        model: str | None = None,
        workers: int = 3,
        fallback_workers: int = 4,
        strategy: str = "json",
        max_attempts: int = 5,
        verbose: bool = False,
        provider_debug: bool = False,
        settings: Any = None,
        provider: TranslationProvider | None = None,
    ) -> None:
        if strategy not in {"json", "marker"}:
            raise MistranslateError(f"Unknown translation strategy '{strategy}'.")

        self.input_path = input_path
        self.output_path = output_path
        self.checkpoint_path = checkpoint_path
        self.provider_name = provider_name
        self.model = model
        self.workers = max(1, workers)
        self.fallback_workers = max(1, fallback_workers)
        self.strategy = strategy
        self.max_attempts = max(1, max_attempts)
        self.verbose = verbose
        self.provider_debug = provider_debug
        self.settings = settings
        self.provider = provider

        self.error_policy = ErrorPolicy(verbose=verbose)
        self.retry_backoff = [1, 2, 4]
        self.progress = ProgressCounter()

    def run(self, cancel: threading.Event | None = None) -> TranslationSummary:
        start_time = time.time()
        cancel = cancel or threading.Event()

        document = MessageSourceDocument(self.input_path)
        blocks = document.extract_blocks()

        state = load_checkpoint(self.checkpoint_path)
        resume = min(state.index, len(state.previous_data), len(blocks))
        if resume:
            print(f"Resuming from message {resume} of {len(blocks)}.")
        elif self.verbose:
            print(f"Found {len(blocks)} messages.")

        provider = self.provider or self._build_provider()

        results: List[Optional[str]] = [None] * len(blocks)
        results[:resume] = state.previous_data[:resume]

        def handle(index: int) -> None:
            result = self.process_message(index, blocks[index], provider, cancel)
            if result is None:
                return
            results[index] = result.line
            self._report_progress(len(blocks) - resume, blocks[index], result)

        try:
            run_with_concurrency(resume, len(blocks), self.workers, handle, cancel)
        except KeyboardInterrupt:
            raise self._interrupt(results) from None
        except BaseException:
            # Keep finished messages before the error reaches the caller.
            self._interrupt(results)
            raise

        if any(line is None for line in results):
            # Cancelled through the token rather than Ctrl+C.
            raise self._interrupt(results)

        lines = [line for line in results if line is not None]
        document.save(self.output_path, lines)
        self.checkpoint_path.unlink(missing_ok=True)

        skipped = sum(1 for line in lines if line.startswith("// Skipped"))
        elapsed = time.time() - start_time
        return TranslationSummary(
            input_path=self.input_path,
            output_path=self.output_path,
            checkpoint_path=self.checkpoint_path,
            total_messages=len(blocks),
            translated_messages=len(lines) - skipped,
            skipped_messages=skipped,
            resumed_from=resume,
            total_errors=len(self.error_policy.records),
            provider_name=getattr(provider, "name", self.provider_name or "ollama"),
            model=getattr(provider, "model", self.model),
            strategy=self.strategy,
            elapsed_seconds=elapsed,
            error_messages=self.error_policy.messages,
        )

    def _build_provider(self) -> TranslationProvider:
        settings = self.settings
        if settings is None:
            from .configuration import get_settings

            settings = get_settings()
        return build_provider(
            self.provider_name,
            settings=settings,
            model=self.model,
            debug=self.provider_debug,
        )

    def _interrupt(self, results: Sequence[Optional[str]]) -> TranslationInterrupted:
        try:
            index = save_checkpoint(self.checkpoint_path, results) or 0
        except OSError as exc:
            self.error_policy.handle_error(
                ErrorCategory.FILE_IO,
                f"Could not write checkpoint {self.checkpoint_path}.",
                details=str(exc),
            )
            index = 0
        return TranslationInterrupted(index)

    def _report_progress(self, total: int, block: MessageBlock, result: MessageResult) -> None:
        count = self.progress.increment()
        if count % PROGRESS_EVERY == 0 or count == total:
            print(f"Processed {count}/{total} messages.", flush=True)
        if self.verbose and count % SAMPLE_EVERY == 0:
            print(f"Before: {block.text[:SAMPLE_WIDTH]}")
            print(f"After:  {result.line[:SAMPLE_WIDTH]}", flush=True)

    def process_message(
        self,
        index: int,
        block: MessageBlock,
        provider: TranslationProvider,
        cancel: threading.Event,
    ) -> Optional[MessageResult]:
        """Run one message through the pipeline.

        Returns ``None`` when the run was cancelled before the message finished.
        Every other outcome, failures included, is a result line.
        """

        try:
            define = parse_define(block)
        except DefineParseError as exc:
            label = exc.message_id or f"offset {block.start}"
            self.error_policy.handle_error(
                ErrorCategory.FORMAT, f"Message {label} could not be parsed: {exc}"
            )
            return MessageResult(
                index=index,
                line=skip_line(label, str(exc)),
                message_id=exc.message_id,
                skipped=True,
                reason=str(exc),
            )

        try:
            layout = segment_message(define)
        except SegmentationError as exc:
            self.error_policy.handle_error(
                ErrorCategory.FORMAT, f"Message {define.message_id}: {exc}"
            )
            return MessageResult(
                index=index,
                line=skip_line(define.message_id, str(exc)),
                message_id=define.message_id,
                skipped=True,
                reason=str(exc),
            )

        if not layout.segments:
            return MessageResult(
                index=index,
                line=skip_line(define.message_id),
                message_id=define.message_id,
                skipped=True,
                reason="no text",
            )

        fragments = layout.fragments(TOKEN_PLACEHOLDER)
        try:
            translated = self.translate_fragments(
                provider, fragments, message_id=define.message_id, cancel=cancel
            )
        except _Cancelled:
            return None
        except TranslationUnavailable as exc:
            reason = f"failed {self.max_attempts} times"
            category = ErrorCategory.NETWORK if exc.network else ErrorCategory.TRANSLATION
            self.error_policy.handle_error(
                category,
                f"Message {define.message_id} skipped after repeated failures.",
                details=str(exc),
            )
            return self._skipped(index, define.message_id, reason)
        except Exception as exc:
            reason = f"unexpected error: {exc}" if str(exc) else "unexpected error"
            self.error_policy.handle_error(
                ErrorCategory.OTHER,
                f"Message {define.message_id} skipped after an unexpected error.",
                details=repr(exc),
            )
            return self._skipped(index, define.message_id, reason)

        try:
            line = encode_layout(layout, translated)
        except Exception as exc:
            self.error_policy.handle_error(
                ErrorCategory.OTHER,
                f"Message {define.message_id} could not be encoded.",
                details=repr(exc),
            )
            return self._skipped(index, define.message_id, "encoding failed")

        self.error_policy.record_success()
        return MessageResult(index=index, line=line, message_id=define.message_id)

    def _skipped(self, index: int, message_id: str, reason: str) -> MessageResult:
        return MessageResult(
            index=index,
            line=skip_line(message_id, reason),
            message_id=message_id,
            skipped=True,
            reason=reason,
        )

    def translate_fragments(
        self,
        provider: TranslationProvider,
        fragments: Sequence[str],
        *,
        message_id: str,
        cancel: threading.Event,
    ) -> List[str]:
        if not fragments:
            return []
        if self.strategy == "marker":
            return self._translate_with_markers(
                provider, fragments, message_id=message_id, cancel=cancel
            )
        return self._translate_json(
            provider, fragments, message_id=message_id, cancel=cancel
        )

    def _translate_json(
        self,
        provider: TranslationProvider,
        fragments: Sequence[str],
        *,
        message_id: str,
        cancel: threading.Event,
    ) -> List[str]:
        last_error: TranslationUnavailable | None = None
        for attempt in range(self.max_attempts):
            if cancel.is_set():
                raise _Cancelled()
            try:
                translated = provider.translate(fragments, attempt=attempt)
            except TranslationUnavailable as exc:
                last_error = exc
            else:
                if translated:
                    return translated
                last_error = TranslationUnavailable("Translation provider returned nothing.")

            if attempt + 1 < self.max_attempts:
                print(
                    f"Could not translate {message_id} "
                    f"(attempt {attempt + 1} of {self.max_attempts}: {last_error}). "
                    "Retrying automatically..."
                )
                if self._backoff(attempt, cancel):
                    raise _Cancelled()

        raise last_error or TranslationUnavailable("Translation failed.")

    def _translate_with_markers(
        self,
        provider: TranslationProvider,
        fragments: Sequence[str],
        *,
        message_id: str,
        cancel: threading.Event,
    ) -> List[str]:
        joined = f" {MARKER} ".join(fragments)
        for attempt in range(MARKER_ATTEMPTS):
            if cancel.is_set():
                raise _Cancelled()
            try:
                reply = provider.translate([joined], attempt=attempt)
                return split_marked_reply(reply[0] if reply else "", len(fragments))
            except MarkerCountMismatch as exc:
                if self.verbose:
                    print(f"Marker mismatch for {message_id}: {exc}")
            except TranslationUnavailable as exc:
                if self.verbose:
                    print(f"Could not translate {message_id}: {exc}")
            if attempt + 1 < MARKER_ATTEMPTS and self._backoff(attempt, cancel):
                raise _Cancelled()

        print(f"Translating {message_id} one fragment at a time.")
        return self._translate_each(
            provider, fragments, message_id=message_id, cancel=cancel
        )

    def _translate_each(
        self,
        provider: TranslationProvider,
        fragments: Sequence[str],
        *,
        message_id: str,
        cancel: threading.Event,
    ) -> List[str]:
        def translate_one(fragment: str) -> str:
            if fragment == TOKEN_PLACEHOLDER or not fragment.strip():
                return fragment
            return self._translate_json(
                provider, [fragment], message_id=message_id, cancel=cancel
            )[0]

        with ThreadPoolExecutor(max_workers=self.fallback_workers) as pool:
            return list(pool.map(translate_one, fragments))

    def _backoff(self, attempt: int, cancel: threading.Event) -> bool:
        """Wait before the next attempt; True when cancelled meanwhile."""

        wait_time = self.retry_backoff[min(attempt, len(self.retry_backoff) - 1)]
        return cancel.wait(wait_time)


def validate_paths(
    input_path: pathlib.Path,
    output_path: pathlib.Path,
    force_overwrite: bool,
) -> None:
    """Validate input/output path combinations and overwrite policy."""

    if not input_path.exists():
        raise FileNotFoundError(
            f"Input file not found: {input_path}. Provide a readable message data header."
        )
    if not input_path.is_file():
        raise MistranslateError("Input path must be a file.")

    if input_path.resolve() == output_path.resolve():
        raise OverwriteRefusedError(
            "The output path matches the input file. Refusing to overwrite the source."
        )

    if output_path.exists() and not force_overwrite:
        raise OverwriteRefusedError(
            "The output file already exists. Rename it or use --force."
        )
