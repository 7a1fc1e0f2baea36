"""Command line interface for the message mistranslator."""

from __future__ import annotations

import argparse
import pathlib
import sys
from typing import Any, Iterable, Optional

from .configuration import get_settings
from .errors import (
    MistranslateError,
    OverwriteRefusedError,
    TranslationInterrupted,
    TranslationProviderConfigurationError,
)
from .translator import TranslationRunner, TranslationSummary, validate_paths

DEFAULT_OUTPUT_NAME = "poorly_translated.c"
DEFAULT_CHECKPOINT_NAME = "checkpoint_data.c"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mistranslate",
        description=(
            "Machine-translate a message data header and emit EZTR replacement calls."
        ),
    )
    parser.add_argument(
        "input_file",
        help="Path to the message data header (DEFINE_MESSAGE blocks).",
    )
    parser.add_argument(
        "-o",
        "--output",
        help=f"Output file path. Defaults to {DEFAULT_OUTPUT_NAME} beside the input.",
    )
    parser.add_argument(
        "-c",
        "--checkpoint",
        help=f"Checkpoint file path (default: ./{DEFAULT_CHECKPOINT_NAME}).",
    )
    parser.add_argument(
        "-p",
        "--provider",
        help="Translation provider identifier: ollama, openai or echo.",
    )
    parser.add_argument(
        "-m",
        "--model",
        help="Provider-specific model identifier.",
    )
    parser.add_argument(
        "-w",
        "--workers",
        type=int,
        help="Number of messages translated in parallel.",
    )
    parser.add_argument(
        "--strategy",
        choices=["json", "marker"],
        help="Wire format used for translation requests (default: json).",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Allow overwriting the output file if it already exists.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress information.",
    )
    parser.add_argument(
        "--debug-provider",
        action="store_true",
        help="Log complete provider requests and responses for troubleshooting.",
    )
    return parser


def derive_output_path(input_path: pathlib.Path) -> pathlib.Path:
    return input_path.with_name(DEFAULT_OUTPUT_NAME)


def execute_translation(
    *,
    input_file: str,
    output_file: str | None,
    checkpoint_file: str | None,
    provider: str | None,
    model: str | None,
    workers: int,
    fallback_workers: int,
    strategy: str,
    max_attempts: int,
    force_overwrite: bool,
    verbose: bool,
    provider_debug: bool,
    settings: Any = None,
) -> tuple[int, TranslationSummary | None, str | None]:
    """Execute a translation run and return the exit code, summary, and message."""

    input_path = pathlib.Path(input_file).expanduser().resolve()
    output_path = (
        pathlib.Path(output_file).expanduser().resolve()
        if output_file
        else derive_output_path(input_path)
    )
    checkpoint_path = (
        pathlib.Path(checkpoint_file).expanduser().resolve()
        if checkpoint_file
        else pathlib.Path.cwd() / DEFAULT_CHECKPOINT_NAME
    )

    try:
        validate_paths(input_path, output_path, force_overwrite=force_overwrite)
    except FileNotFoundError as exc:
        return 1, None, str(exc)
    except OverwriteRefusedError as exc:
        return 1, None, str(exc)
    except MistranslateError as exc:
        return 1, None, str(exc)

    try:
        runner = TranslationRunner(
            input_path=input_path,
            output_path=output_path,
            checkpoint_path=checkpoint_path,
            provider_name=provider,
            model=model,
            workers=workers,
            fallback_workers=fallback_workers,
            strategy=strategy,
            max_attempts=max_attempts,
            verbose=verbose,
            provider_debug=provider_debug,
            settings=settings,
        )
        summary = runner.run()
    except TranslationProviderConfigurationError as exc:
        return 1, None, str(exc)
    except TranslationInterrupted as exc:
        return 2, None, str(exc)
    except MistranslateError as exc:
        return 1, None, str(exc)
    except Exception as exc:  # pragma: no cover - defensive catch
        error_message = (
            f"{exc}\n"
            "An unexpected error occurred. Please rerun with --verbose for more details."
        )
        return 1, None, error_message

    return 0, summary, None


def print_summary(summary: TranslationSummary) -> None:
    """Output a friendly report once processing completes."""

    print("\nTranslation complete.")
    print(f"  Input file:      {summary.input_path}")
    print(f"  Output file:     {summary.output_path}")
    print(
        "  Messages:        "
        f"{summary.translated_messages} translated / {summary.total_messages} total "
        f"({summary.skipped_messages} skipped)"
    )
    if summary.resumed_from:
        print(f"  Resumed from:    message {summary.resumed_from}")
    print(
        f"  Provider:        {summary.provider_name}"
        + (f" ({summary.model})" if summary.model else "")
    )
    print(f"  Strategy:        {summary.strategy}")
    print(f"  Elapsed time:    {summary.elapsed_seconds:.2f} seconds")
    if summary.total_errors:
        print("  Notes:")
        for message in summary.error_messages:
            print(f"    - {message}")


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        settings = get_settings()
    except TranslationProviderConfigurationError as exc:
        print(exc)
        return 1

    workers = args.workers if args.workers is not None else settings.MISTRANSLATE_WORKERS
    if workers < 1:
        parser.error("-w/--workers must be at least 1")

    exit_code, summary, message = execute_translation(
        input_file=args.input_file,
        output_file=args.output,
        checkpoint_file=args.checkpoint,
        provider=args.provider,
        model=args.model,
        workers=workers,
        fallback_workers=settings.MISTRANSLATE_FALLBACK_WORKERS,
        strategy=args.strategy or settings.MISTRANSLATE_STRATEGY,
        max_attempts=settings.MISTRANSLATE_MAX_ATTEMPTS,
        force_overwrite=args.force,
        verbose=args.verbose,
        provider_debug=bool(args.debug_provider or settings.MISTRANSLATE_PROVIDER_DEBUG),
        settings=settings,
    )

    if message:
        print(message)
    if summary:
        print_summary(summary)
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
