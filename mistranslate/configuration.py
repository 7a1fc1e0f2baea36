"""Prepper-backed configuration loader for the message translator."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Mapping, Sequence

from dotenv import dotenv_values
from prepper import (
    Field,
    IoError,
    SchemaError,
    SchemaModel,
    ValidationError,
    model_validator,
)
from prepper.config import ConfigInstance
from prepper.loaders import _parse_file, _path_to_source, discover_file_paths
from prepper.merge import merge_layer
from prepper.provenance import ProvenanceRecorder

from .errors import TranslationProviderConfigurationError

APP_NAME = "Mistranslate"

PROVIDER_SYNONYMS = {
    "local": "ollama",
    "chat": "ollama",
    "gpt": "openai",
    "open_ai": "openai",
    "noop": "echo",
    "mock": "echo",
}


class MistranslateConfig(SchemaModel):
    """Schema describing all supported configuration options."""

    MISTRANSLATE_PROVIDER: Literal["ollama", "openai", "echo"] = Field(
        default="ollama",
        description="Translation backend selection.",
    )
    MISTRANSLATE_BASE_URL: str = Field(
        default="http://localhost:11434/v1",
        description="OpenAI-compatible endpoint used by the ollama provider.",
    )
    MISTRANSLATE_MODEL: str | None = Field(default=None)
    OPENAI_API_KEY: str | None = Field(default=None, secret=True)
    MISTRANSLATE_WORKERS: int = Field(default=3)
    MISTRANSLATE_FALLBACK_WORKERS: int = Field(default=4)
    MISTRANSLATE_TIMEOUT: float = Field(
        default=20.0,
        description="Seconds before a translation request is abandoned.",
    )
    MISTRANSLATE_MAX_ATTEMPTS: int = Field(default=5)
    MISTRANSLATE_STRATEGY: Literal["json", "marker"] = Field(default="json")
    MISTRANSLATE_INSTRUCTIONS: str | None = Field(default="instructions.txt")
    MISTRANSLATE_RANDOM_INSTRUCTIONS: str | None = Field(
        default="instructions.random.txt"
    )
    MISTRANSLATE_RANDOM_CHANCE: float = Field(default=0.15)
    MISTRANSLATE_PROVIDER_DEBUG: bool = Field(default=False)

    @model_validator(mode="before")
    def _normalise_provider(data: Any) -> Any:
        if isinstance(data, dict):
            raw_value = data.get("MISTRANSLATE_PROVIDER")
            if isinstance(raw_value, str):
                normalized = raw_value.strip().lower().replace("-", "_")
                normalized = PROVIDER_SYNONYMS.get(normalized, normalized)
                if normalized not in {"ollama", "openai", "echo"}:
                    normalized = "ollama"
                data["MISTRANSLATE_PROVIDER"] = normalized
            raw_strategy = data.get("MISTRANSLATE_STRATEGY")
            if isinstance(raw_strategy, str):
                data["MISTRANSLATE_STRATEGY"] = raw_strategy.strip().lower()
        return data


@lru_cache(maxsize=1)
def _load_config_instance(app_dir: Path | None = None) -> ConfigInstance:
    """Load configuration layers once and cache the immutable instance."""

    base_dir = app_dir or Path.cwd()
    try:
        provenance = ProvenanceRecorder()
        combined = _load_discovered_yaml(app_dir=base_dir, provenance=provenance)
        _merge_env_sources(
            combined,
            provenance=provenance,
            app_dir=base_dir,
            schema=MistranslateConfig,
        )

        model = MistranslateConfig.validate(combined, provenance=provenance)
        validate_settings(model)

        return ConfigInstance(
            model=model,
            provenance=provenance,
            env_prefix=None,
            schema_cls=MistranslateConfig,
        )
    except IoError as exc:
        raise TranslationProviderConfigurationError(
            f"Configuration files could not be read: {exc}"
        ) from exc
    except SchemaError as exc:
        raise TranslationProviderConfigurationError(
            f"Configuration schema error: {exc}"
        ) from exc
    except ValidationError as exc:
        issues = _format_validation_errors(exc.to_dict())
        raise TranslationProviderConfigurationError(issues) from exc


def _load_discovered_yaml(
    *,
    app_dir: Path,
    provenance: ProvenanceRecorder,
) -> dict[str, Any]:
    """Load YAML configuration files using Prepper's discovery rules."""

    result: dict[str, Any] = {}
    for path, label in discover_file_paths(
        APP_NAME,
        "yaml",
        app_dir=app_dir,
        extra_paths=None,
    ):
        parsed = _parse_file(path, "yaml")
        if not isinstance(parsed, Mapping):
            raise IoError(
                f"Invalid configuration file {path}: expected a mapping at the root."
            )
        source = _path_to_source(label, "yaml", path)
        merge_layer(result, parsed, provenance=provenance, source=source, layer="file")
    return result


def _merge_env_sources(
    target: dict[str, Any],
    *,
    provenance: ProvenanceRecorder,
    app_dir: Path,
    schema: type[SchemaModel],
) -> None:
    """Merge .env and process environment variables into the target mapping."""

    allowed = set(schema.__field_infos__.keys())

    def merge_values(values: Mapping[str, str], *, source_prefix: str) -> None:
        for key, value in sorted(values.items()):
            if value is None or key not in allowed:
                continue
            merge_layer(
                target,
                {key: value},
                provenance=provenance,
                source=f"env:{source_prefix}:{key}",
                layer="env",
            )

    dotenv_path = app_dir / ".env"
    if dotenv_path.exists():
        merge_values(
            {k: v for k, v in dotenv_values(dotenv_path).items() if v is not None},
            source_prefix=".env",
        )

    merge_values(
        {k: v for k, v in os.environ.items() if isinstance(v, str)},
        source_prefix="process",
    )


def validate_settings(settings: Any) -> None:
    """Cross-field checks the schema cannot express."""

    errors: list[str] = []

    if settings.MISTRANSLATE_PROVIDER == "openai" and not settings.OPENAI_API_KEY:
        errors.append(
            "OPENAI_API_KEY is required when MISTRANSLATE_PROVIDER is 'openai'."
        )
    if settings.MISTRANSLATE_WORKERS < 1:
        errors.append("MISTRANSLATE_WORKERS must be at least 1.")
    if settings.MISTRANSLATE_FALLBACK_WORKERS < 1:
        errors.append("MISTRANSLATE_FALLBACK_WORKERS must be at least 1.")
    if settings.MISTRANSLATE_MAX_ATTEMPTS < 1:
        errors.append("MISTRANSLATE_MAX_ATTEMPTS must be at least 1.")
    if settings.MISTRANSLATE_TIMEOUT <= 0:
        errors.append("MISTRANSLATE_TIMEOUT must be a positive number of seconds.")
    if not 0.0 <= settings.MISTRANSLATE_RANDOM_CHANCE <= 1.0:
        errors.append("MISTRANSLATE_RANDOM_CHANCE must lie between 0 and 1.")

    if errors:
        bullet_list = "\n".join(f"- {message}" for message in errors)
        raise TranslationProviderConfigurationError(
            "Configuration validation errors detected:\n" + bullet_list
        )


def _format_validation_errors(entries: Sequence[dict[str, Any]]) -> str:
    details: list[str] = []
    for entry in entries:
        path = entry.get("path") or []
        if isinstance(path, (list, tuple)):
            location = ".".join(str(part) for part in path if part not in {None, ""})
        else:
            location = str(path)
        message = str(entry.get("message") or entry.get("msg") or "Invalid value")
        source = entry.get("source")
        origin = f" (source: {source})" if source else ""
        prefix = f"{location}: " if location else ""
        details.append(f"- {prefix}{message}{origin}")
    return "Configuration validation errors detected:\n" + "\n".join(details)


def get_config(app_dir: Path | None = None) -> ConfigInstance:
    """Return the immutable configuration instance."""

    return _load_config_instance(app_dir=app_dir)


def get_settings(app_dir: Path | None = None) -> MistranslateConfig:
    """Return the validated schema model for typed access."""

    return get_config(app_dir=app_dir).model()
