"""Tests for error tracking and configuration checks."""

from __future__ import annotations

import pytest

from mistranslate.configuration import validate_settings
from mistranslate.errors import (
    ErrorCategory,
    ErrorTracker,
    TranslationProviderConfigurationError,
)
from mistranslate.policy import ErrorPolicy


class TestErrorTracker:
    def test_consecutive_threshold(self):
        tracker = ErrorTracker()
        assert tracker.register(ErrorCategory.NETWORK) == (1, 1, False)
        assert tracker.register(ErrorCategory.NETWORK) == (2, 2, False)
        assert tracker.register(ErrorCategory.NETWORK) == (3, 3, True)

    def test_category_change_restarts_run(self):
        tracker = ErrorTracker()
        tracker.register(ErrorCategory.NETWORK)
        assert tracker.register(ErrorCategory.FORMAT) == (1, 2, False)


class TestErrorPolicy:
    def test_records_and_warns_once(self, capsys):
        policy = ErrorPolicy()
        for number in range(4):
            policy.handle_error(ErrorCategory.TRANSLATION, f"failure {number}")

        output = capsys.readouterr().out
        assert policy.messages == [f"failure {number}" for number in range(4)]
        assert output.count("Repeated errors detected") == 1

    def test_success_resets_consecutive_run(self, capsys):
        policy = ErrorPolicy()
        policy.handle_error(ErrorCategory.TRANSLATION, "a")
        policy.handle_error(ErrorCategory.TRANSLATION, "b")
        policy.record_success()
        policy.handle_error(ErrorCategory.TRANSLATION, "c")

        assert "Repeated errors" not in capsys.readouterr().out
        assert not policy.warned

    def test_details_only_when_verbose(self, capsys):
        ErrorPolicy().handle_error(ErrorCategory.OTHER, "quiet", details="hidden")
        ErrorPolicy(verbose=True).handle_error(ErrorCategory.OTHER, "loud", details="shown")
        output = capsys.readouterr().out
        assert "hidden" not in output
        assert "  shown" in output


class TestValidateSettings:
    def test_defaults_pass(self, fake_settings):
        validate_settings(fake_settings)

    def test_openai_needs_key(self, fake_settings):
        fake_settings.MISTRANSLATE_PROVIDER = "openai"
        with pytest.raises(TranslationProviderConfigurationError) as excinfo:
            validate_settings(fake_settings)
        assert "OPENAI_API_KEY" in str(excinfo.value)

    def test_collects_every_problem(self, fake_settings):
        fake_settings.MISTRANSLATE_WORKERS = 0
        fake_settings.MISTRANSLATE_RANDOM_CHANCE = 2.0
        with pytest.raises(TranslationProviderConfigurationError) as excinfo:
            validate_settings(fake_settings)
        message = str(excinfo.value)
        assert "MISTRANSLATE_WORKERS" in message
        assert "MISTRANSLATE_RANDOM_CHANCE" in message
