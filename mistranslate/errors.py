"""Error definitions and tracking helpers for the message translator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class ErrorCategory(Enum):
    """Categorises handled errors for reporting and thresholds."""

    FORMAT = auto()
    TRANSLATION = auto()
    NETWORK = auto()
    FILE_IO = auto()
    OTHER = auto()


class MistranslateError(Exception):
    """Base exception for all custom errors."""


class DefineParseError(MistranslateError):
    """Raised when a message block cannot be parsed structurally."""

    def __init__(self, message: str, *, message_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message_id = message_id


class MalformedDefine(DefineParseError):
    """The DEFINE_MESSAGE() call is missing or has too few arguments."""


class MissingHeader(DefineParseError):
    """The message body has no HEADER() sub-call."""


class MalformedHeader(DefineParseError):
    """The HEADER() sub-call has too few arguments."""


class SegmentationError(MistranslateError):
    """Raised when a quoted literal was mis-scanned."""


class TranslationUnavailable(MistranslateError):
    """Raised when the translation backend fails or replies with garbage.

    ``network`` marks failures to reach the backend at all, as opposed to
    replies that arrived but could not be used.
    """

    def __init__(self, message: str, *, network: bool = False) -> None:
        super().__init__(message)
        self.network = network


class MarkerCountMismatch(TranslationUnavailable):
    """Raised when a marker-joined reply splits into the wrong number of parts."""

    def __init__(self, expected: int, received: int) -> None:
        super().__init__(
            f"Expected {expected} fragments between markers, received {received}."
        )
        self.expected = expected
        self.received = received


class TranslationProviderConfigurationError(MistranslateError):
    """Raised when the translation provider is misconfigured."""


class OverwriteRefusedError(MistranslateError):
    """Raised when attempting to overwrite an output without consent."""


class TranslationInterrupted(MistranslateError):
    """Raised after a cancelled run has saved its checkpoint."""

    def __init__(self, resume_index: int) -> None:
        super().__init__(
            f"Translation interrupted. Progress saved; resuming from message {resume_index}."
        )
        self.resume_index = resume_index


@dataclass
class ErrorRecord:
    """Stores context for a handled error."""

    category: ErrorCategory
    message: str
    details: Optional[str] = None


class ErrorTracker:
    """Tracks consecutive and aggregate errors to satisfy policy rules."""

    CONSECUTIVE_LIMIT = 3
    TOTAL_LIMIT = 10

    def __init__(self) -> None:
        self.last_category: Optional[ErrorCategory] = None
        self.consecutive: int = 0
        self.total: int = 0

    def register(self, category: ErrorCategory) -> tuple[int, int, bool]:
        """Register a new error and return counters."""

        if self.last_category == category:
            self.consecutive += 1
        else:
            self.last_category = category
            self.consecutive = 1

        self.total += 1

        threshold_reached = (
            self.consecutive >= self.CONSECUTIVE_LIMIT
            or self.total >= self.TOTAL_LIMIT
        )

        return self.consecutive, self.total, threshold_reached

    def reset_consecutive(self) -> None:
        self.consecutive = 0
        self.last_category = None
