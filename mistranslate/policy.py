"""Error handling policy shared by the worker threads."""

from __future__ import annotations

import threading
from typing import List, Optional

from .errors import ErrorCategory, ErrorRecord, ErrorTracker


class ErrorPolicy:
    """Records handled errors; a failing message never stops the batch."""

    def __init__(self, *, verbose: bool = False) -> None:
        self.verbose = verbose
        self.records: List[ErrorRecord] = []
        self.tracker = ErrorTracker()
        self.warned = False
        self._lock = threading.Lock()

    def record_success(self) -> None:
        """Reset consecutive counters after successful work."""

        with self._lock:
            self.tracker.reset_consecutive()

    def handle_error(
        self,
        category: ErrorCategory,
        message: str,
        details: Optional[str] = None,
    ) -> None:
        with self._lock:
            self.records.append(
                ErrorRecord(category=category, message=message, details=details)
            )
            consecutive, total, threshold = self.tracker.register(category)
            warn = threshold and not self.warned
            if warn:
                self.warned = True

        print(message)
        if self.verbose and details:
            print(f"  {details}")

        if not warn:
            return

        if consecutive >= self.tracker.CONSECUTIVE_LIMIT:
            print(
                f"Repeated errors detected ({consecutive} in a row). "
                "Is the translation backend reachable? Continuing anyway."
            )
        else:
            print(
                f"More than {total - 1} errors encountered. "
                "Affected messages are written as skip comments."
            )

    @property
    def messages(self) -> List[str]:
        with self._lock:
            return [record.message for record in self.records]
