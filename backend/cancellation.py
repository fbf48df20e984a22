"""Cooperative cancellation for translation jobs.

A CancellationToken wraps a threading.Event. The job queue owns one token per
job and signals it on cancel; the orchestrator and backends check it between
units of work (lines, batches, retry attempts) and never mid-call.
"""

import threading

from error_handler import TranslationCancelledError


class CancellationToken:
    """Thread-safe, one-shot cancellation signal."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation. Idempotent."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise TranslationCancelledError if cancellation was requested."""
        if self._event.is_set():
            raise TranslationCancelledError()

    def wait(self, timeout: float) -> bool:
        """Sleep up to timeout seconds, waking early on cancellation.

        Returns:
            True if cancellation was requested while waiting.
        """
        return self._event.wait(timeout)
