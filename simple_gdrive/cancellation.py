"""
Cancellation token passed through every remote-bound call.

A token combines an explicit cancel flag with an optional deadline. It is
checked before each network request and while sleeping between retries.
"""

import threading
import time

from .errors import OperationCancelledError


class CancelToken:
    """Thread-safe cancel flag with an optional deadline."""

    def __init__(self, timeout_seconds: float | None = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout_seconds if timeout_seconds is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OperationCancelledError("Operation cancelled")

    def wait(self, seconds: float) -> bool:
        """
        Sleep for up to ``seconds``, waking early on cancellation.

        Returns:
            True if the token was cancelled (or expired) while waiting.
        """
        if self._deadline is not None:
            seconds = min(seconds, max(0.0, self._deadline - time.monotonic()))
        self._event.wait(seconds)
        return self.cancelled


def check(token: CancelToken | None) -> None:
    """Raise OperationCancelledError if ``token`` is set and cancelled."""
    if token is not None:
        token.raise_if_cancelled()
