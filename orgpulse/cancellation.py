"""
Cooperative cancellation for long-running detection and dispatch passes.

A CancellationToken carries a cancel flag and an optional deadline. Storage
calls use remaining() as their timeout; loops call raise_if_cancelled()
between entities.
"""

import threading
import time

from orgpulse.errors import OperationCancelled


class CancellationToken:
    def __init__(self, timeout: float | None = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self, cap: float | None = None) -> float | None:
        """
        Seconds left before the deadline, optionally capped.

        Returns None when there is neither a deadline nor a cap, and 0.0 once
        the token is cancelled.
        """
        if self._event.is_set():
            return 0.0
        if self._deadline is None:
            return cap
        left = max(0.0, self._deadline - time.monotonic())
        return min(left, cap) if cap is not None else left

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OperationCancelled("operation cancelled")


def remaining_or(token: CancellationToken | None, default: float) -> float:
    """Timeout to use for one call: the token's remaining time capped by default."""
    if token is None:
        return default
    left = token.remaining(cap=default)
    return default if left is None else left
