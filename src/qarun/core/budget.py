"""Deadline — external time budget turned into a "suspend now" signal.

The runner does not measure its own limit; the invoking platform knows how
much wall-clock time is left (e.g. a serverless context's remaining
milliseconds) and the scheduler only asks whether to stop between suites.
"""

from __future__ import annotations

import time
from collections.abc import Callable


class Deadline:
    """Suspend once remaining time drops below reserve_ms."""

    def __init__(self, remaining_ms: Callable[[], float], reserve_ms: float = 0) -> None:
        self._remaining_ms = remaining_ms
        self._reserve_ms = reserve_ms

    @classmethod
    def after(cls, seconds: float, reserve_ms: float = 0) -> Deadline:
        """Deadline seconds from now, measured on the monotonic clock."""
        end = time.monotonic() + seconds

        def remaining() -> float:
            return (end - time.monotonic()) * 1000

        return cls(remaining, reserve_ms)

    @property
    def remaining_ms(self) -> float:
        return self._remaining_ms()

    def should_suspend(self) -> bool:
        return self._remaining_ms() <= self._reserve_ms

    __call__ = should_suspend
