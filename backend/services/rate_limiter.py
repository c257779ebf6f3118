"""
In-process sliding-window limiter for outbound Places calls.

This is the last line of defence against runaway provider spend. It is a
soft limit: when the window is full the caller gets ``RATE_LIMITED`` back
instead of an exception and is expected to serve cached or empty data.
Transport errors raised by the wrapped call are not masked.
"""
from __future__ import annotations

import logging
import threading
import time
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_CALLS = 30
DEFAULT_WINDOW_SECONDS = 60.0


class _RateLimited:
    """Sentinel type returned when the window is exhausted."""

    _instance: Optional["_RateLimited"] = None

    def __new__(cls) -> "_RateLimited":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "RATE_LIMITED"


RATE_LIMITED = _RateLimited()


class SlidingWindowRateLimiter:
    """
    Allow at most ``max_calls`` attempts per ``window_seconds``.

    Constructed once and handed to whatever performs outbound calls, so tests
    can build isolated instances with their own ceiling, window and clock.
    """

    def __init__(
        self,
        max_calls: int = DEFAULT_MAX_CALLS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_calls <= 0:
            raise ValueError("max_calls must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        self._clock = clock
        self._timestamps: Deque[float] = deque()
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    def try_acquire(self, tag: Optional[str] = None) -> bool:
        """Reserve a slot in the current window; False when the ceiling is reached."""
        with self._lock:
            now = self._clock()
            self._prune(now)
            if len(self._timestamps) >= self.max_calls:
                logger.warning(
                    "[%s] Places rate limiter: limit exceeded (%d calls / %.0fs), serving cached data when available. endpoint=%s",
                    datetime.now(timezone.utc).isoformat(),
                    self.max_calls,
                    self.window_seconds,
                    tag or "unknown",
                )
                return False
            self._timestamps.append(now)
            return True

    def attempt_call(self, fn: Callable[..., T], *args: Any, tag: Optional[str] = None, **kwargs: Any):
        """
        Perform ``fn(*args, **kwargs)`` if the window allows it.

        Returns the call's result, or ``RATE_LIMITED`` without invoking ``fn``.
        """
        if not self.try_acquire(tag):
            return RATE_LIMITED
        return fn(*args, **kwargs)

    def current_window_count(self) -> int:
        """Number of calls recorded in the current window."""
        with self._lock:
            self._prune(self._clock())
            return len(self._timestamps)
