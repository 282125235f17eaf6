"""
Sliding-window rate limiting for calls to external collaborators.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Mapping

from ..config import RateLimitConfig
from ..domain.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Counts calls per key within a trailing time window.

    Each key keeps the timestamps of its recent calls; a call is allowed
    while fewer than ``max_calls`` of them fall inside the window.
    """

    def __init__(
        self,
        limits: Mapping[str, RateLimitConfig] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._limits: Dict[str, RateLimitConfig] = dict(limits or {})
        self._clock = clock
        self._calls: Dict[str, List[float]] = {}

    def can_make_call(self, key: str, limit: RateLimitConfig) -> bool:
        """
        Record a call for ``key`` if the limit allows it.

        Returns:
            True if the call was allowed and recorded, False otherwise
        """
        now = self._clock()
        recent = [
            stamp for stamp in self._calls.get(key, [])
            if now - stamp < limit.window_seconds
        ]

        if len(recent) >= limit.max_calls:
            logger.error(
                "Rate limit exceeded for %s: %d calls in %ss",
                key,
                len(recent),
                limit.window_seconds,
            )
            self._calls[key] = recent
            return False

        recent.append(now)
        self._calls[key] = recent
        return True

    def acquire(self, name: str, key: str | None = None) -> None:
        """
        Record a call against the limit configured for ``name``.

        Args:
            name: Operation name used to look up the limit
            key: Optional bucket key, e.g. ``read_appointments:rep-1``.
                Defaults to ``name``.

        Raises:
            RateLimitExceededError: If the call is not allowed
        """
        limit = self._limits.get(name)
        if limit is None:
            return

        bucket = key or name
        if not self.can_make_call(bucket, limit):
            raise RateLimitExceededError(bucket, limit.max_calls, limit.window_seconds)

    def reset(self, key: str) -> None:
        self._calls.pop(key, None)

    def reset_all(self) -> None:
        self._calls.clear()
