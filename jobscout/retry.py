"""Exponential backoff for rate-limited remote calls.

Only rate-limit failures are retried; every other error propagates on the
first attempt.  Delays are ``2**attempt * base_delay`` (2s, 4s, 8s, ...).
"""
from __future__ import annotations

import time
from typing import Callable, TypeVar

from jobscout.errors import is_rate_limited
from jobscout.log import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class RetryableCaller:
    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.sleep = sleep

    def delay_for(self, attempt: int) -> float:
        return (2 ** attempt) * self.base_delay

    def call(self, fn: Callable[[], T], max_attempts: int | None = None) -> T:
        attempts = max_attempts or self.max_attempts
        name = getattr(fn, "__qualname__", repr(fn))
        for attempt in range(attempts):
            try:
                return fn()
            except Exception as exc:
                if not is_rate_limited(exc) or attempt == attempts - 1:
                    if is_rate_limited(exc):
                        log.error("%s still rate limited after %d attempts", name, attempts)
                    raise
                delay = self.delay_for(attempt)
                log.warning(
                    "%s rate limited (attempt %d/%d), retrying in %.1fs",
                    name,
                    attempt + 1,
                    attempts,
                    delay,
                )
                self.sleep(delay)
        raise RuntimeError("Retry loop exited unexpectedly")
