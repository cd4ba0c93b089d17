"""
Exponential backoff for Firebase Auth rate limits.

Consecutive rate-limit hits double the delay (1s, 2s, 4s ... 16s). A hit
arriving long after the previous one starts over at the base delay.
"""
import logging
import threading
import time
from typing import Callable, Optional

from firebase_admin.exceptions import ResourceExhaustedError

from .constants import (
    BACKOFF_BASE_SECONDS,
    BACKOFF_MAX_MULTIPLIER,
    BACKOFF_RESET_SECONDS,
    BACKOFF_RETRIES,
)

logger = logging.getLogger("rentals")

RATE_LIMIT_MESSAGES = ("too many attempts", "rate-limited")


def is_rate_limit_error(error: Exception) -> bool:
    if isinstance(error, ResourceExhaustedError):
        return True
    message = str(error).lower()
    return any(text in message for text in RATE_LIMIT_MESSAGES)


class RateLimitBackoff:
    def __init__(
        self,
        base_delay: float = BACKOFF_BASE_SECONDS,
        max_multiplier: int = BACKOFF_MAX_MULTIPLIER,
        reset_after: float = BACKOFF_RESET_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_delay = base_delay
        self.max_multiplier = max_multiplier
        self.reset_after = reset_after
        self._clock = clock
        self._lock = threading.Lock()
        self._multiplier = 1
        self._last_hit: Optional[float] = None

    def next_delay(self) -> float:
        """Register a rate-limit hit and return how long to wait."""
        with self._lock:
            now = self._clock()
            if self._last_hit is None or now - self._last_hit > self.reset_after:
                self._multiplier = 1
            else:
                self._multiplier = min(self._multiplier * 2, self.max_multiplier)
            self._last_hit = now
            return self.base_delay * self._multiplier

    def reset(self) -> None:
        with self._lock:
            self._multiplier = 1
            self._last_hit = None


auth_backoff = RateLimitBackoff()


def call_with_backoff(
    fn: Callable,
    retries: int = BACKOFF_RETRIES,
    sleep: Callable[[float], None] = time.sleep,
    backoff: Optional[RateLimitBackoff] = None,
):
    """Call fn, retrying rate-limit errors only. Other errors propagate."""
    backoff = backoff or auth_backoff
    attempt = 0
    while True:
        try:
            return fn()
        except Exception as e:
            if not is_rate_limit_error(e) or attempt >= retries:
                raise
            attempt += 1
            delay = backoff.next_delay()
            logger.warning(f"[BACKOFF] Rate limited, retry {attempt}/{retries} in {delay:.0f}s")
            sleep(delay)
