# rate_limit.py
#
# Purpose:
# The two small stateful pieces that sit in front of every Gemini request:
#   1) KeyRotator: hands out API keys round-robin from a fixed pool
#   2) RateLimiter: makes sure requests are at least N seconds apart
#
# Both are plain objects that get passed into GeminiClient, so tests can
# build their own with a fake clock and two separate clients never share
# state by accident.

import os
import time

from errors import ConfigurationError
from log_utils import get_logger

logger = get_logger("rate_limit")

# Minimum gap between two outbound requests, in seconds.
MIN_REQUEST_INTERVAL_SECONDS = 2.0


def load_api_keys(raw=None):
    """
    Read the key pool from the environment.

    GEMINI_API_KEYS holds a comma-separated list. If it is unset, a single
    GEMINI_API_KEY is used instead. Blank entries are dropped.
    Returns a list (possibly empty); the caller decides whether empty is fatal.
    """
    if raw is None:
        raw = os.getenv("GEMINI_API_KEYS") or os.getenv("GEMINI_API_KEY") or ""

    keys = []
    for part in raw.split(","):
        key = part.strip()
        if key:
            keys.append(key)
    return keys


class KeyRotator:
    """Cycles through a fixed list of API keys in insertion order."""

    def __init__(self, keys):
        self._keys = list(keys or [])
        self._cursor = 0

    @property
    def size(self):
        return len(self._keys)

    def next(self):
        """
        Return the key under the cursor, then move the cursor forward.
        The cursor wraps to 0 after the last key.
        """
        if not self._keys:
            raise ConfigurationError(
                "No Gemini API keys configured. Set GEMINI_API_KEYS (comma-separated) or GEMINI_API_KEY."
            )

        key = self._keys[self._cursor]
        self._cursor = (self._cursor + 1) % len(self._keys)
        return key


class RateLimiter:
    """
    Enforces a minimum wall-clock interval between requests.

    clock and sleep default to time.monotonic and time.sleep. Tests pass
    in fakes so nothing actually waits.
    """

    def __init__(self, min_interval=MIN_REQUEST_INTERVAL_SECONDS, clock=None, sleep=None):
        self.min_interval = float(min_interval)
        self._clock = clock or time.monotonic
        self._sleep = sleep or time.sleep
        self._last_request_at = None

    @property
    def last_request_at(self):
        return self._last_request_at

    def wait_for_slot(self):
        """Block until the next request is allowed, then record it."""
        if self._last_request_at is not None:
            elapsed = self._clock() - self._last_request_at
            if elapsed < self.min_interval:
                delay = self.min_interval - elapsed
                logger.debug("Rate limiter sleeping %.2fs before next request", delay)
                self._sleep(delay)

        self._last_request_at = self._clock()
