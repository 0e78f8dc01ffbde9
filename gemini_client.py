# gemini_client.py
#
# Purpose:
# Sends one prompt to the Gemini generateContent endpoint and returns the
# decoded JSON envelope. This is the only file that talks to the network
# for analysis.
#
# Retry policy:
# - HTTP 429 (throttled): retry up to pool_size * 2 times, 5s apart.
#   Each retry takes the next key from the rotator.
# - Network errors (timeouts, DNS, connection reset): retry up to
#   pool_size times, 1s apart.
# - Any other non-2xx, or a body with an "error" field: fail right away.
# Both budgets share one attempt counter.

import os
import time

import requests

from errors import RateLimitExhausted, UpstreamError
from log_utils import get_logger
from rate_limit import KeyRotator, RateLimiter, load_api_keys

logger = get_logger("gemini")

GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash-exp")
GEMINI_API_URL = f"https://generativelanguage.googleapis.com/v1beta/models/{GEMINI_MODEL}:generateContent"

# Low temperature keeps the JSON layout stable between runs.
DEFAULT_TEMPERATURE = 0.1
DEFAULT_MAX_OUTPUT_TOKENS = 4000
REQUEST_TIMEOUT_SECONDS = 60

THROTTLE_RETRY_FACTOR = 2
NETWORK_RETRY_FACTOR = 1
THROTTLE_BACKOFF_SECONDS = 5.0
NETWORK_RETRY_DELAY_SECONDS = 1.0


def build_payload(prompt, temperature=DEFAULT_TEMPERATURE, max_output_tokens=DEFAULT_MAX_OUTPUT_TOKENS):
    """Request body in the shape generateContent expects."""
    return {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": {
            "temperature": temperature,
            "maxOutputTokens": max_output_tokens,
        },
    }


def _error_message(data):
    """
    Pull a readable message out of an API error payload.
    The API usually sends {"error": {"code": ..., "message": ...}}, but
    a plain string is handled too.
    """
    err = data.get("error")
    if isinstance(err, dict):
        return err.get("message") or str(err)
    return str(err)


class GeminiClient:
    """Request executor: rate limiting, key rotation and retries around one POST."""

    def __init__(
        self,
        rotator,
        limiter=None,
        session=None,
        api_url=GEMINI_API_URL,
        temperature=DEFAULT_TEMPERATURE,
        max_output_tokens=DEFAULT_MAX_OUTPUT_TOKENS,
        timeout=REQUEST_TIMEOUT_SECONDS,
        sleep=None,
    ):
        self.rotator = rotator
        self.limiter = limiter or RateLimiter()
        self.session = session or requests.Session()
        self.api_url = api_url
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout
        self._sleep = sleep or time.sleep

    @property
    def model_name(self):
        return GEMINI_MODEL

    @property
    def throttle_budget(self):
        return self.rotator.size * THROTTLE_RETRY_FACTOR

    @property
    def network_budget(self):
        return self.rotator.size * NETWORK_RETRY_FACTOR

    def execute(self, prompt):
        """
        Send the prompt and return the response envelope as a dict.

        Raises:
          ConfigurationError: the key pool is empty
          RateLimitExhausted: still throttled after the retry budget
          UpstreamError: non-2xx status, error payload, or a non-JSON body
          requests.RequestException: network failure after the retry budget
        """
        payload = build_payload(prompt, self.temperature, self.max_output_tokens)
        attempt = 0

        while True:
            self.limiter.wait_for_slot()
            key = self.rotator.next()

            try:
                resp = self.session.post(
                    self.api_url,
                    params={"key": key},
                    json=payload,
                    headers={"Content-Type": "application/json"},
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                if attempt < self.network_budget:
                    logger.warning(
                        "Network error calling Gemini (attempt %d): %s. Retrying in %.0fs.",
                        attempt + 1,
                        e,
                        NETWORK_RETRY_DELAY_SECONDS,
                    )
                    self._sleep(NETWORK_RETRY_DELAY_SECONDS)
                    attempt += 1
                    continue
                raise

            if resp.status_code == 429:
                if attempt < self.throttle_budget:
                    logger.warning(
                        "Gemini rate limited (attempt %d). Rotating key and retrying in %.0fs.",
                        attempt + 1,
                        THROTTLE_BACKOFF_SECONDS,
                    )
                    self._sleep(THROTTLE_BACKOFF_SECONDS)
                    attempt += 1
                    continue
                raise RateLimitExhausted(attempt + 1)

            if not (200 <= resp.status_code < 300):
                raise UpstreamError(resp.text or resp.reason or "", status_code=resp.status_code)

            try:
                data = resp.json()
            except ValueError as e:
                raise UpstreamError(f"response was not valid JSON ({e})", status_code=resp.status_code) from e

            if isinstance(data, dict) and data.get("error"):
                raise UpstreamError(_error_message(data), status_code=resp.status_code)

            return data


# Lazily built process-wide client for the app and CLI.
_default_client = None


def get_default_client():
    """
    Build (once) a client from the environment key pool.
    Raises ConfigurationError right away if no keys are configured.
    """
    global _default_client
    if _default_client is None:
        rotator = KeyRotator(load_api_keys())
        if rotator.size == 0:
            # next() raises the ConfigurationError with the setup hint.
            rotator.next()
        _default_client = GeminiClient(rotator)
    return _default_client


def reset_default_client():
    """Forget the cached client (used after the key settings change)."""
    global _default_client
    _default_client = None
