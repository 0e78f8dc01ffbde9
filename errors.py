# errors.py
#
# Purpose:
# Exception types for the analysis pipeline.
#
# Two families:
# - ConfigurationError: nothing can run (no API keys). This one is allowed
#   to reach the caller.
# - AnalysisError and its subclasses: a single analysis attempt failed.
#   llm_utils.analyze_codebase() catches these and returns a fallback
#   report instead.


class DebtLensError(Exception):
    """Base class for every error raised by DebtLens modules."""


class ConfigurationError(DebtLensError):
    """Raised when no Gemini API keys are configured."""


class AnalysisError(DebtLensError):
    """Base class for failures of one analysis request."""


class RateLimitExhausted(AnalysisError):
    """Every retry was throttled (HTTP 429)."""

    def __init__(self, attempts):
        self.attempts = attempts
        super().__init__(f"Gemini API still rate limited after {attempts} attempts.")


class UpstreamError(AnalysisError):
    """The API answered with a non-2xx status or an error payload."""

    def __init__(self, message, status_code=None):
        self.status_code = status_code
        self.message = message
        if status_code is not None:
            super().__init__(f"Gemini API error ({status_code}): {message}")
        else:
            super().__init__(f"Gemini API error: {message}")


class EmptyResponseError(AnalysisError):
    """The response envelope had no candidate text."""


class MalformedResponseError(AnalysisError):
    """The candidate text did not contain a parseable JSON object."""
