"""Error taxonomy for the review pipeline.

Two families:

- DispatchError and its subclasses describe a failed model call. They are
  raised by provider ``_call_api`` implementations and never escape the
  pipeline: BaseReviewer retries them and the reviewer falls back to a
  placeholder review once retries are exhausted.
- ConfigurationError is fatal. It is raised at startup by validate_config and
  surfaced to the user immediately.
"""

from __future__ import annotations

import re

# Statuses worth retrying: request timeout, conflict, rate limit.
# Everything >= 500 is also retried.
_RETRYABLE_4XX = {408, 409, 429}

_MAX_ERROR_CHARS = 200

_REDACTIONS = [
    (re.compile(r"sk-[A-Za-z0-9\-_]+"), "[API_KEY_REDACTED]"),
    (re.compile(r"AIza[0-9A-Za-z\-_]{20,}"), "[API_KEY_REDACTED]"),
    (re.compile(r"Bearer\s+[A-Za-z0-9\-_.]+"), "[AUTH_TOKEN_REDACTED]"),
    (re.compile(r"https?://\S+"), "[URL_REDACTED]"),
    (re.compile(r"\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b"), "[IP_REDACTED]"),
]


class ConfigurationError(Exception):
    """Missing credential, invalid numeric bound, or unsupported setting."""


class DispatchError(Exception):
    """A single model call failed."""

    retryable: bool = True


class NetworkError(DispatchError):
    """The request never produced an HTTP response (DNS, reset, refused)."""


class DispatchTimeout(DispatchError):
    """The request exceeded the client timeout."""


class BadStatusError(DispatchError):
    """The service answered with a non-success HTTP status."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        if self.status is None:
            return True
        return self.status >= 500 or self.status in _RETRYABLE_4XX


def redact_secrets(message: object) -> str:
    """Scrub credentials, URLs and addresses from an error message before logging it."""
    if not message:
        return "An error occurred during API request"
    text = str(message)
    for pattern, replacement in _REDACTIONS:
        text = pattern.sub(replacement, text)
    return text[:_MAX_ERROR_CHARS]
