"""Provider-independent half of a review call.

Every provider runs the same sequence:

    review(unit, chunk)
      -> build_system_prompt + build_user_prompt
      -> _call_with_retry: rate_limiter.acquire, then _call_api, per attempt
      -> parse_review (or fallback_review once attempts run out)

A provider subclass supplies its SDK client in __init__ and a single
_call_api that returns raw text or raises a DispatchError subclass.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from critiq_core.errors import DispatchError, redact_secrets
from critiq_core.models import CanonicalReview, Chunk, ReviewUnit, fallback_review
from critiq_core.prompts import build_system_prompt, build_user_prompt
from critiq_core.schema import parse_review

if TYPE_CHECKING:
    from critiq_core.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

# Shared defaults; subclasses may override as class attributes if needed.
_MAX_RETRIES = 3
_MAX_TOKENS = 4096


class BaseReviewer(ABC):
    MODEL: str = ""
    MAX_RETRIES: int = _MAX_RETRIES
    MAX_TOKENS: int = _MAX_TOKENS
    BASE_DELAY: float = 1
    MAX_DELAY: float = 10

    def __init__(
        self,
        rate_limiter: RateLimiter | None = None,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        max_retries: int | None = None,
    ):
        self.rate_limiter = rate_limiter
        self.model = model or self.MODEL
        self.max_tokens = max_tokens or self.MAX_TOKENS
        self.max_retries = max_retries or self.MAX_RETRIES

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def review(
        self,
        unit: ReviewUnit,
        chunk: Chunk,
        guidelines: str | None = None,
        enable_citations: bool = False,
    ) -> CanonicalReview:
        """Review one chunk of a unit and return a schema-valid review.

        When every attempt fails the fallback review is returned instead;
        nothing a model or network does makes this raise.
        """
        system = build_system_prompt(guidelines, enable_citations)
        user = build_user_prompt(unit, chunk)
        raw = self._call_with_retry(system, user)
        if raw is None:
            return fallback_review()
        return parse_review(raw)

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single API call and return the raw text response.

        This is the only method subclasses must implement. It should raise
        on failure; _call_with_retry handles retries and logging.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _backoff(self, attempt: int) -> float:
        """Delay to wait after failed attempt number ``attempt`` (1-based)."""
        return min(self.BASE_DELAY * 2 ** (attempt - 1), self.MAX_DELAY)

    def _call_with_retry(self, system_prompt: str, user_prompt: str) -> str | None:
        """Call _call_api up to max_retries times with capped exponential backoff.

        Every attempt, retries included, goes through the rate limiter first.
        A non-retryable failure (a 4xx the service will repeat) stops the loop
        at once. Returns None when no attempt succeeded.
        """
        name = self.__class__.__name__
        for attempt in range(1, self.max_retries + 1):
            if self.rate_limiter is not None:
                self.rate_limiter.acquire()
            try:
                raw = self._call_api(system_prompt, user_prompt)
                if not raw or not raw.strip():
                    raise DispatchError("Empty response from model")
                return raw
            except Exception as e:
                message = redact_secrets(e)
                if not getattr(e, "retryable", True):
                    logger.error("%s API rejected the request: %s", name, message)
                    return None
                if attempt == self.max_retries:
                    logger.error("%s API failed after %d attempts: %s", name, self.max_retries, message)
                    return None
                delay = self._backoff(attempt)
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %ds...",
                    name,
                    attempt,
                    self.max_retries,
                    message,
                    delay,
                )
                time.sleep(delay)
        return None
