"""Core review orchestration.

One review unit goes through:

    split_content → [per chunk: reviewer.review → looks_truncated → maybe re-split] → combine

Chunks of one unit are reviewed one after another so the combined result is
deterministic. Several units can run side by side on a thread pool; they all
share the single RateLimiter held by the reviewer.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from rich.console import Console
from rich.markup import escape

from critiq_core.aggregate import CHUNKED_REVIEW_SUGGESTIONS, combine
from critiq_core.chunking import chunk_byte_budget, split_content, split_lines
from critiq_core.config import DEFAULT_CONFIG
from critiq_core.errors import ConfigurationError
from critiq_core.models import CanonicalReview, Chunk, ReviewUnit, is_fallback
from critiq_core.providers.anthropic import AnthropicReviewer
from critiq_core.providers.base import BaseReviewer
from critiq_core.providers.google import GoogleReviewer
from critiq_core.providers.openai import OpenAIReviewer
from critiq_core.rate_limiter import RateLimiter
from critiq_core.schema import looks_truncated

# Progress goes to stderr so --json output on stdout stays parseable.
console = Console(stderr=True)
logger = logging.getLogger(__name__)

_PROVIDERS: dict[str, type[BaseReviewer]] = {
    "anthropic": AnthropicReviewer,
    "openai": OpenAIReviewer,
    "google": GoogleReviewer,
}


@dataclass
class ReviewResult:
    """A finished review together with the unit it describes."""

    unit: ReviewUnit
    review: CanonicalReview
    chunks: int = 1
    reattempted: int = 0
    elapsed: float = 0.0
    reviewed_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def is_fallback(self) -> bool:
        return is_fallback(self.review)

    def to_dict(self) -> dict:
        return {
            "key": self.unit.key,
            "label": self.unit.label,
            "author": self.unit.author,
            "date": self.unit.date,
            "kind": self.unit.kind,
            "size_bytes": self.unit.size_bytes,
            "chunks": self.chunks,
            "reviewed_at": self.reviewed_at,
            "review": self.review.to_dict(),
        }


def get_reviewer(config: dict, rate_limiter: RateLimiter | None = None) -> BaseReviewer:
    """Build the provider named by ``config["provider"]``, wired to one shared limiter."""
    provider = config.get("provider")
    cls = _PROVIDERS.get(provider)
    if cls is None:
        raise ConfigurationError(f"Unknown model provider: {provider!r}. Choose one of {', '.join(_PROVIDERS)}.")
    if rate_limiter is None:
        rate_limiter = RateLimiter.from_config(config)
    return cls(
        api_key=config.get("api_key"),
        base_url=config.get("base_url"),
        rate_limiter=rate_limiter,
        model=config.get("model"),
        max_tokens=config.get("max_tokens"),
        max_retries=config.get("retry_attempts"),
    )


def _weight(chunk: Chunk) -> int:
    return max(1, len(chunk.source_files))


def _reattempt(
    reviewer: BaseReviewer,
    unit: ReviewUnit,
    chunk: Chunk,
    budget: int,
    guidelines: str | None,
    citations: bool,
) -> CanonicalReview:
    """Review ``chunk`` again in pieces half the size. The result is accepted as is."""
    half = max(1, min(budget, chunk.estimated_bytes) // 2)
    if len(chunk.source_files) > 1:
        pieces = split_content(chunk.content, half)
    else:
        pieces = split_lines(chunk.content, half)
    pieces = [replace(p, parent=(chunk.index, chunk.total)) for p in pieces]
    logger.debug("Re-reviewing chunk %d/%d as %d piece(s)", chunk.index + 1, chunk.total, len(pieces))
    reviews = [reviewer.review(unit, piece, guidelines, citations) for piece in pieces]
    return combine(reviews, [_weight(p) for p in pieces], with_prefix=False)


def review_unit(
    reviewer: BaseReviewer,
    unit: ReviewUnit,
    config: dict,
    guidelines: str | None = None,
) -> ReviewResult:
    """Run the whole chunk → review → combine pipeline for one unit. Never raises on model trouble."""
    start = time.monotonic()
    max_tokens = config.get("max_tokens", DEFAULT_CONFIG["max_tokens"])
    budget = chunk_byte_budget(max_tokens, config.get("max_chunk_bytes"))
    citations = bool(config.get("enable_citations", False))

    chunks = split_content(unit.content, budget)
    if len(chunks) > 1:
        console.print(f"  [dim]{unit.key[:7]}: {unit.size_bytes // 1024}KB split into {len(chunks)} chunks[/dim]")

    reviews: list[CanonicalReview] = []
    reattempted = 0
    for chunk in chunks:
        review = reviewer.review(unit, chunk, guidelines, citations)
        if not is_fallback(review) and looks_truncated(review):
            logger.warning(
                "Review of %s chunk %d/%d looks truncated; retrying at half size",
                unit.key[:7],
                chunk.index + 1,
                chunk.total,
            )
            review = _reattempt(reviewer, unit, chunk, budget, guidelines, citations)
            reattempted += 1
        reviews.append(review)

    files = {path for chunk in chunks for path in chunk.source_files}
    combined = combine(
        reviews,
        [_weight(c) for c in chunks],
        total_bytes=unit.size_bytes,
        file_count=len(files) or None,
        lead_suggestions=CHUNKED_REVIEW_SUGGESTIONS,
    )
    return ReviewResult(
        unit=unit,
        review=combined,
        chunks=len(chunks),
        reattempted=reattempted,
        elapsed=time.monotonic() - start,
    )


def review_all(
    reviewer: BaseReviewer,
    items: Sequence[Any],
    config: dict,
    guidelines: str | None = None,
    load: Callable[[Any], ReviewUnit] | None = None,
    batch: bool | None = None,
) -> list[ReviewResult]:
    """Review every item and return results in input order.

    ``items`` are ReviewUnits, or anything ``load`` turns into one (a commit
    hash, say). In batch mode loading and reviewing run on a thread pool of
    width ``batch_size``; otherwise one item at a time.
    """
    if batch is None:
        batch = bool(config.get("enable_batch_processing", False))

    def run(item: Any) -> ReviewResult:
        unit = load(item) if load is not None else item
        return review_unit(reviewer, unit, config, guidelines)

    total = len(items)
    if not batch or total < 2:
        results = []
        for i, item in enumerate(items, 1):
            result = run(item)
            console.print(f"[[{i}/{total}]] Reviewed: {result.unit.key[:7]} {escape(result.unit.label[:60])}")
            results.append(result)
        return results

    width = max(1, int(config.get("batch_size", DEFAULT_CONFIG["batch_size"])))
    console.print(f"[cyan]Reviewing {total} item(s) in batches of {width}[/cyan]")
    with ThreadPoolExecutor(max_workers=width) as pool:
        return list(pool.map(run, items))


def should_allow(
    review: CanonicalReview,
    minimum_score: int = 6,
    blocking: Sequence[str] = ("critical", "high"),
) -> bool:
    """Commit gate: pass when the score is high enough and nothing blocking was found.

    A fallback review always passes; an unavailable reviewer must not block work.
    """
    if is_fallback(review):
        return True
    if any(issue.severity in blocking for issue in review.issues):
        return False
    return review.score >= minimum_score
