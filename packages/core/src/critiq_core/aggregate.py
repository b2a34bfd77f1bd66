"""Merge several CanonicalReviews into one."""

from __future__ import annotations

import math
from collections.abc import Sequence

from critiq_core.models import (
    LIST_FIELDS,
    MAX_ISSUES,
    MAX_LIST_ITEMS,
    SEVERITY_RANK,
    CanonicalReview,
    Issue,
    fallback_review,
    is_fallback,
    sanitize_text,
)

CHUNKED_REVIEW_SUGGESTIONS = (
    "This review was performed on a large diff using chunked analysis",
    "Consider breaking large commits into smaller, focused changes",
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _weighted_mean(values: Sequence[int], weights: Sequence[float]) -> int:
    total = sum(weights)
    return _round_half_up(sum(v * w for v, w in zip(values, weights)) / total)


def _unique_strings(reviews: Sequence[CanonicalReview], name: str) -> tuple[str, ...]:
    merged: dict[str, None] = {}
    for review in reviews:
        merged.update(dict.fromkeys(getattr(review, name)))
    return tuple(merged)


def _unique_issues(reviews: Sequence[CanonicalReview]) -> tuple[Issue, ...]:
    seen: set[tuple[str, str]] = set()
    issues: list[Issue] = []
    for review in reviews:
        for issue in review.issues:
            key = (issue.severity, issue.description)
            if key not in seen:
                seen.add(key)
                issues.append(issue)
    if len(issues) > MAX_ISSUES:
        # Stable sort keeps first-seen order within a severity.
        issues.sort(key=lambda i: SEVERITY_RANK.get(i.severity, 0), reverse=True)
    return tuple(issues[:MAX_ISSUES])


def _summary_prefix(count: int, total_bytes: int | None, file_count: int | None) -> str:
    parts = []
    if file_count:
        parts.append(f"{file_count} file{'s' if file_count != 1 else ''}")
    if total_bytes is not None:
        parts.append(f"{round(total_bytes / 1024)}KB")
    parts.append(f"{count} parts")
    return f"Large diff review ({', '.join(parts)})"


def combine(
    reviews: Sequence[CanonicalReview],
    weights: Sequence[float] | None = None,
    *,
    total_bytes: int | None = None,
    file_count: int | None = None,
    lead_suggestions: tuple[str, ...] = (),
    with_prefix: bool = True,
) -> CanonicalReview:
    """Merge per-chunk (or per-commit) reviews into a single review.

    Score and confidence are weight-averaged and rounded half up; weights
    default to 1 each, and non-positive weights count as 1. The summary is an
    aggregate size prefix followed by every non-empty sub-summary joined with
    "; ". List fields are order-preserving unions with duplicates removed
    (issues by severity and description), capped to the schema limits, with
    higher-severity issues kept when there are too many. ``lead_suggestions``
    are placed ahead of the merged suggestions. With ``with_prefix=False`` the
    summary is just the joined sub-summaries.

    No reviews, or only fallback reviews, gives the fallback review; a single
    review is returned as is.
    """
    if not reviews or all(is_fallback(r) for r in reviews):
        return fallback_review()
    if len(reviews) == 1:
        return reviews[0]

    if weights is None:
        weights = [1] * len(reviews)
    if len(weights) != len(reviews):
        raise ValueError(f"Got {len(weights)} weights for {len(reviews)} reviews")
    weights = [w if w > 0 else 1 for w in weights]

    summaries = [r.summary for r in reviews if r.summary]
    joined = "; ".join(summaries)
    if with_prefix:
        joined = f"{_summary_prefix(len(reviews), total_bytes, file_count)}: {joined}"
    summary = sanitize_text(joined)

    lists = {name: _unique_strings(reviews, name)[:MAX_LIST_ITEMS] for name in LIST_FIELDS}
    lists["suggestions"] = tuple(dict.fromkeys(lead_suggestions + _unique_strings(reviews, "suggestions")))[
        :MAX_LIST_ITEMS
    ]

    return CanonicalReview(
        score=_weighted_mean([r.score for r in reviews], weights),
        confidence=_weighted_mean([r.confidence for r in reviews], weights),
        summary=summary,
        issues=_unique_issues(reviews),
        **lists,
    )
