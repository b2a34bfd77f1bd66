"""Typed records flowing through the review pipeline.

CanonicalReview is the single shape every code path ends in, including the
fallback path. Coercion happens in ``from_dict``, the only way untrusted model
output becomes a record, so a constructed review is always within bounds:
scores in [1, 10], enums from a fixed vocabulary, strings capped and free of
control characters, lists capped.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace

SEVERITIES = ("critical", "high", "medium", "low")
CATEGORIES = (
    "security",
    "performance",
    "quality",
    "style",
    "testing",
    "documentation",
    "accessibility",
    "dependencies",
)
# Reserved for the fallback review. Model output never gets to claim it.
SYSTEM_CATEGORY = "system"

DEFAULT_SEVERITY = "medium"
DEFAULT_CATEGORY = "quality"
DEFAULT_SCORE = 5
DEFAULT_CONFIDENCE = 3

SEVERITY_RANK = {"critical": 3, "high": 2, "medium": 1, "low": 0}

MAX_ISSUES = 20
MAX_LIST_ITEMS = 15
MAX_STRING_CHARS = 5000

LIST_FIELDS = ("suggestions", "security", "performance", "dependencies", "accessibility", "sources")

FALLBACK_SUMMARY = "Unable to perform comprehensive AI review. Manual review recommended."

_WHITESPACE_CONTROLS = re.compile(r"[\t\r\n]+")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")
# An escape sequence cut in half by the length cap.
_PARTIAL_ENTITY = re.compile(r"&(?:l|lt|g|gt)?$")
_LEADING_INT = re.compile(r"^\s*(-?\d+)")
_TRUTHY = {"true", "yes", "1"}


def sanitize_text(value: object, limit: int = MAX_STRING_CHARS) -> str:
    """Return a trimmed, control-character-free, HTML-escaped string of at most ``limit`` chars.

    Non-strings become "". Applying it twice is a no-op.
    """
    if not isinstance(value, str):
        return ""
    text = _WHITESPACE_CONTROLS.sub(" ", value)
    text = _CONTROL_CHARS.sub("", text).strip()
    text = text.replace("<", "&lt;").replace(">", "&gt;")
    if len(text) > limit:
        text = _PARTIAL_ENTITY.sub("", text[:limit]).rstrip()
    return text


def coerce_score(value: object, default: int) -> int:
    """Clamp a model-supplied rating to [1, 10]; non-numeric input yields ``default``.

    Strings are read like ``parseInt``: "8/10" is 8, "7.5" is 7.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return default
        number = int(value)
    elif isinstance(value, str):
        match = _LEADING_INT.match(value)
        if not match:
            return default
        number = int(match.group(1))
    else:
        return default
    return max(1, min(10, number))


def coerce_choice(value: object, allowed: tuple[str, ...], default: str) -> str:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in allowed:
            return lowered
    return default


def _coerce_bool(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def _string_list(values: object, limit: int = MAX_LIST_ITEMS) -> tuple[str, ...]:
    if not isinstance(values, (list, tuple)):
        return ()
    cleaned = (sanitize_text(v) for v in values if isinstance(v, str))
    return tuple(v for v in cleaned if v)[:limit]


@dataclass(frozen=True)
class Issue:
    """A single finding reported by the model."""

    severity: str = DEFAULT_SEVERITY
    description: str = ""
    suggestion: str = ""
    category: str = DEFAULT_CATEGORY
    citation: str = ""
    auto_fixable: bool = False

    @classmethod
    def from_dict(cls, raw: Mapping) -> Issue:
        auto_fixable = raw.get("autoFixable", raw.get("auto_fixable", False))
        return cls(
            severity=coerce_choice(raw.get("severity"), SEVERITIES, DEFAULT_SEVERITY),
            description=sanitize_text(raw.get("description")) or "No description provided.",
            suggestion=sanitize_text(raw.get("suggestion")),
            category=coerce_choice(raw.get("category"), CATEGORIES, DEFAULT_CATEGORY),
            citation=sanitize_text(raw.get("citation")),
            auto_fixable=_coerce_bool(auto_fixable),
        )

    def to_dict(self) -> dict:
        return {
            "severity": self.severity,
            "description": self.description,
            "suggestion": self.suggestion,
            "category": self.category,
            "citation": self.citation,
            "autoFixable": self.auto_fixable,
        }


@dataclass(frozen=True)
class CanonicalReview:
    """Schema-valid review record handed to reporting."""

    score: int = DEFAULT_SCORE
    confidence: int = DEFAULT_CONFIDENCE
    summary: str = ""
    issues: tuple[Issue, ...] = ()
    suggestions: tuple[str, ...] = ()
    security: tuple[str, ...] = ()
    performance: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()
    accessibility: tuple[str, ...] = ()
    sources: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, raw: object) -> CanonicalReview:
        """Build a review from loosely-typed data, coercing every field into bounds."""
        if not isinstance(raw, Mapping):
            raw = {}
        raw_issues = raw.get("issues")
        if not isinstance(raw_issues, (list, tuple)):
            raw_issues = []
        issues = tuple(Issue.from_dict(i) for i in raw_issues if isinstance(i, Mapping))[:MAX_ISSUES]
        return cls(
            score=coerce_score(raw.get("score"), DEFAULT_SCORE),
            confidence=coerce_score(raw.get("confidence"), DEFAULT_CONFIDENCE),
            summary=sanitize_text(raw.get("summary")) or "No summary provided",
            issues=issues,
            **{name: _string_list(raw.get(name)) for name in LIST_FIELDS},
        )

    def to_dict(self) -> dict:
        data: dict = {
            "score": self.score,
            "confidence": self.confidence,
            "summary": self.summary,
            "issues": [i.to_dict() for i in self.issues],
        }
        for name in LIST_FIELDS:
            data[name] = list(getattr(self, name))
        return data

    def with_suggestions(self, leading: tuple[str, ...]) -> CanonicalReview:
        """Return a copy with ``leading`` placed before the existing suggestions, re-capped."""
        merged = tuple(dict.fromkeys(leading + self.suggestions))
        return replace(self, suggestions=merged[:MAX_LIST_ITEMS])


@dataclass(frozen=True)
class ReviewUnit:
    """One independent thing to review: a commit or a group of files."""

    content: str
    key: str
    label: str
    author: str = ""
    date: str = ""
    kind: str = "commit"  # "commit" | "files"

    @property
    def size_bytes(self) -> int:
        return len(self.content.encode("utf-8"))


@dataclass(frozen=True)
class Chunk:
    """A size-bounded slice of a ReviewUnit's content."""

    index: int
    total: int
    content: str
    estimated_bytes: int
    source_files: tuple[str, ...] = field(default_factory=tuple)
    # (index, total) of the chunk this piece was re-split from, if any.
    parent: tuple[int, int] | None = None


def fallback_review() -> CanonicalReview:
    """Placeholder returned when no usable model answer could be obtained."""
    return CanonicalReview(
        score=DEFAULT_SCORE,
        confidence=DEFAULT_CONFIDENCE,
        summary=FALLBACK_SUMMARY,
        issues=(
            Issue(
                severity="medium",
                description="AI review service encountered issues",
                suggestion="Please perform manual code review",
                category=SYSTEM_CATEGORY,
            ),
        ),
        suggestions=("Manual review recommended due to AI service issues",),
    )


def is_fallback(review: CanonicalReview) -> bool:
    return review.summary == FALLBACK_SUMMARY and any(i.category == SYSTEM_CATEGORY for i in review.issues)
