"""Turn a raw model answer into a CanonicalReview, whatever shape it arrives in.

``parse_review`` never raises. It tries, in order:

    normalize -> strict parse
              -> repair -> strict parse
              -> heuristic extraction from the raw text

and then runs the winner through CanonicalReview.from_dict, which enforces
every bound. A response that parses to something other than an object
(a list, a number) is treated as unparseable.
"""

from __future__ import annotations

import json
import logging
import re

from critiq_core.models import CanonicalReview
from critiq_core.parsing import normalize, repair

logger = logging.getLogger(__name__)

_HEURISTIC_WINDOW = 2000
_SCORE_RE = re.compile(r'score"?\s*[:=]?\s*(\d+)', re.IGNORECASE)
_CONFIDENCE_RE = re.compile(r'confidence"?\s*[:=]?\s*(\d+)', re.IGNORECASE)
_SENTENCE_RE = re.compile(r"([^.!?]+)([.!?]*)")
_SUMMARY_CHARS = 200
_ISSUE_KEYWORDS = ("error", "problem", "issue", "vulnerability", "security", "bug")
_MAX_HEURISTIC_ISSUES = 5

_TERMINAL_PUNCTUATION = (".", "!", "?")
_TRUNCATION_MIN_CHARS = 20


def _loads(text: str) -> object | None:
    try:
        return json.loads(text, strict=False)
    except (ValueError, RecursionError):
        return None


def _as_text(raw: object) -> str:
    if raw is None:
        return ""
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw if isinstance(raw, str) else str(raw)


def _first_sentence(text: str) -> str:
    """First sentence longer than 10 characters, always ending in a terminator."""
    for match in _SENTENCE_RE.finditer(text):
        body = match.group(1).strip()
        if len(body) > 10:
            return body[: _SUMMARY_CHARS - 1] + (match.group(2)[:1] or ".")
    return ""


def extract_heuristic(raw: str) -> dict:
    """Scrape a review-shaped dict out of free text.

    Only the first 2000 characters are examined. Returns plain data; bounds
    are applied later by CanonicalReview.from_dict.
    """
    text = _as_text(raw)[:_HEURISTIC_WINDOW]
    score = _SCORE_RE.search(text)
    confidence = _CONFIDENCE_RE.search(text)

    summary = _first_sentence(text)

    lowered = text.lower()
    issues = [
        {
            "severity": "medium",
            "description": f"Potential {keyword} detected in code review.",
            "suggestion": "Manual review recommended.",
            "category": "quality",
        }
        for keyword in _ISSUE_KEYWORDS
        if keyword in lowered
    ][:_MAX_HEURISTIC_ISSUES]

    return {
        "score": int(score.group(1)) if score else 5,
        "confidence": int(confidence.group(1)) if confidence else 3,
        "summary": summary or "AI review completed with limited parsing.",
        "issues": issues,
        "suggestions": ["Manual review recommended due to parsing issues."],
    }


def parse_review(raw: object) -> CanonicalReview:
    """Parse a model answer into a CanonicalReview. Total: never raises."""
    text = _as_text(raw)
    candidate = normalize(text)

    data = _loads(candidate)
    if not isinstance(data, dict):
        data = _loads(repair(candidate))
        if isinstance(data, dict):
            logger.warning("Model response was incomplete JSON; recovered %d field(s)", len(data))

    if not isinstance(data, dict):
        logger.warning("Model response was not parseable as JSON; extracting what we can: %s", text[:200])
        data = extract_heuristic(text)

    return CanonicalReview.from_dict(data)


def _cut_short(text: str) -> bool:
    stripped = text.rstrip()
    return len(stripped) > _TRUNCATION_MIN_CHARS and not stripped.endswith(_TERMINAL_PUNCTUATION)


def looks_truncated(review: CanonicalReview) -> bool:
    """Return True when any long prose field lacks terminal punctuation.

    A heuristic: a model that ran out of output tokens usually stops
    mid-sentence. Checks the summary, each issue's description and
    suggestion, and each suggestion. Prose that legitimately ends in a code
    identifier or a URL is a known false positive.
    """
    texts = [review.summary, *review.suggestions]
    for issue in review.issues:
        texts.extend((issue.description, issue.suggestion))
    return any(_cut_short(t) for t in texts)
