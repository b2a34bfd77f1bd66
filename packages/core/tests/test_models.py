"""Tests for the review records and their coercion rules."""

import pytest

from critiq_core.models import (
    CATEGORIES,
    FALLBACK_SUMMARY,
    LIST_FIELDS,
    MAX_ISSUES,
    MAX_LIST_ITEMS,
    MAX_STRING_CHARS,
    SEVERITIES,
    CanonicalReview,
    Issue,
    ReviewUnit,
    coerce_score,
    fallback_review,
    is_fallback,
    sanitize_text,
)


def assert_within_schema(review: CanonicalReview) -> None:
    assert 1 <= review.score <= 10
    assert 1 <= review.confidence <= 10
    assert len(review.issues) <= MAX_ISSUES
    for issue in review.issues:
        assert issue.severity in SEVERITIES
        assert issue.category in CATEGORIES or issue.category == "system"
    for name in LIST_FIELDS:
        assert len(getattr(review, name)) <= MAX_LIST_ITEMS
    assert len(review.summary) <= MAX_STRING_CHARS


# ---------------------------------------------------------------------------
# sanitize_text
# ---------------------------------------------------------------------------


class TestSanitizeText:
    def test_escapes_angle_brackets(self):
        assert sanitize_text("<script>alert(1)</script>") == "&lt;script&gt;alert(1)&lt;/script&gt;"

    def test_strips_control_characters(self):
        assert sanitize_text("a\x00b\x07c\x7f") == "abc"

    def test_line_breaks_become_spaces(self):
        assert sanitize_text("first line\nsecond\tline") == "first line second line"

    def test_trims(self):
        assert sanitize_text("   padded  ") == "padded"

    def test_caps_length(self):
        assert len(sanitize_text("x" * 10_000)) == MAX_STRING_CHARS

    def test_cap_never_leaves_half_an_entity(self):
        text = "a" * (MAX_STRING_CHARS - 2) + "<b"
        assert not sanitize_text(text).endswith("&l")
        assert not sanitize_text(text).endswith("&")

    def test_non_string_becomes_empty(self):
        assert sanitize_text(None) == ""
        assert sanitize_text(42) == ""

    def test_idempotent(self):
        once = sanitize_text("  <b>bold</b>\n\x01done ")
        assert sanitize_text(once) == once


# ---------------------------------------------------------------------------
# coerce_score
# ---------------------------------------------------------------------------


class TestCoerceScore:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (7, 7),
            (0, 1),
            (-3, 1),
            (15, 10),
            (7.9, 7),
            ("8", 8),
            ("8/10", 8),
            ("  9 ", 9),
        ],
    )
    def test_numbers_are_clamped(self, value, expected):
        assert coerce_score(value, 5) == expected

    @pytest.mark.parametrize("value", [None, "high", True, [], {}, float("nan"), float("inf")])
    def test_non_numeric_uses_default(self, value):
        assert coerce_score(value, 3) == 3


# ---------------------------------------------------------------------------
# Issue / CanonicalReview
# ---------------------------------------------------------------------------


class TestIssueFromDict:
    def test_valid_issue(self):
        issue = Issue.from_dict(
            {
                "severity": "HIGH",
                "description": "SQL built by string concatenation",
                "suggestion": "Use bound parameters.",
                "category": "security",
                "citation": "OWASP A03",
                "autoFixable": True,
            }
        )
        assert issue.severity == "high"
        assert issue.category == "security"
        assert issue.auto_fixable is True

    def test_unknown_enums_defaulted(self):
        issue = Issue.from_dict({"severity": "blocker", "category": "vibes", "description": "x"})
        assert issue.severity == "medium"
        assert issue.category == "quality"

    def test_model_cannot_claim_system_category(self):
        assert Issue.from_dict({"category": "system", "description": "x"}).category == "quality"

    def test_missing_description_filled(self):
        assert Issue.from_dict({}).description == "No description provided."

    def test_snake_case_auto_fixable_accepted(self):
        assert Issue.from_dict({"auto_fixable": "yes"}).auto_fixable is True

    def test_to_dict_uses_camel_case(self):
        assert "autoFixable" in Issue(description="x").to_dict()


class TestCanonicalReviewFromDict:
    def test_missing_list_fields_default_to_empty(self):
        review = CanonicalReview.from_dict({"score": 8, "confidence": 7, "summary": "Looks fine.", "issues": []})
        assert review.score == 8
        assert review.confidence == 7
        assert review.summary == "Looks fine."
        for name in LIST_FIELDS:
            assert getattr(review, name) == ()

    def test_defaults_for_empty_input(self):
        review = CanonicalReview.from_dict({})
        assert review.score == 5
        assert review.confidence == 3
        assert review.summary == "No summary provided"

    def test_non_mapping_input(self):
        assert_within_schema(CanonicalReview.from_dict(["not", "a", "dict"]))

    def test_lists_are_capped(self):
        review = CanonicalReview.from_dict(
            {
                "issues": [{"description": f"issue {i}"} for i in range(50)],
                "suggestions": [f"s{i}" for i in range(50)],
            }
        )
        assert len(review.issues) == MAX_ISSUES
        assert len(review.suggestions) == MAX_LIST_ITEMS

    def test_non_string_list_entries_dropped(self):
        review = CanonicalReview.from_dict({"security": ["ok", 3, None, {"x": 1}, ""]})
        assert review.security == ("ok",)

    def test_non_dict_issues_dropped(self):
        review = CanonicalReview.from_dict({"issues": ["just text", {"description": "real"}]})
        assert [i.description for i in review.issues] == ["real"]

    def test_wrong_type_for_list_field(self):
        review = CanonicalReview.from_dict({"suggestions": "do better", "issues": "none"})
        assert review.suggestions == ()
        assert review.issues == ()

    def test_to_dict_has_every_field(self):
        data = CanonicalReview.from_dict({}).to_dict()
        assert set(data) == {"score", "confidence", "summary", "issues", *LIST_FIELDS}

    def test_with_suggestions_prepends_and_dedupes(self):
        review = CanonicalReview(suggestions=("b", "c"))
        assert review.with_suggestions(("a", "b")).suggestions == ("a", "b", "c")


# ---------------------------------------------------------------------------
# fallback / units
# ---------------------------------------------------------------------------


class TestFallbackReview:
    def test_is_schema_valid(self):
        assert_within_schema(fallback_review())

    def test_is_recognizable(self):
        review = fallback_review()
        assert review.summary == FALLBACK_SUMMARY
        assert len(review.issues) == 1
        assert review.issues[0].category == "system"
        assert is_fallback(review)

    def test_ordinary_review_is_not_fallback(self):
        assert not is_fallback(CanonicalReview.from_dict({"summary": FALLBACK_SUMMARY}))


def test_review_unit_size_counts_utf8_bytes():
    assert ReviewUnit(content="é" * 10, key="k", label="l").size_bytes == 20
