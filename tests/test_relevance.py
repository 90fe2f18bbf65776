"""Tests for term scoring, hybrid blending and the admission rule."""

import pytest

from digest_curator.processing.relevance import (
    DEFAULT_TERM_CATEGORIES,
    SECURITY_QUALITY_CATEGORY,
    TermScorer,
    TermScoreResult,
    apply_hybrid_scores,
    hybrid_score,
    match_strength,
    should_include_item,
    term_score,
)

NO_MATCH_TITLE = "Celebrity fashion week highlights in Paris"
RICH_TITLE = "Semantic code search and context window management for agentic code review"


def test_default_table_has_eight_categories():
    names = [c.name for c in DEFAULT_TERM_CATEGORIES]
    assert len(names) == 8
    assert "security_quality" not in names
    assert dict((c.name, c.weight) for c in DEFAULT_TERM_CATEGORIES)["code_search"] == 1.6


def test_zero_matches_scores_exactly_five():
    result = term_score(NO_MATCH_TITLE, "Designers showed new collections.")

    assert result.term_score == 5
    assert result.primary_category == "none"
    assert result.boost_factor == 1.0
    assert result.matched_terms == ()


def test_rich_text_scores_high_and_bounded():
    result = term_score(RICH_TITLE, "Retrieval over a large codebase with embedding models")

    assert 0 <= result.term_score <= 10
    assert result.term_score > 7
    assert "code search" in result.matched_terms
    assert len(result.matched_terms) <= 10
    assert 1.0 < result.boost_factor <= 1.5


def test_tags_are_part_of_the_text():
    without_tags = term_score("Weekly roundup", "")
    with_tags = term_score("Weekly roundup", "", ["monorepo"])

    assert without_tags.primary_category == "none"
    assert with_tags.primary_category == "enterprise_codebases"


@pytest.mark.parametrize("text,term,expected", [
    ("fast code search tools", "code search", 1.0),
    ("we use git daily", "git", 1.0),
    ("code - search is hard", "code search", 0.95),
    ("code and search", "code search", 0.8),
    ("search the code", "code search", 0.6),
    ("just code", "code search", 0.0),
    ("coding agents with embeddings", "agent", 1.0),
    ("agentic workflows", "workflow", 1.0),
])
def test_match_strength_tiers(text, term, expected):
    assert match_strength(text, term) == expected


def test_inflected_terms_match():
    """Test plurals and inflections still count as term matches."""
    result = term_score("Coding agents with embeddings", "")

    assert {"agent", "embedding"} <= set(result.matched_terms)
    assert result.primary_category in {"agentic_systems", "information_retrieval"}
    # Two categories, two matches: floor of 3 + 1.5 * 2 + 0.5 * 2
    assert result.term_score == pytest.approx(7.0)
    assert should_include_item(3, result.term_score) is True


def test_optional_security_category():
    categories = DEFAULT_TERM_CATEGORIES + (SECURITY_QUALITY_CATEGORY,)

    default = term_score("Reducing technical debt", "")
    extended = term_score("Reducing technical debt", "", categories=categories)

    assert default.primary_category == "none"
    assert extended.primary_category == "security_quality"


@pytest.mark.parametrize("title", [NO_MATCH_TITLE, RICH_TITLE, "Monorepo tips", ""])
def test_hybrid_keeps_high_llm_contribution(title):
    """Test a high LLM score never blends below its 70% share."""
    result = hybrid_score(8, title, "")
    assert result.final_score >= 8 * 0.7
    assert 0 <= result.final_score <= 10


def test_hybrid_blend_without_boost():
    result = hybrid_score(6, NO_MATCH_TITLE, "")
    assert result.final_score == pytest.approx(6 * 0.7 + 5 * 0.3)


def test_hybrid_floor_for_strong_terms_and_weak_llm():
    result = hybrid_score(1, RICH_TITLE, "")
    assert result.breakdown.term_score > 7
    assert result.final_score >= 5


def test_hybrid_is_clamped():
    assert hybrid_score(10, RICH_TITLE, "").final_score == 10


@pytest.mark.parametrize("llm,term,expected", [
    (8, 0, True),
    (5, 7, True),
    (3, 2, False),
    (6, 4, True),
    (5, 3, True),
    (5.9, 2.9, False),
    (4, 6.9, False),
])
def test_should_include_item(llm, term, expected):
    assert should_include_item(llm, term) is expected


def test_should_include_respects_min_threshold():
    assert should_include_item(5, 3, min_threshold=5) is True
    assert should_include_item(5, 3, min_threshold=5.5) is False


def test_term_scorer_keys_by_id(make_item):
    items = [make_item("a", title=RICH_TITLE), make_item("b", title=NO_MATCH_TITLE)]

    results = TermScorer().score_items(items)

    assert set(results) == {"a", "b"}
    assert results["b"].term_score == 5


def test_apply_hybrid_scores_filters_and_rescores(make_item, make_scored):
    strong = make_scored(make_item("strong", title=RICH_TITLE), 9, "great")
    weak = make_scored(make_item("weak", title=NO_MATCH_TITLE), 3, "meh")

    result = apply_hybrid_scores([weak, strong])

    assert [s.id for s in result] == ["strong"]
    assert result[0].reasoning == "great"
    assert result[0].score == hybrid_score(9, RICH_TITLE, "").final_score


def test_hybrid_uses_precomputed_breakdown():
    breakdown = TermScoreResult(
        term_score=9.0, matched_terms=("code search",), primary_category="code_search", boost_factor=1.2
    )

    result = hybrid_score(3, NO_MATCH_TITLE, "", breakdown=breakdown)

    assert result.breakdown is breakdown
    assert result.final_score == pytest.approx(max(5.0, (3 * 0.7 + 9 * 0.3) * 1.2))


def test_apply_hybrid_scores_reuses_term_scores(make_item, make_scored):
    """Test stored term scores drive admission instead of re-scoring the text."""
    entry = make_scored(make_item("x", title=NO_MATCH_TITLE), 3, "meh")
    stored = TermScoreResult(
        term_score=8.0, matched_terms=("monorepo",), primary_category="enterprise_codebases", boost_factor=1.1
    )

    assert apply_hybrid_scores([entry]) == []

    [kept] = apply_hybrid_scores([entry], term_scores={"x": stored})
    assert kept.score == hybrid_score(3, NO_MATCH_TITLE, "", breakdown=stored).final_score
