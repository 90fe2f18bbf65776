"""Tests for the heuristic scorer."""

import math
from datetime import UTC, datetime, timedelta

import pytest

from digest_curator.ingest.items import ContentType
from digest_curator.processing.scoring import (
    HeuristicScorer,
    HeuristicWeights,
    SourceCategory,
    heuristic_score,
    infer_source_category,
    recency_decay,
)

NOW = datetime(2025, 7, 1, 12, 0, tzinfo=UTC)


def test_weighted_sum_without_decay(make_item):
    """Test source + content + tag weights add up."""
    item = make_item(title="Quiet notes", published_at=NOW)

    score = heuristic_score(
        item, SourceCategory.COMPETITOR_BLOG, ContentType.FEATURE_UPDATE, {"code_review", "ide"}, now=NOW
    )

    assert score == pytest.approx(3 + 3 + 3 + 1)


def test_recency_decay_after_fourteen_days(make_item):
    """Test an item 14 days old is scaled by exp(-1)."""
    fresh = make_item(title="Quiet notes", published_at=NOW)
    old = make_item(title="Quiet notes", published_at=NOW - timedelta(days=14))

    base = heuristic_score(fresh, "general", "general", [], now=NOW)
    decayed = heuristic_score(old, "general", "general", [], now=NOW)

    assert base == pytest.approx(1.5)
    assert decayed == pytest.approx(base * math.exp(-1))
    assert decayed / base == pytest.approx(0.3679, abs=1e-4)


def test_future_dates_do_not_decay(make_item):
    item = make_item(published_at=NOW + timedelta(days=3))
    assert recency_decay(item, now=NOW) == 1.0


def test_undated_article_skips_decay(make_item):
    item = make_item(published_at=None, ingested_at=NOW - timedelta(days=100))
    assert recency_decay(item, now=NOW) == 1.0


def test_paper_year_fallback(make_paper):
    """Test papers without a date decay from January 1st of their year."""
    paper = make_paper(published_at=None, ingested_at=NOW, year="2025")

    expected_age = (NOW - datetime(2025, 1, 1, tzinfo=UTC)).total_seconds() / 86400
    assert recency_decay(paper, now=NOW) == pytest.approx(math.exp(-expected_age / 14))


def test_unparsable_paper_year_skips_decay(make_paper):
    paper = make_paper(published_at=None, ingested_at=NOW, year="unknown")
    assert recency_decay(paper, now=NOW) == 1.0


def test_unknown_keys_contribute_nothing(make_item):
    item = make_item(title="Quiet notes", published_at=NOW)
    assert heuristic_score(item, "mystery", "unknown", ["not_a_tag"], now=NOW) == 0


def test_boost_group_counts_once(make_item):
    """Test several patterns from one group add its boost once."""
    item = make_item(title="Announcing the launch of a public preview", published_at=NOW)

    score = heuristic_score(item, "general", "general", [], now=NOW)

    assert score == pytest.approx(1.5 + 3)


def test_multiple_boost_groups(make_item):
    item = make_item(
        title="Announcing enterprise pricing",
        body_text="Includes a prompt injection fix",
        published_at=NOW,
    )

    score = heuristic_score(item, "general", "general", [], now=NOW)

    assert score == pytest.approx(1.5 + 3 + 2 + 2)


def test_custom_weights(make_item):
    weights = HeuristicWeights(source_type={"general": 10}, content_type={}, axis={}, boosts=())
    item = make_item(title="Announcing things", published_at=NOW)

    assert heuristic_score(item, "general", "general", ["agents"], weights, now=NOW) == 10


def test_infer_source_category(make_item, make_paper):
    assert infer_source_category(make_paper()) == SourceCategory.PAPER
    assert infer_source_category(make_item(labels=["Competitors"])) == SourceCategory.COMPETITOR_BLOG
    assert infer_source_category(make_item(labels=["dev blogs"])) == SourceCategory.ENGINEERING_BLOG
    assert infer_source_category(make_item(labels=["AI"])) == SourceCategory.CURATED_AI
    assert infer_source_category(make_item(origin_feed="Engineering at Acme")) == SourceCategory.ENGINEERING_BLOG
    assert infer_source_category(make_item(origin_feed="Acme Platform News")) == SourceCategory.PLATFORM_BLOG
    assert infer_source_category(make_item(origin_feed="Tech Weekly")) == SourceCategory.GENERAL


def test_scorer_attaches_scores_and_sorts(make_item):
    items = [
        make_item("low", title="Quiet notes", published_at=NOW),
        make_item("high", title="Announcing enterprise pricing for review agents", published_at=NOW),
    ]

    ranked = HeuristicScorer(now=NOW).score_items(items)

    assert [i.id for i in ranked] == ["high", "low"]
    assert all(i.score is not None for i in ranked)
    assert ranked[0].score > ranked[1].score
    assert items[0].score is None


def test_scorer_empty_input():
    assert HeuristicScorer().score_items([]) == []
