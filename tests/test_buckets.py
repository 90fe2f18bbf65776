"""Tests for bucket routing and thresholds."""

import pytest

from digest_curator.feeds import FeedMetadataTable
from digest_curator.processing.buckets import (
    BUCKET_ORDER,
    BucketAssembler,
    BucketContext,
    BucketRule,
    assemble,
    route,
)


@pytest.fixture
def feed_metadata():
    return FeedMetadataTable.from_yaml()


@pytest.fixture
def assembler(feed_metadata):
    return BucketAssembler(feed_metadata=feed_metadata)


def test_research_threshold(assembler, make_item, make_scored):
    """Test only research items at or above 7 survive."""
    items = [make_scored(make_item(f"i{n}", title=f"Story {n}"), 5) for n in range(17)]
    items += [
        make_scored(make_item(f"r{score}", title=f"Paper {score}", origin_feed="arXiv cs.AI"), score)
        for score in (8, 9, 4)
    ]
    assert len(items) == 20

    selection = assembler.assemble(items)

    assert [s.id for s in selection.buckets["research"].items] == ["r9", "r8"]


def test_product_updates_use_lower_threshold(assembler, make_item, make_scored):
    product = make_scored(make_item("gh", title="Copilot agent mode", origin_feed="The GitHub Blog"), 4.2)
    general = make_scored(make_item("tw", title="Quiet notes", origin_feed="Tech Weekly"), 6.9)

    selection = assembler.assemble([product, general])

    assert [s.id for s in selection.buckets["product_updates"].items] == ["gh"]
    assert selection.buckets["industry"].items == []
    assert selection.below_threshold == [general]


def test_every_item_lands_in_one_bucket(assembler, make_item, make_scored):
    items = [
        make_scored(make_item("paper", origin_feed="arXiv cs.IR"), 9),
        make_scored(make_item("tldr", origin_feed="TLDR AI"), 9),
        make_scored(make_item("reddit", url="https://www.reddit.com/r/programming/x"), 9),
        make_scored(make_item("latent", origin_feed="Latent Space"), 9),
        make_scored(make_item("cursor", title="Cursor ships background agents"), 9),
        make_scored(make_item("plain", title="Quiet notes"), 9),
    ]

    mapping = assembler.assemble(items).as_mapping()

    placed = [s.id for bucket in mapping.values() for s in bucket]
    assert sorted(placed) == sorted(s.id for s in items)
    assert [s.id for s in mapping["research"]] == ["paper"]
    assert [s.id for s in mapping["newsletter"]] == ["tldr"]
    assert [s.id for s in mapping["community"]] == ["reddit"]
    assert [s.id for s in mapping["ai_insights"]] == ["latent"]
    assert [s.id for s in mapping["competitive"]] == ["cursor"]
    assert [s.id for s in mapping["industry"]] == ["plain"]


def test_internal_items_are_excluded(assembler, make_item, make_scored):
    internal = make_scored(make_item("sg", title="Sourcegraph releases new search"), 10)

    selection = assembler.assemble([internal])

    assert selection.excluded == [internal]
    assert selection.is_empty


def test_competitor_match_is_whole_word(make_item, make_scored):
    ctx = BucketContext()
    assert route(make_scored(make_item(title="Cursor adds agents"), 8), ctx) == "competitive"
    assert route(make_scored(make_item(title="Recursors explained"), 8), ctx) == "industry"


def test_buckets_sorted_and_all_present(assembler, make_item, make_scored):
    items = [make_scored(make_item(f"i{n}", title=f"Story {n}"), 7 + n / 10) for n in range(5)]

    selection = assembler.assemble(items)

    assert list(selection.buckets) == list(BUCKET_ORDER)
    scores = [s.score for s in selection.buckets["industry"].items]
    assert scores == sorted(scores, reverse=True)
    assert selection.total_items == 5
    assert not selection.is_empty


def test_empty_input_is_empty_selection(assembler):
    selection = assembler.assemble([])
    assert selection.is_empty
    assert set(selection.to_dict()) == set(BUCKET_ORDER)


def test_threshold_overrides(feed_metadata, make_item, make_scored):
    item = make_scored(make_item("a", title="Quiet notes"), 6)

    mapping = assemble([item], feed_metadata, thresholds={"industry": 6})

    assert [s.id for s in mapping["industry"]] == ["a"]


def test_custom_rules(make_item, make_scored):
    rules = (
        BucketRule("research", lambda scored, ctx: "paper" in scored.item.title.lower()),
        BucketRule("industry", lambda scored, ctx: True),
    )
    items = [
        make_scored(make_item("p", title="A paper on agents"), 9),
        make_scored(make_item("x", title="Other"), 9),
    ]

    selection = BucketAssembler(rules=rules).assemble(items)

    assert list(selection.buckets) == ["research", "industry"]
    assert [s.id for s in selection.buckets["research"].items] == ["p"]


def test_to_dict_entries(assembler, make_item, make_scored):
    item = make_scored(make_item("a", title="Quiet notes", tags={"b", "a"}), 8.456, "Solid")

    entry = assembler.assemble([item]).to_dict()["industry"][0]

    assert entry["score"] == 8.46
    assert entry["reasoning"] == "Solid"
    assert entry["tags"] == ["a", "b"]
    assert entry["url"] == "https://example.com/a"
