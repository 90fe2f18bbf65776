"""
Bucket assembly for the final digest selection.

Items are routed to exactly one bucket by an ordered list of
predicate -> label rules (first match wins), then each bucket keeps only
items at or above its own threshold, sorted by score.
"""

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..config import DEFAULT_BUCKET_THRESHOLDS, DEFAULT_COMPETITORS, DEFAULT_INTERNAL_EXCLUSIONS
from ..feeds import FeedMetadataTable, NewsletterCategory
from ..ingest.items import ScoredItem
from ..logging import PipelineStage, get_logger, log_processing_stage
from ..utils import extract_domain

logger = get_logger(__name__)

# Rendering priority
BUCKET_ORDER = (
    "research",
    "competitive",
    "product_updates",
    "newsletter",
    "ai_insights",
    "community",
    "industry",
)

RESEARCH_MARKERS = ("arxiv", "cs.ai", "cs.ir")
COMMUNITY_DOMAINS = ("reddit.com", "news.ycombinator.com", "lobste.rs")


@dataclass
class BucketContext:
    """Lookups available to bucket predicates."""
    feed_metadata: FeedMetadataTable = field(default_factory=FeedMetadataTable)
    competitors: tuple[str, ...] = tuple(DEFAULT_COMPETITORS)
    internal_exclusions: tuple[str, ...] = tuple(DEFAULT_INTERNAL_EXCLUSIONS)

    def newsletter_category(self, scored: ScoredItem) -> NewsletterCategory | None:
        meta = self.feed_metadata.lookup(scored.item.origin_feed)
        return meta.newsletter_category if meta else None


Predicate = Callable[[ScoredItem, BucketContext], bool]


@dataclass(frozen=True)
class BucketRule:
    """Route items matching ``predicate`` to ``label``; ``None`` drops them."""
    label: str | None
    predicate: Predicate


@dataclass
class Bucket:
    """Named output group with its own inclusion threshold."""
    name: str
    threshold: float
    items: list[ScoredItem] = field(default_factory=list)


def _mentions(text: str, term: str) -> bool:
    return re.search(r'(?<!\w)' + re.escape(term.lower()) + r'(?!\w)', text) is not None


def is_internal(scored: ScoredItem, ctx: BucketContext) -> bool:
    item = scored.item
    text = f"{item.title} {item.origin_feed} {item.url}".lower()
    return any(term.lower() in text for term in ctx.internal_exclusions)


def is_research(scored: ScoredItem, ctx: BucketContext) -> bool:
    item = scored.item
    if item.is_paper:
        return True
    feed = item.origin_feed.lower()
    if any(marker in feed for marker in RESEARCH_MARKERS):
        return True
    if ctx.newsletter_category(scored) == NewsletterCategory.ARXIV_RESEARCH:
        return True
    return "arxiv.org" in item.url.lower()


def is_newsletter(scored: ScoredItem, ctx: BucketContext) -> bool:
    return ctx.newsletter_category(scored) == NewsletterCategory.DEVELOPER_NEWSLETTERS


def is_community(scored: ScoredItem, ctx: BucketContext) -> bool:
    if ctx.newsletter_category(scored) == NewsletterCategory.DEVELOPER_COMMUNITIES:
        return True
    domain = extract_domain(scored.item.original_url)
    if any(domain == d or domain.endswith("." + d) for d in COMMUNITY_DOMAINS):
        return True
    return "reddit" in scored.item.origin_feed.lower()


def is_ai_insight(scored: ScoredItem, ctx: BucketContext) -> bool:
    return ctx.newsletter_category(scored) == NewsletterCategory.AI_ARTICLES


def is_product_update(scored: ScoredItem, ctx: BucketContext) -> bool:
    return ctx.newsletter_category(scored) == NewsletterCategory.CODING_PRODUCT_UPDATES


def is_competitive(scored: ScoredItem, ctx: BucketContext) -> bool:
    item = scored.item
    text = " ".join([item.title, item.origin_feed, *sorted(item.tags)]).lower()
    return any(_mentions(text, name) for name in ctx.competitors)


DEFAULT_BUCKET_RULES: tuple[BucketRule, ...] = (
    BucketRule(None, is_internal),
    BucketRule("research", is_research),
    BucketRule("newsletter", is_newsletter),
    BucketRule("community", is_community),
    BucketRule("ai_insights", is_ai_insight),
    BucketRule("product_updates", is_product_update),
    BucketRule("competitive", is_competitive),
    BucketRule("industry", lambda scored, ctx: True),
)


def route(
    scored: ScoredItem,
    ctx: BucketContext,
    rules: Iterable[BucketRule] = DEFAULT_BUCKET_RULES,
) -> str | None:
    """Label of the first matching rule; ``None`` when excluded or unmatched."""
    for rule in rules:
        if rule.predicate(scored, ctx):
            return rule.label
    return None


@dataclass
class DigestSelection:
    """Final ranked, bucketed selection."""
    buckets: dict[str, Bucket]
    excluded: list[ScoredItem] = field(default_factory=list)
    below_threshold: list[ScoredItem] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not any(bucket.items for bucket in self.buckets.values())

    @property
    def total_items(self) -> int:
        return sum(len(bucket.items) for bucket in self.buckets.values())

    def as_mapping(self) -> dict[str, list[ScoredItem]]:
        return {name: list(bucket.items) for name, bucket in self.buckets.items()}

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {
            name: [scored.to_entry().to_dict() for scored in bucket.items]
            for name, bucket in self.buckets.items()
        }


class BucketAssembler:
    """Route scored items into mutually exclusive, thresholded buckets."""

    def __init__(
        self,
        feed_metadata: FeedMetadataTable | None = None,
        thresholds: Mapping[str, float] | None = None,
        competitors: Iterable[str] | None = None,
        internal_exclusions: Iterable[str] | None = None,
        rules: tuple[BucketRule, ...] = DEFAULT_BUCKET_RULES,
    ):
        self.thresholds = {**DEFAULT_BUCKET_THRESHOLDS, **(thresholds or {})}
        self.rules = rules
        self.context = BucketContext(
            feed_metadata=feed_metadata or FeedMetadataTable(),
            competitors=tuple(DEFAULT_COMPETITORS if competitors is None else competitors),
            internal_exclusions=tuple(
                DEFAULT_INTERNAL_EXCLUSIONS if internal_exclusions is None else internal_exclusions
            ),
        )

    def _bucket_names(self) -> list[str]:
        labels = [rule.label for rule in self.rules if rule.label]
        names = [name for name in BUCKET_ORDER if name in labels]
        return names + [label for label in labels if label not in names]

    def assemble(self, items: list[ScoredItem]) -> DigestSelection:
        """Build the selection. Every bucket name is present, possibly empty."""
        buckets = {
            name: Bucket(name=name, threshold=self.thresholds.get(name, 0.0))
            for name in self._bucket_names()
        }
        selection = DigestSelection(buckets=buckets)

        for scored in items:
            label = route(scored, self.context, self.rules)
            if label is None:
                selection.excluded.append(scored)
                continue

            bucket = buckets[label]
            if scored.score >= bucket.threshold:
                bucket.items.append(scored)
            else:
                selection.below_threshold.append(scored)

        for bucket in buckets.values():
            bucket.items.sort(key=lambda s: s.score, reverse=True)

        logger.info(
            "Buckets assembled",
            **log_processing_stage(
                PipelineStage.ASSEMBLE, len(items), selection.total_items,
                excluded=len(selection.excluded),
                below_threshold=len(selection.below_threshold),
                bucket_counts={name: len(b.items) for name, b in buckets.items()},
            ),
        )
        return selection


def assemble(
    items: list[ScoredItem],
    feed_metadata: FeedMetadataTable | None = None,
    thresholds: Mapping[str, float] | None = None,
    competitors: Iterable[str] | None = None,
    internal_exclusions: Iterable[str] | None = None,
) -> dict[str, list[ScoredItem]]:
    """Bucket items and apply per-bucket thresholds."""
    assembler = BucketAssembler(feed_metadata, thresholds, competitors, internal_exclusions)
    return assembler.assemble(items).as_mapping()
