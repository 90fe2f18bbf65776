"""
Deterministic heuristic scoring for candidate items.

The score is a weighted sum of:
- Source category (where the item came from)
- Content type (launch, security incident, ...)
- Topic tags
- Keyword boost groups matched in title and body

multiplied by an exponential recency decay.
"""

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType

from ..ingest.items import CandidateItem, ContentType
from ..logging import get_logger
from .classifier import DEFAULT_CLASSIFIER_TABLES, ClassifierTables, classify

logger = get_logger(__name__)


class SourceCategory(str, Enum):
    """Kinds of sources, as weighted by the heuristic scorer."""
    COMPETITOR_BLOG = "competitor_blog"
    ENGINEERING_BLOG = "engineering_blog"
    PLATFORM_BLOG = "platform_blog"
    INFRA_BLOG = "infra_blog"
    CURATED_AI = "curated_ai"
    GENERAL = "general"
    PAPER = "paper"


@dataclass(frozen=True)
class BoostGroup:
    """Flat boost added once when any pattern matches."""
    patterns: tuple[str, ...]
    boost: float


def _frozen(mapping: dict[str, float]) -> Mapping[str, float]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class HeuristicWeights:
    """Weight tables for the heuristic scorer."""
    source_type: Mapping[str, float] = field(default_factory=lambda: _frozen({
        'competitor_blog': 3,
        'engineering_blog': 3,
        'platform_blog': 2,
        'infra_blog': 1.5,
        'curated_ai': 1,
        'general': 0.5,
        'paper': 2.5,
    }))
    content_type: Mapping[str, float] = field(default_factory=lambda: _frozen({
        'product_launch': 4,
        'security_incident': 4,
        'feature_update': 3,
        'pricing_business': 3,
        'funding_mna': 3,
        'benchmark_eval': 2,
        'thought_leadership': 0.5,
        'general': 1,
    }))
    axis: Mapping[str, float] = field(default_factory=lambda: _frozen({
        'code_review': 3,
        'context_engine': 3,
        'documentation': 2,
        'agents': 2,
        'governance': 2,
        'retrieval': 1.5,
        'testing': 1.5,
        'vector_db': 1,
        'ide': 1,
        'observability': 1,
    }))
    boosts: tuple[BoostGroup, ...] = (
        BoostGroup(('launch', 'announcing', 'now ga', 'public preview', 'beta', 'integration', 'mcp',
                    'agents', 'langgraph', 'self-hosted', 'on-prem', 'air-gapped'), 3),
        BoostGroup(('context window', 'code graph', 'multi-repo', 'governance', 'sdlc', 'sast',
                    'compliance', 'policy', 'test coverage'), 2),
        BoostGroup(('pricing', 'credits', 'seat', 'per-user', 'enterprise', 'unlimited'), 2),
        BoostGroup(('security', 'vulnerability', 'cve-', 'data exfiltration', 'prompt injection'), 2),
    )
    decay_days: float = 14.0


DEFAULT_HEURISTIC_WEIGHTS = HeuristicWeights()


@dataclass
class HeuristicScore:
    """Complete scoring breakdown for an item."""
    total_score: float
    source_score: float
    content_score: float
    tag_score: float
    boost_score: float
    decay: float
    source_category: str
    reasoning: str


def _key(value: str | Enum) -> str:
    return value.value if isinstance(value, Enum) else str(value)


def decay_reference_date(item: CandidateItem) -> datetime | None:
    """Date used for recency decay: published date, else a paper's year."""
    if item.published_at is not None:
        return item.published_at

    if item.is_paper and item.year:
        try:
            return datetime(int(str(item.year)[:4]), 1, 1, tzinfo=UTC)
        except ValueError:
            return None

    return None


def recency_decay(
    item: CandidateItem,
    now: datetime | None = None,
    decay_days: float = 14.0,
) -> float:
    """Exponential decay ``exp(-age_days / decay_days)``; 1.0 when undated or not in the past."""
    published = decay_reference_date(item)
    if published is None:
        return 1.0

    now = now or datetime.now(UTC)
    age_days = (now - published).total_seconds() / 86400
    if age_days <= 0:
        return 1.0

    return math.exp(-age_days / decay_days)


def heuristic_score(
    item: CandidateItem,
    source_category: str | SourceCategory,
    content_type: str | ContentType,
    tags: Iterable[str],
    weights: HeuristicWeights = DEFAULT_HEURISTIC_WEIGHTS,
    now: datetime | None = None,
) -> float:
    """Weighted-sum heuristic score with recency decay.

    Unknown categories, content types and tags contribute 0.
    """
    return _breakdown(item, source_category, content_type, tags, weights, now).total_score


def _breakdown(
    item: CandidateItem,
    source_category: str | SourceCategory,
    content_type: str | ContentType,
    tags: Iterable[str],
    weights: HeuristicWeights,
    now: datetime | None,
) -> HeuristicScore:
    source_key = _key(source_category)
    source_score = weights.source_type.get(source_key, 0.0)
    content_score = weights.content_type.get(_key(content_type), 0.0)
    tag_score = sum(weights.axis.get(tag, 0.0) for tag in set(tags))

    text = f"{item.title} {item.body_text}".lower()
    boost_score = sum(
        group.boost for group in weights.boosts
        if any(pattern in text for pattern in group.patterns)
    )

    decay = recency_decay(item, now, weights.decay_days)
    total = (source_score + content_score + tag_score + boost_score) * decay

    reasoning = " | ".join([
        f"Source ({source_key}): {source_score:.1f}",
        f"Content ({_key(content_type)}): {content_score:.1f}",
        f"Tags: {tag_score:.1f}",
        f"Boosts: {boost_score:.1f}",
        f"Decay: {decay:.3f}",
    ])

    return HeuristicScore(
        total_score=total,
        source_score=source_score,
        content_score=content_score,
        tag_score=tag_score,
        boost_score=boost_score,
        decay=decay,
        source_category=source_key,
        reasoning=reasoning,
    )


def infer_source_category(item: CandidateItem) -> SourceCategory:
    """Guess the source category from reader labels, then the feed name."""
    if item.is_paper:
        return SourceCategory.PAPER

    labels = {label.lower() for label in item.labels}
    if labels & {'competitors', 'competition'}:
        return SourceCategory.COMPETITOR_BLOG
    if labels & {'engineering', 'dev blogs'}:
        return SourceCategory.ENGINEERING_BLOG
    if labels & {'ai', 'research'}:
        return SourceCategory.CURATED_AI

    feed = item.origin_feed.lower()
    if 'platform' in feed:
        return SourceCategory.PLATFORM_BLOG
    if 'blog' in feed or 'engineering' in feed:
        return SourceCategory.ENGINEERING_BLOG

    return SourceCategory.GENERAL


class HeuristicScorer:
    """Heuristic relevance scorer for candidate items."""

    def __init__(
        self,
        weights: HeuristicWeights | None = None,
        tables: ClassifierTables = DEFAULT_CLASSIFIER_TABLES,
        now: datetime | None = None,
    ):
        self.weights = weights or DEFAULT_HEURISTIC_WEIGHTS
        self.tables = tables
        self.now = now

    def score_item(self, item: CandidateItem) -> HeuristicScore:
        """Score one item, classifying it first if needed."""
        if item.content_type is None:
            result = classify(item.title, item.body_text, self.tables)
            content_type, tags = result.content_type, set(item.tags) | set(result.tags)
        else:
            content_type, tags = item.content_type, item.tags

        return _breakdown(
            item, infer_source_category(item), content_type, tags, self.weights, self.now
        )

    def score_items(self, items: list[CandidateItem]) -> list[CandidateItem]:
        """Attach heuristic scores and rank items (descending)."""
        logger.info("Heuristic scoring items", count=len(items))

        if not items:
            return []

        scored = [
            item.model_copy(update={"score": self.score_item(item).total_score})
            for item in items
        ]
        scored.sort(key=lambda i: i.score, reverse=True)

        logger.info("Heuristic scoring complete", top_score=round(scored[0].score, 3))
        return scored
