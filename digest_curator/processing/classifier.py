"""
Rule-based content classification.

Assigns each item a single content type (first matching rule in a fixed
priority order) and any number of topic tags (every matching topic).
"""

from collections.abc import Iterable
from dataclasses import dataclass

from ..ingest.items import CandidateItem, ContentType
from ..logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClassificationResult:
    """Content type plus topic tags for one item."""
    content_type: ContentType
    tags: frozenset[str]


@dataclass(frozen=True)
class ClassifierTables:
    """Keyword tables driving the classifier.

    ``content_types`` is ordered: earlier entries win.
    """
    content_types: tuple[tuple[ContentType, tuple[str, ...]], ...]
    topic_tags: tuple[tuple[str, tuple[str, ...]], ...]
    tutorial_markers: tuple[str, ...] = ("how to", "tutorial")


DEFAULT_CLASSIFIER_TABLES = ClassifierTables(
    content_types=(
        (ContentType.PRODUCT_LAUNCH, (
            'launch', 'introducing', 'announcing', 'now ga', 'public preview', 'beta',
            'generally available', 'now available', 'released',
        )),
        (ContentType.FEATURE_UPDATE, (
            'new integration', 'support for', 'now supports', 'mcp', 'langgraph', 'agents',
            'multi-repo', 'context window', 'code graph', 'self-hosted', 'update',
        )),
        (ContentType.PRICING_BUSINESS, (
            'pricing', 'plans', 'credits', 'free tier', 'enterprise', 'seat', 'per-user',
            'license', 'billing', 'usage based',
        )),
        (ContentType.SECURITY_INCIDENT, (
            'security', 'vulnerability', 'cve-', 'incident', 'breach', 'exploit',
            'remote code execution', ' rce ', 'supply chain', 'security advisory',
        )),
        (ContentType.FUNDING_MNA, (
            'raises', 'series a', 'series b', 'seed round', 'acquired', 'acquisition',
            'joins', 'merger',
        )),
        (ContentType.BENCHMARK_EVAL, (
            'benchmark', 'throughput', 'latency', 'tokens/sec', 'quality evaluation',
            'win-rate', 'comparison', 'beat', 'outperforms',
        )),
        (ContentType.THOUGHT_LEADERSHIP, (
            'future of', 'why x matters', 'guide to', 'best practices', 'lessons learned',
            'deep dive',
        )),
    ),
    topic_tags=(
        ('code_review', ('pr', 'pull request', 'merge request', 'code review', 'review agent')),
        ('documentation', ('documentation', 'docs', 'docstrings', 'api reference')),
        ('retrieval', ('rag', 'retrieval', 'vector', 'embedding', 'index', 'pinecone', 'weaviate', 'qdrant')),
        ('agents', ('agent', 'agentic', 'langgraph', 'mcp', 'autonomous')),
        ('ide', ('ide', 'vscode', 'jetbrains', 'editor', 'plugin', 'extension')),
        ('testing', ('testing', 'unit test', 'integration test', 'test coverage')),
        ('observability', ('observability', 'monitoring', 'tracing', 'metrics')),
        ('governance', ('governance', 'compliance', 'audit', 'policy')),
    ),
)


def classify(
    title: str,
    body_text: str,
    tables: ClassifierTables = DEFAULT_CLASSIFIER_TABLES,
) -> ClassificationResult:
    """Classify raw text into a content type and topic tags.

    Matching is plain substring search over the lowercased
    ``title + " " + body_text``.
    """
    text = f"{title or ''} {body_text or ''}".lower()

    content_type = ContentType.GENERAL
    for candidate, keywords in tables.content_types:
        if any(keyword in text for keyword in keywords):
            content_type = candidate
            break

    if content_type == ContentType.GENERAL and any(m in text for m in tables.tutorial_markers):
        content_type = ContentType.THOUGHT_LEADERSHIP

    tags = frozenset(
        tag for tag, keywords in tables.topic_tags
        if any(keyword in text for keyword in keywords)
    )

    return ClassificationResult(content_type=content_type, tags=tags)


def classify_items(
    items: Iterable[CandidateItem],
    tables: ClassifierTables = DEFAULT_CLASSIFIER_TABLES,
) -> list[CandidateItem]:
    """Classify items and attach the result.

    Returns copies: ``content_type`` is set and the classifier tags are
    merged into any tags the item already carried.
    """
    classified = []
    for item in items:
        result = classify(item.title, item.body_text, tables)
        classified.append(item.model_copy(update={
            "content_type": result.content_type,
            "tags": set(item.tags) | set(result.tags),
        }))

    logger.debug("Classified items", count=len(classified))
    return classified
