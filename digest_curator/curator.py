"""
LLM curation of candidate items.

Items are partitioned into curation categories by feed and URL, batched,
and each batch is rated by a text-completion service against the
category's rubric. Batches run concurrently; a failing batch is logged and
skipped without affecting the others.
"""

import asyncio
import math
import re
from dataclasses import dataclass, field
from typing import Any

import orjson

from .config import Settings
from .errors import ResponseParseError
from .ingest.items import CandidateItem, ScoredItem
from .logging import LoggingMixin, PerformanceLogger, PipelineStage, log_error, log_processing_stage
from .models.llm_client import CompletionService
from .processing.text_utils import clean_html_text
from .rubrics import INTERNAL_LINK_NOTE, ITEMS_HEADER, build_system_prompt
from .utils import chunk_list, is_internal_redirect, truncate_text

DEFAULT_BATCH_SIZE = 15
DEFAULT_MAX_CONCURRENCY = 4
SUMMARY_CHARS = 500

CURATION_CATEGORIES = (
    "research", "newsletter", "community", "industry", "product", "competitive", "ai_insights",
)


@dataclass(frozen=True)
class CurationRule:
    """Send items whose feed or URL contains a marker to ``category``."""
    category: str
    feed_markers: tuple[str, ...] = ()
    url_markers: tuple[str, ...] = ()
    papers: bool = False

    def matches(self, item: CandidateItem) -> bool:
        if self.papers and item.is_paper:
            return True
        feed = item.origin_feed.lower()
        if any(marker in feed for marker in self.feed_markers):
            return True
        url = item.url.lower()
        return any(marker in url for marker in self.url_markers)


DEFAULT_CURATION_RULES: tuple[CurationRule, ...] = (
    CurationRule("research", ("arxiv", "cs.ai", "cs.ir"), ("arxiv.org",), papers=True),
    CurationRule("newsletter", ("tldr", "pragmatic", "byte byte", "pointer", "architecture", "leadership")),
    CurationRule("community", ("reddit", "devops", "vibecoding"), ("reddit.com",)),
    CurationRule("product", ("github", "changelog")),
    CurationRule("ai_insights", ("llm watch", "ai daily", "made by agents", "latent space", "a16z")),
    CurationRule("competitive", ("openai", "anthropic", "cursor", "codeium", "amp news")),
)

FALLBACK_CATEGORY = "industry"


def categorize(item: CandidateItem, rules: tuple[CurationRule, ...] = DEFAULT_CURATION_RULES) -> str:
    """Curation category of an item: first matching rule, else industry."""
    for rule in rules:
        if rule.matches(item):
            return rule.category
    return FALLBACK_CATEGORY


@dataclass(frozen=True)
class Rating:
    """One rating row from a completion response."""
    id: str
    score: float
    reasoning: str


@dataclass
class RatingsParse:
    """Result of parsing a completion response: ratings or an error."""
    ok: bool
    ratings: list[Rating] = field(default_factory=list)
    error: ResponseParseError | None = None

    @classmethod
    def failure(cls, message: str) -> "RatingsParse":
        return cls(ok=False, error=ResponseParseError(message))


_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def _load_json(text: str) -> Any:
    cleaned = _FENCE_RE.sub("", text).strip()
    try:
        return orjson.loads(cleaned)
    except orjson.JSONDecodeError:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            raise
        return orjson.loads(cleaned[start:end + 1])


def parse_ratings(text: str) -> RatingsParse:
    """Parse a ``{"ratings": [...]}`` response.

    Tolerates markdown code fences and surrounding prose. Scores are
    coerced to float and clamped to [0, 10]; malformed rows are skipped.
    """
    if not text or not text.strip():
        return RatingsParse.failure("Empty response")

    try:
        data = _load_json(text)
    except orjson.JSONDecodeError as e:
        return RatingsParse.failure(f"Invalid JSON: {e}")

    if not isinstance(data, dict) or not isinstance(data.get("ratings"), list):
        return RatingsParse.failure("Response has no ratings array")

    ratings = []
    for row in data["ratings"]:
        if not isinstance(row, dict) or row.get("id") in (None, ""):
            continue
        try:
            score = float(row.get("score"))
        except (TypeError, ValueError):
            continue
        if not math.isfinite(score):
            continue
        ratings.append(Rating(
            id=str(row["id"]),
            score=min(10.0, max(0.0, score)),
            reasoning=str(row.get("reasoning") or ""),
        ))

    return RatingsParse(ok=True, ratings=ratings)


@dataclass
class BatchOutcome:
    """What happened to one curation batch."""
    category: str
    index: int
    size: int
    scored: list[ScoredItem] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Curator(LoggingMixin):
    """Rates candidate items with a text-completion service."""

    def __init__(
        self,
        completion: CompletionService,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        rules: tuple[CurationRule, ...] = DEFAULT_CURATION_RULES,
    ):
        if batch_size < 1 or max_concurrency < 1:
            raise ValueError("batch_size and max_concurrency must be at least 1")
        self.completion = completion
        self.batch_size = batch_size
        self.max_concurrency = max_concurrency
        self.rules = rules

    @classmethod
    def from_settings(cls, settings: Settings, completion: CompletionService) -> "Curator":
        return cls(completion, batch_size=settings.batch_size, max_concurrency=settings.max_concurrency)

    def partition(self, items: list[CandidateItem]) -> dict[str, list[CandidateItem]]:
        """Group items by curation category, preserving input order."""
        groups: dict[str, list[CandidateItem]] = {name: [] for name in CURATION_CATEGORIES}
        for item in items:
            groups.setdefault(categorize(item, self.rules), []).append(item)
        return groups

    @staticmethod
    def batch_payload(batch: list[CandidateItem]) -> list[dict[str, Any]]:
        """Prompt-ready view of a batch."""
        payload = []
        for item in batch:
            original_url = item.original_url
            summary = item.body_text if item.is_paper else truncate_text(
                clean_html_text(item.body_text), SUMMARY_CHARS
            )
            entry: dict[str, Any] = {
                "id": item.id,
                "title": item.title,
                "summary": summary,
                "source": item.source_kind.value,
                "feed": item.origin_feed or ("Academic Paper" if item.is_paper else ""),
                "tags": sorted(item.tags),
                "url": original_url,
            }
            if is_internal_redirect(item.url) and original_url == item.url:
                entry["note"] = INTERNAL_LINK_NOTE
            payload.append(entry)
        return payload

    def build_user_prompt(self, batch: list[CandidateItem]) -> str:
        body = orjson.dumps(self.batch_payload(batch), option=orjson.OPT_INDENT_2).decode()
        return f"{ITEMS_HEADER}\n{body}\n"

    async def _curate_batch(
        self,
        category: str,
        index: int,
        batch: list[CandidateItem],
        semaphore: asyncio.Semaphore,
    ) -> BatchOutcome:
        outcome = BatchOutcome(category=category, index=index, size=len(batch))

        async with semaphore:
            try:
                response = await self.completion.complete(
                    build_system_prompt(category), self.build_user_prompt(batch)
                )
            except Exception as e:
                outcome.error = str(e) or e.__class__.__name__
                self.logger.warning(
                    "Curation batch failed",
                    **log_error(e, context="completion", category=category, batch=index),
                )
                return outcome

        parsed = parse_ratings(response)
        if not parsed.ok:
            outcome.error = str(parsed.error)
            self.logger.warning(
                "Failed to parse curation response",
                category=category,
                batch=index,
                error=outcome.error,
                response=truncate_text(response or "", 200),
            )
            return outcome

        by_id = {item.id: item for item in batch}
        seen: set[str] = set()
        for rating in parsed.ratings:
            item = by_id.get(rating.id)
            if item is None or rating.id in seen:
                continue
            seen.add(rating.id)
            outcome.scored.append(ScoredItem(item=item, score=rating.score, reasoning=rating.reasoning))

        unknown = sum(1 for r in parsed.ratings if r.id not in by_id)
        if unknown or len(seen) < len(batch):
            self.logger.debug(
                "Partial curation batch",
                category=category,
                batch=index,
                unknown_ids=unknown,
                missing=len(batch) - len(seen),
            )

        return outcome

    async def curate_batches(self, items: list[CandidateItem]) -> list[BatchOutcome]:
        """Run every batch and return one outcome per batch."""
        groups = self.partition(items)
        self.logger.info(
            "Items by curation category",
            **{name: len(group) for name, group in groups.items()},
        )

        semaphore = asyncio.Semaphore(self.max_concurrency)
        tasks = [
            self._curate_batch(category, index, batch, semaphore)
            for category, group in groups.items()
            for index, batch in enumerate(chunk_list(group, self.batch_size))
        ]
        return list(await asyncio.gather(*tasks))

    async def curate(self, items: list[CandidateItem]) -> list[ScoredItem]:
        """Rate items; returns scored items sorted by score, highest first."""
        if not items:
            return []

        with PerformanceLogger(PipelineStage.CURATION, self.logger, item_count=len(items)) as perf:
            outcomes = await self.curate_batches(items)

        results = [scored for outcome in outcomes for scored in outcome.scored]
        results.sort(key=lambda s: s.score, reverse=True)

        failed = [o for o in outcomes if not o.ok]
        self.logger.info(
            "Curation complete",
            **log_processing_stage(
                PipelineStage.CURATION, len(items), len(results), perf.duration,
                batches=len(outcomes), failed_batches=len(failed),
            ),
        )
        return results
