"""Candidate item data model and the file-based item source."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

import orjson
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..logging import PipelineStage, get_logger, log_processing_stage
from ..utils import ensure_utc, extract_original_url, parse_date_string

logger = get_logger(__name__)


class SourceKind(str, Enum):
    """Shape of a candidate item."""
    PAPER = "paper"
    ARTICLE = "article"


class ContentType(str, Enum):
    """Rule-based content type assigned by the classifier."""
    PRODUCT_LAUNCH = "product_launch"
    FEATURE_UPDATE = "feature_update"
    PRICING_BUSINESS = "pricing_business"
    SECURITY_INCIDENT = "security_incident"
    FUNDING_MNA = "funding_mna"
    BENCHMARK_EVAL = "benchmark_eval"
    THOUGHT_LEADERSHIP = "thought_leadership"
    GENERAL = "general"


class CandidateItem(BaseModel):
    """A single article or paper eligible for curation."""

    id: str
    title: str
    url: str
    body_text: str = ""
    published_at: datetime | None = None
    ingested_at: datetime | None = None
    year: str | None = None
    origin_feed: str = ""
    source_kind: SourceKind = SourceKind.ARTICLE
    tags: set[str] = Field(default_factory=set)
    labels: list[str] = Field(default_factory=list)
    content_type: ContentType | None = None
    score: float | None = None
    company: str | None = None

    @field_validator("id", "title", "url")
    @classmethod
    def require_text(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("published_at", "ingested_at", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> datetime | None:
        """Parse timestamps leniently; unparsable values become None."""
        if v is None or v == "":
            return None
        if isinstance(v, datetime):
            return ensure_utc(v)
        if isinstance(v, (int, float)):
            return datetime.fromtimestamp(v, tz=UTC)
        return parse_date_string(str(v))

    @model_validator(mode="after")
    def require_timestamp(self) -> "CandidateItem":
        if self.published_at is None and self.ingested_at is None:
            raise ValueError("item needs a parseable published_at or ingested_at")
        return self

    @property
    def is_paper(self) -> bool:
        return self.source_kind == SourceKind.PAPER

    @property
    def original_url(self) -> str:
        """URL of the underlying story, de-proxied where detectable."""
        return extract_original_url(self.url, self.body_text)


@dataclass
class ScoredItem:
    """A candidate item with a relevance score and rationale."""
    item: CandidateItem
    score: float
    reasoning: str = ""

    @property
    def id(self) -> str:
        return self.item.id

    def to_entry(self) -> "BucketEntry":
        return BucketEntry(
            title=self.item.title,
            url=self.item.original_url,
            score=self.score,
            reasoning=self.reasoning,
            feed_name=self.item.origin_feed,
            tags=sorted(self.item.tags),
        )


@dataclass
class BucketEntry:
    """What the rendering layer sees of a selected item."""
    title: str
    url: str
    score: float
    reasoning: str
    feed_name: str
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "score": round(self.score, 2),
            "reasoning": self.reasoning,
            "feed_name": self.feed_name,
            "tags": self.tags,
        }


# Field aliases accepted from upstream stores and feed readers
_FIELD_ALIASES = {
    "bodyText": "body_text",
    "summary": "body_text",
    "abstract": "body_text",
    "content": "body_text",
    "publishedAt": "published_at",
    "ingestedAt": "ingested_at",
    "feedName": "origin_feed",
    "originFeed": "origin_feed",
    "feed": "origin_feed",
    "sourceKind": "source_kind",
    "contentType": "content_type",
}

_SOURCE_ALIASES = {
    "ads": SourceKind.PAPER,
    "paper": SourceKind.PAPER,
    "rss": SourceKind.ARTICLE,
    "article": SourceKind.ARTICLE,
}


def normalize_record(record: dict[str, Any]) -> dict[str, Any]:
    """Map an upstream record onto CandidateItem field names.

    The first non-empty body field wins, so ``summary`` is preferred over a
    raw ``content`` blob when both are present.
    """
    normalized: dict[str, Any] = {}
    for key, value in record.items():
        target = _FIELD_ALIASES.get(key, key)
        if target == "body_text" and normalized.get("body_text"):
            continue
        normalized[target] = value

    source = normalized.pop("source", None)
    if "source_kind" not in normalized and source is not None:
        normalized["source_kind"] = _SOURCE_ALIASES.get(str(source).lower(), SourceKind.ARTICLE)

    if normalized.get("source_kind") == SourceKind.PAPER and not normalized.get("origin_feed"):
        normalized["origin_feed"] = normalized.get("publication") or "Academic Paper"

    for key in ("id", "year"):
        if normalized.get(key) is not None:
            normalized[key] = str(normalized[key])

    if isinstance(normalized.get("tags"), list):
        normalized["tags"] = set(normalized["tags"])

    return normalized


def parse_items(records: list[dict[str, Any]]) -> list[CandidateItem]:
    """Validate raw records into candidate items.

    Invalid records are logged and skipped. Duplicate ids raise ValueError
    since ids join curation results back to items.
    """
    items: list[CandidateItem] = []
    seen_ids: set[str] = set()

    for index, record in enumerate(records):
        try:
            item = CandidateItem(**normalize_record(record))
        except ValidationError as e:
            logger.warning(
                "Skipping invalid item",
                index=index,
                item_id=record.get("id"),
                errors=e.error_count(),
            )
            continue

        if item.id in seen_ids:
            raise ValueError(f"Duplicate item id: {item.id}")
        seen_ids.add(item.id)
        items.append(item)

    logger.info("Items parsed", **log_processing_stage(PipelineStage.PARSE, len(records), len(items)))
    return items


def load_items(path: str | Path) -> list[CandidateItem]:
    """Load candidate items from a JSON array, ``{"items": [...]}`` or JSON-lines file."""
    path = Path(path)
    raw = path.read_bytes()

    try:
        records = orjson.loads(raw)
    except orjson.JSONDecodeError:
        records = [orjson.loads(line) for line in raw.splitlines() if line.strip()]

    if isinstance(records, dict):
        records = records.get("items", [records])

    logger.info("Loaded item records", path=str(path), count=len(records))
    return parse_items(records)
