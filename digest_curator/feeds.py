"""Feed metadata: the newsletter role of each source feed."""

from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel

DEFAULT_FEEDS_PATH = Path(__file__).with_name("feeds.yaml")


class NewsletterCategory(str, Enum):
    """Newsletter role of a feed, independent of the reader's folders."""
    DEVELOPER_NEWSLETTERS = "developer_newsletters"
    TECH_COMPANY_BLOGS = "tech_company_blogs"
    DEVELOPER_COMMUNITIES = "developer_communities"
    AI_ARTICLES = "ai_articles"
    CODING_PRODUCT_UPDATES = "coding_product_updates"
    ARXIV_RESEARCH = "arxiv_research"
    GENERAL_TECH_ARTICLES = "general_tech_articles"


class FeedMetadata(BaseModel):
    """Newsletter role of a single feed."""
    name: str
    newsletter_category: NewsletterCategory
    priority: int = 1
    reader_category: str | None = None


class FeedMetadataTable:
    """Feed metadata loader.

    Lookup is an exact match on the feed name first, then a
    case-insensitive substring match in either direction.
    """

    def __init__(self, entries: dict[str, FeedMetadata] | None = None):
        self._entries: dict[str, FeedMetadata] = dict(entries or {})

    @classmethod
    def from_yaml(cls, config_path: str | Path = DEFAULT_FEEDS_PATH) -> "FeedMetadataTable":
        """Load feed metadata from a YAML file."""
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Feed metadata file not found: {path}")

        with open(path, encoding="utf-8") as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}

        entries = {}
        for feed_name, meta in (data.get("feeds") or {}).items():
            entries[feed_name] = FeedMetadata(**{"name": feed_name, **meta})
        return cls(entries)

    def lookup(self, feed_name: str) -> FeedMetadata | None:
        """Find metadata for a feed name."""
        if not feed_name:
            return None

        if feed_name in self._entries:
            return self._entries[feed_name]

        lowered = feed_name.lower()
        for key, meta in self._entries.items():
            key_lower = key.lower()
            if key_lower in lowered or lowered in key_lower:
                return meta

        return None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, feed_name: str) -> bool:
        return self.lookup(feed_name) is not None

