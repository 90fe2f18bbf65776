"""Pytest configuration and fixtures."""

import asyncio
import os
import tempfile
from collections.abc import Generator
from datetime import UTC, datetime
from pathlib import Path

import orjson
import pytest

# Set test environment
os.environ["OPENAI_API_KEY"] = "test-key"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["JSON_LOGGING"] = "false"

from digest_curator.errors import LLMError  # noqa: E402
from digest_curator.ingest.items import CandidateItem, ScoredItem, SourceKind  # noqa: E402
from digest_curator.rubrics import ITEMS_HEADER  # noqa: E402


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def mock_env(monkeypatch):
    """Mock environment variables for testing."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.delenv("MOCK", raising=False)


def build_item(
    item_id: str = "item-1",
    title: str = "Untitled item",
    url: str | None = None,
    body_text: str = "",
    origin_feed: str = "Tech Weekly",
    published_at: datetime | None = None,
    **kwargs,
) -> CandidateItem:
    """Candidate item with sensible defaults."""
    if published_at is None and "ingested_at" not in kwargs:
        published_at = datetime.now(UTC)
    return CandidateItem(
        id=item_id,
        title=title,
        url=url or f"https://example.com/{item_id}",
        body_text=body_text,
        origin_feed=origin_feed,
        published_at=published_at,
        **kwargs,
    )


def build_paper(item_id: str = "paper-1", title: str = "A paper", **kwargs) -> CandidateItem:
    kwargs.setdefault("origin_feed", "arXiv cs.SE")
    kwargs.setdefault("url", f"https://arxiv.org/abs/{item_id}")
    return build_item(item_id, title, source_kind=SourceKind.PAPER, **kwargs)


def scored(item: CandidateItem, score: float, reasoning: str = "") -> ScoredItem:
    return ScoredItem(item=item, score=score, reasoning=reasoning)


@pytest.fixture
def make_item():
    return build_item


@pytest.fixture
def make_paper():
    return build_paper


@pytest.fixture
def make_scored():
    return scored


def prompt_items(user_prompt: str) -> list[dict]:
    """Items embedded in a curation user prompt."""
    return orjson.loads(user_prompt.partition(ITEMS_HEADER)[2])


class ScriptedCompletion:
    """Fake completion service that rates items from a score table.

    Items missing from ``scores`` are left unrated. Batches containing an
    id in ``fail_ids`` raise ``failure`` (LLMError by default); ``raw``
    replaces the whole response.
    """

    def __init__(
        self,
        scores: dict[str, float] | None = None,
        fail_ids: set[str] | None = None,
        raw: str | None = None,
        extra_ratings: list[dict] | None = None,
        delay: float = 0.0,
        failure: Exception | None = None,
    ):
        self.scores = scores or {}
        self.fail_ids = fail_ids or set()
        self.failure = failure or LLMError("service unavailable")
        self.raw = raw
        self.extra_ratings = extra_ratings or []
        self.delay = delay
        self.calls: list[tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)

            ids = [entry["id"] for entry in prompt_items(user_prompt)]
            if self.fail_ids & set(ids):
                raise self.failure
            if self.raw is not None:
                return self.raw

            ratings = [
                {"id": item_id, "score": self.scores[item_id], "reasoning": f"Rated {item_id}"}
                for item_id in ids
                if item_id in self.scores
            ]
            return orjson.dumps({"ratings": ratings + self.extra_ratings}).decode()
        finally:
            self.in_flight -= 1


@pytest.fixture
def scripted_completion():
    return ScriptedCompletion
