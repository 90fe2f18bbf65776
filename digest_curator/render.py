"""
Digest rendering: turns a bucketed selection into Markdown or JSON.

Markdown output is produced from a Jinja2 template with one section per
non-empty bucket, in bucket priority order.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import orjson
from jinja2 import Environment, FileSystemLoader

from .config import Settings, get_settings
from .logging import get_logger
from .processing.buckets import DigestSelection

logger = get_logger(__name__)

DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"
DEFAULT_TEMPLATE = "digest.md.j2"

BUCKET_TITLES = {
    "research": "Research",
    "competitive": "Competitive Intelligence",
    "product_updates": "Product Updates",
    "newsletter": "From the Newsletters",
    "ai_insights": "AI Insights",
    "community": "Community Signals",
    "industry": "Industry News",
}

_SCORE_PREFIX_RE = re.compile(r'^Score \d+(\.\d+)?(/\d+)?:?\s*', re.IGNORECASE)


def strip_score_prefix(reasoning: str) -> str:
    """Remove a leading "Score X/10:" from curator reasoning."""
    return _SCORE_PREFIX_RE.sub('', reasoning or '')


@dataclass
class DigestMetadata:
    """Digest metadata."""
    title: str
    generation_time: datetime
    item_count: int
    top_score: float


class DigestRenderer:
    """Markdown digest rendering system."""

    def __init__(self, settings: Settings | None = None, template_dir: Path | None = None):
        self.settings = settings or get_settings()
        self.template_dir = Path(template_dir or DEFAULT_TEMPLATE_DIR)

        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self._register_filters()

    def _register_filters(self) -> None:
        """Register custom Jinja2 filters."""

        def format_score(score, precision=1):
            return f"{score:.{precision}f}"

        def bucket_title(name):
            return BUCKET_TITLES.get(name, name.replace('_', ' ').title())

        self.jinja_env.filters['format_score'] = format_score
        self.jinja_env.filters['bucket_title'] = bucket_title
        self.jinja_env.filters['strip_score_prefix'] = strip_score_prefix

    def _generate_metadata(self, selection: DigestSelection, title: str | None) -> DigestMetadata:
        now = datetime.now()
        entries = [s for bucket in selection.buckets.values() for s in bucket.items]
        return DigestMetadata(
            title=title or f"Code Intelligence Digest - {now.strftime('%B %d, %Y')}",
            generation_time=now,
            item_count=len(entries),
            top_score=max((s.score for s in entries), default=0.0),
        )

    def render_markdown(self, selection: DigestSelection, title: str | None = None) -> str:
        """Render the selection as Markdown."""
        context: dict[str, Any] = {
            'metadata': self._generate_metadata(selection, title),
            'buckets': [
                (name, [scored.to_entry() for scored in bucket.items])
                for name, bucket in selection.buckets.items()
                if bucket.items
            ],
        }
        template = self.jinja_env.get_template(DEFAULT_TEMPLATE)
        markdown = template.render(**context)

        logger.info("Digest rendered", items=context['metadata'].item_count, format="markdown")
        return markdown

    @staticmethod
    def render_json(selection: DigestSelection) -> str:
        """Render the selection as indented JSON."""
        return orjson.dumps(selection.to_dict(), option=orjson.OPT_INDENT_2).decode()


def render_digest(
    selection: DigestSelection,
    settings: Settings | None = None,
    output_format: str = "markdown",
    title: str | None = None,
) -> str:
    """Render a digest selection.

    Args:
        selection: Bucketed selection from the pipeline
        settings: Application settings
        output_format: "markdown" or "json"
        title: Optional heading override

    Returns:
        Rendered digest text
    """
    if output_format == "json":
        return DigestRenderer.render_json(selection)
    if output_format != "markdown":
        raise ValueError(f"Unknown output format: {output_format}")
    return DigestRenderer(settings).render_markdown(selection, title)
