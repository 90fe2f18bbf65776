"""Utility functions for the digest curator."""

import asyncio
import re
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any, TypeVar
from urllib.parse import urlparse

from .logging import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


def extract_domain(url: str) -> str:
    """Extract domain from URL, without a leading ``www.``.

    Args:
        url: URL string

    Returns:
        Domain name
    """
    domain = urlparse(url).netloc.lower()
    if domain.startswith('www.'):
        domain = domain[4:]
    return domain


INTERNAL_REDIRECT_PATTERNS = ("inoreader.com/article/",)

_HREF_RE = re.compile(r"""href=['"]([^'"]+)['"]""")
_SOURCE_LINK_RE = re.compile(r"(Read|Source|original|article).*?(https?://[^\s<>\"]+)", re.IGNORECASE)
_ANY_URL_RE = re.compile(r"https?://[^\s<>\"]+")


def is_internal_redirect(url: str) -> bool:
    """Check if URL points at a feed reader's internal article page."""
    return any(pattern in (url or "") for pattern in INTERNAL_REDIRECT_PATTERNS)


def extract_original_url(url: str, content: str = "") -> str:
    """Recover the original story URL behind a feed-reader redirect.

    Tries, in order: the first ``href`` in the content, a URL following
    "Read"/"Source"/"original"/"article", then any URL in the content.
    Returns the input URL unchanged when nothing better is found.
    """
    if not is_internal_redirect(url):
        return url

    content = content or ""
    candidates = []

    href = _HREF_RE.search(content)
    if href:
        candidates.append(href.group(1))

    source_link = _SOURCE_LINK_RE.search(content)
    if source_link:
        candidates.append(source_link.group(2))

    candidates.extend(_ANY_URL_RE.findall(content))

    for candidate in candidates:
        if candidate.startswith("http") and not is_internal_redirect(candidate) \
                and "inoreader.com" not in candidate:
            return candidate

    return url


def parse_date_string(date_str: str) -> datetime | None:
    """Parse various date string formats.

    Args:
        date_str: Date string to parse

    Returns:
        Timezone-aware datetime or None if parsing fails
    """
    if not date_str:
        return None

    date_str = date_str.strip()

    try:
        parsed = datetime.fromisoformat(date_str)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    except ValueError:
        pass

    # RFC 2822 (common in RSS feeds), e.g. "Thu, 17 Jul 2025 23:17:14 GMT"
    try:
        parsed = parsedate_to_datetime(date_str)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    except (ValueError, TypeError):
        pass

    formats = [
        "%Y-%m-%dT%H:%M:%S.%fZ",
        "%d/%m/%Y",
        "%B %d, %Y",
        "%b %d, %Y",
        "%d %B %Y",
        "%d %b %Y",
    ]

    for fmt in formats:
        try:
            return datetime.strptime(date_str, fmt).replace(tzinfo=UTC)
        except ValueError:
            continue

    logger.warning("Failed to parse date string", date_string=date_str)
    return None


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def truncate_text(text: str, max_length: int, suffix: str = "...") -> str:
    """Truncate text to maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text

    return text[:max_length - len(suffix)] + suffix


def chunk_list(items: list[T], chunk_size: int) -> list[list[T]]:
    """Split list into chunks of specified size.

    Args:
        items: List to chunk
        chunk_size: Size of each chunk

    Returns:
        List of chunks
    """
    return [items[i:i + chunk_size] for i in range(0, len(items), chunk_size)]


async def retry_async(
    func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    backoff_factor: float = 2.0,
    exceptions: tuple = (Exception,)
) -> Any:
    """Retry async function with exponential backoff.

    Args:
        func: Async function to retry
        max_retries: Maximum number of retries
        backoff_factor: Backoff multiplier
        exceptions: Exceptions to catch and retry

    Returns:
        Function result

    Raises:
        Last exception if all retries fail
    """
    last_exception = None

    for attempt in range(max_retries + 1):
        try:
            return await func()
        except exceptions as e:
            last_exception = e
            if attempt < max_retries:
                delay = backoff_factor ** attempt
                logger.warning(
                    "Retry attempt failed",
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    delay=delay,
                    error=str(e)
                )
                await asyncio.sleep(delay)
            else:
                logger.error(
                    "All retry attempts failed",
                    max_retries=max_retries,
                    error=str(e)
                )

    raise last_exception
