"""Text processing utilities for the digest curator."""

import re
from unicodedata import normalize

_NON_ALNUM_RE = re.compile(r'[^0-9a-z\s]')
_NON_WORD_RE = re.compile(r'[^\w\s]')
_WHITESPACE_RE = re.compile(r'\s+')


def normalize_title(title: str) -> str:
    """Convert title to the form used for duplicate detection.

    Lowercases, replaces anything that is not a letter, digit or whitespace
    with a space, and collapses whitespace. "Code-Review!!" becomes
    "code review".

    Args:
        title: Article title

    Returns:
        Normalized title
    """
    if not title:
        return ""

    title = normalize('NFKD', title).encode('ascii', 'ignore').decode('ascii')
    title = _NON_ALNUM_RE.sub(' ', title.lower())
    return _WHITESPACE_RE.sub(' ', title).strip()


def title_words(title: str) -> frozenset[str]:
    """Word set of a normalized title."""
    normalized = normalize_title(title)
    return frozenset(normalized.split()) if normalized else frozenset()


def jaccard_similarity(a: frozenset[str] | set[str], b: frozenset[str] | set[str]) -> float:
    """Jaccard similarity of two word sets; 0.0 when both are empty."""
    if not a and not b:
        return 0.0
    return len(a & b) / len(a | b)


def normalize_for_terms(text: str) -> str:
    """Lowercase text with punctuation turned into spaces, for term matching."""
    return _NON_WORD_RE.sub(' ', (text or '').lower()).strip()


def clean_html_text(html_text: str) -> str:
    """Clean HTML text content.

    Args:
        html_text: HTML text

    Returns:
        Cleaned plain text
    """
    if not html_text:
        return ""

    text = re.sub(r'<[^>]+>', ' ', html_text)

    html_entities = {
        '&amp;': '&',
        '&lt;': '<',
        '&gt;': '>',
        '&quot;': '"',
        '&#39;': "'",
        '&nbsp;': ' ',
    }

    for entity, replacement in html_entities.items():
        text = text.replace(entity, replacement)

    return _WHITESPACE_RE.sub(' ', text).strip()
