"""Relevance curation pipeline for a code-intelligence content digest."""

__version__ = "0.1.0"
