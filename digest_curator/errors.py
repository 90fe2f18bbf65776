"""Exception types for the digest curation pipeline."""


class CurationError(Exception):
    """Base error for the curation pipeline."""
    pass


class ConfigurationError(CurationError):
    """Required configuration (e.g. completion-service credentials) is missing."""
    pass


class LLMError(CurationError):
    """Text-completion service error (network, timeout, empty response)."""
    pass


class ResponseParseError(CurationError):
    """A completion response could not be parsed into ratings."""
    pass


class NoRelevantContent(CurationError):
    """Every bucket ended empty after thresholding."""

    def __init__(self, candidate_count: int = 0):
        self.candidate_count = candidate_count
        super().__init__(
            f"No relevant content found among {candidate_count} candidate items"
        )
