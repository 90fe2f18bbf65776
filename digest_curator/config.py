"""Configuration management for the digest curator."""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .feeds import DEFAULT_FEEDS_PATH, FeedMetadataTable

DEFAULT_BUCKET_THRESHOLDS: dict[str, float] = {
    "research": 7.0,
    "competitive": 7.0,
    "industry": 7.0,
    "community": 5.0,
    "newsletter": 5.0,
    "ai_insights": 5.0,
    "product_updates": 4.0,
}


DEFAULT_INTERNAL_EXCLUSIONS: list[str] = ["sourcegraph"]

DEFAULT_COMPETITORS: list[str] = [
    "cursor", "codeium", "windsurf", "coderabbit", "augment code",
    "tabnine", "github copilot", "copilot", "replit", "devin",
    "cognition", "greptile", "qodo", "continue.dev",
]


class ModelSettings(BaseModel):
    """LLM model-specific settings."""
    temperature: float = 0.3
    max_tokens: int = 2048
    timeout_seconds: int = 60
    retry_attempts: int = 2
    backoff_factor: float = 2.0


class Settings(BaseSettings):
    """Main application settings."""

    # ── Completion service ─────────────────────────────────────────────────
    openai_api_key: str | None = Field(None, description="OpenAI API key for the completion service")
    openai_model: str = Field("gpt-4o-mini", description="Primary completion model")
    fallback_models: list[str] = Field(default_factory=list, description="Models tried after the primary fails")
    llm_model_override: str | None = Field(None, description="Override for the completion model")
    llm: ModelSettings = Field(default_factory=ModelSettings, description="LLM settings")

    # ── Operational Mode ───────────────────────────────────────────────────
    mock: bool = Field(False, description="Use the offline mock completion client")

    # ── Curation ───────────────────────────────────────────────────────────
    batch_size: int = Field(15, description="Items per completion request")
    max_concurrency: int = Field(4, description="Concurrent completion requests")
    hybrid_scoring: bool = Field(False, description="Blend LLM ratings with the term score")
    min_include_threshold: float = Field(5.0, description="Minimum LLM score for hybrid admission")

    # ── Selection ──────────────────────────────────────────────────────────
    dedupe_threshold: float = Field(0.6, description="Title Jaccard similarity threshold")
    bucket_thresholds: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_BUCKET_THRESHOLDS),
        description="Minimum score per bucket",
    )
    internal_exclusions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_INTERNAL_EXCLUSIONS),
        description="Self-referential brand terms dropped from the digest",
    )
    competitors: list[str] = Field(
        default_factory=lambda: list(DEFAULT_COMPETITORS),
        description="Known competitor names for the competitive bucket",
    )
    feed_metadata_path: Path = Field(DEFAULT_FEEDS_PATH, description="Feed metadata YAML file")

    # ── Logging ────────────────────────────────────────────────────────────
    log_level: str = Field("INFO", description="Log level")
    json_logging: bool = Field(True, description="Enable JSON logging")
    log_file: Path | None = Field(None, description="Optional log file")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("batch_size", "max_concurrency")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate counts are at least 1."""
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    @field_validator("dedupe_threshold")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        """Validate deduplication threshold."""
        if not 0 <= v <= 1:
            raise ValueError("Deduplication threshold must be between 0 and 1")
        return v

    @field_validator("bucket_thresholds")
    @classmethod
    def validate_bucket_thresholds(cls, v: dict[str, float]) -> dict[str, float]:
        """Validate bucket thresholds are on the 0-10 rating scale."""
        for name, threshold in v.items():
            if not 0 <= threshold <= 10:
                raise ValueError(f"Threshold for bucket '{name}' must be between 0 and 10")
        return {**DEFAULT_BUCKET_THRESHOLDS, **v}

    @property
    def model_name(self) -> str:
        return self.llm_model_override or self.openai_model


_settings: Settings | None = None
_feed_metadata: FeedMetadataTable | None = None


def get_settings() -> Settings:
    """Get application settings."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def get_feed_metadata(settings: Settings | None = None) -> FeedMetadataTable:
    """Get the feed metadata table."""
    global _feed_metadata
    if _feed_metadata is None:
        settings = settings or get_settings()
        _feed_metadata = FeedMetadataTable.from_yaml(settings.feed_metadata_path)
    return _feed_metadata


def validate_config(settings: Settings) -> bool:
    """Validate configuration completeness."""
    from .logging import get_logger

    logger = get_logger(__name__)
    try:
        if not settings.mock and not settings.openai_api_key:
            raise ValueError("OPENAI_API_KEY is required when not in mock mode")

        if not Path(settings.feed_metadata_path).exists():
            raise ValueError(f"Feed metadata file not found: {settings.feed_metadata_path}")

        return True

    except ValueError as e:
        logger.error("Configuration validation failed", error=str(e))
        return False
