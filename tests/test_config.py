"""Tests for configuration module."""

import pytest

from digest_curator.config import DEFAULT_BUCKET_THRESHOLDS, Settings, validate_config
from digest_curator.feeds import FeedMetadataTable, NewsletterCategory


def test_settings_creation(mock_env):
    """Test settings creation with environment variables."""
    settings = Settings()

    assert settings.openai_api_key == "test-key"
    assert settings.batch_size == 15
    assert settings.max_concurrency == 4
    assert settings.dedupe_threshold == 0.6
    assert settings.hybrid_scoring is False
    assert settings.bucket_thresholds == DEFAULT_BUCKET_THRESHOLDS
    assert "sourcegraph" in settings.internal_exclusions


def test_model_override():
    settings = Settings(openai_api_key="test", llm_model_override="gpt-4o")
    assert settings.model_name == "gpt-4o"


def test_settings_threshold_validation():
    """Test deduplication threshold validation."""
    with pytest.raises(ValueError, match="Deduplication threshold must be between 0 and 1"):
        Settings(openai_api_key="test", dedupe_threshold=1.5)


def test_settings_count_validation():
    with pytest.raises(ValueError, match="at least 1"):
        Settings(openai_api_key="test", batch_size=0)


def test_bucket_thresholds_merge_with_defaults():
    settings = Settings(openai_api_key="test", bucket_thresholds={"industry": 6})

    assert settings.bucket_thresholds["industry"] == 6
    assert settings.bucket_thresholds["product_updates"] == 4.0


def test_bucket_threshold_range():
    with pytest.raises(ValueError):
        Settings(openai_api_key="test", bucket_thresholds={"research": 11})


def test_validate_config(temp_dir):
    assert validate_config(Settings(openai_api_key="test"))
    assert validate_config(Settings(openai_api_key=None, mock=True))
    assert not validate_config(Settings(openai_api_key=None, mock=False))
    assert not validate_config(
        Settings(openai_api_key="test", feed_metadata_path=temp_dir / "missing.yaml")
    )


def test_default_feed_metadata_loads():
    table = FeedMetadataTable.from_yaml()

    assert len(table) > 0
    assert table.lookup("The GitHub Blog").newsletter_category == NewsletterCategory.CODING_PRODUCT_UPDATES
    assert table.lookup("TLDR AI").newsletter_category == NewsletterCategory.DEVELOPER_NEWSLETTERS
    assert table.lookup("Tech Weekly") is None
    assert table.lookup("") is None


def test_feed_metadata_from_file(temp_dir):
    path = temp_dir / "feeds.yaml"
    path.write_text(
        "feeds:\n"
        "  Example Weekly:\n"
        "    newsletter_category: developer_newsletters\n"
        "    priority: 2\n",
        encoding="utf-8",
    )

    table = FeedMetadataTable.from_yaml(path)

    meta = table.lookup("example weekly digest")
    assert meta.name == "Example Weekly"
    assert meta.priority == 2
    assert "Example Weekly" in table


def test_feed_metadata_missing_file(temp_dir):
    with pytest.raises(FileNotFoundError):
        FeedMetadataTable.from_yaml(temp_dir / "nope.yaml")
