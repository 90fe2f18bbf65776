"""Tests for the structured logging helpers."""

import pytest
from structlog.testing import capture_logs

from digest_curator.logging import (
    PerformanceLogger,
    PipelineStage,
    get_logger,
    log_error,
    log_processing_stage,
)


def test_stage_fields():
    data = log_processing_stage(PipelineStage.DEDUPE, 10, 7, 0.123456, duplicate_groups=3)

    assert data == {
        "stage": "dedupe",
        "input_count": 10,
        "output_count": 7,
        "dropped": 3,
        "duplicate_groups": 3,
        "duration": 0.1235,
    }


def test_stage_fields_never_report_negative_drops():
    data = log_processing_stage("custom", 2, 5)
    assert data["stage"] == "custom"
    assert data["dropped"] == 0
    assert "duration" not in data


def test_error_fields():
    data = log_error(ValueError("bad score"), context="completion", batch=2)
    assert data == {
        "error_type": "ValueError",
        "error_message": "bad score",
        "context": "completion",
        "batch": 2,
    }


def test_performance_logger_reports_throughput():
    with capture_logs() as logs:
        with PerformanceLogger(PipelineStage.CURATION, get_logger("test.perf"), item_count=30) as perf:
            pass

    assert perf.duration is not None
    [completed] = [entry for entry in logs if entry["event"] == "Stage completed"]
    assert completed["stage"] == "curation"
    assert completed["item_count"] == 30


def test_performance_logger_reports_failure():
    with capture_logs() as logs:
        with pytest.raises(RuntimeError):
            with PerformanceLogger("scoring", get_logger("test.perf")):
                raise RuntimeError("boom")

    [failed] = [entry for entry in logs if entry["event"] == "Stage failed"]
    assert failed["stage"] == "scoring"
    assert failed["error_type"] == "RuntimeError"
