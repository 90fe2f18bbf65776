"""Structured logging for the digest curator.

Every pipeline stage reports through ``log_processing_stage`` so stage logs
share one shape: the stage name, items in, items out and items dropped.
"""

import logging
import sys
import time
from enum import Enum
from pathlib import Path
from typing import Any

import orjson
import structlog
from structlog import dev, processors, stdlib

from .config import get_settings

# Client libraries that log every HTTP request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "openai")


class PipelineStage(str, Enum):
    """Stage names used in structured logs."""
    PARSE = "parse"
    CLASSIFY = "classify"
    SCORING = "scoring"
    TERM_SCORING = "term_scoring"
    CURATION = "curation"
    HYBRID = "hybrid"
    DEDUPE = "dedupe"
    ASSEMBLE = "assemble"
    PIPELINE = "pipeline"


def _orjson_serializer(obj: Any, **kwargs: Any) -> str:
    return orjson.dumps(obj, default=kwargs.get("default")).decode()


def setup_logging(
    log_level: str | None = None,
    json_logging: bool | None = None,
    log_file: Path | None = None,
    quiet_libraries: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_logging: Render JSON lines instead of console output
        log_file: Optional log file path
        quiet_libraries: Raise HTTP client loggers to ERROR
    """
    settings = get_settings()

    log_level = log_level or settings.log_level
    json_logging = json_logging if json_logging is not None else settings.json_logging
    log_file = log_file or settings.log_file
    level = getattr(logging, log_level.upper())

    # stderr keeps stdout free for the rendered digest
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level, force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.ERROR if quiet_libraries else level)

    processors_list = [
        stdlib.filter_by_level,
        stdlib.add_logger_name,
        stdlib.add_log_level,
        stdlib.PositionalArgumentsFormatter(),
        processors.TimeStamper(fmt="iso"),
        processors.StackInfoRenderer(),
        processors.format_exc_info,
    ]

    if json_logging:
        processors_list.append(processors.JSONRenderer(serializer=_orjson_serializer))
    else:
        processors_list.extend([
            processors.CallsiteParameterAdder(
                parameters=[processors.CallsiteParameter.FILENAME,
                            processors.CallsiteParameter.LINENO]
            ),
            dev.ConsoleRenderer(colors=False),
        ])

    structlog.configure(
        processors=processors_list,
        wrapper_class=stdlib.BoundLogger,
        logger_factory=stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter('%(message)s'))
        logging.getLogger().addHandler(file_handler)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class LoggingMixin:
    """Gives a class a logger bound to its component name."""

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        return get_logger(self.__class__.__module__).bind(component=self.__class__.__name__)


def log_processing_stage(
    stage: PipelineStage | str,
    input_count: int,
    output_count: int,
    duration: float | None = None,
    **kwargs: Any
) -> dict[str, Any]:
    """Standard fields for a pipeline stage log line.

    Args:
        stage: Pipeline stage
        input_count: Items entering the stage
        output_count: Items leaving the stage
        duration: Stage duration in seconds
        **kwargs: Stage-specific fields

    Returns:
        Structured log data, including ``dropped`` (never negative)
    """
    log_data = {
        "stage": stage.value if isinstance(stage, PipelineStage) else stage,
        "input_count": input_count,
        "output_count": output_count,
        "dropped": max(0, input_count - output_count),
        **kwargs
    }

    if duration is not None:
        log_data["duration"] = round(duration, 4)

    return log_data


def log_error(
    error: Exception,
    context: str | None = None,
    **kwargs: Any
) -> dict[str, Any]:
    """Standard fields for an error log line."""
    log_data = {
        "error_type": error.__class__.__name__,
        "error_message": str(error),
        **kwargs
    }

    if context:
        log_data["context"] = context

    return log_data


class PerformanceLogger:
    """Times a pipeline stage and logs its duration.

    With ``item_count`` set, the completion line also carries throughput.
    """

    def __init__(
        self,
        stage: PipelineStage | str,
        logger: structlog.stdlib.BoundLogger,
        item_count: int | None = None,
    ):
        self.stage = stage.value if isinstance(stage, PipelineStage) else stage
        self.logger = logger
        self.item_count = item_count
        self.start_time: float | None = None
        self.duration: float | None = None

    def __enter__(self) -> "PerformanceLogger":
        self.start_time = time.perf_counter()
        self.logger.debug("Stage started", stage=self.stage)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.start_time is None:
            return
        self.duration = time.perf_counter() - self.start_time

        if exc_type is not None:
            self.logger.error(
                "Stage failed",
                stage=self.stage,
                duration=self.duration,
                error_type=exc_type.__name__,
                error_message=str(exc_val) if exc_val else None,
            )
            return

        fields: dict[str, Any] = {"stage": self.stage, "duration": self.duration}
        if self.item_count is not None:
            fields["item_count"] = self.item_count
            if self.duration > 0:
                fields["items_per_second"] = round(self.item_count / self.duration, 2)
        self.logger.info("Stage completed", **fields)


# Initialize logging on module import
setup_logging()
