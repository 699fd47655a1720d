"""Logging configuration and utilities for the prompt engine."""

import json
import logging
import logging.handlers
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from config.settings import settings


class LogConfig(BaseModel):
    """Configuration for logging."""

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )
    date_format: str = Field(
        default="%Y-%m-%d %H:%M:%S", description="Date format for logs"
    )
    enable_console: bool = Field(default=True, description="Enable console output")
    enable_file: bool = Field(default=True, description="Enable file output")
    file_path: str = Field(
        default="logs/prompt_engine.log", description="Log file path"
    )
    max_bytes: int = Field(default=10 * 1024 * 1024, description="Max file size (10MB)")
    backup_count: int = Field(default=5, description="Number of backup files")
    enable_json: bool = Field(default=True, description="Enable JSON formatting")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @classmethod
    def from_settings(cls, **overrides: Any) -> "LogConfig":
        """Build a config from the application settings."""
        values = {"level": settings.log_level, "file_path": settings.log_file_path}
        values.update(overrides)
        return cls(**values)


# Attributes every LogRecord carries; anything else came in through ``extra=``
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """One JSON object per record.

    Fields passed with ``extra=`` (provider, algorithm, scenario, ...) are
    emitted as top-level keys unless they collide with the standard ones.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRIBUTES and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def _formatter(config: LogConfig) -> logging.Formatter:
    if config.enable_json:
        return JSONFormatter()
    return logging.Formatter(config.format, config.date_format)


def configure_logging(config: LogConfig | None = None) -> None:
    """Configure the root logger.

    Not called on import; entry points (scripts, services) call it once.

    Args:
        config: Logging configuration. Built from settings if not provided.
    """
    if config is None:
        config = LogConfig.from_settings()

    root_logger = logging.getLogger()
    root_logger.setLevel(config.level)

    # Clear existing handlers
    root_logger.handlers.clear()

    if config.enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(_formatter(config))
        root_logger.addHandler(console_handler)

    if config.enable_file:
        log_path = Path(config.file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            config.file_path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(_formatter(config))
        root_logger.addHandler(file_handler)


class PerformanceLogger:
    """Collects per-component timings for one operation."""

    def __init__(self, operation: str, structured: bool = False):
        """Initialize performance logger.

        Args:
            operation: Name of the operation being timed
            structured: Whether to output structured JSON logs
        """
        self.operation = operation
        self.structured = structured
        self.logger = logging.getLogger(f"performance.{operation}")
        self.timings: dict[str, list[float]] = {}
        self.start_time = time.perf_counter()

    def log_timing(self, component: str, duration_ms: float) -> None:
        """Log timing for a component.

        Args:
            component: Component name
            duration_ms: Duration in milliseconds
        """
        self.timings.setdefault(component, []).append(duration_ms)

        if self.structured:
            log_data = {
                "operation": self.operation,
                "component": component,
                "duration_ms": round(duration_ms, 3),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
            self.logger.debug(json.dumps(log_data))
        else:
            self.logger.debug(f"[{self.operation}] {component}: {duration_ms:.2f}ms")

    def get_timings(self) -> dict[str, Any]:
        """Get all timings data.

        Returns:
            Dictionary with timing data
        """
        if "total" in self.timings:
            total_time = sum(self.timings["total"])
        else:
            total_time = sum(sum(times) for times in self.timings.values())
        return {**self.timings, "total_time": total_time}

    def log_summary(self) -> None:
        """Log performance summary."""
        timings = self.get_timings()
        total_time = timings.pop("total_time", 0)

        if self.structured:
            summary = {
                "operation": self.operation,
                "type": "summary",
                "total_time_ms": round(total_time, 3),
                "components": {
                    name: {
                        "count": len(times),
                        "total_ms": round(sum(times), 3),
                        "avg_ms": round(sum(times) / len(times), 3) if times else 0,
                    }
                    for name, times in timings.items()
                },
            }
            self.logger.info(json.dumps(summary))
        else:
            self.logger.info(
                f"Performance summary for {self.operation}: "
                f"total_time={total_time:.1f}ms, "
                f"components={list(timings.keys())}"
            )

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed_ms = (time.perf_counter() - self.start_time) * 1000

        if exc_type is not None:
            self.logger.error(
                f"Error in {self.operation}: {exc_type.__name__}: {exc_val}"
            )
        else:
            self.log_timing("total", elapsed_ms)
            self.log_summary()
