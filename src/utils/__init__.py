"""Logging helpers shared by the prompt engine."""

from .logging_config import (
    LogConfig,
    PerformanceLogger,
    configure_logging,
)

__all__ = [
    "LogConfig",
    "PerformanceLogger",
    "configure_logging",
]
