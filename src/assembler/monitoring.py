"""Monitoring and structured logging for prompt assembly."""

import json
import logging
import time
from collections import deque
from collections.abc import Callable
from datetime import datetime, timezone
from functools import wraps
from typing import Any

from src.knowledge_base.types import IntentCategory, VerbosityLevel

from .types import AssembledPrompt

SLOW_ASSEMBLY_MS = 1000
LATENCY_WINDOW = 1000


class StructuredLogger:
    """Provides structured JSON logging for prompt assembly."""

    def __init__(self, logger_name: str = "prompt_assembly"):
        self.logger = logging.getLogger(logger_name)

    def log_assembly(
        self,
        prompt: AssembledPrompt | None,
        latency_ms: float,
        error: Exception | None = None,
    ):
        """Log an assembly decision with structured format."""
        metadata = prompt.metadata if prompt else {}
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event": "prompt_assembly",
            "intent_category": metadata.get("intent_category"),
            "intent_confidence": metadata.get("intent_confidence"),
            "provider_category": metadata.get("provider_category"),
            "verbosity": prompt.verbosity.value if prompt else None,
            "estimated_size": prompt.estimated_size if prompt else None,
            "token_budget": metadata.get("token_budget"),
            "degraded": prompt.degraded if prompt else None,
            "over_budget": prompt.over_budget if prompt else None,
            "valid": prompt.validation.valid if prompt else None,
            "latency_ms": round(latency_ms, 2),
            "success": error is None,
            "error": str(error) if error else None,
        }

        if error:
            self.logger.error(json.dumps(log_entry))
        elif prompt.over_budget or not prompt.validation.valid:
            self.logger.warning(json.dumps(log_entry))
        else:
            self.logger.info(json.dumps(log_entry))

    def log_benchmark_summary(self, summary: dict[str, Any]):
        """Log a benchmark run summary."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event": "benchmark_summary",
            **summary,
        }

        self.logger.info(json.dumps(log_entry, default=str))


class AssemblyMonitor:
    """Counts assembly outcomes for one assembler instance."""

    def __init__(self):
        self.metrics = {
            "total_assemblies": 0,
            "degraded": 0,
            "over_budget": 0,
            "invalid": 0,
            "errors": 0,
            "total_latency_ms": 0.0,
            "verbosity_distribution": {level.value: 0 for level in VerbosityLevel},
            "intent_distribution": {intent.value: 0 for intent in IntentCategory},
        }
        self.latencies: deque[float] = deque(maxlen=LATENCY_WINDOW)

    def record_assembly(
        self,
        prompt: AssembledPrompt | None,
        latency_ms: float,
        error: Exception | None = None,
    ):
        """Record an assembly event."""
        self.metrics["total_assemblies"] += 1
        self.metrics["total_latency_ms"] += latency_ms
        self.latencies.append(latency_ms)

        if error or prompt is None:
            self.metrics["errors"] += 1
            return

        if prompt.degraded:
            self.metrics["degraded"] += 1
        if prompt.over_budget:
            self.metrics["over_budget"] += 1
        if not prompt.validation.valid:
            self.metrics["invalid"] += 1

        self.metrics["verbosity_distribution"][prompt.verbosity.value] += 1
        intent = prompt.metadata.get("intent_category")
        if intent in self.metrics["intent_distribution"]:
            self.metrics["intent_distribution"][intent] += 1

    def get_metrics(self) -> dict[str, Any]:
        """Get current metrics."""
        metrics = {
            **self.metrics,
            "verbosity_distribution": dict(self.metrics["verbosity_distribution"]),
            "intent_distribution": dict(self.metrics["intent_distribution"]),
        }

        total = metrics["total_assemblies"]
        if total > 0:
            metrics["average_latency_ms"] = round(metrics["total_latency_ms"] / total, 2)
            metrics["degraded_rate"] = round(metrics["degraded"] / total, 3)
            metrics["over_budget_rate"] = round(metrics["over_budget"] / total, 3)
            metrics["error_rate"] = round(metrics["errors"] / total, 3)

        if self.latencies:
            sorted_latencies = sorted(self.latencies)
            n = len(sorted_latencies)
            metrics["p50_latency_ms"] = sorted_latencies[n // 2]
            metrics["p95_latency_ms"] = sorted_latencies[int(n * 0.95)]

        return metrics

    def reset_metrics(self):
        """Reset all metrics."""
        self.__init__()


def monitor_assembly(method: Callable) -> Callable:
    """Decorator to record assembly latency and outcome on the instance."""

    @wraps(method)
    def wrapper(self, *args, **kwargs):
        start_time = time.perf_counter()
        error = None
        result = None

        try:
            result = method(self, *args, **kwargs)
            return result
        except Exception as e:
            error = e
            raise
        finally:
            latency_ms = (time.perf_counter() - start_time) * 1000

            if hasattr(self, "monitor"):
                self.monitor.record_assembly(result, latency_ms, error)
            if hasattr(self, "_structured_logger"):
                self._structured_logger.log_assembly(result, latency_ms, error)
                if error is None and latency_ms > SLOW_ASSEMBLY_MS:
                    self._structured_logger.logger.warning(
                        f"Slow assembly: {method.__name__} took {latency_ms:.1f}ms"
                    )

    return wrapper
