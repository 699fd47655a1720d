"""Benchmark and regression harness for prompt assembly."""

from .harness import BenchmarkHarness, percent_change
from .regression import RegressionSuite, ScenarioFileError, load_scenarios
from .types import (
    BenchmarkComparison,
    BenchmarkResult,
    PerformanceMetrics,
    ProviderStats,
    Scenario,
    ScenarioResult,
    SuiteReport,
    TrendAnalysis,
)

__all__ = [
    "BenchmarkComparison",
    "BenchmarkHarness",
    "BenchmarkResult",
    "PerformanceMetrics",
    "ProviderStats",
    "RegressionSuite",
    "Scenario",
    "ScenarioFileError",
    "ScenarioResult",
    "SuiteReport",
    "TrendAnalysis",
    "load_scenarios",
    "percent_change",
]
