"""Benchmark records and regression scenario definitions."""

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.knowledge_base.types import ChatMode, Complexity, IntentCategory, VerbosityLevel

BASELINE = "baseline"
PROVIDER_AWARE = "provider-aware"
DYNAMIC_OPTIMIZED = "dynamic-optimized"


@dataclass
class BenchmarkResult:
    """One timed rendering of a prompt."""

    algorithm: str
    provider_name: str
    estimated_size: int
    generation_time_ms: float
    timestamp: float
    verbosity: VerbosityLevel | None = None
    compression_ratio: float = 1.0
    intent_category: str | None = None
    intent_confidence: str | None = None
    optimizations_applied: list[str] = field(default_factory=list)
    sections_included: int = 0
    validation_passed: bool = False
    success: bool = True
    error: str | None = None


@dataclass
class BenchmarkComparison:
    baseline: BenchmarkResult
    optimized: BenchmarkResult
    size_reduction: float
    speed_improvement: float
    quality_score: float
    recommendation: str


@dataclass
class TrendAnalysis:
    improving_metrics: list[str] = field(default_factory=list)
    declining_metrics: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass
class ProviderStats:
    average_reduction: float
    average_generation_time_ms: float
    reliability: float


@dataclass
class PerformanceMetrics:
    """Aggregate view over the benchmark history."""

    average_size_reduction: float = 0.0
    average_generation_time_ms: float = 0.0
    average_compression_ratio: float = 1.0
    success_rate: float = 0.0
    provider_efficiency: dict[str, ProviderStats] = field(default_factory=dict)
    trends: TrendAnalysis = field(default_factory=TrendAnalysis)


@dataclass
class ScenarioResult:
    """Outcome of running one regression scenario against one provider."""

    scenario_id: str
    provider_name: str
    provider_category: str
    verbosity: VerbosityLevel | None
    estimated_size: int
    size_reduction: int
    intent_category: str | None
    intent_accuracy: bool
    complexity_accuracy: bool
    validation_passed: bool
    generation_time_ms: float
    issues: list[str] = field(default_factory=list)
    strengths: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.issues


@dataclass
class SuiteReport:
    name: str
    results: list[ScenarioResult]
    summary: dict[str, Any]
    recommendations: list[str]


class _Config(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class ProviderConfig(_Config):
    """A named provider (and optional model) to run scenarios against."""

    name: str
    provider: str
    model: str | None = None


class Scenario(_Config):
    id: str
    name: str
    description: str = ""
    message: str
    chat_mode: ChatMode = ChatMode.BUILD
    has_existing_files: bool = False
    database_connected: bool = False
    expected_intent: IntentCategory | None = None
    expected_complexity: Complexity | None = None


class SuiteExpectations(_Config):
    max_size_reduction: float = Field(ge=0)
    min_intent_accuracy: float = Field(ge=0, le=1)
    max_generation_time_ms: float = Field(gt=0)


class Suite(_Config):
    """A set of scenarios run against a set of providers.

    ``"all"`` selects every scenario or provider in the file.
    """

    name: str
    scenarios: list[str] | Literal["all"]
    providers: list[str] | Literal["all"]
    expected: SuiteExpectations


class ScenarioFile(_Config):
    providers: list[ProviderConfig]
    scenarios: list[Scenario]
    suites: list[Suite] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_suite_references(self) -> "ScenarioFile":
        scenario_ids = {s.id for s in self.scenarios}
        provider_names = {p.name for p in self.providers}
        for suite in self.suites:
            if suite.scenarios != "all":
                missing = [s for s in suite.scenarios if s not in scenario_ids]
                if missing:
                    raise ValueError(f"Suite '{suite.name}' references unknown scenarios {missing}")
            if suite.providers != "all":
                missing = [p for p in suite.providers if p not in provider_names]
                if missing:
                    raise ValueError(f"Suite '{suite.name}' references unknown providers {missing}")
        return self
