"""Result types for provider resolution and verbosity mapping."""

from dataclasses import dataclass, field

from src.knowledge_base.types import ProviderCategory, VerbosityLevel


@dataclass(frozen=True)
class VerbosityResolution:
    """Outcome of resolving verbosity for a provider category."""

    verbosity: VerbosityLevel
    reasoning: str
    adjustments: tuple[str, ...] = ()


@dataclass(frozen=True)
class BudgetCheck:
    """Whether an estimated size suits the budget of a verbosity tier."""

    appropriate: bool
    budget: int
    reason: str | None = None
    recommendation: VerbosityLevel | None = None


@dataclass(frozen=True)
class ProviderEfficiency:
    provider: ProviderCategory
    verbosity: VerbosityLevel
    estimated_tokens: int
    efficiency: float
    reasoning: str


@dataclass(frozen=True)
class TaskVerbosity:
    verbosity: VerbosityLevel
    reasoning: str
    tips: list[str] = field(default_factory=list)
