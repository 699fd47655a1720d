"""Provider category resolution and verbosity mapping."""

from .categories import (
    prioritize_sections,
    resolve_provider_category,
    should_optimize_for_tokens,
    token_reduction,
)
from .types import BudgetCheck, ProviderEfficiency, TaskVerbosity, VerbosityResolution
from .verbosity_mapper import ProviderVerbosityMapper, context_from_intent

__all__ = [
    "BudgetCheck",
    "ProviderEfficiency",
    "ProviderVerbosityMapper",
    "TaskVerbosity",
    "VerbosityResolution",
    "context_from_intent",
    "prioritize_sections",
    "resolve_provider_category",
    "should_optimize_for_tokens",
    "token_reduction",
]
