"""Provider-aware verbosity selection and token budgets."""

import logging
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel

from src.intent_detection.types import DetectedIntent
from src.knowledge_base.base import KnowledgeBase
from src.knowledge_base.types import (
    IntentCategory,
    ProviderCategory,
    VerbosityContext,
    VerbosityLevel,
)

from .types import BudgetCheck, ProviderEfficiency, TaskVerbosity, VerbosityResolution

logger = logging.getLogger(__name__)

OVER_BUDGET_RATIO = 1.5
UNDER_BUDGET_RATIO = 0.3

TASK_TYPES = {
    IntentCategory.CREATE_PROJECT: "creative",
    IntentCategory.ADD_FEATURE: "creative",
    IntentCategory.DESIGN_UI: "creative",
    IntentCategory.FIX_BUG: "maintenance",
    IntentCategory.DEPLOY_CONFIG: "maintenance",
    IntentCategory.REFACTOR_CODE: "analytical",
    IntentCategory.DATABASE_OPS: "analytical",
    IntentCategory.ADD_TESTS: "analytical",
    IntentCategory.EXPLAIN_CODE: "exploratory",
    IntentCategory.GENERAL_DISCUSS: "exploratory",
}

# Typical context per intent, used for task-level recommendations
_TASK_CONTEXTS: dict[IntentCategory, dict[str, Any]] = {
    IntentCategory.CREATE_PROJECT: {"intent_complexity": "complex", "task_type": "creative"},
    IntentCategory.ADD_FEATURE: {
        "intent_complexity": "moderate",
        "task_type": "creative",
        "is_existing_project": True,
    },
    IntentCategory.FIX_BUG: {
        "intent_complexity": "simple",
        "task_type": "maintenance",
        "is_debugging": True,
        "has_time_constraints": True,
    },
    IntentCategory.REFACTOR_CODE: {
        "intent_complexity": "moderate",
        "task_type": "analytical",
        "is_existing_project": True,
    },
    IntentCategory.DATABASE_OPS: {"intent_complexity": "moderate", "task_type": "analytical"},
    IntentCategory.DESIGN_UI: {"intent_complexity": "moderate", "task_type": "creative"},
    IntentCategory.EXPLAIN_CODE: {"intent_complexity": "simple", "task_type": "exploratory"},
    IntentCategory.DEPLOY_CONFIG: {"intent_complexity": "moderate", "task_type": "maintenance"},
    IntentCategory.ADD_TESTS: {
        "intent_complexity": "moderate",
        "task_type": "analytical",
        "is_existing_project": True,
    },
    IntentCategory.GENERAL_DISCUSS: {"intent_complexity": "simple", "task_type": "exploratory"},
}

ContextInput = VerbosityContext | Mapping[str, Any] | None


def _value_key(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _context_items(context: ContextInput) -> list[tuple[str, Any]]:
    """Present context fields in the order they are applied."""
    if context is None:
        return []
    if isinstance(context, BaseModel):
        validated = VerbosityContext.model_validate(context.model_dump())
        names: Iterable[str] = VerbosityContext.model_fields
    else:
        unknown = [key for key in context if key not in VerbosityContext.model_fields]
        if unknown:
            raise ValueError(f"Unknown verbosity context fields: {unknown}")
        validated = VerbosityContext(**context)
        names = context.keys()

    items = []
    for name in names:
        value = getattr(validated, name)
        if value is not None:
            items.append((name, value))
    return items


def context_from_intent(
    intent: DetectedIntent, extras: Mapping[str, Any] | None = None
) -> dict[str, Any]:
    """Derive verbosity context fields from a detected intent.

    Request extras are appended last so they are applied after the derived
    fields. A derived field repeated in ``extras`` moves to the end.
    """
    context: dict[str, Any] = {
        "intent_complexity": intent.context.complexity,
        "intent_confidence": intent.confidence,
        "is_existing_project": intent.context.is_existing_project,
    }
    if intent.category == IntentCategory.FIX_BUG:
        context["is_debugging"] = True
    context["task_type"] = TASK_TYPES[intent.category]

    for key, value in (extras or {}).items():
        context.pop(key, None)
        context[key] = value
    return context


class ProviderVerbosityMapper:
    """Maps provider categories and request context to a verbosity tier."""

    def __init__(self, kb: KnowledgeBase):
        self.kb = kb

    def resolve_verbosity(
        self, provider_category: ProviderCategory | str, context: ContextInput = None
    ) -> VerbosityResolution:
        """Resolve the verbosity tier for a provider category.

        Starts from the category's base verbosity and applies the adjustment
        table to each present context field in order; the last applied
        adjustment wins.

        Args:
            provider_category: Provider category (enum or value).
            context: A VerbosityContext, or a mapping of its field names.

        Returns:
            The resolved verbosity with the profile reasoning and a record of
            each adjustment that changed the tier.

        Raises:
            ValueError: If the category or a context field is unknown.
        """
        category = ProviderCategory(provider_category)
        profile = self.kb.provider_profile(category)
        verbosity = profile.base_verbosity
        adjustments: list[str] = []

        for name, value in _context_items(context):
            table = profile.context_adjustments.get(name)
            if not table:
                continue
            key = _value_key(value)
            adjusted = table.get(key)
            if adjusted is None:
                continue
            if adjusted != verbosity:
                adjustments.append(f"{name}: {key} → {adjusted.value}")
            verbosity = adjusted

        logger.debug(
            f"Verbosity for {category.value}: base={profile.base_verbosity.value}, "
            f"final={verbosity.value}, adjustments={adjustments}"
        )
        return VerbosityResolution(
            verbosity=verbosity,
            reasoning=profile.reasoning,
            adjustments=tuple(adjustments),
        )

    def token_budget(
        self, provider_category: ProviderCategory | str, verbosity: VerbosityLevel | str
    ) -> int:
        return self.kb.provider_profile(provider_category).token_budget.for_level(verbosity)

    def is_budget_appropriate(
        self,
        provider_category: ProviderCategory | str,
        verbosity: VerbosityLevel | str,
        estimated_size: int,
    ) -> BudgetCheck:
        """Check an estimated size against the tier budget.

        Over 1.5x the budget recommends the next-lower tier; under 0.3x the
        budget (below detailed) recommends the next-higher tier.
        """
        verbosity = VerbosityLevel(verbosity)
        budget = self.token_budget(provider_category, verbosity)

        if estimated_size > budget * OVER_BUDGET_RATIO:
            return BudgetCheck(
                appropriate=False,
                budget=budget,
                reason=(
                    f"Token count ({estimated_size}) exceeds budget ({budget}) "
                    f"for {verbosity.value} verbosity"
                ),
                recommendation=verbosity.step_down(),
            )

        if estimated_size < budget * UNDER_BUDGET_RATIO and verbosity != VerbosityLevel.DETAILED:
            return BudgetCheck(
                appropriate=False,
                budget=budget,
                reason=(
                    f"Token count ({estimated_size}) is much lower than budget "
                    f"({budget}), could use more detail"
                ),
                recommendation=verbosity.step_up(),
            )

        return BudgetCheck(appropriate=True, budget=budget)

    def provider_characteristics(
        self, provider_category: ProviderCategory | str
    ) -> dict[str, Any]:
        profile = self.kb.provider_profile(provider_category)
        return {
            "description": profile.description,
            "strengths": list(profile.strengths),
            "limitations": list(profile.limitations),
        }

    def compare_provider_efficiency(
        self,
        provider_categories: Iterable[ProviderCategory | str],
        context: ContextInput = None,
    ) -> list[ProviderEfficiency]:
        """Rank provider categories by budget per net capability, best first."""
        results = []
        for provider_category in provider_categories:
            category = ProviderCategory(provider_category)
            resolution = self.resolve_verbosity(category, context)
            tokens = self.token_budget(category, resolution.verbosity)
            profile = self.kb.provider_profile(category)
            capability = len(profile.strengths) - len(profile.limitations)
            results.append(
                ProviderEfficiency(
                    provider=category,
                    verbosity=resolution.verbosity,
                    estimated_tokens=tokens,
                    efficiency=tokens / max(1, capability),
                    reasoning=resolution.reasoning,
                )
            )
        return sorted(results, key=lambda r: r.efficiency)

    def verbosity_for_task(
        self,
        intent_category: IntentCategory | str,
        provider_category: ProviderCategory | str,
        user_experience: str = "intermediate",
    ) -> TaskVerbosity:
        """Recommend a verbosity for a task type, with short usage tips."""
        intent_category = IntentCategory(intent_category)
        provider_category = ProviderCategory(provider_category)
        context = {**_TASK_CONTEXTS[intent_category], "user_experience": user_experience}
        resolution = self.resolve_verbosity(provider_category, context)
        verbosity = resolution.verbosity

        tips = []
        if intent_category == IntentCategory.FIX_BUG and verbosity == VerbosityLevel.MINIMAL:
            tips.append("Focus on surgical fixes rather than comprehensive refactoring")
        if (
            intent_category == IntentCategory.CREATE_PROJECT
            and verbosity == VerbosityLevel.DETAILED
        ):
            tips.append("Leverage detailed guidelines for better project structure")
        if (
            provider_category == ProviderCategory.REASONING
            and verbosity == VerbosityLevel.MINIMAL
        ):
            tips.append("Let the model reason through the solution internally")

        return TaskVerbosity(verbosity=verbosity, reasoning=resolution.reasoning, tips=tips)
