"""Scenario-based regression suite for intent detection and prompt size."""

import logging
import time
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from config.settings import settings
from src.assembler.prompt_assembler import PromptAssembler
from src.assembler.types import AssemblyRequest, ConnectionState
from src.intent_detection.types import ClassificationOptions
from src.knowledge_base.types import IntentConfidence, ProviderCategory, VerbosityLevel
from src.providers.categories import resolve_provider_category

from .types import ProviderConfig, Scenario, ScenarioFile, ScenarioResult, Suite, SuiteReport

logger = logging.getLogger(__name__)

SLOW_SCENARIO_MS = 2000


class ScenarioFileError(ValueError):
    """Raised when the regression scenario file cannot be loaded."""


def load_scenarios(path: str | Path | None = None) -> ScenarioFile:
    """Load regression scenarios, providers and suites from YAML.

    Raises:
        ScenarioFileError: If the file is unreadable or invalid.
    """
    path = Path(path or settings.scenarios_path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return ScenarioFile.model_validate(data)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        raise ScenarioFileError(f"Invalid scenario file {path}: {e}") from e


class RegressionSuite:
    """Runs regression scenarios through the classifier and assembler."""

    def __init__(self, assembler: PromptAssembler, scenarios: ScenarioFile | None = None):
        self.assembler = assembler
        self.scenarios = scenarios or load_scenarios()
        self._providers = {p.name: p for p in self.scenarios.providers}

    def run_scenario(self, scenario: Scenario, provider: ProviderConfig) -> ScenarioResult:
        """Run one scenario against one provider configuration."""
        kb = self.assembler.kb
        category = resolve_provider_category(kb, provider.provider, provider.model)
        start_time = time.perf_counter()

        try:
            intent = self.assembler.classifier.classify(
                [{"role": "user", "content": scenario.message}],
                ClassificationOptions(
                    chat_mode=scenario.chat_mode,
                    has_existing_files=scenario.has_existing_files,
                    database_connected=scenario.database_connected,
                ),
            )
            connection = ConnectionState(
                connected=scenario.database_connected,
                project_selected=scenario.database_connected,
                has_credentials=scenario.database_connected,
            )
            prompt = self.assembler.assemble(
                AssemblyRequest(
                    provider_name=provider.provider,
                    model_name=provider.model,
                    chat_mode=scenario.chat_mode,
                    intent=intent,
                    connection=connection,
                    has_existing_files=scenario.has_existing_files,
                )
            )
            generation_time_ms = (time.perf_counter() - start_time) * 1000

            # Intent-selected sections at standard, without provider tuning
            baseline_size = kb.estimate_tokens(
                self.assembler.classifier.recommended_sections(intent),
                VerbosityLevel.STANDARD,
            )
        except Exception as e:
            logger.error(
                f"Scenario {scenario.id} failed for provider {provider.name}",
                exc_info=True,
                extra={"scenario": scenario.id, "provider": provider.name},
            )
            return ScenarioResult(
                scenario_id=scenario.id,
                provider_name=provider.name,
                provider_category=category.value,
                verbosity=None,
                estimated_size=0,
                size_reduction=0,
                intent_category=None,
                intent_accuracy=False,
                complexity_accuracy=False,
                validation_passed=False,
                generation_time_ms=(time.perf_counter() - start_time) * 1000,
                issues=[f"Scenario execution failed: {e}"],
            )

        size_reduction = 0
        if baseline_size > 0:
            size_reduction = round(
                (baseline_size - prompt.estimated_size) / baseline_size * 100
            )

        intent_accuracy = (
            scenario.expected_intent is None or intent.category == scenario.expected_intent
        )
        complexity_accuracy = (
            scenario.expected_complexity is None
            or intent.context.complexity == scenario.expected_complexity
        )

        issues = []
        strengths = []
        if not intent_accuracy:
            issues.append(
                f"Intent mismatch: expected {scenario.expected_intent.value}, "
                f"got {intent.category.value}"
            )
        if not complexity_accuracy:
            issues.append(
                f"Complexity mismatch: expected {scenario.expected_complexity.value}, "
                f"got {intent.context.complexity.value}"
            )
        if not prompt.validation.valid:
            issues.append(
                "Validation failed: "
                + ", ".join(v.description for v in prompt.validation.errors)
            )
        if prompt.over_budget:
            issues.append(
                f"Over budget: {prompt.estimated_size} tokens vs "
                f"{prompt.metadata['token_budget']}"
            )
        if generation_time_ms > SLOW_SCENARIO_MS:
            issues.append(f"Slow generation: {generation_time_ms:.0f}ms")
        if size_reduction > 30:
            strengths.append(f"Good token reduction: {size_reduction}%")
        if intent.confidence == IntentConfidence.HIGH:
            strengths.append("High intent confidence")
        if prompt.metadata["verbosity_adjustments"]:
            strengths.append("Provider optimization applied")

        return ScenarioResult(
            scenario_id=scenario.id,
            provider_name=provider.name,
            provider_category=category.value,
            verbosity=prompt.verbosity,
            estimated_size=prompt.estimated_size,
            size_reduction=size_reduction,
            intent_category=intent.category.value,
            intent_accuracy=intent_accuracy,
            complexity_accuracy=complexity_accuracy,
            validation_passed=prompt.validation.valid,
            generation_time_ms=generation_time_ms,
            issues=issues,
            strengths=strengths,
        )

    def run_suite(self, suite: Suite) -> SuiteReport:
        """Run every scenario of a suite against every provider of the suite."""
        logger.info(f"Running regression suite: {suite.name}")
        scenarios = self._select_scenarios(suite)
        providers = self._select_providers(suite)

        results = [
            self.run_scenario(scenario, provider)
            for scenario in scenarios
            for provider in providers
        ]

        total = len(results)
        summary: dict[str, Any] = {
            "total_tests": total,
            "passed_tests": sum(1 for r in results if r.passed),
            "average_size_reduction": (
                sum(r.size_reduction for r in results) / total if total else 0.0
            ),
            "average_generation_time_ms": (
                sum(r.generation_time_ms for r in results) / total if total else 0.0
            ),
            "intent_accuracy": (
                sum(1 for r in results if r.intent_accuracy) / total if total else 0.0
            ),
            "complexity_accuracy": (
                sum(1 for r in results if r.complexity_accuracy) / total if total else 0.0
            ),
            "validation_success": (
                sum(1 for r in results if r.validation_passed) / total if total else 0.0
            ),
        }

        expected = suite.expected
        recommendations = []
        if summary["average_size_reduction"] < expected.max_size_reduction * 0.7:
            recommendations.append(
                "Consider more aggressive token optimization for better efficiency"
            )
        if summary["intent_accuracy"] < expected.min_intent_accuracy:
            recommendations.append(
                "Improve intent detection accuracy with better keyword patterns"
            )
        if summary["average_generation_time_ms"] > expected.max_generation_time_ms:
            recommendations.append("Optimize prompt generation performance")

        by_category: dict[str, list[ScenarioResult]] = {}
        for result in results:
            by_category.setdefault(result.provider_category, []).append(result)
        for category, category_results in by_category.items():
            reduction = sum(r.size_reduction for r in category_results) / len(category_results)
            if reduction < 20 and category != ProviderCategory.HIGH_CONTEXT.value:
                recommendations.append(
                    f"{category} providers could benefit from more aggressive optimization"
                )

        logger.info(
            f"Regression suite completed: {suite.name}, "
            f"{summary['passed_tests']}/{total} passed, "
            f"intent accuracy {summary['intent_accuracy']:.2f}"
        )
        return SuiteReport(
            name=suite.name,
            results=results,
            summary=summary,
            recommendations=recommendations,
        )

    def run_all(self) -> list[SuiteReport]:
        return [self.run_suite(suite) for suite in self.scenarios.suites]

    def _select_scenarios(self, suite: Suite) -> list[Scenario]:
        if suite.scenarios == "all":
            return list(self.scenarios.scenarios)
        by_id = {s.id: s for s in self.scenarios.scenarios}
        return [by_id[scenario_id] for scenario_id in suite.scenarios]

    def _select_providers(self, suite: Suite) -> list[ProviderConfig]:
        if suite.providers == "all":
            return list(self.scenarios.providers)
        return [self._providers[name] for name in suite.providers]
