"""Benchmark harness comparing baseline, provider-aware and dynamic prompts."""

import dataclasses
import logging
import math
import time
from collections import deque
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any

from config.settings import settings
from src.assembler.monitoring import StructuredLogger
from src.assembler.prompt_assembler import PromptAssembler
from src.assembler.types import AssemblyRequest
from src.intent_detection.types import ClassificationOptions
from src.knowledge_base.types import ChatMode, VerbosityLevel
from src.providers.categories import prioritize_sections, resolve_provider_category
from src.utils.logging_config import PerformanceLogger

from .types import (
    BASELINE,
    DYNAMIC_OPTIMIZED,
    PROVIDER_AWARE,
    BenchmarkComparison,
    BenchmarkResult,
    PerformanceMetrics,
    ProviderStats,
    TrendAnalysis,
)

logger = logging.getLogger(__name__)


def percent_change(baseline: float, optimized: float) -> float:
    """Relative reduction from baseline to optimized, in percent; 0 for a zero baseline."""
    if baseline == 0:
        return 0.0
    return (baseline - optimized) / baseline * 100


def _average(values: list[float], default: float = 0.0) -> float:
    return sum(values) / len(values) if values else default


class BenchmarkHarness:
    """Runs prompt renderings side by side and keeps a bounded history.

    Not thread-safe; run comparisons sequentially.
    """

    def __init__(
        self,
        assembler: PromptAssembler,
        history_limit: int | None = None,
        trend_window: int | None = None,
    ):
        """Initialize the harness.

        Args:
            assembler: Assembler used for the dynamic rendering; its knowledge
                base is used for the other two.
            history_limit: Results kept in memory. Defaults to
                ``settings.benchmark_history_limit``.
            trend_window: Recent results compared in trend analysis. Defaults
                to ``settings.trend_window``.
        """
        self.assembler = assembler
        self.kb = assembler.kb
        self.trend_window = trend_window or settings.trend_window
        self.history: deque[BenchmarkResult] = deque(
            maxlen=history_limit or settings.benchmark_history_limit
        )
        self._structured_logger = StructuredLogger("benchmark")

    def run_comparison(
        self,
        options: AssemblyRequest,
        provider_names: Iterable[str] | None = None,
    ) -> list[BenchmarkComparison]:
        """Benchmark all three renderings for each provider, sequentially.

        Args:
            options: Request shared by every rendering. Its provider fields
                are replaced per provider.
            provider_names: Providers to benchmark. Defaults to
                ``settings.benchmark_providers``.

        Returns:
            Two comparisons per provider: provider-aware vs baseline, then
            dynamic-optimized vs baseline.
        """
        provider_names = list(provider_names or settings.benchmark_providers)
        options = self._with_intent(options)
        comparisons: list[BenchmarkComparison] = []

        with PerformanceLogger("benchmark", structured=True) as perf:
            for provider_name in provider_names:
                request = dataclasses.replace(
                    options, provider_name=provider_name, provider_category=None
                )
                baseline = self._timed(BASELINE, provider_name, self._render_baseline, request)
                provider_aware = self._timed(
                    PROVIDER_AWARE, provider_name, self._render_provider_aware, request
                )
                dynamic = self._timed(
                    DYNAMIC_OPTIMIZED, provider_name, self._render_dynamic, request
                )

                for result in (provider_aware, dynamic):
                    if baseline.success and baseline.estimated_size > 0:
                        result.compression_ratio = (
                            result.estimated_size / baseline.estimated_size
                        )
                    perf.log_timing(
                        f"{provider_name}.{result.algorithm}", result.generation_time_ms
                    )

                comparisons.append(self.compare(baseline, provider_aware))
                comparisons.append(self.compare(baseline, dynamic))
                self.history.extend((baseline, provider_aware, dynamic))

        logger.info(
            f"Benchmark completed: {len(comparisons)} comparisons, average size "
            f"reduction {_average([c.size_reduction for c in comparisons]):.1f}%"
        )
        return comparisons

    def compare(
        self, baseline: BenchmarkResult, optimized: BenchmarkResult
    ) -> BenchmarkComparison:
        """Compare an optimized rendering against its baseline.

        A failed rendering on either side scores no reduction and no intent
        bonus, and its error becomes the recommendation.
        """
        failed = next((r for r in (optimized, baseline) if not r.success), None)
        if failed is not None:
            return BenchmarkComparison(
                baseline=baseline,
                optimized=optimized,
                size_reduction=0.0,
                speed_improvement=0.0,
                quality_score=0.5,
                recommendation=f"Optimization failed - {failed.algorithm}: {failed.error}",
            )

        size_reduction = percent_change(baseline.estimated_size, optimized.estimated_size)
        speed_improvement = percent_change(
            baseline.generation_time_ms, optimized.generation_time_ms
        )

        quality_score = 0.5
        if optimized.validation_passed:
            quality_score += 0.3
        if baseline.intent_category == optimized.intent_category:
            quality_score += 0.2

        if size_reduction > 50:
            recommendation = "Excellent optimization - significant token reduction achieved"
        elif size_reduction > 25:
            recommendation = "Good optimization - moderate token reduction"
        elif size_reduction > 0:
            recommendation = "Minor optimization - small token reduction"
        else:
            recommendation = "Optimization ineffective - consider alternative approach"
        if speed_improvement < 0:
            recommendation += ". Warning: Generation time increased"

        return BenchmarkComparison(
            baseline=baseline,
            optimized=optimized,
            size_reduction=size_reduction,
            speed_improvement=speed_improvement,
            quality_score=round(quality_score, 2),
            recommendation=recommendation,
        )

    def analyze_trends(self) -> TrendAnalysis:
        """Compare the most recent results with the earlier history."""
        results = [r for r in self.history if r.success]
        if not results:
            return TrendAnalysis(recommendations=["No data available for trend analysis"])

        recent = results[-self.trend_window :]
        earlier = results[: -self.trend_window]
        if not earlier:
            return TrendAnalysis(
                recommendations=["Not enough history for trend analysis"]
            )

        trends = TrendAnalysis()
        recent_size = _average([r.estimated_size for r in recent])
        earlier_size = _average([r.estimated_size for r in earlier])
        if recent_size < earlier_size:
            trends.improving_metrics.append("Token efficiency")
        elif recent_size > earlier_size:
            trends.declining_metrics.append("Token efficiency")
            trends.recommendations.append("Review token optimization strategies")

        recent_time = _average([r.generation_time_ms for r in recent])
        earlier_time = _average([r.generation_time_ms for r in earlier])
        if recent_time < earlier_time:
            trends.improving_metrics.append("Generation speed")
        elif recent_time > earlier_time:
            trends.declining_metrics.append("Generation speed")
            trends.recommendations.append("Optimize prompt generation algorithms")

        return trends

    def performance_metrics(self) -> PerformanceMetrics:
        """Aggregate metrics over the whole history."""
        results = list(self.history)
        if not results:
            return PerformanceMetrics(trends=self.analyze_trends())

        reductions = []
        latest_baseline: dict[str, BenchmarkResult] = {}
        for result in results:
            if not result.success:
                continue
            if result.algorithm == BASELINE:
                latest_baseline[result.provider_name] = result
            elif result.provider_name in latest_baseline:
                baseline = latest_baseline[result.provider_name]
                reductions.append(
                    percent_change(baseline.estimated_size, result.estimated_size)
                )

        optimized = [r for r in results if r.algorithm != BASELINE]
        successful = [r for r in optimized if r.validation_passed and r.estimated_size > 0]

        by_provider: dict[str, list[BenchmarkResult]] = {}
        for result in results:
            by_provider.setdefault(result.provider_name, []).append(result)

        efficiency = {}
        for provider_name, provider_results in by_provider.items():
            provider_optimized = [
                r for r in provider_results if r.algorithm != BASELINE and r.success
            ]
            efficiency[provider_name] = ProviderStats(
                average_reduction=_average(
                    [(1 - r.compression_ratio) * 100 for r in provider_optimized]
                ),
                average_generation_time_ms=_average(
                    [r.generation_time_ms for r in provider_results]
                ),
                reliability=(
                    sum(1 for r in provider_results if r.validation_passed)
                    / len(provider_results)
                    * 100
                ),
            )

        return PerformanceMetrics(
            average_size_reduction=_average(reductions),
            average_generation_time_ms=_average([r.generation_time_ms for r in optimized]),
            average_compression_ratio=_average(
                [r.compression_ratio for r in optimized if r.success], default=1.0
            ),
            success_rate=len(successful) / len(optimized) * 100 if optimized else 0.0,
            provider_efficiency=efficiency,
            trends=self.analyze_trends(),
        )

    def run_benchmark(
        self,
        options: AssemblyRequest,
        provider_names: Iterable[str] | None = None,
    ) -> dict[str, Any]:
        """Run a comparison and summarize it with consolidated recommendations."""
        comparisons = self.run_comparison(options, provider_names)
        metrics = self.performance_metrics()

        recommendations = []
        if metrics.average_size_reduction > 50:
            recommendations.append(
                "Excellent optimization performance - consider this as the standard approach"
            )
        elif metrics.average_size_reduction > 25:
            recommendations.append("Good optimization - monitor for further improvements")
        else:
            recommendations.append(
                "Optimization needs improvement - review algorithms and thresholds"
            )
        if metrics.success_rate < 90:
            recommendations.append("Success rate below 90% - investigate failure causes")
        recommendations.extend(metrics.trends.recommendations)

        self._structured_logger.log_benchmark_summary(
            {
                "comparisons": len(comparisons),
                "average_size_reduction": round(metrics.average_size_reduction, 2),
                "success_rate": round(metrics.success_rate, 2),
                "recommendations": recommendations,
            }
        )
        return {
            "comparisons": comparisons,
            "metrics": metrics,
            "recommendations": recommendations,
        }

    def export_results(self) -> dict[str, Any]:
        """Plain-data snapshot of the history and its summary."""
        return {
            "results": [dataclasses.asdict(r) for r in self.history],
            "summary": dataclasses.asdict(self.performance_metrics()),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def reset(self) -> None:
        self.history.clear()
        logger.info("Benchmark results cleared")

    # Renderings

    def _with_intent(self, options: AssemblyRequest) -> AssemblyRequest:
        """Classify once so every rendering shares the same intent."""
        if options.intent is not None:
            return options
        chat_mode = ChatMode(options.chat_mode or settings.default_chat_mode)
        intent = self.assembler.classifier.classify(
            options.history,
            ClassificationOptions(
                chat_mode=chat_mode,
                has_existing_files=options.has_existing_files,
                database_connected=options.connection.connected,
            ),
        )
        return dataclasses.replace(options, intent=intent, chat_mode=chat_mode)

    def _timed(
        self,
        algorithm: str,
        provider_name: str,
        render: Callable[[AssemblyRequest], dict[str, Any]],
        request: AssemblyRequest,
    ) -> BenchmarkResult:
        start_time = time.perf_counter()
        try:
            rendered = render(request)
        except Exception as e:
            logger.error(
                f"{algorithm} rendering failed for provider {provider_name}",
                exc_info=True,
                extra={"provider": provider_name, "algorithm": algorithm},
            )
            return BenchmarkResult(
                algorithm=algorithm,
                provider_name=provider_name,
                estimated_size=0,
                generation_time_ms=(time.perf_counter() - start_time) * 1000,
                timestamp=time.time(),
                compression_ratio=0.0,
                success=False,
                error=str(e),
            )
        generation_time_ms = (time.perf_counter() - start_time) * 1000

        intent = request.intent
        return BenchmarkResult(
            algorithm=algorithm,
            provider_name=provider_name,
            estimated_size=rendered["estimated_size"],
            generation_time_ms=generation_time_ms,
            timestamp=time.time(),
            verbosity=rendered["verbosity"],
            intent_category=rendered.get(
                "intent_category", intent.category.value if intent else None
            ),
            intent_confidence=intent.confidence.value if intent else None,
            optimizations_applied=rendered["optimizations"],
            sections_included=len(rendered["sections"]),
            validation_passed=rendered["valid"],
        )

    def _render_baseline(self, request: AssemblyRequest) -> dict[str, Any]:
        """Every rule category at detailed verbosity, without tuning."""
        sections = list(self.kb.rules)
        verbosity = VerbosityLevel.DETAILED
        chat_mode = ChatMode(request.chat_mode or settings.default_chat_mode)
        text = self.assembler.render_sections(sections, verbosity, request, chat_mode)
        validation = self.assembler.validator.validate(text, sections)
        return {
            "estimated_size": self.kb.estimate_tokens(sections, verbosity),
            "verbosity": verbosity,
            "sections": sections,
            "optimizations": [],
            "valid": validation.valid,
        }

    def _render_provider_aware(self, request: AssemblyRequest) -> dict[str, Any]:
        """Provider base verbosity with the provider's excluded sections removed.

        Sections are ordered with the profile's priority sections first.
        Profiles that enhance code guidelines render those sections at the
        detailed tier; other profiles leave them out. Profiles that simplify
        language keep a one-line shorthand for dropped sections that have one.
        """
        category = resolve_provider_category(
            self.kb, request.provider_name, request.model_name
        )
        profile = self.kb.provider_profile(category)
        optimization = profile.optimization
        verbosity = profile.base_verbosity
        optimizations = ["provider-specific"]

        dropped = list(optimization.excluded_sections)
        enhanced: set[str] = set()
        if optimization.enhance_code_guidelines:
            enhanced.update(self.kb.code_guideline_sections)
        else:
            dropped.extend(
                name for name in self.kb.code_guideline_sections if name not in dropped
            )
        sections = prioritize_sections(
            (name for name in self.kb.rules if name not in dropped),
            optimization.priority_sections,
        )

        chat_mode = ChatMode(request.chat_mode or settings.default_chat_mode)
        parts = []
        estimated_size = 0
        for name in sections:
            level = VerbosityLevel.DETAILED if name in enhanced else verbosity
            rendered = self.assembler.render_sections([name], level, request, chat_mode)
            if rendered:
                parts.append(rendered)
            estimated_size += self.kb.estimate_tokens([name], level)
        text = "\n\n".join(parts)
        if enhanced.intersection(sections) and verbosity != VerbosityLevel.DETAILED:
            optimizations.append("enhanced-code-guidelines")

        if optimization.simplify_language:
            shorthand = self.kb.shorthand_rules(dropped)
            if shorthand:
                text = f"{text}\n\n{shorthand}"
                estimated_size += math.ceil(len(shorthand) / 4)
                optimizations.append("simplified-language")

        validation = self.assembler.validator.validate(text, sections)
        return {
            "estimated_size": estimated_size,
            "verbosity": verbosity,
            "sections": sections,
            "optimizations": optimizations,
            "valid": validation.valid,
        }

    def _render_dynamic(self, request: AssemblyRequest) -> dict[str, Any]:
        prompt = self.assembler.assemble(request)
        optimizations = [prompt.metadata["provider_category"], "intent-based", "verbosity-optimized"]
        if prompt.degraded:
            optimizations.append("degraded")
        return {
            "estimated_size": prompt.estimated_size,
            "verbosity": prompt.verbosity,
            "sections": list(prompt.rule_categories),
            "optimizations": optimizations,
            "valid": prompt.validation.valid,
            "intent_category": prompt.metadata["intent_category"],
        }
