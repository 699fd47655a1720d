"""Performance benchmarks for intent classification and prompt assembly."""

import pytest

from src.assembler.types import AssemblyRequest
from src.benchmark.harness import BenchmarkHarness
from src.intent_detection.types import ClassificationOptions
from src.knowledge_base.loader import load_knowledge_base
from src.knowledge_base.types import IntentCategory

LANDING_PAGE = "Create a simple landing page with a hero section and contact form"


def user(content):
    return [{"role": "user", "content": content}]


class TestPerformanceBenchmarks:
    """Performance benchmarks for the prompt pipeline."""

    def test_classification_performance(self, benchmark, assembler):
        """Benchmark keyword classification speed."""
        history = user(LANDING_PAGE)
        options = ClassificationOptions(chat_mode="build")

        result = benchmark(assembler.classifier.classify, history, options)

        assert result.category == IntentCategory.CREATE_PROJECT

    def test_long_message_classification(self, benchmark, assembler):
        """Benchmark classification of a long message."""
        history = user("Please fix the crash in the checkout flow. " * 200)

        result = benchmark(assembler.classifier.classify, history)

        assert result.category == IntentCategory.FIX_BUG

    def test_assembly_performance(self, benchmark, assembler):
        """Benchmark end-to-end assembly including validation."""
        request = AssemblyRequest(
            provider_name="OpenAI", chat_mode="build", history=user(LANDING_PAGE)
        )

        prompt = benchmark(assembler.assemble, request)

        assert prompt.validation.valid
        assert prompt.metadata["generation_time_ms"] < 1000

    def test_knowledge_base_load_performance(self, benchmark):
        """Benchmark loading and validating the rule document."""
        kb = benchmark(load_knowledge_base)

        assert len(kb.rules) > 0

    @pytest.mark.parametrize("provider", ["Anthropic", "Groq", "Ollama"])
    def test_benchmark_comparison_performance(self, benchmark, assembler, provider):
        """Benchmark one full three-way comparison per provider."""
        harness = BenchmarkHarness(assembler, history_limit=10)
        request = AssemblyRequest(chat_mode="build", history=user(LANDING_PAGE))

        comparisons = benchmark(harness.run_comparison, request, [provider])

        assert len(comparisons) == 2
        assert comparisons[1].size_reduction > 0
