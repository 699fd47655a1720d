"""Tests for provider category resolution and verbosity mapping."""

import pytest

from config.settings import settings
from src.intent_detection.types import DetectedIntent, IntentContext
from src.knowledge_base.types import (
    Complexity,
    IntentCategory,
    IntentConfidence,
    ProviderCategory,
    VerbosityContext,
    VerbosityLevel,
)
from src.providers.categories import (
    prioritize_sections,
    resolve_provider_category,
    should_optimize_for_tokens,
    token_reduction,
)
from src.providers.verbosity_mapper import ProviderVerbosityMapper, context_from_intent


@pytest.fixture
def mapper(kb):
    return ProviderVerbosityMapper(kb)


class TestResolveVerbosity:
    """Test base verbosity plus ordered context adjustments."""

    def test_debugging_on_speed_provider_is_minimal(self, mapper):
        resolution = mapper.resolve_verbosity("speed-optimized", {"is_debugging": True})
        assert resolution.verbosity == VerbosityLevel.MINIMAL

    def test_debugging_overrides_earlier_adjustment(self, mapper):
        resolution = mapper.resolve_verbosity(
            ProviderCategory.SPEED_OPTIMIZED,
            {"intent_complexity": "complex", "is_debugging": True},
        )
        assert resolution.verbosity == VerbosityLevel.MINIMAL
        assert resolution.adjustments == (
            "intent_complexity: complex → standard",
            "is_debugging: true → minimal",
        )

    def test_no_context_uses_base(self, mapper):
        for category in ProviderCategory:
            resolution = mapper.resolve_verbosity(category)
            assert resolution.verbosity == mapper.kb.provider_profile(category).base_verbosity
            assert resolution.adjustments == ()

    def test_unchanged_tier_is_not_recorded(self, mapper):
        resolution = mapper.resolve_verbosity("standard", {"intent_confidence": "high"})
        assert resolution.verbosity == VerbosityLevel.STANDARD
        assert resolution.adjustments == ()

    def test_mapping_order_decides_last_adjustment(self, mapper):
        first = mapper.resolve_verbosity(
            "standard", {"intent_complexity": "complex", "task_type": "maintenance"}
        )
        second = mapper.resolve_verbosity(
            "standard", {"task_type": "maintenance", "intent_complexity": "complex"}
        )
        assert first.verbosity == VerbosityLevel.MINIMAL
        assert second.verbosity == VerbosityLevel.DETAILED

    def test_model_context_uses_field_order(self, mapper):
        context = VerbosityContext(task_type="maintenance", intent_complexity="complex")
        resolution = mapper.resolve_verbosity("standard", context)
        assert resolution.verbosity == VerbosityLevel.MINIMAL

    def test_fields_without_adjustment_table_ignored(self, mapper):
        resolution = mapper.resolve_verbosity("speed-optimized", {"user_experience": "beginner"})
        assert resolution.verbosity == VerbosityLevel.MINIMAL

    def test_none_values_ignored(self, mapper):
        resolution = mapper.resolve_verbosity("standard", {"user_experience": None})
        assert resolution.verbosity == VerbosityLevel.STANDARD

    def test_deterministic(self, mapper):
        context = {"intent_complexity": "moderate", "user_experience": "beginner"}
        assert mapper.resolve_verbosity("local-models", context) == mapper.resolve_verbosity(
            "local-models", context
        )

    def test_reasoning_is_profile_text(self, mapper, kb):
        resolution = mapper.resolve_verbosity("reasoning")
        assert resolution.reasoning == kb.provider_profile("reasoning").reasoning

    def test_unknown_context_field(self, mapper):
        with pytest.raises(ValueError, match="mood"):
            mapper.resolve_verbosity("standard", {"mood": "happy"})

    def test_invalid_context_value(self, mapper):
        with pytest.raises(ValueError):
            mapper.resolve_verbosity("standard", {"intent_complexity": "enormous"})

    def test_unknown_provider_category(self, mapper):
        with pytest.raises(ValueError):
            mapper.resolve_verbosity("quantum")


class TestTokenBudget:
    def test_budget_lookup(self, mapper):
        assert mapper.token_budget("standard", "standard") == 600
        assert mapper.token_budget("speed-optimized", VerbosityLevel.MINIMAL) == 150

    def test_within_budget(self, mapper):
        check = mapper.is_budget_appropriate("standard", "standard", 900)
        assert check.appropriate
        assert check.budget == 600
        assert check.recommendation is None

    def test_over_budget_recommends_lower_tier(self, mapper):
        check = mapper.is_budget_appropriate("standard", "standard", 901)
        assert not check.appropriate
        assert check.recommendation == VerbosityLevel.MINIMAL
        assert "exceeds budget" in check.reason

    def test_over_budget_at_minimal_stays_minimal(self, mapper):
        check = mapper.is_budget_appropriate("speed-optimized", "minimal", 300)
        assert not check.appropriate
        assert check.recommendation == VerbosityLevel.MINIMAL

    def test_under_budget_recommends_higher_tier(self, mapper):
        check = mapper.is_budget_appropriate("standard", "standard", 179)
        assert not check.appropriate
        assert check.recommendation == VerbosityLevel.DETAILED

    def test_small_detailed_prompt_is_fine(self, mapper):
        check = mapper.is_budget_appropriate("high-context", "detailed", 10)
        assert check.appropriate


class TestProviderCategories:
    """Test provider and model name resolution."""

    @pytest.mark.parametrize(
        "provider,model,expected",
        [
            ("Groq", None, ProviderCategory.SPEED_OPTIMIZED),
            ("Anthropic", "claude-3-5-sonnet", ProviderCategory.HIGH_CONTEXT),
            ("OpenAI", "gpt-4o", ProviderCategory.STANDARD),
            ("OpenAI", "o1-preview", ProviderCategory.REASONING),
            ("Deepseek", "deepseek-reasoner", ProviderCategory.REASONING),
            ("Deepseek", "deepseek-coder", ProviderCategory.CODING_SPECIALIZED),
            ("Google", "gemini-2.0-flash-thinking", ProviderCategory.REASONING),
            ("Google", "gemini-1.5-flash", ProviderCategory.SPEED_OPTIMIZED),
            ("Ollama", "llama3", ProviderCategory.LOCAL_MODELS),
        ],
    )
    def test_resolution(self, kb, provider, model, expected):
        assert resolve_provider_category(kb, provider, model) == expected

    def test_unknown_provider_uses_explicit_default(self, kb):
        assert (
            resolve_provider_category(kb, "Nowhere", default="local-models")
            == ProviderCategory.LOCAL_MODELS
        )

    def test_unknown_provider_uses_settings_default(self, kb):
        expected = ProviderCategory(settings.default_provider_category)
        assert resolve_provider_category(kb, "Nowhere") == expected
        assert resolve_provider_category(kb, None) == expected

    def test_should_optimize_for_tokens(self):
        assert should_optimize_for_tokens(None)
        assert should_optimize_for_tokens(32000)
        assert not should_optimize_for_tokens(64000)
        assert not should_optimize_for_tokens(200000)

    def test_token_reduction(self, kb):
        assert token_reduction(kb, "speed-optimized") == 60
        assert token_reduction(kb, ProviderCategory.HIGH_CONTEXT) == -20

    def test_prioritize_sections(self):
        sections = ["system_identity", "code_quality", "artifact_creation", "testing_guidelines"]
        ordered = prioritize_sections(sections, ["artifact_creation", "code_quality"])
        assert ordered == [
            "artifact_creation",
            "code_quality",
            "system_identity",
            "testing_guidelines",
        ]

    def test_prioritize_sections_ignores_absent_priorities(self):
        sections = ["system_identity", "system_constraints"]
        assert prioritize_sections(sections, ["debugging_triage"]) == sections
        assert prioritize_sections(sections, []) == sections


class TestContextFromIntent:
    def _intent(self, category, **context):
        return DetectedIntent(
            category=category,
            confidence=IntentConfidence.HIGH,
            context=IntentContext(**context),
        )

    def test_fix_bug_sets_debugging(self):
        intent = self._intent(
            IntentCategory.FIX_BUG, complexity=Complexity.SIMPLE, is_existing_project=True
        )
        context = context_from_intent(intent)
        assert list(context) == [
            "intent_complexity",
            "intent_confidence",
            "is_existing_project",
            "is_debugging",
            "task_type",
        ]
        assert context["is_debugging"] is True
        assert context["task_type"] == "maintenance"

    def test_other_intents_skip_debugging(self):
        context = context_from_intent(self._intent(IntentCategory.DESIGN_UI))
        assert "is_debugging" not in context
        assert context["task_type"] == "creative"

    def test_extras_applied_last(self):
        intent = self._intent(IntentCategory.ADD_FEATURE)
        context = context_from_intent(
            intent, {"intent_complexity": "complex", "user_experience": "expert"}
        )
        assert list(context)[-2:] == ["intent_complexity", "user_experience"]
        assert context["intent_complexity"] == "complex"

    def test_feeds_mapper(self, mapper):
        intent = self._intent(IntentCategory.FIX_BUG, complexity=Complexity.COMPLEX)
        resolution = mapper.resolve_verbosity("speed-optimized", context_from_intent(intent))
        assert resolution.verbosity == VerbosityLevel.MINIMAL


class TestProviderComparison:
    def test_compare_provider_efficiency(self, mapper):
        results = mapper.compare_provider_efficiency(
            ["standard", "high-context", "speed-optimized"]
        )
        assert [r.provider for r in results] == [
            ProviderCategory.SPEED_OPTIMIZED,
            ProviderCategory.STANDARD,
            ProviderCategory.HIGH_CONTEXT,
        ]
        assert results[0].estimated_tokens == 150
        assert results[1].efficiency == 300

    def test_characteristics(self, mapper):
        characteristics = mapper.provider_characteristics("reasoning")
        assert characteristics["description"]
        assert len(characteristics["strengths"]) == 4
        assert len(characteristics["limitations"]) == 3

    def test_verbosity_for_debugging_task(self, mapper):
        task = mapper.verbosity_for_task("fix-bug", "speed-optimized")
        assert task.verbosity == VerbosityLevel.MINIMAL
        assert any("surgical" in tip for tip in task.tips)

    def test_verbosity_for_new_project(self, mapper):
        task = mapper.verbosity_for_task(IntentCategory.CREATE_PROJECT, "high-context")
        assert task.verbosity == VerbosityLevel.DETAILED
        assert any("project structure" in tip for tip in task.tips)

    def test_verbosity_for_reasoning_model(self, mapper):
        task = mapper.verbosity_for_task("explain-code", "reasoning")
        assert task.verbosity == VerbosityLevel.MINIMAL
        assert "Let the model reason through the solution internally" in task.tips

    def test_expert_user_on_standard_provider(self, mapper):
        task = mapper.verbosity_for_task("add-feature", "standard", user_experience="expert")
        assert task.verbosity == VerbosityLevel.MINIMAL
