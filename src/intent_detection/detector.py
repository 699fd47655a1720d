"""Keyword-based intent classification."""

import logging
import re
from collections.abc import Sequence
from typing import Any

from src.knowledge_base.base import KnowledgeBase
from src.knowledge_base.types import (
    ChatMode,
    Complexity,
    ContextFlag,
    IntentCategory,
    IntentConfidence,
    ProviderCategory,
    VerbosityLevel,
)

from .types import (
    ClassificationOptions,
    DetectedIntent,
    IntentContext,
    ScoringWeights,
)

logger = logging.getLogger(__name__)

_BUILD_INTENTS = (
    IntentCategory.CREATE_PROJECT,
    IntentCategory.ADD_FEATURE,
    IntentCategory.FIX_BUG,
)
_DISCUSS_INTENTS = (IntentCategory.EXPLAIN_CODE, IntentCategory.GENERAL_DISCUSS)


def _keyword_pattern(keyword: str) -> re.Pattern:
    # Anchor at a word start only, so "fix" also matches "fixing"
    return re.compile(r"\b" + re.escape(keyword.lower()))


def _field(message: Any, name: str) -> Any:
    if isinstance(message, dict):
        return message.get(name)
    return getattr(message, name, None)


def extract_text(content: Any) -> str:
    """Flatten message content (a string or a list of segments) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, (list, tuple)):
        parts = []
        for part in content:
            if _field(part, "type") == "text":
                text = _field(part, "text")
                if isinstance(text, str):
                    parts.append(text)
        return " ".join(parts)
    return ""


def latest_user_text(history: Sequence[Any] | None) -> str:
    """Text of the most recent user-authored message, or an empty string."""
    for message in reversed(list(history or [])):
        if _field(message, "role") == "user":
            return extract_text(_field(message, "content"))
    return ""


class _CompiledPatterns:
    """Pre-compiled keyword regexes for one intent category."""

    def __init__(self, pattern):
        self.keywords = [(kw, _keyword_pattern(kw)) for kw in pattern.keywords]
        self.exclusive = [_keyword_pattern(kw) for kw in pattern.exclusive_keywords]
        self.always = tuple(pattern.always)
        self.context = {
            flag: [_keyword_pattern(kw) for kw in phrases]
            for flag, phrases in pattern.context_indicators.items()
        }
        self.complexity = {
            tier: [_keyword_pattern(kw) for kw in phrases]
            for tier, phrases in pattern.complexity_indicators.items()
        }


class IntentClassifier:
    """Classifies the latest user message into an intent category."""

    def __init__(self, kb: KnowledgeBase, weights: ScoringWeights | None = None):
        """Initialize the classifier.

        Args:
            kb: Knowledge base holding the keyword and indicator phrases.
            weights: Scoring constants. Uses the defaults if not provided.
        """
        self.kb = kb
        self.weights = weights or ScoringWeights()
        self._compile_patterns()

    def _compile_patterns(self):
        """Compile regex patterns for efficient matching."""
        self.patterns = {
            category: _CompiledPatterns(self.kb.intent_patterns[category])
            for category in IntentCategory
        }

    def classify(
        self,
        history: Sequence[Any] | None,
        options: ClassificationOptions | None = None,
    ) -> DetectedIntent:
        """Detect the intent of the latest user message.

        Never raises: missing or blank input produces the default intent.

        Args:
            history: Conversation messages (dicts or objects with ``role`` and
                ``content``), oldest first.
            options: Chat mode and project state used for score boosts.

        Returns:
            The detected intent.
        """
        options = options or ClassificationOptions()
        text = latest_user_text(history)
        if not text.strip():
            logger.warning("No user message text to classify, using default intent")
            return self.default_intent(options)

        content = text.lower()
        scores = []
        for category in IntentCategory:
            score, matched = self._score(category, content, options)
            scores.append((category, score, matched))

        # Stable sort keeps declaration order among equal scores
        ranked = sorted(scores, key=lambda item: item[1], reverse=True)
        best_category, best_score, best_keywords = ranked[0]
        runner_up = ranked[1][1] if len(ranked) > 1 else None

        confidence = self._confidence(best_score, runner_up)
        context = self._context(best_category, content, options)

        logger.debug(
            f"Classified as {best_category.value} ({confidence.value}), "
            f"score={best_score}, runner_up={runner_up}, keywords={best_keywords}"
        )
        return DetectedIntent(
            category=best_category,
            confidence=confidence,
            keywords=tuple(best_keywords),
            context=context,
        )

    def _score(
        self,
        category: IntentCategory,
        content: str,
        options: ClassificationOptions,
    ) -> tuple[int, list[str]]:
        w = self.weights
        patterns = self.patterns[category]

        matched = [kw for kw, pattern in patterns.keywords if pattern.search(content)]
        score = w.keyword_match * len(matched)
        for pattern in patterns.exclusive:
            if pattern.search(content):
                score -= w.exclusive_penalty
        score = max(score, 0)

        if options.chat_mode == ChatMode.BUILD and category in _BUILD_INTENTS:
            score += w.chat_mode_boost
        if options.chat_mode == ChatMode.DISCUSS and category in _DISCUSS_INTENTS:
            score += w.chat_mode_boost
        if options.database_connected and category == IntentCategory.DATABASE_OPS:
            score += w.database_boost
        if options.has_existing_files:
            if category == IntentCategory.ADD_FEATURE:
                score += w.existing_project_boost
            elif category == IntentCategory.CREATE_PROJECT:
                score -= w.existing_project_penalty

        return max(score, 0), matched

    def _confidence(self, best: int, runner_up: int | None) -> IntentConfidence:
        w = self.weights
        if best >= w.high_confidence_score:
            confidence = IntentConfidence.HIGH
        elif best >= w.medium_confidence_score:
            confidence = IntentConfidence.MEDIUM
        else:
            confidence = IntentConfidence.LOW

        if runner_up is not None and best - runner_up <= w.ambiguity_margin:
            if confidence == IntentConfidence.HIGH:
                confidence = IntentConfidence.MEDIUM
            else:
                confidence = IntentConfidence.LOW
        return confidence

    def _context(
        self,
        category: IntentCategory,
        content: str,
        options: ClassificationOptions,
    ) -> IntentContext:
        patterns = self.patterns[category]
        flags = {flag.value: False for flag in ContextFlag}
        for flag in patterns.always:
            flags[flag.value] = True
        for flag, phrases in patterns.context.items():
            if any(p.search(content) for p in phrases):
                flags[flag.value] = True

        complexity = Complexity.MODERATE
        for tier in Complexity:
            if any(p.search(content) for p in patterns.complexity.get(tier, [])):
                complexity = tier
                break

        return IntentContext(
            is_existing_project=options.has_existing_files,
            complexity=complexity,
            **flags,
        )

    def default_intent(self, options: ClassificationOptions | None = None) -> DetectedIntent:
        """Intent used when there is nothing to classify."""
        options = options or ClassificationOptions()
        if options.chat_mode == ChatMode.DISCUSS:
            category = IntentCategory.GENERAL_DISCUSS
        else:
            category = IntentCategory.ADD_FEATURE
        return DetectedIntent(
            category=category,
            confidence=IntentConfidence.LOW,
            keywords=(),
            context=IntentContext(is_existing_project=options.has_existing_files),
        )

    def recommended_sections(self, intent: DetectedIntent) -> list[str]:
        """Rule categories selected for an intent, in canonical order.

        Baseline sections, then the intent's required and optional rules,
        then rules triggered by its context flags, minus forbidden ones.
        """
        mapping = self.kb.mapping_for(intent.category)
        candidates: list[str] = list(self.kb.baseline)
        candidates.extend(mapping.required)
        candidates.extend(mapping.optional)
        for flag in intent.context.active_flags:
            candidates.extend(self.kb.context_rules.get(flag, ()))

        forbidden = set(mapping.forbidden)
        sections: list[str] = []
        for name in candidates:
            if name not in forbidden and name not in sections:
                sections.append(name)
        return sections


def optimal_verbosity(
    intent: DetectedIntent, provider_category: ProviderCategory | str
) -> VerbosityLevel:
    """Quick verbosity heuristic from the intent alone.

    The provider mapper is the authoritative source; this is used to label
    regression scenarios and for diagnostics.
    """
    if (
        intent.confidence == IntentConfidence.HIGH
        and intent.context.complexity == Complexity.SIMPLE
    ):
        return VerbosityLevel.MINIMAL
    if (
        intent.context.complexity == Complexity.COMPLEX
        or intent.confidence == IntentConfidence.LOW
    ):
        return VerbosityLevel.DETAILED
    if ProviderCategory(provider_category) in (
        ProviderCategory.SPEED_OPTIMIZED,
        ProviderCategory.REASONING,
    ):
        return VerbosityLevel.MINIMAL
    return VerbosityLevel.STANDARD
