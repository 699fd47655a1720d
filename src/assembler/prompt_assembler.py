"""Prompt assembly: intent, provider and knowledge base in, rule text out."""

import dataclasses
import logging
import time
from collections.abc import Iterable
from typing import Any

from config.settings import settings
from src.intent_detection.detector import IntentClassifier
from src.intent_detection.types import ClassificationOptions, DetectedIntent
from src.knowledge_base.base import KnowledgeBase
from src.knowledge_base.types import (
    ChatMode,
    ProviderCategory,
    VerbosityLevel,
)
from src.providers.categories import resolve_provider_category
from src.providers.verbosity_mapper import (
    OVER_BUDGET_RATIO,
    ProviderVerbosityMapper,
    context_from_intent,
)
from src.validation.content_validator import ContentValidator

from .monitoring import AssemblyMonitor, StructuredLogger, monitor_assembly
from .types import AssembledPrompt, AssemblyRequest

logger = logging.getLogger(__name__)


class PromptAssembler:
    """Builds provider-tuned, size-bounded system instructions.

    The assembler owns a classifier, verbosity mapper and validator built on
    the same knowledge base, plus an :class:`AssemblyMonitor` with counters
    for this instance only.
    """

    def __init__(
        self,
        kb: KnowledgeBase,
        classifier: IntentClassifier | None = None,
        mapper: ProviderVerbosityMapper | None = None,
        validator: ContentValidator | None = None,
    ):
        """Initialize the assembler.

        Args:
            kb: Loaded rule knowledge base.
            classifier: Intent classifier. Built from ``kb`` if not provided.
            mapper: Verbosity mapper. Built from ``kb`` if not provided.
            validator: Content validator. Built from ``kb`` if not provided.
        """
        self.kb = kb
        self.classifier = classifier or IntentClassifier(kb)
        self.mapper = mapper or ProviderVerbosityMapper(kb)
        self.validator = validator or ContentValidator(kb)
        self.monitor = AssemblyMonitor()
        self._structured_logger = StructuredLogger()

    @monitor_assembly
    def assemble(self, request: AssemblyRequest) -> AssembledPrompt:
        """Assemble the system instructions for one request.

        Budget overruns and validation violations are reported in the result,
        never raised.

        Args:
            request: Provider, session and message details.

        Returns:
            The rendered prompt with its verbosity, size estimate, validation
            result and decision metadata.
        """
        start_time = time.perf_counter()
        chat_mode = ChatMode(request.chat_mode or settings.default_chat_mode)
        intent = self._intent_for(request, chat_mode)
        provider_category = self._provider_category_for(request)

        sections = self.classifier.recommended_sections(intent)
        forbidden = list(self.kb.mapping_for(intent.category).forbidden)

        if request.force_verbosity is not None:
            verbosity = request.force_verbosity
            adjustments: tuple[str, ...] = ()
            logger.debug(f"Verbosity forced to {verbosity.value}")
        else:
            context = context_from_intent(intent, request.verbosity_context)
            resolution = self.mapper.resolve_verbosity(provider_category, context)
            verbosity = resolution.verbosity
            adjustments = resolution.adjustments

        budget = self.mapper.token_budget(provider_category, verbosity)
        estimated_size = self.kb.estimate_tokens(sections, verbosity)
        degraded = False
        over_budget = False

        if estimated_size > budget * OVER_BUDGET_RATIO:
            if verbosity != VerbosityLevel.MINIMAL:
                logger.info(
                    f"Estimated size {estimated_size} exceeds budget {budget} at "
                    f"{verbosity.value}, stepping down to {verbosity.step_down().value}"
                )
                verbosity = verbosity.step_down()
                degraded = True
                budget = self.mapper.token_budget(provider_category, verbosity)
                estimated_size = self.kb.estimate_tokens(sections, verbosity)
            if estimated_size > budget * OVER_BUDGET_RATIO:
                over_budget = True
                logger.warning(
                    f"Prompt still over budget for {provider_category.value}: "
                    f"{estimated_size} tokens vs budget {budget} at {verbosity.value}"
                )

        text = self.render_sections(sections, verbosity, request, chat_mode)
        validation = self.validator.validate(text, sections)

        metadata: dict[str, Any] = {
            "intent_category": intent.category.value,
            "intent_confidence": intent.confidence.value,
            "intent_keywords": list(intent.keywords),
            "provider_category": provider_category.value,
            "provider_name": request.provider_name,
            "model_name": request.model_name,
            "chat_mode": chat_mode.value,
            "connection_state": request.connection.variant,
            "verbosity": verbosity.value,
            "forced_verbosity": request.force_verbosity is not None,
            "degraded": degraded,
            "over_budget": over_budget,
            "included_categories": list(sections),
            "excluded_categories": forbidden,
            "token_budget": budget,
            "verbosity_adjustments": list(adjustments),
            "estimated_size": estimated_size,
            "knowledge_base_version": self.kb.version,
            "generation_time_ms": round((time.perf_counter() - start_time) * 1000, 3),
        }

        return AssembledPrompt(
            text=text,
            verbosity=verbosity,
            estimated_size=estimated_size,
            rule_categories=tuple(sections),
            validation=validation,
            degraded=degraded,
            over_budget=over_budget,
            metadata=metadata,
        )

    def render_sections(
        self,
        sections: Iterable[str],
        verbosity: VerbosityLevel,
        request: AssemblyRequest,
        chat_mode: ChatMode,
    ) -> str:
        """Render rule categories in order, choosing contextual variants."""
        placeholders = {"cwd": settings.default_cwd, **request.placeholders}
        variants = {
            "output_formatting": chat_mode.value,
            "database_integration": request.connection.variant,
        }

        parts = []
        for section in sections:
            if section in variants and section in self.kb.contextual_rules:
                rendered = self.kb.render_contextual_rule(
                    section, variants[section], verbosity, placeholders
                )
            else:
                rendered = self.kb.render_rule(section, verbosity, placeholders)
            if rendered.strip():
                parts.append(rendered)
        return "\n\n".join(parts)

    def generate_variations(
        self,
        request: AssemblyRequest,
        verbosities: Iterable[VerbosityLevel | str | None] | None = None,
        provider_names: Iterable[str | None] | None = None,
        chat_modes: Iterable[ChatMode | str | None] | None = None,
    ) -> list[AssembledPrompt]:
        """Assemble every combination of the given variations of a request.

        Omitted dimensions keep the request's own value. A ``None`` verbosity
        means "resolve normally" rather than forcing a tier.
        """
        verbosities = list(verbosities) if verbosities is not None else [request.force_verbosity]
        provider_names = (
            list(provider_names) if provider_names is not None else [request.provider_name]
        )
        chat_modes = list(chat_modes) if chat_modes is not None else [request.chat_mode]

        results = []
        for provider_name in provider_names:
            provider_changed = provider_name != request.provider_name
            for chat_mode in chat_modes:
                for verbosity in verbosities:
                    variant = dataclasses.replace(
                        request,
                        provider_name=provider_name,
                        provider_category=(
                            None if provider_changed else request.provider_category
                        ),
                        chat_mode=chat_mode,
                        force_verbosity=verbosity,
                    )
                    results.append(self.assemble(variant))
        logger.info(f"Generated {len(results)} prompt variations")
        return results

    def _intent_for(self, request: AssemblyRequest, chat_mode: ChatMode) -> DetectedIntent:
        if request.intent is not None:
            return request.intent
        options = ClassificationOptions(
            chat_mode=chat_mode,
            has_existing_files=request.has_existing_files,
            database_connected=request.connection.connected,
        )
        return self.classifier.classify(request.history, options)

    def _provider_category_for(self, request: AssemblyRequest) -> ProviderCategory:
        if request.provider_category is not None:
            return request.provider_category
        return resolve_provider_category(
            self.kb, request.provider_name, request.model_name
        )

    def get_metrics(self) -> dict[str, Any]:
        return self.monitor.get_metrics()
