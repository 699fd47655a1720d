"""Provider name to provider category resolution."""

import logging
from collections.abc import Iterable, Sequence

from config.settings import settings
from src.knowledge_base.base import KnowledgeBase, compile_pattern
from src.knowledge_base.types import ProviderCategory

logger = logging.getLogger(__name__)

# Models with smaller windows get token-optimized prompts
SMALL_CONTEXT_WINDOW = 64000
DEFAULT_CONTEXT_WINDOW = 32000


def resolve_provider_category(
    kb: KnowledgeBase,
    provider_name: str | None,
    model_name: str | None = None,
    default: ProviderCategory | str | None = None,
) -> ProviderCategory:
    """Resolve a provider (and optionally model) name to a provider category.

    Model name patterns are checked first, in knowledge base order (reasoning
    models before fast models), then the provider alias table.

    Args:
        kb: Knowledge base with model patterns and provider aliases.
        provider_name: Provider name such as ``"Groq"``.
        model_name: Optional model name such as ``"deepseek-reasoner"``.
        default: Category for unknown providers. Defaults to
            ``settings.default_provider_category``.

    Returns:
        The resolved provider category.
    """
    if model_name:
        for model_pattern in kb.model_patterns:
            if compile_pattern(model_pattern.pattern, "i").search(model_name):
                logger.debug(
                    f"Model '{model_name}' matched '{model_pattern.pattern}' "
                    f"-> {model_pattern.category.value}"
                )
                return model_pattern.category

    if provider_name and provider_name in kb.provider_aliases:
        return kb.provider_aliases[provider_name]

    fallback = ProviderCategory(default or settings.default_provider_category)
    if provider_name:
        logger.info(
            f"Unknown provider '{provider_name}', using category {fallback.value}"
        )
    return fallback


def should_optimize_for_tokens(context_window: int | None) -> bool:
    """True when a model's context window is small enough to warrant trimming."""
    return (context_window or DEFAULT_CONTEXT_WINDOW) < SMALL_CONTEXT_WINDOW


def token_reduction(kb: KnowledgeBase, category: ProviderCategory | str) -> int:
    """Target token reduction percentage for a provider category."""
    return kb.provider_profile(category).optimization.token_reduction


def prioritize_sections(sections: Iterable[str], priority: Sequence[str]) -> list[str]:
    """Order sections with the profile's priority sections first.

    Priority sections keep their listed order; the rest keep their given order.
    """
    sections = list(sections)
    rank = {name: index for index, name in enumerate(priority)}
    return sorted(sections, key=lambda name: rank.get(name, len(rank)))
