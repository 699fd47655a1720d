"""Rule knowledge base: versioned rule text, mappings and provider profiles."""

from .base import KnowledgeBase, compile_pattern
from .loader import KnowledgeBaseError, KnowledgeBaseRegistry, load_knowledge_base
from .types import (
    ChatMode,
    Complexity,
    ContextFlag,
    IntentCategory,
    IntentConfidence,
    ProviderCategory,
    ProviderProfile,
    Severity,
    ValidationPattern,
    VerbosityContext,
    VerbosityLevel,
)

__all__ = [
    "ChatMode",
    "Complexity",
    "ContextFlag",
    "IntentCategory",
    "IntentConfidence",
    "KnowledgeBase",
    "KnowledgeBaseError",
    "KnowledgeBaseRegistry",
    "ProviderCategory",
    "ProviderProfile",
    "Severity",
    "ValidationPattern",
    "VerbosityContext",
    "VerbosityLevel",
    "compile_pattern",
    "load_knowledge_base",
]
