"""Type definitions for intent detection module."""

from dataclasses import dataclass, field
from typing import Any

from src.knowledge_base.types import (
    ChatMode,
    Complexity,
    ContextFlag,
    IntentCategory,
    IntentConfidence,
)


@dataclass(frozen=True)
class IntentContext:
    """Context flags inferred from the message for the winning intent."""

    requires_database: bool = False
    requires_file_changes: bool = False
    requires_design: bool = False
    requires_deployment: bool = False
    is_existing_project: bool = False
    complexity: Complexity = Complexity.MODERATE

    def has_flag(self, flag: ContextFlag | str) -> bool:
        return bool(getattr(self, ContextFlag(flag).value))

    @property
    def active_flags(self) -> list[ContextFlag]:
        """Context flags that are set, in declaration order."""
        return [flag for flag in ContextFlag if self.has_flag(flag)]


@dataclass(frozen=True)
class DetectedIntent:
    """Represents the detected intent of a user message."""

    category: IntentCategory
    confidence: IntentConfidence
    keywords: tuple[str, ...] = ()
    context: IntentContext = field(default_factory=IntentContext)

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "confidence": self.confidence.value,
            "keywords": list(self.keywords),
            "context": {
                "requires_database": self.context.requires_database,
                "requires_file_changes": self.context.requires_file_changes,
                "requires_design": self.context.requires_design,
                "requires_deployment": self.context.requires_deployment,
                "is_existing_project": self.context.is_existing_project,
                "complexity": self.context.complexity.value,
            },
        }


@dataclass
class ClassificationOptions:
    """Session state that biases classification."""

    chat_mode: ChatMode | None = None
    has_existing_files: bool = False
    database_connected: bool = False

    def __post_init__(self):
        if self.chat_mode is not None:
            self.chat_mode = ChatMode(self.chat_mode)


@dataclass(frozen=True)
class ScoringWeights:
    """Classifier scoring constants."""

    keyword_match: int = 2
    exclusive_penalty: int = 3
    chat_mode_boost: int = 1
    database_boost: int = 1
    existing_project_boost: int = 1
    existing_project_penalty: int = 2
    high_confidence_score: int = 4
    medium_confidence_score: int = 2
    ambiguity_margin: int = 1
