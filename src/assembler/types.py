"""Request and result types for prompt assembly."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from src.intent_detection.types import DetectedIntent
from src.knowledge_base.types import (
    ChatMode,
    ProviderCategory,
    VerbosityLevel,
)
from src.validation.content_validator import ValidationResult


@dataclass(frozen=True)
class ConnectionState:
    """Hosted database connection state of the session."""

    connected: bool = False
    project_selected: bool = False
    has_credentials: bool = False
    projects_available: int | None = None

    @property
    def variant(self) -> str:
        """Name of the database_integration variant for this state."""
        if not self.connected:
            return "not_connected"
        if not self.project_selected:
            if self.projects_available == 0:
                return "needs_project"
            return "needs_project_selection"
        if not self.has_credentials:
            return "needs_setup"
        return "configured"


@dataclass
class AssemblyRequest:
    """Everything the assembler needs for one prompt.

    Either ``intent`` or ``history`` should be given; with neither the
    classifier's default intent is used.
    """

    provider_name: str | None = None
    provider_category: ProviderCategory | None = None
    model_name: str | None = None
    chat_mode: ChatMode | None = None
    intent: DetectedIntent | None = None
    history: Sequence[Any] | None = None
    connection: ConnectionState = field(default_factory=ConnectionState)
    has_existing_files: bool = False
    verbosity_context: dict[str, Any] = field(default_factory=dict)
    force_verbosity: VerbosityLevel | None = None
    placeholders: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.chat_mode is not None:
            self.chat_mode = ChatMode(self.chat_mode)
        if self.provider_category is not None:
            self.provider_category = ProviderCategory(self.provider_category)
        if self.force_verbosity is not None:
            self.force_verbosity = VerbosityLevel(self.force_verbosity)


@dataclass(frozen=True)
class AssembledPrompt:
    """Rendered system instructions plus the decisions that produced them."""

    text: str
    verbosity: VerbosityLevel
    estimated_size: int
    rule_categories: tuple[str, ...]
    validation: ValidationResult
    degraded: bool = False
    over_budget: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)
