"""Type definitions for the rule knowledge base."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class VerbosityLevel(str, Enum):
    """Rule rendering tiers, ordered by information density."""

    MINIMAL = "minimal"
    STANDARD = "standard"
    DETAILED = "detailed"

    @property
    def rank(self) -> int:
        return _VERBOSITY_ORDER.index(self)

    def step_down(self) -> "VerbosityLevel":
        """Next-lower tier, or this tier if already minimal."""
        return _VERBOSITY_ORDER[max(self.rank - 1, 0)]

    def step_up(self) -> "VerbosityLevel":
        """Next-higher tier, or this tier if already detailed."""
        return _VERBOSITY_ORDER[min(self.rank + 1, len(_VERBOSITY_ORDER) - 1)]


_VERBOSITY_ORDER = (
    VerbosityLevel.MINIMAL,
    VerbosityLevel.STANDARD,
    VerbosityLevel.DETAILED,
)


class IntentCategory(str, Enum):
    """Closed set of user intents. Declaration order breaks scoring ties."""

    CREATE_PROJECT = "create-project"
    ADD_FEATURE = "add-feature"
    FIX_BUG = "fix-bug"
    REFACTOR_CODE = "refactor-code"
    DATABASE_OPS = "database-ops"
    DESIGN_UI = "design-ui"
    EXPLAIN_CODE = "explain-code"
    DEPLOY_CONFIG = "deploy-config"
    ADD_TESTS = "add-tests"
    GENERAL_DISCUSS = "general-discuss"


class ProviderCategory(str, Enum):
    """Inference backend classes."""

    HIGH_CONTEXT = "high-context"
    REASONING = "reasoning"
    SPEED_OPTIMIZED = "speed-optimized"
    LOCAL_MODELS = "local-models"
    CODING_SPECIALIZED = "coding-specialized"
    STANDARD = "standard"


class IntentConfidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Complexity(str, Enum):
    """Task complexity tiers, matched in declaration order."""

    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


class ChatMode(str, Enum):
    DISCUSS = "discuss"
    BUILD = "build"


class ContextFlag(str, Enum):
    """Intent context flags derived from indicator phrases."""

    REQUIRES_DATABASE = "requires_database"
    REQUIRES_FILE_CHANGES = "requires_file_changes"
    REQUIRES_DESIGN = "requires_design"
    REQUIRES_DEPLOYMENT = "requires_deployment"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class TieredText(_Frozen):
    """One text variant per verbosity tier."""

    minimal: str
    standard: str
    detailed: str

    def for_level(self, verbosity: VerbosityLevel | str) -> str:
        return getattr(self, VerbosityLevel(verbosity).value)


class TierValues(_Frozen):
    """One integer per verbosity tier (token estimates and budgets)."""

    minimal: int = Field(ge=0)
    standard: int = Field(ge=0)
    detailed: int = Field(ge=0)

    def for_level(self, verbosity: VerbosityLevel | str) -> int:
        return getattr(self, VerbosityLevel(verbosity).value)


class IntentRuleMapping(_Frozen):
    required: tuple[str, ...]
    optional: tuple[str, ...] = ()
    forbidden: tuple[str, ...] = ()


class IntentPattern(_Frozen):
    """Keyword and indicator phrases used to classify one intent."""

    keywords: tuple[str, ...]
    exclusive_keywords: tuple[str, ...] = ()
    always: tuple[ContextFlag, ...] = ()
    context_indicators: dict[ContextFlag, tuple[str, ...]] = Field(default_factory=dict)
    complexity_indicators: dict[Complexity, tuple[str, ...]] = Field(
        default_factory=dict
    )


class ValidationPattern(_Frozen):
    """A safety check applied to rendered rule text.

    ``forbid`` patterns are violated when they match. ``require`` patterns are
    violated when ``trigger`` matches and ``pattern`` does not.
    """

    pattern: str
    flags: str = ""
    description: str
    severity: Severity
    applies_to: tuple[str, ...]
    mode: Literal["forbid", "require"] = "forbid"
    trigger: str | None = None


class ModelPattern(_Frozen):
    pattern: str
    category: ProviderCategory


class ProviderOptimization(_Frozen):
    token_reduction: int = 0
    priority_sections: tuple[str, ...] = ()
    excluded_sections: tuple[str, ...] = ()
    simplify_language: bool = False
    enhance_code_guidelines: bool = False


class ProviderProfile(_Frozen):
    """Verbosity and budget profile for one provider category."""

    base_verbosity: VerbosityLevel
    description: str
    reasoning: str
    token_budget: TierValues
    context_adjustments: dict[str, dict[str, VerbosityLevel]] = Field(
        default_factory=dict
    )
    strengths: tuple[str, ...] = ()
    limitations: tuple[str, ...] = ()
    optimization: ProviderOptimization = Field(default_factory=ProviderOptimization)


class VerbosityContext(_Frozen):
    """Context fields the verbosity mapper knows how to adjust for.

    Field declaration order is the adjustment order when a model instance
    (rather than a plain mapping) is passed to the mapper.
    """

    intent_complexity: Complexity | None = None
    intent_confidence: IntentConfidence | None = None
    is_existing_project: bool | None = None
    has_time_constraints: bool | None = None
    is_debugging: bool | None = None
    user_experience: Literal["beginner", "intermediate", "expert"] | None = None
    task_type: Literal["creative", "analytical", "maintenance", "exploratory"] | None = (
        None
    )
