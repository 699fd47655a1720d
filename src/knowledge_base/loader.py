"""Loading and caching of the rule knowledge base."""

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from config.settings import settings

from .base import KnowledgeBase

logger = logging.getLogger(__name__)


class KnowledgeBaseError(ValueError):
    """Raised when the rule knowledge base cannot be loaded or is inconsistent."""


def load_knowledge_base(path: str | Path | None = None) -> KnowledgeBase:
    """Parse and validate a rule knowledge base document.

    Args:
        path: YAML file to load. Defaults to ``settings.rule_data_path``.

    Returns:
        A frozen, cross-checked KnowledgeBase.

    Raises:
        KnowledgeBaseError: If the file is unreadable, is not valid YAML, or
            fails structural or reference validation.
    """
    path = Path(path or settings.rule_data_path)
    logger.info(f"Loading rule knowledge base from {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise KnowledgeBaseError(f"Cannot read knowledge base {path}: {e}") from e
    except yaml.YAMLError as e:
        raise KnowledgeBaseError(f"Invalid YAML in knowledge base {path}: {e}") from e

    if not isinstance(data, dict):
        raise KnowledgeBaseError(f"Knowledge base {path} must be a mapping")

    try:
        kb = KnowledgeBase.model_validate(data)
    except ValidationError as e:
        raise KnowledgeBaseError(f"Invalid knowledge base {path}: {e}") from e

    logger.info(
        f"Loaded knowledge base v{kb.version}: {len(kb.rules)} rules, "
        f"{len(kb.validation_patterns)} validation patterns"
    )
    return kb


class KnowledgeBaseRegistry:
    """Caller-owned cache around :func:`load_knowledge_base`.

    ``get()`` loads once and keeps returning the same immutable instance;
    ``refresh()`` reloads from disk. There is no locking, so only refresh
    while no assembly is running.
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path or settings.rule_data_path)
        self._kb: KnowledgeBase | None = None

    def get(self) -> KnowledgeBase:
        if self._kb is None:
            self._kb = load_knowledge_base(self.path)
        return self._kb

    def refresh(self) -> KnowledgeBase:
        """Reload the document; the previous instance stays valid if this fails."""
        kb = load_knowledge_base(self.path)
        self._kb = kb
        return kb

    @property
    def loaded(self) -> bool:
        return self._kb is not None
