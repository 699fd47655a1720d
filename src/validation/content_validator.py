"""Safety validation of rendered rule text."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from src.knowledge_base.base import KnowledgeBase, compile_pattern
from src.knowledge_base.types import Severity, ValidationPattern

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Violation:
    """A single validation pattern that failed."""

    pattern: str
    description: str
    severity: Severity
    match: str | None = None


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    violations: tuple[Violation, ...] = field(default_factory=tuple)

    @property
    def errors(self) -> list[Violation]:
        return [v for v in self.violations if v.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Violation]:
        return [v for v in self.violations if v.severity == Severity.WARNING]

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "violations": [
                {
                    "pattern": v.pattern,
                    "description": v.description,
                    "severity": v.severity.value,
                    "match": v.match,
                }
                for v in self.violations
            ],
        }


class ContentValidator:
    """Checks rendered text against the knowledge base validation patterns.

    Stateless: results depend only on the text and the set of rule
    categories, never on the order the categories are given in.
    """

    def __init__(self, kb: KnowledgeBase):
        self.kb = kb

    def validate(
        self, rendered_text: str, rule_categories: Iterable[str]
    ) -> ValidationResult:
        categories = set(rule_categories)
        violations = []

        for name, pattern in self.kb.validation_patterns.items():
            if not categories.intersection(pattern.applies_to):
                continue
            violation = self._check(name, pattern, rendered_text)
            if violation is not None:
                violations.append(violation)

        valid = not any(v.severity == Severity.ERROR for v in violations)
        if violations:
            logger.warning(
                f"Validation found {len(violations)} violation(s): "
                f"{[v.pattern for v in violations]}"
            )
        return ValidationResult(valid=valid, violations=tuple(violations))

    def _check(
        self, name: str, pattern: ValidationPattern, text: str
    ) -> Violation | None:
        regex = compile_pattern(pattern.pattern, pattern.flags)

        if pattern.mode == "require":
            trigger = compile_pattern(pattern.trigger, pattern.flags).search(text)
            if trigger is None or regex.search(text):
                return None
            excerpt = trigger.group(0)
        else:
            found = regex.search(text)
            if found is None:
                return None
            excerpt = found.group(0)

        return Violation(
            pattern=name,
            description=pattern.description,
            severity=pattern.severity,
            match=excerpt,
        )
