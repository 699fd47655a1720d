"""Immutable rule knowledge base and its accessors."""

import logging
import re
from collections.abc import Iterable, Mapping
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .types import (
    ContextFlag,
    IntentCategory,
    IntentPattern,
    IntentRuleMapping,
    ModelPattern,
    ProviderCategory,
    ProviderProfile,
    TieredText,
    TierValues,
    ValidationPattern,
    VerbosityContext,
    VerbosityLevel,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")

_REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}


@lru_cache(maxsize=256)
def compile_pattern(pattern: str, flags: str = "") -> re.Pattern:
    """Compile a knowledge base regex with single-letter flags (``"im"``)."""
    value = 0
    for flag in flags:
        if flag == "g":
            # Global flag from JS-style patterns; irrelevant to search()
            continue
        if flag not in _REGEX_FLAGS:
            raise ValueError(f"Unsupported regex flag '{flag}' in '{pattern}'")
        value |= _REGEX_FLAGS[flag]
    return re.compile(pattern, value)


class KnowledgeBase(BaseModel):
    """Versioned, read-only rule store.

    Construct through :func:`src.knowledge_base.loader.load_knowledge_base`;
    every cross reference is checked when the model is built, so a loaded
    instance never refers to a missing rule category.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: str
    placeholders: dict[str, str] = Field(default_factory=dict)
    baseline: tuple[str, ...]
    rules: dict[str, TieredText]
    shorthand: dict[str, str] = Field(default_factory=dict)
    code_guideline_sections: tuple[str, ...] = ()
    intent_rule_mappings: dict[IntentCategory, IntentRuleMapping]
    context_rules: dict[ContextFlag, tuple[str, ...]] = Field(default_factory=dict)
    intent_patterns: dict[IntentCategory, IntentPattern]
    contextual_rules: dict[str, dict[str, TieredText]] = Field(default_factory=dict)
    validation_patterns: dict[str, ValidationPattern] = Field(default_factory=dict)
    token_estimates: dict[str, TierValues]
    provider_aliases: dict[str, ProviderCategory] = Field(default_factory=dict)
    model_patterns: tuple[ModelPattern, ...] = ()
    provider_profiles: dict[ProviderCategory, ProviderProfile]

    @model_validator(mode="after")
    def check_references(self) -> "KnowledgeBase":
        """Reject documents whose cross references do not resolve."""
        errors: list[str] = []
        known = set(self.rules)

        def check(names: Iterable[str], where: str) -> None:
            for name in names:
                if name not in known:
                    errors.append(f"{where} references unknown rule category '{name}'")

        check(self.baseline, "baseline")
        for intent, mapping in self.intent_rule_mappings.items():
            where = f"intent mapping '{intent.value}'"
            check(mapping.required, where)
            check(mapping.optional, where)
            check(mapping.forbidden, where)
        for flag, names in self.context_rules.items():
            check(names, f"context rule '{flag.value}'")
        check(self.contextual_rules, "contextual rules")
        check(self.shorthand, "shorthand")
        check(self.code_guideline_sections, "code guideline sections")
        for name, pattern in self.validation_patterns.items():
            check(pattern.applies_to, f"validation pattern '{name}'")
        for category, profile in self.provider_profiles.items():
            where = f"provider profile '{category.value}'"
            check(profile.optimization.excluded_sections, where)
            check(profile.optimization.priority_sections, where)

        for intent in IntentCategory:
            if intent not in self.intent_rule_mappings:
                errors.append(f"intent '{intent.value}' has no rule mapping")
            if intent not in self.intent_patterns:
                errors.append(f"intent '{intent.value}' has no classifier patterns")
        for category in ProviderCategory:
            if category not in self.provider_profiles:
                errors.append(f"provider category '{category.value}' has no profile")

        for name in self.rules:
            if name not in self.token_estimates:
                errors.append(f"rule category '{name}' has no token estimate")
        for name in self.token_estimates:
            if name not in known:
                errors.append(f"token estimate for unknown rule category '{name}'")

        adjustable = set(VerbosityContext.model_fields)
        for category, profile in self.provider_profiles.items():
            for field in profile.context_adjustments:
                if field not in adjustable:
                    errors.append(
                        f"provider profile '{category.value}' adjusts unknown "
                        f"context field '{field}'"
                    )

        texts: list[tuple[str, TieredText]] = list(self.rules.items())
        for rule, variants in self.contextual_rules.items():
            texts.extend((f"{rule}.{variant}", text) for variant, text in variants.items())
        for where, tiered in texts:
            for verbosity in VerbosityLevel:
                for token in PLACEHOLDER_PATTERN.findall(tiered.for_level(verbosity)):
                    if token not in self.placeholders:
                        errors.append(
                            f"'{where}' ({verbosity.value}) uses undeclared "
                            f"placeholder '{{{token}}}'"
                        )

        for name, pattern in self.validation_patterns.items():
            for regex in (pattern.pattern, pattern.trigger):
                if regex is None:
                    continue
                try:
                    compile_pattern(regex, pattern.flags)
                except (re.error, ValueError) as e:
                    errors.append(f"validation pattern '{name}' does not compile: {e}")
            if pattern.mode == "require" and pattern.trigger is None:
                errors.append(f"validation pattern '{name}' requires a trigger")
        for model_pattern in self.model_patterns:
            try:
                compile_pattern(model_pattern.pattern, "i")
            except re.error as e:
                errors.append(
                    f"model pattern '{model_pattern.pattern}' does not compile: {e}"
                )

        if errors:
            raise ValueError("; ".join(errors))
        return self

    # Rendering

    def substitute(self, text: str, placeholders: Mapping[str, Any] | None = None) -> str:
        """Replace declared ``{name}`` tokens; request values override defaults."""
        values = dict(self.placeholders)
        for key, value in (placeholders or {}).items():
            if key not in self.placeholders:
                logger.debug(f"Ignoring undeclared placeholder '{key}'")
                continue
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                value = ", ".join(str(v) for v in value) or "none"
            values[key] = str(value)
        return PLACEHOLDER_PATTERN.sub(
            lambda m: values.get(m.group(1), m.group(0)), text
        )

    def render_rule(
        self,
        category: str,
        verbosity: VerbosityLevel | str = VerbosityLevel.STANDARD,
        placeholders: Mapping[str, Any] | None = None,
    ) -> str:
        """Render one rule category at the given tier."""
        rule = self.rules.get(category)
        if rule is None:
            logger.warning(f"Rule category '{category}' not found")
            return ""
        return self.substitute(rule.for_level(verbosity), placeholders)

    def render_contextual_rule(
        self,
        category: str,
        variant: str,
        verbosity: VerbosityLevel | str = VerbosityLevel.STANDARD,
        placeholders: Mapping[str, Any] | None = None,
    ) -> str:
        """Render a contextual variant, falling back to the plain rule text."""
        variants = self.contextual_rules.get(category, {})
        if variant not in variants:
            logger.warning(
                f"Contextual rule '{category}.{variant}' not found, using base rule"
            )
            return self.render_rule(category, verbosity, placeholders)
        return self.substitute(variants[variant].for_level(verbosity), placeholders)

    def combined_rules(
        self,
        categories: Iterable[str],
        verbosity: VerbosityLevel | str = VerbosityLevel.STANDARD,
        placeholders: Mapping[str, Any] | None = None,
    ) -> str:
        rendered = (self.render_rule(c, verbosity, placeholders) for c in categories)
        return "\n\n".join(text for text in rendered if text.strip())

    def shorthand_rules(self, categories: Iterable[str]) -> str:
        """Join the one-line shorthand versions of the given categories."""
        return " ".join(
            self.shorthand[category] for category in categories if category in self.shorthand
        )

    # Lookups

    def mapping_for(self, intent: IntentCategory | str) -> IntentRuleMapping:
        return self.intent_rule_mappings[IntentCategory(intent)]

    def rules_for_intent(
        self,
        intent: IntentCategory | str,
        verbosity: VerbosityLevel | str = VerbosityLevel.STANDARD,
        placeholders: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Rendered required and optional rules plus the forbidden list."""
        mapping = self.mapping_for(intent)
        return {
            "required": self.combined_rules(mapping.required, verbosity, placeholders),
            "optional": self.combined_rules(mapping.optional, verbosity, placeholders),
            "forbidden": list(mapping.forbidden),
        }

    def provider_profile(self, category: ProviderCategory | str) -> ProviderProfile:
        return self.provider_profiles[ProviderCategory(category)]

    def estimate_tokens(
        self, categories: Iterable[str], verbosity: VerbosityLevel | str
    ) -> int:
        """Sum the per-category token estimates at one tier."""
        total = 0
        for category in categories:
            estimate = self.token_estimates.get(category)
            if estimate is not None:
                total += estimate.for_level(verbosity)
        return total

    def stats(self) -> dict[str, Any]:
        """Counts and average token estimate per tier, for debugging."""
        average = {}
        count = len(self.token_estimates) or 1
        for verbosity in VerbosityLevel:
            total = sum(e.for_level(verbosity) for e in self.token_estimates.values())
            average[verbosity.value] = round(total / count)
        return {
            "version": self.version,
            "total_rules": len(self.rules),
            "total_intent_mappings": len(self.intent_rule_mappings),
            "total_provider_profiles": len(self.provider_profiles),
            "total_validation_patterns": len(self.validation_patterns),
            "total_contextual_rules": sum(len(v) for v in self.contextual_rules.values()),
            "average_tokens_per_rule": average,
        }
