"""Content validation for assembled prompts."""

from .content_validator import ContentValidator, ValidationResult, Violation

__all__ = ["ContentValidator", "ValidationResult", "Violation"]
