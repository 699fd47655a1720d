"""Intent Detection Module.

This module classifies the latest user message into an intent category so
the prompt assembler can pick the matching rule sections.
"""

from .detector import IntentClassifier, extract_text, latest_user_text, optimal_verbosity
from .types import ClassificationOptions, DetectedIntent, IntentContext, ScoringWeights

__all__ = [
    "ClassificationOptions",
    "DetectedIntent",
    "IntentClassifier",
    "IntentContext",
    "ScoringWeights",
    "extract_text",
    "latest_user_text",
    "optimal_verbosity",
]
