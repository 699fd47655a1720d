"""Prompt assembly from intent, provider profile and rule knowledge base."""

from .monitoring import AssemblyMonitor, StructuredLogger
from .prompt_assembler import PromptAssembler
from .types import AssembledPrompt, AssemblyRequest, ConnectionState

__all__ = [
    "AssembledPrompt",
    "AssemblyMonitor",
    "AssemblyRequest",
    "ConnectionState",
    "PromptAssembler",
    "StructuredLogger",
]
