"""Pydantic models for Bucketwise."""

from bucketwise.models.chat import (
    Directive,
    NodeKind,
    PromptMessage,
    PromptRole,
    Turn,
    TurnRole,
)

__all__ = [
    "Directive",
    "NodeKind",
    "PromptMessage",
    "PromptRole",
    "Turn",
    "TurnRole",
]
