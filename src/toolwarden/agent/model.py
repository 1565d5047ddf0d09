"""
Boundary to the language model.

The coordinator never talks to an LLM provider directly; it consumes any
object implementing ``CompletionModel``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Protocol, Union, runtime_checkable

from toolwarden.tools.base import ToolDefinition

Message = dict[str, Any]
"""Chat message: ``role`` and ``content``, plus ``tool_calls`` or ``tool_call_id``."""


@dataclass(frozen=True)
class TextDelta:
    text: str


@dataclass(frozen=True)
class ReasoningDelta:
    text: str


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    arguments: Any = None
    """JSON string or already-decoded mapping."""

    def to_message(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "arguments": self.arguments}


@dataclass(frozen=True)
class FinalResponse:
    usage: dict[str, int] = field(default_factory=dict)


ModelEvent = Union[TextDelta, ReasoningDelta, ToolCall, FinalResponse]


@runtime_checkable
class CompletionModel(Protocol):
    def stream(self, messages: list[Message], tools: list[ToolDefinition]) -> AsyncIterator[ModelEvent]:
        """Stream one model round for the conversation so far."""
        ...
