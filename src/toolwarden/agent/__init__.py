"""
Agent coordination: the model boundary, step tracking and the agent loop.
"""

from toolwarden.agent.coordinator import AgentCoordinator
from toolwarden.agent.model import (
    CompletionModel,
    FinalResponse,
    Message,
    ModelEvent,
    ReasoningDelta,
    TextDelta,
    ToolCall,
)
from toolwarden.agent.prompt import build_system_prompt
from toolwarden.agent.state import JobState, StepTracker, aggregate_status

__all__ = [
    "AgentCoordinator",
    "CompletionModel",
    "FinalResponse",
    "JobState",
    "Message",
    "ModelEvent",
    "ReasoningDelta",
    "StepTracker",
    "TextDelta",
    "ToolCall",
    "aggregate_status",
    "build_system_prompt",
]
