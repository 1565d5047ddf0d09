"""
Agent events: data types, the broadcast channel and the observer bridge.
"""

from toolwarden.events.bridge import AgentObserver, EventBridge, session_topic
from toolwarden.events.channel import ChannelClosed, EventChannel, Subscription
from toolwarden.events.types import (
    AgentEvent,
    ApprovalRequired,
    Error,
    ExecutionJob,
    JobCompleted,
    JobStarted,
    JobStatus,
    PlanUpdate,
    PlanUpdated,
    StepApproved,
    StepCompleted,
    StepRejected,
    StepStarted,
    StepStatus,
    TaskState,
    Thinking,
    Token,
    ToolStep,
    event_from_dict,
)

__all__ = [
    "AgentEvent",
    "AgentObserver",
    "ApprovalRequired",
    "ChannelClosed",
    "Error",
    "EventBridge",
    "EventChannel",
    "ExecutionJob",
    "JobCompleted",
    "JobStarted",
    "JobStatus",
    "PlanUpdate",
    "PlanUpdated",
    "StepApproved",
    "StepCompleted",
    "StepRejected",
    "StepStarted",
    "StepStatus",
    "Subscription",
    "TaskState",
    "Thinking",
    "Token",
    "ToolStep",
    "event_from_dict",
    "session_topic",
]
