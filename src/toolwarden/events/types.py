"""
Event types for agent communication.

Every event serializes to a tagged dict: ``{"type": <kind>, **payload}``.
Job and step payloads are always full snapshots, never deltas.
"""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Optional


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class StepStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    WAITING_APPROVAL = "waiting_approval"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.COMPLETED, StepStatus.FAILED, StepStatus.SKIPPED)

    def __str__(self) -> str:
        return self.value


class JobStatus:
    RUNNING = "running"
    WAITING_APPROVAL = "waiting_approval"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ToolStep:
    """One tool invocation within a job."""

    id: str
    tool_name: str
    tool_args: Any = None
    status: StepStatus = StepStatus.PENDING
    result: Optional[str] = None
    requires_approval: bool = False
    created_at: str = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolStep:
        values = dict(data)
        values["status"] = StepStatus(values.get("status", "pending"))
        return cls(**values)


@dataclass
class ExecutionJob:
    """One agent turn and the steps it produced."""

    id: str
    session_id: str
    query: str
    status: str = JobStatus.RUNNING
    steps: list[ToolStep] = field(default_factory=list)
    current_step_index: int = 0
    created_at: str = field(default_factory=_now)

    def snapshot(self) -> ExecutionJob:
        return copy.deepcopy(self)

    def find_step(self, step_id: str) -> Optional[ToolStep]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "status": self.status,
            "query": self.query,
            "steps": [step.to_dict() for step in self.steps],
            "current_step_index": self.current_step_index,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExecutionJob:
        values = dict(data)
        values["steps"] = [ToolStep.from_dict(s) for s in values.get("steps", [])]
        return cls(**values)


@dataclass
class TaskState:
    task_id: str
    description: str
    status: str
    result: Optional[str] = None


@dataclass
class PlanUpdate:
    plan_id: str
    tasks: list[TaskState] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlanUpdate:
        return cls(
            plan_id=data["plan_id"],
            tasks=[TaskState(**t) for t in data.get("tasks", [])],
        )


# --- Events ---

EVENT_TYPES: dict[str, type[AgentEvent]] = {}


@dataclass(frozen=True)
class AgentEvent:
    """Base class for every event on the channel."""

    type: ClassVar[str] = ""

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if cls.type:
            EVENT_TYPES[cls.type] = cls

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        for f in fields(self):
            value = getattr(self, f.name)
            data[f.name] = value.to_dict() if hasattr(value, "to_dict") else value
        return data


@dataclass(frozen=True)
class Token(AgentEvent):
    type: ClassVar[str] = "token"
    content: str


@dataclass(frozen=True)
class JobStarted(AgentEvent):
    type: ClassVar[str] = "job_started"
    job: ExecutionJob


@dataclass(frozen=True)
class JobCompleted(AgentEvent):
    type: ClassVar[str] = "job_completed"
    job: ExecutionJob
    message: str


@dataclass(frozen=True)
class StepStarted(AgentEvent):
    type: ClassVar[str] = "step_started"
    job: ExecutionJob
    step: ToolStep


@dataclass(frozen=True)
class StepCompleted(AgentEvent):
    type: ClassVar[str] = "step_completed"
    job: ExecutionJob
    step: ToolStep


@dataclass(frozen=True)
class ApprovalRequired(AgentEvent):
    type: ClassVar[str] = "approval_required"
    job: ExecutionJob
    step: ToolStep


@dataclass(frozen=True)
class StepApproved(AgentEvent):
    type: ClassVar[str] = "step_approved"
    job: ExecutionJob
    step: ToolStep


@dataclass(frozen=True)
class StepRejected(AgentEvent):
    type: ClassVar[str] = "step_rejected"
    job: ExecutionJob
    step: ToolStep


@dataclass(frozen=True)
class Thinking(AgentEvent):
    type: ClassVar[str] = "thinking"
    message: str


@dataclass(frozen=True)
class Error(AgentEvent):
    type: ClassVar[str] = "error"
    message: str
    error: Optional[str] = None


@dataclass(frozen=True)
class PlanUpdated(AgentEvent):
    type: ClassVar[str] = "plan_update"
    plan: PlanUpdate


def event_from_dict(data: dict[str, Any]) -> AgentEvent:
    """Decode the wire form produced by ``AgentEvent.to_dict``."""
    kind = data.get("type")
    event_cls = EVENT_TYPES.get(kind or "")
    if event_cls is None:
        raise ValueError(f"Unknown event type: {kind!r}")

    values: dict[str, Any] = {}
    for f in fields(event_cls):
        if f.name not in data:
            continue
        raw = data[f.name]
        if f.name == "job":
            raw = ExecutionJob.from_dict(raw)
        elif f.name == "step":
            raw = ToolStep.from_dict(raw)
        elif f.name == "plan":
            raw = PlanUpdate.from_dict(raw)
        values[f.name] = raw
    return event_cls(**values)
