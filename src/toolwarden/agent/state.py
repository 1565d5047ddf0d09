"""
Job state and the step state machine.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable, Optional

from toolwarden.events.channel import EventChannel
from toolwarden.events.types import (
    AgentEvent,
    ApprovalRequired,
    ExecutionJob,
    JobStatus,
    StepApproved,
    StepCompleted,
    StepRejected,
    StepStarted,
    StepStatus,
    ToolStep,
)

logger = logging.getLogger(__name__)


def aggregate_status(steps: Iterable[ToolStep], finished: bool = False) -> str:
    """
    Derive a job status from its steps.

    Any step waiting for approval makes the job ``waiting_approval``. Until
    the job is finished it is otherwise ``running``. A finished job is
    ``failed`` if any step failed, else ``completed``.
    """
    statuses = [step.status for step in steps]
    if StepStatus.WAITING_APPROVAL in statuses:
        return JobStatus.WAITING_APPROVAL
    if not finished or any(s in (StepStatus.PENDING, StepStatus.RUNNING) for s in statuses):
        return JobStatus.RUNNING
    if StepStatus.FAILED in statuses:
        return JobStatus.FAILED
    return JobStatus.COMPLETED


class JobState:
    """Mutex-guarded holder of the current job."""

    def __init__(self) -> None:
        self._job: Optional[ExecutionJob] = None
        self._lock = threading.Lock()

    def set(self, job: Optional[ExecutionJob]) -> None:
        with self._lock:
            self._job = job

    def snapshot(self) -> Optional[ExecutionJob]:
        with self._lock:
            return self._job.snapshot() if self._job is not None else None

    def update(self, fn: Callable[[ExecutionJob], Any]) -> Optional[ExecutionJob]:
        """Apply ``fn`` to the job under the lock and return a snapshot of the result."""
        with self._lock:
            if self._job is None:
                return None
            fn(self._job)
            return self._job.snapshot()


class StepTracker:
    """
    Drives step transitions and emits one event per transition.

    Every event carries a snapshot of the whole job plus the step. Steps in a
    terminal state ignore further transitions.
    """

    def __init__(self, events: EventChannel, job_state: JobState) -> None:
        self.events = events
        self.job_state = job_state

    def start(
        self,
        step_id: str,
        tool_name: str,
        tool_args: Any = None,
        *,
        requires_approval: bool = False,
    ) -> Optional[ToolStep]:
        def append(job: ExecutionJob) -> None:
            job.steps.append(
                ToolStep(
                    id=step_id,
                    tool_name=tool_name,
                    tool_args=tool_args,
                    status=StepStatus.RUNNING,
                    requires_approval=requires_approval,
                )
            )
            job.current_step_index = len(job.steps) - 1
            job.status = aggregate_status(job.steps)

        return self._emit_after(step_id, append, StepStarted)

    def waiting_approval(self, step_id: str) -> Optional[ToolStep]:
        return self._transition(step_id, StepStatus.WAITING_APPROVAL, None, ApprovalRequired)

    def approved(self, step_id: str) -> Optional[ToolStep]:
        return self._transition(
            step_id, StepStatus.RUNNING, None, StepApproved, from_status=StepStatus.WAITING_APPROVAL
        )

    def rejected(self, step_id: str, reason: Optional[str] = None) -> Optional[ToolStep]:
        """Skip a step the user declined. Only a step waiting for approval can be skipped."""
        return self._transition(
            step_id, StepStatus.SKIPPED, reason, StepRejected, from_status=StepStatus.WAITING_APPROVAL
        )

    def complete(self, step_id: str, result: Optional[str] = None) -> Optional[ToolStep]:
        return self._transition(step_id, StepStatus.COMPLETED, result, StepCompleted)

    def fail(self, step_id: str, error: str) -> Optional[ToolStep]:
        return self._transition(step_id, StepStatus.FAILED, error, StepCompleted)

    def finish_job(self, *, failed: bool = False) -> Optional[ExecutionJob]:
        def finish(job: ExecutionJob) -> None:
            job.status = JobStatus.FAILED if failed else aggregate_status(job.steps, finished=True)

        return self.job_state.update(finish)

    def _transition(
        self,
        step_id: str,
        status: StepStatus,
        result: Optional[str],
        event_type: type[AgentEvent],
        from_status: Optional[StepStatus] = None,
    ) -> Optional[ToolStep]:
        changed = False

        def apply(job: ExecutionJob) -> None:
            nonlocal changed
            step = job.find_step(step_id)
            if step is None or step.status.is_terminal:
                return
            if from_status is not None and step.status is not from_status:
                return
            step.status = status
            if result is not None:
                step.result = result
            job.status = aggregate_status(job.steps)
            changed = True

        snapshot = self.job_state.update(apply)
        if snapshot is None or not changed:
            logger.debug("Ignoring %s transition for step %s", status, step_id)
            return None
        return self._emit(snapshot, step_id, event_type)

    def _emit_after(
        self,
        step_id: str,
        fn: Callable[[ExecutionJob], None],
        event_type: type[AgentEvent],
    ) -> Optional[ToolStep]:
        snapshot = self.job_state.update(fn)
        if snapshot is None:
            return None
        return self._emit(snapshot, step_id, event_type)

    def _emit(self, snapshot: ExecutionJob, step_id: str, event_type: type[AgentEvent]) -> Optional[ToolStep]:
        step = snapshot.find_step(step_id)
        if step is None:
            return None
        self.events.emit(event_type(job=snapshot, step=step))  # type: ignore[call-arg]
        return step
