"""
Agent loop: streams model rounds, runs tool calls as steps, reports events.
"""

from __future__ import annotations

import inspect
import json
import logging
import uuid
from typing import Any, Awaitable, Callable, Optional, Union

from toolwarden.agent.model import (
    CompletionModel,
    FinalResponse,
    Message,
    ReasoningDelta,
    TextDelta,
    ToolCall,
)
from toolwarden.agent.prompt import build_system_prompt
from toolwarden.agent.state import JobState, StepTracker
from toolwarden.config import AgentConfig
from toolwarden.errors import (
    ExecutionFailedError,
    InvalidArgumentError,
    ToolError,
    ToolwardenError,
)
from toolwarden.events.bridge import AgentObserver
from toolwarden.events.channel import EventChannel
from toolwarden.events.types import Error, ExecutionJob, JobCompleted, JobStarted, Thinking, Token
from toolwarden.logging_utils import abbreviate
from toolwarden.permissions.manager import PermissionManager
from toolwarden.permissions.scope import ScopeEnforcer
from toolwarden.permissions.types import PermissionType
from toolwarden.skills.registry import SkillRegistry
from toolwarden.skills.tool import adapt_skills
from toolwarden.tools.base import Tool, ToolContext, ToolDefinition
from toolwarden.tools.bash import BashTool
from toolwarden.tools.filesystem import FilesystemTool
from toolwarden.tools.office import OfficeTool
from toolwarden.tools.search import SearchTool

logger = logging.getLogger(__name__)

Summarizer = Callable[[str], Union[str, Awaitable[str]]]

DEFAULT_SUMMARIZE_THRESHOLD = 4000


class _StepObserver:
    """Translates permission protocol events into step transitions, then forwards them."""

    def __init__(self, tracker: StepTracker, step_id: str, outer: AgentObserver) -> None:
        self._tracker = tracker
        self._step_id = step_id
        self._outer = outer

    def emit(self, topic: str, payload: dict[str, Any]) -> None:
        kind = payload.get("type")
        if kind == "permission_request":
            self._tracker.waiting_approval(self._step_id)
        elif kind == "permission_resolved":
            if payload.get("allowed"):
                self._tracker.approved(self._step_id)
            else:
                self._tracker.rejected(self._step_id, "User denied permission")
        self._outer.emit(topic, payload)


def _error_payload(error: ToolwardenError) -> str:
    if isinstance(error, ToolError):
        body = error.to_dict()
    else:
        body = {"kind": "other", "message": str(error)}
    return json.dumps({"error": body}, ensure_ascii=False)


def _display_args(arguments: Any) -> Any:
    if isinstance(arguments, str):
        try:
            return json.loads(arguments)
        except json.JSONDecodeError:
            return arguments
    return arguments


class AgentCoordinator:
    """
    Runs the multi-turn agent loop for one session.

    Each model round is streamed: text becomes ``Token`` events, reasoning
    becomes ``Thinking``, and every tool call becomes a step. Tool results
    go back to the model as ``tool`` messages until it answers without
    calling a tool or the turn limit is reached.

    Example:
        >>> coordinator = AgentCoordinator(model, [BashTool(".")], events=channel,
        ...                                permissions=PermissionManager(AllowAllHandler()))
        >>> answer = await coordinator.chat("List the files")
    """

    def __init__(
        self,
        model: CompletionModel,
        tools: list[Tool],
        *,
        events: EventChannel,
        permissions: PermissionManager,
        session_id: Optional[str] = None,
        observer: Optional[AgentObserver] = None,
        max_turns: int = 10,
        system_prompt: Optional[str] = None,
        summarizer: Optional[Summarizer] = None,
        summarize_threshold: int = DEFAULT_SUMMARIZE_THRESHOLD,
    ) -> None:
        self.model = model
        self.tools: dict[str, Tool] = {}
        for tool in tools:
            if tool.name in self.tools:
                logger.warning("Duplicate tool name %s; keeping the first", tool.name)
                continue
            self.tools[tool.name] = tool
        self.events = events
        self.permissions = permissions
        self.session_id = session_id or str(uuid.uuid4())
        self.observer = observer
        self.max_turns = max_turns
        self.summarizer = summarizer
        self.summarize_threshold = summarize_threshold
        self.job_state = JobState()
        self.tracker = StepTracker(events, self.job_state)
        self.history: list[Message] = []
        if system_prompt:
            self.history.append({"role": "system", "content": system_prompt})
        self.last_usage: dict[str, int] = {}

    @classmethod
    def for_agent(
        cls,
        agent_config: AgentConfig,
        model: CompletionModel,
        *,
        events: EventChannel,
        permissions: PermissionManager,
        registry: Optional[SkillRegistry] = None,
        session_id: Optional[str] = None,
        observer: Optional[AgentObserver] = None,
        scope: Optional[ScopeEnforcer] = None,
        summarizer: Optional[Summarizer] = None,
    ) -> AgentCoordinator:
        """
        Build a coordinator with the built-in tools plus the agent's assigned skills.

        Skills come from the registry's assignments for ``agent_config.id`` and
        from ``agent_config.skill_ids``. Unknown skill ids are logged and
        skipped.
        """
        workspace = agent_config.workspace_path
        mode = agent_config.sandbox_mode
        tools: list[Tool] = [
            BashTool(workspace, execution_mode=mode, scope=scope),
            FilesystemTool(workspace),
            SearchTool(workspace, execution_mode=mode),
            OfficeTool(workspace),
        ]

        if registry is not None:
            skills = {skill.name: skill for skill in registry.skills_for(agent_config.id)}
            for skill_id in agent_config.skill_ids:
                loaded = registry.get(skill_id)
                if loaded is None:
                    logger.warning("Agent %s references unknown skill %s", agent_config.id, skill_id)
                    continue
                skills.setdefault(loaded.name, loaded)

            builtin = {tool.name for tool in tools}
            for skill_tool in adapt_skills(list(skills.values()), workspace, agent_config.execution_mode):
                if skill_tool.name in builtin:
                    logger.warning("Skill %s shadows a built-in tool; skipped", skill_tool.name)
                    continue
                tools.append(skill_tool)

        system_prompt = agent_config.system_prompt or build_system_prompt(tools)
        return cls(
            model,
            tools,
            events=events,
            permissions=permissions,
            session_id=session_id,
            observer=observer,
            max_turns=agent_config.max_turns,
            system_prompt=system_prompt,
            summarizer=summarizer,
        )

    @property
    def tool_definitions(self) -> list[ToolDefinition]:
        return [tool.definition() for tool in self.tools.values()]

    @property
    def current_job(self) -> Optional[ExecutionJob]:
        return self.job_state.snapshot()

    # --- Approval entry points ---

    def approve_request(self, request_id: str, always: bool = False) -> bool:
        return self.permissions.approve(request_id, always=always)

    def reject_request(self, request_id: str) -> bool:
        return self.permissions.reject(request_id)

    # --- Loop ---

    async def chat(self, prompt: str) -> str:
        """
        Run one user turn to completion and return the final assistant text.

        Raises:
            Exception: Whatever the model raised; the job is failed first.
        """
        job = ExecutionJob(id=str(uuid.uuid4()), session_id=self.session_id, query=prompt)
        self.job_state.set(job)
        self.events.emit(JobStarted(job=job.snapshot()))
        self.history.append({"role": "user", "content": prompt})

        text = ""
        try:
            for _ in range(self.max_turns):
                text, calls = await self._run_turn()
                message: Message = {"role": "assistant", "content": text}
                if calls:
                    message["tool_calls"] = [call.to_message() for call in calls]
                self.history.append(message)

                if not calls:
                    snapshot = self.tracker.finish_job()
                    self.events.emit(JobCompleted(job=snapshot or job, message=text))
                    return text

                for call in calls:
                    result = await self._run_step(call)
                    self.history.append({"role": "tool", "tool_call_id": call.id, "content": result})
        except Exception as e:
            logger.exception("Agent turn failed")
            self.events.emit(Error(message="Agent execution failed", error=str(e)))
            snapshot = self.tracker.finish_job(failed=True)
            self.events.emit(JobCompleted(job=snapshot or job, message=str(e)))
            raise

        reason = f"Agent stopped after reaching the turn limit ({self.max_turns})"
        logger.warning(reason)
        self.events.emit(Error(message=reason))
        snapshot = self.tracker.finish_job(failed=True)
        self.events.emit(JobCompleted(job=snapshot or job, message=text or reason))
        return text or reason

    async def _run_turn(self) -> tuple[str, list[ToolCall]]:
        parts: list[str] = []
        calls: list[ToolCall] = []
        async for event in self.model.stream(self.history, self.tool_definitions):
            if isinstance(event, TextDelta):
                parts.append(event.text)
                self.events.emit(Token(content=event.text))
            elif isinstance(event, ReasoningDelta):
                self.events.emit(Thinking(message=event.text))
            elif isinstance(event, ToolCall):
                calls.append(event)
            elif isinstance(event, FinalResponse):
                self.last_usage = dict(event.usage)
        return "".join(parts), calls

    async def _run_step(self, call: ToolCall) -> str:
        """Run one tool call as a step and return the text fed back to the model."""
        step_id = self._new_step_id(call.id)
        display_args = _display_args(call.arguments)
        tool = self.tools.get(call.name)

        try:
            if tool is None:
                raise InvalidArgumentError("name", f"unknown tool '{call.name}'")
            args = tool.parse_args(call.arguments)
            tool.validate_args(args)
            needs_approval = tool.requires_approval(args)
        except ToolError as e:
            self.tracker.start(step_id, call.name, display_args)
            self.tracker.fail(step_id, str(e))
            return _error_payload(e)

        self.tracker.start(step_id, call.name, display_args, requires_approval=needs_approval)
        observer = _StepObserver(self.tracker, step_id, self.observer) if self.observer is not None else None
        context = ToolContext(self.permissions, observer=observer, session_id=self.session_id)

        logger.debug("step %s: %s(%s)", step_id, call.name, abbreviate(str(display_args), 120))
        try:
            if needs_approval:
                await context.require_permission(
                    PermissionType.UNKNOWN,
                    f"Approve running tool '{call.name}'",
                    resource=call.name,
                    tool=call.name,
                )
            result = await tool.execute(args, context)
            if not tool.verify_result(result):
                raise ExecutionFailedError("result verification failed")
        except ToolwardenError as e:
            # Leaves a step skipped by a human rejection as it is
            self.tracker.fail(step_id, str(e))
            return _error_payload(e)

        text = json.dumps(result, ensure_ascii=False, default=str)
        if tool.needs_summarization(args, result):
            text = await self._condense(text)
        self.tracker.complete(step_id, text)
        return text

    def _new_step_id(self, call_id: str) -> str:
        # Call ids may repeat across rounds; step ids are unique within a job
        job = self.job_state.snapshot()
        if not call_id:
            return str(uuid.uuid4())
        if job is None or job.find_step(call_id) is None:
            return call_id
        return f"{call_id}-{uuid.uuid4().hex[:8]}"

    async def _condense(self, text: str) -> str:
        if len(text) <= self.summarize_threshold:
            return text
        if self.summarizer is not None:
            summary = self.summarizer(text)
            if inspect.isawaitable(summary):
                summary = await summary
            return summary
        removed = len(text) - self.summarize_threshold
        return f"{text[: self.summarize_threshold]}\n\n[Truncated: {removed} characters removed]"
