"""
Exposes a loaded skill to the agent as a tool.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel, Field

from toolwarden.errors import ExecutionFailedError, SandboxUnavailableError, SkillLoadError
from toolwarden.logging_utils import abbreviate
from toolwarden.permissions.types import PermissionType
from toolwarden.sandbox import Sandbox, create_sandbox
from toolwarden.skills.loader import is_bundle_relative, load_skills
from toolwarden.skills.types import LoadedSkill
from toolwarden.tools.base import Tool, ToolContext, ToolResult
from toolwarden.types import ExecutionMode, SandboxConfig

logger = logging.getLogger(__name__)

SandboxProvider = Callable[[ExecutionMode], Awaitable[Sandbox]]

READ_COMMAND = "read"


class SkillArgs(BaseModel):
    args: str = Field(
        description="Use 'read' to get the skill instructions, otherwise a shell command to run with the skill files available"
    )


class SkillTool(Tool):
    """
    A skill as a callable tool.

    Calling it with ``args='read'`` returns the instructions. Any other value
    is a shell command run with the skill's files exposed at
    ``$SKILL_FILES_PATH``.
    """

    args_model = SkillArgs

    def __init__(
        self,
        loaded: LoadedSkill,
        workspace: Path | str,
        *,
        agent_execution_mode: Optional[ExecutionMode] = None,
        sandbox_factory: SandboxProvider = create_sandbox,
    ) -> None:
        self.loaded = loaded
        self.workspace = Path(workspace)
        self.agent_execution_mode = agent_execution_mode
        self._sandbox_factory = sandbox_factory
        self.name = loaded.skill.name  # type: ignore[misc]
        self.description = (  # type: ignore[misc]
            f"{loaded.skill.description.rstrip('.')}. IMPORTANT: Before using this skill, "
            "call it with args='read' to get detailed instructions and code examples."
        )

    @property
    def triggers(self) -> list[str]:
        return self.loaded.skill.triggers

    def effective_mode(self) -> ExecutionMode:
        """
        Mode this skill runs under.

        The agent override wins, then the skill's own declaration, then
        Flexible. A skill that requires a sandbox cannot run in Direct mode
        and never falls back to native execution.

        Raises:
            ExecutionFailedError: If the skill requires a sandbox under Direct mode.
        """
        skill = self.loaded.skill
        mode = self.agent_execution_mode or skill.execution_mode or ExecutionMode.FLEXIBLE
        if skill.requires_sandbox:
            if mode is ExecutionMode.DIRECT:
                raise ExecutionFailedError(
                    f"Skill '{skill.name}' requires a sandbox but the agent is in 'direct' execution mode"
                )
            if mode is ExecutionMode.FLEXIBLE:
                mode = ExecutionMode.SANDBOX
        return mode

    def sandbox_config(self) -> SandboxConfig:
        declared = self.loaded.skill.sandbox_config
        return declared.to_sandbox_config() if declared is not None else SandboxConfig()

    def _materialize(self, target: Path) -> None:
        root = target.resolve()
        for relative, skill_file in self.loaded.files.items():
            path = (root / relative).resolve()
            if not is_bundle_relative(relative) or not path.is_relative_to(root):
                logger.warning("Skipping skill file outside bundle root: %s", relative)
                continue
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(skill_file.content, encoding="utf-8")

    async def execute(self, args: SkillArgs, context: ToolContext) -> ToolResult:  # type: ignore[override]
        command = args.args.strip()
        if command.lower() == READ_COMMAND:
            return {"content": self.loaded.skill.body, "files": sorted(self.loaded.files)}

        mode = self.effective_mode()
        await context.require_permission(
            PermissionType.SHELL_EXECUTE,
            f"Run skill '{self.name}': {command}",
            resource=command,
            skill=self.name,
        )

        try:
            sandbox = await self._sandbox_factory(mode)
        except SandboxUnavailableError as e:
            raise ExecutionFailedError(str(e)) from e

        logger.info("Executing skill %s via %s: %s", self.name, sandbox.name, abbreviate(command, 80))
        with tempfile.TemporaryDirectory(prefix="toolwarden_skill_") as tmp:
            skill_dir = Path(tmp)
            try:
                self._materialize(skill_dir)
            except OSError as e:
                raise ExecutionFailedError(f"Failed to write skill files: {e}") from e
            result = await sandbox.execute_with_files(command, self.workspace, skill_dir, self.sandbox_config())

        if result.timed_out:
            raise ExecutionFailedError("Skill execution timed out", result.stderr)
        if not result.success:
            raise ExecutionFailedError(
                f"Skill execution failed with exit code {result.exit_code}", result.stderr
            )
        return {"stdout": result.stdout, "stderr": result.stderr}

    def needs_summarization(self, args: SkillArgs, result: ToolResult) -> bool:  # type: ignore[override]
        return args.args.strip().lower() != READ_COMMAND


def adapt_skills(
    loaded: list[LoadedSkill],
    workspace: Path | str,
    agent_execution_mode: Optional[ExecutionMode] = None,
    *,
    sandbox_factory: SandboxProvider = create_sandbox,
) -> list[SkillTool]:
    return [
        SkillTool(skill, workspace, agent_execution_mode=agent_execution_mode, sandbox_factory=sandbox_factory)
        for skill in loaded
    ]


def load_skill_tools(
    root: Path | str,
    workspace: Path | str,
    agent_execution_mode: Optional[ExecutionMode] = None,
    *,
    sandbox_factory: SandboxProvider = create_sandbox,
) -> tuple[list[SkillTool], list[SkillLoadError]]:
    """Load every skill under ``root`` as a tool, returning the tools and the load failures."""
    report = load_skills(root)
    tools = adapt_skills(report.loaded, workspace, agent_execution_mode, sandbox_factory=sandbox_factory)
    return tools, report.failures
