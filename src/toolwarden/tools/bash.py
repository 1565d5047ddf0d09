"""
Shell command tool.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from toolwarden.errors import InvalidArgumentError
from toolwarden.logging_utils import abbreviate
from toolwarden.permissions.scope import ScopeEnforcer
from toolwarden.permissions.types import PermissionType
from toolwarden.sandbox import Sandbox, create_sandbox
from toolwarden.tools.base import Tool, ToolContext, ToolResult
from toolwarden.types import ExecutionMode, SandboxConfig

logger = logging.getLogger(__name__)

MAX_TIMEOUT_SECONDS = 300


class BashArgs(BaseModel):
    command: str = Field(description="The shell command to execute")
    timeout_seconds: Optional[int] = Field(
        default=None,
        ge=1,
        description=f"Timeout in seconds (max {MAX_TIMEOUT_SECONDS})",
    )


class BashTool(Tool):
    """
    Runs shell commands in the workspace, gated by ShellExecute permission.

    Example:
        >>> tool = BashTool(Path("./project"), execution_mode=ExecutionMode.DIRECT)
        >>> result = await tool.call({"command": "ls"}, context)
        >>> result["exit_code"]
        0
    """

    name = "bash"
    description = (
        "Execute a shell command in the workspace. "
        "Returns stdout, stderr and the exit code."
    )
    args_model = BashArgs

    def __init__(
        self,
        workspace: Path | str,
        *,
        sandbox: Optional[Sandbox] = None,
        execution_mode: ExecutionMode = ExecutionMode.FLEXIBLE,
        scope: Optional[ScopeEnforcer] = None,
    ) -> None:
        self.workspace = Path(workspace)
        self._sandbox = sandbox
        self.execution_mode = execution_mode
        self.scope = scope

    def validate_args(self, args: BashArgs) -> None:  # type: ignore[override]
        if not args.command.strip():
            raise InvalidArgumentError("command", "must not be empty")

    async def execute(self, args: BashArgs, context: ToolContext) -> ToolResult:  # type: ignore[override]
        if self.scope is not None:
            self.scope.validate_command(args.command)

        await context.require_permission(
            PermissionType.SHELL_EXECUTE,
            f"Execute command: {args.command}",
            resource=args.command,
        )

        sandbox = self._sandbox or await create_sandbox(self.execution_mode)
        timeout = min(args.timeout_seconds or MAX_TIMEOUT_SECONDS, MAX_TIMEOUT_SECONDS)
        config = SandboxConfig(timeout_seconds=timeout, network_enabled=True)

        logger.debug("bash via %s: %s", sandbox.name, abbreviate(args.command))
        result = await sandbox.execute(args.command, self.workspace, config)
        return result.to_dict()

    def verify_result(self, result: dict[str, Any]) -> bool:
        return "exit_code" in result
