"""
Recursive text search tool backed by grep.
"""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from toolwarden.errors import ExecutionFailedError, InvalidArgumentError
from toolwarden.permissions.types import PermissionType
from toolwarden.sandbox import Sandbox, create_sandbox
from toolwarden.tools.base import Tool, ToolContext, ToolResult, validate_relative_path
from toolwarden.types import ExecutionMode, SandboxConfig

SEARCH_TIMEOUT_SECONDS = 60
SUMMARIZE_OVER_MATCHES = 50
NO_MATCHES = "No matches found."


class SearchArgs(BaseModel):
    query: str = Field(description="Text pattern to search for")
    path: str = Field(default=".", description="Directory to search, relative to the workspace")


def parse_grep_output(stdout: str) -> list[dict[str, object]]:
    """Split ``file:line:text`` lines into match records."""
    matches: list[dict[str, object]] = []
    for line in stdout.splitlines():
        parts = line.split(":", 2)
        if len(parts) < 3 or not parts[1].isdigit():
            continue
        matches.append({"file": parts[0], "line": int(parts[1]), "text": parts[2]})
    return matches


class SearchTool(Tool):
    name = "search"
    description = "Search for a text pattern in workspace files. Returns file, line number and text for each match."
    args_model = SearchArgs

    def __init__(
        self,
        workspace: Path | str,
        *,
        sandbox: Optional[Sandbox] = None,
        execution_mode: ExecutionMode = ExecutionMode.FLEXIBLE,
    ) -> None:
        self.workspace = Path(workspace)
        self._sandbox = sandbox
        self.execution_mode = execution_mode

    def validate_args(self, args: SearchArgs) -> None:  # type: ignore[override]
        if not args.query:
            raise InvalidArgumentError("query", "must not be empty")
        validate_relative_path(args.path)

    async def execute(self, args: SearchArgs, context: ToolContext) -> ToolResult:  # type: ignore[override]
        await context.require_permission(
            PermissionType.FILESYSTEM_READ,
            f"Agent wants to search files in {args.path}",
            resource=args.path,
        )

        command = f"grep -r -n -I -e {shlex.quote(args.query)} -- {shlex.quote(args.path)}"
        sandbox = self._sandbox or await create_sandbox(self.execution_mode)
        result = await sandbox.execute(
            command, self.workspace, SandboxConfig(timeout_seconds=SEARCH_TIMEOUT_SECONDS)
        )

        if result.timed_out:
            raise ExecutionFailedError("Search timed out", result.stderr)
        if result.exit_code == 1 and not result.stderr.strip():
            return {"matches": [], "message": NO_MATCHES}
        if not result.success:
            raise ExecutionFailedError(f"Search failed with exit code {result.exit_code}", result.stderr)

        matches = parse_grep_output(result.stdout)
        return {"matches": matches, "count": len(matches)}

    def needs_summarization(self, args: SearchArgs, result: ToolResult) -> bool:  # type: ignore[override]
        return len(result.get("matches", [])) > SUMMARIZE_OVER_MATCHES
