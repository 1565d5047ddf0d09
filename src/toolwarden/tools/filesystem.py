"""
Workspace filesystem tool.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field

from toolwarden.errors import ExecutionFailedError, MissingArgumentError
from toolwarden.permissions.types import PermissionType
from toolwarden.tools.base import Tool, ToolContext, ToolResult, validate_relative_path

Operation = Literal["read_file", "write_file", "list_dir", "make_dir", "delete_file"]


class FilesystemArgs(BaseModel):
    operation: Operation = Field(description="The filesystem operation to perform")
    path: str = Field(description="Path relative to the workspace")
    content: Optional[str] = Field(default=None, description="Content for write_file")


class FilesystemTool(Tool):
    """
    Reads and writes files inside the workspace.

    Every operation requests FilesystemWrite permission keyed by the path,
    reads included.
    """

    name = "filesystem"
    description = (
        "Read, write, list, create and delete files in the workspace. "
        "Paths must be relative to the workspace."
    )
    args_model = FilesystemArgs

    def __init__(self, workspace: Path | str) -> None:
        self.workspace = Path(workspace)

    def validate_args(self, args: FilesystemArgs) -> None:  # type: ignore[override]
        validate_relative_path(args.path)
        if args.operation == "write_file" and args.content is None:
            raise MissingArgumentError("content")

    async def execute(self, args: FilesystemArgs, context: ToolContext) -> ToolResult:  # type: ignore[override]
        noun = "directory" if args.operation in ("list_dir", "make_dir") else "file"
        await context.require_permission(
            PermissionType.FILESYSTEM_WRITE,
            f"Agent wants to {args.operation.replace('_', ' ')} ({noun}) at {args.path}",
            resource=args.path,
            operation=args.operation,
        )

        target = self.workspace / args.path
        try:
            if args.operation == "read_file":
                return {"content": target.read_text(encoding="utf-8")}
            if args.operation == "write_file":
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(args.content or "", encoding="utf-8")
                return {"message": "File written successfully"}
            if args.operation == "list_dir":
                entries = [
                    {"name": entry.name, "type": "directory" if entry.is_dir() else "file"}
                    for entry in target.iterdir()
                ]
                entries.sort(key=lambda e: e["name"])
                return {"entries": entries}
            if args.operation == "make_dir":
                target.mkdir(parents=True, exist_ok=True)
                return {"message": "Directory created"}
            target.unlink()
            return {"message": "File deleted"}
        except (OSError, UnicodeDecodeError) as e:
            raise ExecutionFailedError(str(e)) from e

    def needs_summarization(self, args: FilesystemArgs, result: ToolResult) -> bool:  # type: ignore[override]
        return args.operation == "read_file"
