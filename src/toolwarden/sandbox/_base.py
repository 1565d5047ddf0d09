"""
Abstract base class for all sandbox implementations.

All sandbox backends (Native, Docker) implement this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from pathlib import Path

    from toolwarden.types import ExecutionResult, SandboxConfig

DEFAULT_MAX_OUTPUT = 30_000


def decode_output(data: bytes, limit: int = DEFAULT_MAX_OUTPUT) -> str:
    """Decode process output, replacing bad bytes and truncating past ``limit`` characters."""
    text = data.decode("utf-8", errors="replace")
    if len(text) > limit:
        truncated_count = len(text) - limit
        text = text[:limit]
        text += f"\n\n[Truncated: {truncated_count} characters removed]"
    return text


class Sandbox(ABC):
    """
    Abstract base for command execution backends.

    A backend runs one command per call. Timeouts are enforced here, not by
    the caller: a command that overruns ``config.timeout_seconds`` yields
    ``ExecutionResult.timeout()`` rather than an exception.
    """

    name: str = "sandbox"

    @abstractmethod
    async def is_available(self) -> bool:
        """Whether this backend can run commands right now."""
        ...

    @abstractmethod
    async def execute(
        self,
        command: str,
        workspace: Path,
        config: Optional[SandboxConfig] = None,
    ) -> ExecutionResult:
        """
        Execute a shell command with ``workspace`` as the working directory.

        Args:
            command: The shell command to execute.
            workspace: Directory the command runs in.
            config: Resource limits. Defaults to ``SandboxConfig()``.

        Returns:
            ExecutionResult with stdout, stderr, exit_code and timed_out.

        Raises:
            ExecutionError: If the backend could not start the command.
        """
        ...

    async def execute_with_files(
        self,
        command: str,
        workspace: Path,
        extra_files: Optional[Path],
        config: Optional[SandboxConfig] = None,
    ) -> ExecutionResult:
        """
        Execute a command with an extra read-only directory of files available.

        Backends that cannot expose extra files run the command as ``execute``.
        """
        return await self.execute(command, workspace, config)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
