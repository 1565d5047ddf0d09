"""
Native host execution backend.

Runs commands with ``bash -c`` directly on the host. There is no isolation
beyond the working directory and the timeout, so this backend is only
selected in Direct mode or as the Flexible fallback.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import signal
from pathlib import Path
from typing import Optional

from toolwarden.errors import ExecutionError
from toolwarden.logging_utils import abbreviate
from toolwarden.sandbox._base import DEFAULT_MAX_OUTPUT, Sandbox, decode_output
from toolwarden.types import ExecutionResult, SandboxConfig

logger = logging.getLogger(__name__)

SKILL_FILES_ENV = "SKILL_FILES_PATH"


class NativeSandbox(Sandbox):
    """
    Executes commands as host subprocesses.

    Each command runs in its own process session so a timeout can kill the
    whole process group, not just the shell.

    Example:
        >>> sandbox = NativeSandbox()
        >>> result = await sandbox.execute("ls -la", Path("./my_project"))
        >>> print(result.stdout)
    """

    name = "native"

    def __init__(self, *, shell: str = "bash", max_output_bytes: int = DEFAULT_MAX_OUTPUT) -> None:
        self._shell = shell
        self._max_output_bytes = max_output_bytes

    async def is_available(self) -> bool:
        return shutil.which(self._shell) is not None

    async def execute(
        self,
        command: str,
        workspace: Path,
        config: Optional[SandboxConfig] = None,
    ) -> ExecutionResult:
        return await self._run(command, workspace, config or SandboxConfig(), None)

    async def execute_with_files(
        self,
        command: str,
        workspace: Path,
        extra_files: Optional[Path],
        config: Optional[SandboxConfig] = None,
    ) -> ExecutionResult:
        return await self._run(command, workspace, config or SandboxConfig(), extra_files)

    async def _run(
        self,
        command: str,
        workspace: Path,
        config: SandboxConfig,
        extra_files: Optional[Path],
    ) -> ExecutionResult:
        env = os.environ.copy()
        if extra_files is not None:
            env[SKILL_FILES_ENV] = str(extra_files)

        logger.debug("native exec in %s: %s", workspace, abbreviate(command))
        try:
            proc = await asyncio.create_subprocess_exec(
                self._shell,
                "-c",
                command,
                cwd=str(workspace),
                env=env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            raise ExecutionError(f"Native execution failed: {e}") from e

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                proc.communicate(), timeout=config.timeout_seconds
            )
        except asyncio.TimeoutError:
            _kill_process_group(proc)
            await proc.wait()  # Ensure process is reaped
            logger.info("Command timed out after %ss: %s", config.timeout_seconds, abbreviate(command, 80))
            return ExecutionResult.timeout(
                stderr=f"Command timed out after {config.timeout_seconds}s"
            )

        stdout = decode_output(stdout_bytes, self._max_output_bytes)
        stderr = decode_output(stderr_bytes, self._max_output_bytes)
        return ExecutionResult.from_exit(proc.returncode or 0, stdout, stderr)


def _kill_process_group(proc: asyncio.subprocess.Process) -> None:
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    except PermissionError:
        proc.kill()
