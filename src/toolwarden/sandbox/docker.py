"""
Docker-based sandbox backend.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
import shutil
import uuid
from pathlib import Path
from typing import Optional

from toolwarden.errors import DependencyError, ExecutionError
from toolwarden.logging_utils import abbreviate
from toolwarden.sandbox._base import DEFAULT_MAX_OUTPUT, Sandbox, decode_output
from toolwarden.types import ExecutionResult, SandboxConfig, resolve_image

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 5.0
"""Seconds allowed for ``docker info`` before the runtime counts as unavailable."""

TIMEOUT_GRACE = 10.0
"""Extra host-side seconds on top of the in-container ``timeout``."""

CONTAINER_WORKSPACE = "/workspace"
CONTAINER_SKILL_DIR = "/skill"


class DockerSandbox(Sandbox):
    """
    Executes commands inside an ephemeral Docker container.

    The container has a read-only root filesystem, a small tmpfs at ``/tmp``,
    the workspace mounted read-write at ``/workspace`` and, when given, extra
    files mounted read-only at ``/skill``. Networking is disabled unless the
    config enables it.
    """

    name = "docker"

    def __init__(self, docker_bin: str = "docker", *, max_output_bytes: int = DEFAULT_MAX_OUTPUT) -> None:
        resolved = shutil.which(docker_bin)
        if not resolved:
            raise DependencyError("Docker executable not found.")
        self._docker = resolved
        self._max_output_bytes = max_output_bytes
        self._available: Optional[bool] = None

    async def is_available(self) -> bool:
        """Probe the daemon once per instance with ``docker info``."""
        if self._available is None:
            self._available = await self._probe()
        return self._available

    async def _probe(self) -> bool:
        try:
            proc = await asyncio.create_subprocess_exec(
                self._docker,
                "info",
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.info("Docker probe failed to start: %s", e)
            return False
        try:
            returncode = await asyncio.wait_for(proc.wait(), timeout=PROBE_TIMEOUT)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.info("Docker daemon did not answer within %ss", PROBE_TIMEOUT)
            return False
        return returncode == 0

    def build_run_args(
        self,
        command: str,
        workspace: Path,
        config: SandboxConfig,
        extra_files: Optional[Path] = None,
        *,
        container_name: str,
    ) -> list[str]:
        """Assemble the ``docker run`` argument vector."""
        network = "bridge" if config.network_enabled else "none"
        args = [
            self._docker, "run", "--rm",
            "--name", container_name,
            f"--memory={config.memory_limit}",
            f"--cpus={config.cpu_limit}",
            f"--network={network}",
            "--read-only",
            "--tmpfs=/tmp:size=64m",
            "-v", f"{Path(workspace).resolve()}:{CONTAINER_WORKSPACE}:rw",
        ]
        if extra_files is not None:
            args += [
                "-v", f"{Path(extra_files).resolve()}:{CONTAINER_SKILL_DIR}:ro",
                "-e", f"SKILL_FILES_PATH={CONTAINER_SKILL_DIR}",
            ]
        args += [
            "-w", CONTAINER_WORKSPACE,
            config.resolved_image,
            "/bin/sh", "-c",
            f"timeout {config.timeout_seconds} sh -c {shlex.quote(command)}",
        ]
        return args

    async def execute(
        self,
        command: str,
        workspace: Path,
        config: Optional[SandboxConfig] = None,
    ) -> ExecutionResult:
        return await self.execute_with_files(command, workspace, None, config)

    async def execute_with_files(
        self,
        command: str,
        workspace: Path,
        extra_files: Optional[Path],
        config: Optional[SandboxConfig] = None,
    ) -> ExecutionResult:
        config = config or SandboxConfig()
        container_name = f"toolwarden-{uuid.uuid4().hex[:12]}"
        args = self.build_run_args(command, workspace, config, extra_files, container_name=container_name)

        logger.debug("docker exec (%s) in %s: %s", config.resolved_image, container_name, abbreviate(command))
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ExecutionError(f"Docker execution failed: {e}") from e

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                proc.communicate(), timeout=config.timeout_seconds + TIMEOUT_GRACE
            )
        except asyncio.TimeoutError:
            # Killing the client does not stop the container
            proc.kill()
            await proc.wait()
            await self._kill_container(container_name)
            return ExecutionResult.timeout(
                stderr=f"Command timed out after {config.timeout_seconds}s"
            )

        stdout = decode_output(stdout_bytes, self._max_output_bytes)
        stderr = decode_output(stderr_bytes, self._max_output_bytes)
        return ExecutionResult.from_exit(proc.returncode or 0, stdout, stderr)

    async def _kill_container(self, container_name: str) -> None:
        try:
            proc = await asyncio.create_subprocess_exec(
                self._docker,
                "kill",
                container_name,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            await proc.wait()
        except OSError as e:
            logger.warning("Failed to kill container %s: %s", container_name, e)

    async def pull_image(self, image: str) -> None:
        """
        Pull ``image`` (aliases allowed) so the first run does not pay for it.

        Raises:
            ExecutionError: If the pull fails.
        """
        resolved = resolve_image(image)
        logger.info("Pulling docker image %s", resolved)
        try:
            proc = await asyncio.create_subprocess_exec(
                self._docker,
                "pull",
                resolved,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ExecutionError(f"Docker pull failed: {e}") from e
        _, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise ExecutionError(
                f"Failed to pull image {resolved}: {stderr.decode(errors='replace').strip()}"
            )
