"""
Core types and data models.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any

from toolwarden.errors import ConfigurationError

TIMEOUT_EXIT_CODE = 124
"""Exit code reported for every timed-out command, matching coreutils `timeout`."""


class ExecutionMode(Enum):
    """Policy selecting which sandbox backend may run a command."""

    SANDBOX = "sandbox"
    """Containerized execution only. Fails if no container runtime is available."""

    DIRECT = "direct"
    """Native host execution."""

    FLEXIBLE = "flexible"
    """Containerized execution when available, native otherwise."""

    @classmethod
    def parse(cls, value: ExecutionMode | str) -> ExecutionMode:
        """Parse a mode name case-insensitively."""
        if isinstance(value, ExecutionMode):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError(f"Unknown execution mode: {value}") from None

    def __str__(self) -> str:
        return self.value


# Short names accepted wherever an image is configured
IMAGE_ALIASES: dict[str, str] = {
    "python": "python:3.11-slim",
    "python311": "python:3.11-slim",
    "python:3.11": "python:3.11-slim",
    "node": "node:20-slim",
    "node20": "node:20-slim",
    "node:20": "node:20-slim",
    "debian": "debian:stable-slim",
    "alpine": "alpine:latest",
}


def resolve_image(image: str) -> str:
    """Expand an image alias to a full image reference."""
    return IMAGE_ALIASES.get(image.strip().lower(), image)


@dataclass(frozen=True)
class SandboxConfig:
    """Resource limits for a single sandboxed invocation."""

    image: str = "debian:stable-slim"
    """Container image (ignored by the native backend)."""

    memory_limit: str = "256m"
    """Memory limit in docker notation, e.g. ``256m`` or ``1g``."""

    cpu_limit: float = 0.5
    """CPU share."""

    timeout_seconds: int = 300
    """Wall-clock limit enforced by the backend."""

    network_enabled: bool = False
    """Whether the command may reach the network."""

    @classmethod
    def python(cls) -> SandboxConfig:
        return cls(image="python:3.11-slim")

    @classmethod
    def nodejs(cls) -> SandboxConfig:
        return cls(image="node:20-slim")

    def with_timeout(self, seconds: int) -> SandboxConfig:
        return replace(self, timeout_seconds=seconds)

    def with_network(self, enabled: bool) -> SandboxConfig:
        return replace(self, network_enabled=enabled)

    @property
    def resolved_image(self) -> str:
        return resolve_image(self.image)


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of a sandboxed or native command execution."""

    success: bool
    stdout: str
    stderr: str
    exit_code: int
    timed_out: bool = False

    @classmethod
    def ok(cls, stdout: str = "", stderr: str = "") -> ExecutionResult:
        return cls(success=True, stdout=stdout, stderr=stderr, exit_code=0)

    @classmethod
    def failure(cls, stderr: str, exit_code: int, stdout: str = "") -> ExecutionResult:
        return cls(success=False, stdout=stdout, stderr=stderr, exit_code=exit_code)

    @classmethod
    def timeout(cls, stdout: str = "", stderr: str = "Command timed out") -> ExecutionResult:
        return cls(
            success=False,
            stdout=stdout,
            stderr=stderr,
            exit_code=TIMEOUT_EXIT_CODE,
            timed_out=True,
        )

    @classmethod
    def from_exit(cls, exit_code: int, stdout: str, stderr: str) -> ExecutionResult:
        """Build a result from a finished process, mapping exit 124 to a timeout."""
        if exit_code == TIMEOUT_EXIT_CODE:
            return cls.timeout(stdout=stdout, stderr=stderr or "Command timed out")
        return cls(
            success=exit_code == 0,
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
