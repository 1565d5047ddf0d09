"""
Exception hierarchy for toolwarden.

Tool-level errors carry a ``kind`` discriminant so a coordinator can render a
permission denial differently from a failed command.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class ToolwardenError(Exception):
    """Base class for every error raised by toolwarden."""


class ConfigurationError(ToolwardenError):
    """Raised when a configuration value is missing or malformed."""


class DependencyError(ToolwardenError):
    """Raised when a required executable or runtime is not installed."""


class SandboxUnavailableError(DependencyError):
    """Raised when containerized execution is forced but cannot be provided."""


class ExecutionError(ToolwardenError):
    """
    Raised when a sandbox backend cannot run a command at all.

    A command that ran and exited non-zero is *not* an ExecutionError; it is
    reported through ``ExecutionResult``.
    """


class SkillLoadError(ToolwardenError):
    """
    Raised when a skill bundle cannot be loaded or fails validation.

    Attributes:
        path: Location of the offending bundle, if known.
        reason: Human-readable description of the problem.
    """

    def __init__(self, reason: str, path: Path | str | None = None) -> None:
        self.reason = reason
        self.path = Path(path) if path is not None else None
        if self.path is not None:
            super().__init__(f"{reason} ({self.path})")
        else:
            super().__init__(reason)


class ToolError(ToolwardenError):
    """Base class for errors surfaced by a tool invocation."""

    kind: str = "other"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": str(self)}


class MissingArgumentError(ToolError):
    kind = "missing_argument"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Missing required argument: {name}")


class InvalidArgumentError(ToolError):
    kind = "invalid_argument"

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid argument '{name}': {reason}")


class PermissionDeniedError(ToolError):
    kind = "permission_denied"

    def __init__(self, reason: str = "User denied permission") -> None:
        self.reason = reason
        super().__init__(f"Permission denied: {reason}")


class ExecutionFailedError(ToolError):
    kind = "execution_failed"

    def __init__(self, reason: str, stderr: str = "") -> None:
        self.reason = reason
        self.stderr = stderr
        super().__init__(f"Execution failed: {reason}")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.stderr:
            data["stderr"] = self.stderr
        return data


class ValidationFailedError(ToolError):
    kind = "validation_failed"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Validation failed: {reason}")
