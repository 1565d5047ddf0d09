"""
Workspace scope enforcement with pattern-based command blocking.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Optional

from toolwarden.errors import ValidationFailedError


class ScopeType(Enum):
    GLOBAL = "global"
    """Any path and any command."""

    WORKSPACE = "workspace"
    """Paths and commands are confined to the workspace directory."""

    @classmethod
    def parse(cls, value: str | None) -> ScopeType:
        """Unrecognized or missing values mean global scope."""
        if value and value.strip().lower() == "workspace":
            return cls.WORKSPACE
        return cls.GLOBAL


# Substrings that navigate or write outside the working directory
ESCAPE_PATTERNS: list[str] = [
    "cd /",
    "cd ~",
    "cd ..",
    "> /",
    ">> /",
]

# Destructive command patterns - compiled regex with human-readable descriptions
DANGEROUS_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    # Filesystem destruction
    (re.compile(r"\brm\s+(-[rf]+\s+)*[/~]"), "Recursive delete of root or home directory"),
    (re.compile(r"\brm\s+-[rf]*\s+-[rf]*\s+/"), "Recursive delete of root directory"),
    # Remote code execution
    (re.compile(r"\b(curl|wget)\b.*\|\s*(ba)?sh"), "Remote code execution via download|sh"),
    (re.compile(r"\b(curl|wget)\b.*\|\s*python"), "Remote code execution via download|python"),
    # Fork bombs
    (re.compile(r":\s*\(\s*\)\s*\{.*\}"), "Fork bomb pattern"),
    # Direct disk access
    (re.compile(r">\s*/dev/(sd[a-z]|nvme)"), "Direct disk write"),
    (re.compile(r"\bdd\b.*of=/dev/"), "Direct disk write via dd"),
    (re.compile(r"\bmkfs\b"), "Filesystem creation/destruction"),
    # Privilege escalation
    (re.compile(r"\bsudo\b"), "Privilege escalation via sudo"),
    (re.compile(r"\bsu\s+-"), "Privilege escalation via su"),
]


class ScopeEnforcer:
    """
    Validates commands and paths against an agent's scope.

    Example:
        >>> enforcer = ScopeEnforcer.workspace("/srv/project")
        >>> enforcer.validate_command("ls src")
        >>> enforcer.validate_command("cat /etc/passwd")
        Traceback (most recent call last):
        ...
        ValidationFailedError: Validation failed: Command references path ...
    """

    def __init__(self, scope_type: ScopeType = ScopeType.GLOBAL, workspace_path: Path | str | None = None) -> None:
        self.scope_type = scope_type
        self.workspace_path = Path(workspace_path) if workspace_path is not None else None

    @classmethod
    def global_scope(cls) -> ScopeEnforcer:
        return cls(ScopeType.GLOBAL)

    @classmethod
    def workspace(cls, workspace_path: Path | str) -> ScopeEnforcer:
        return cls(ScopeType.WORKSPACE, workspace_path)

    @property
    def is_workspace_scope(self) -> bool:
        return self.scope_type is ScopeType.WORKSPACE

    def is_path_allowed(self, path: Path | str) -> bool:
        """
        Check whether ``path`` lies inside the workspace.

        Relative paths are taken relative to the workspace. Paths that do not
        exist yet are judged by their nearest existing parent.
        """
        if self.scope_type is ScopeType.GLOBAL:
            return True
        if self.workspace_path is None:
            return False
        try:
            workspace = self.workspace_path.resolve(strict=True)
        except (OSError, RuntimeError):
            return False

        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = workspace / candidate
        resolved = candidate.resolve()
        return resolved == workspace or workspace in resolved.parents

    def validate_command(self, command: str) -> None:
        """
        Reject a command that could escape the workspace.

        Raises:
            ValidationFailedError: If the command matches an escape or
                destructive pattern or names an absolute path outside the
                workspace.
        """
        if self.scope_type is ScopeType.GLOBAL:
            return
        if self.workspace_path is None:
            raise ValidationFailedError("No workspace path set for workspace scope")

        for pattern in ESCAPE_PATTERNS:
            if pattern in command:
                raise ValidationFailedError(
                    f"Command contains potentially dangerous pattern '{pattern}' that may escape workspace"
                )

        for regex, reason in DANGEROUS_PATTERNS:
            if regex.search(command):
                raise ValidationFailedError(reason)

        for part in command.split():
            token = part.strip("'\"")
            if token.startswith("/") and not self.is_path_allowed(token):
                raise ValidationFailedError(
                    f"Command references path '{token}' outside workspace '{self.workspace_path}'"
                )

    def validate_path(self, path: Path | str) -> Path:
        """Resolve ``path`` against the workspace, raising if it escapes."""
        if not self.is_path_allowed(path):
            raise ValidationFailedError(f"Path '{path}' is outside the workspace")
        candidate = Path(path)
        if self.workspace_path is not None and not candidate.is_absolute():
            candidate = self.workspace_path / candidate
        return candidate


def scope_for(workspace_path: Optional[Path], scope: str | None) -> ScopeEnforcer:
    """Build the enforcer for an agent's declared scope name."""
    scope_type = ScopeType.parse(scope)
    if scope_type is ScopeType.WORKSPACE and workspace_path is not None:
        return ScopeEnforcer.workspace(workspace_path)
    return ScopeEnforcer(scope_type, workspace_path)
