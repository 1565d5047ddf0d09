"""
Skill data types.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

from toolwarden.types import ExecutionMode, SandboxConfig


@dataclass(frozen=True)
class SkillSandboxConfig:
    """Sandbox settings declared in a skill's frontmatter. Unset fields use the defaults."""

    image: Optional[str] = None
    memory_limit: Optional[str] = None
    cpu_limit: Optional[float] = None
    timeout_seconds: Optional[int] = None
    network_enabled: Optional[bool] = None

    def to_sandbox_config(self) -> SandboxConfig:
        overrides = {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}
        return SandboxConfig(**overrides)


@dataclass(frozen=True)
class ParsedSkill:
    """Contents of a SKILL.md: frontmatter fields plus the markdown body."""

    name: str
    description: str
    body: str = ""
    license: Optional[str] = None
    category: Optional[str] = None
    triggers: list[str] = field(default_factory=list)
    requires_sandbox: bool = False
    sandbox_config: Optional[SkillSandboxConfig] = None
    execution_mode: Optional[ExecutionMode] = None


@dataclass(frozen=True)
class SkillFile:
    path: str
    """Path relative to the skill root, using forward slashes."""

    content: str
    kind: str
    """Language tag from ``detect_file_type``."""


@dataclass(frozen=True)
class LoadedSkill:
    """A parsed skill together with its bundled text files."""

    skill: ParsedSkill
    files: dict[str, SkillFile] = field(default_factory=dict)
    source: Optional[Path] = None

    @property
    def name(self) -> str:
        return self.skill.name


@dataclass(frozen=True)
class SkillInfo:
    """Marketplace listing entry: metadata only, no files."""

    name: str
    description: str
    display_title: str
    category: Optional[str]
    dir_name: str
    dir_path: Path

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "display_title": self.display_title,
            "category": self.category,
            "dir_name": self.dir_name,
            "dir_path": str(self.dir_path),
        }
