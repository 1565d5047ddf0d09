"""
Runtime configuration for the core and for individual agents.
"""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from toolwarden.errors import ConfigurationError
from toolwarden.types import ExecutionMode

ENV_PREFIX = "TOOLWARDEN_"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


def _parse_positive_int(name: str, value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None
    if parsed < 1:
        raise ConfigurationError(f"{name} must be at least 1, got {parsed}")
    return parsed


@dataclass
class CoreConfig:
    """Process-wide defaults shared by every agent."""

    workspace_path: Path = field(default_factory=Path.cwd)
    default_provider: str = "openai"
    default_model: str = "gpt-4o"
    max_agent_turns: int = 10
    execution_mode: ExecutionMode = ExecutionMode.FLEXIBLE
    debug: bool = False
    skills_dir: Optional[Path] = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> CoreConfig:
        """
        Build a config from ``TOOLWARDEN_*`` environment variables.

        Unset variables keep their defaults.

        Raises:
            ConfigurationError: If a variable holds an invalid value.
        """
        env = os.environ if environ is None else environ
        config = cls()

        if workspace := env.get(f"{ENV_PREFIX}WORKSPACE"):
            config.workspace_path = Path(workspace).expanduser()
        if provider := env.get(f"{ENV_PREFIX}PROVIDER"):
            config.default_provider = provider
        if model := env.get(f"{ENV_PREFIX}MODEL"):
            config.default_model = model
        if turns := env.get(f"{ENV_PREFIX}MAX_TURNS"):
            config.max_agent_turns = _parse_positive_int(f"{ENV_PREFIX}MAX_TURNS", turns)
        if mode := env.get(f"{ENV_PREFIX}EXECUTION_MODE"):
            config.execution_mode = ExecutionMode.parse(mode)
        if (debug := env.get(f"{ENV_PREFIX}DEBUG")) is not None:
            config.debug = _parse_bool(f"{ENV_PREFIX}DEBUG", debug)
        if skills_dir := env.get(f"{ENV_PREFIX}SKILLS_DIR"):
            config.skills_dir = Path(skills_dir).expanduser()

        return config


@dataclass
class AgentConfig:
    """
    Configuration for a single agent.

    ``execution_mode`` is an agent-level override: when set it applies to every
    skill assigned to the agent, replacing the mode each skill declares.
    ``None`` leaves each skill's own preference in force.
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "Default Agent"
    provider: str = "openai"
    model: str = "gpt-4o"
    system_prompt: Optional[str] = None
    max_turns: int = 10
    workspace_path: Path = field(default_factory=Path.cwd)
    execution_mode: Optional[ExecutionMode] = None
    skill_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_core(cls, core: CoreConfig, **overrides: object) -> AgentConfig:
        """Create an agent config that inherits the core defaults."""
        values: dict[str, object] = {
            "provider": core.default_provider,
            "model": core.default_model,
            "max_turns": core.max_agent_turns,
            "workspace_path": core.workspace_path,
        }
        values.update(overrides)
        return cls(**values)  # type: ignore[arg-type]

    @property
    def sandbox_mode(self) -> ExecutionMode:
        """Mode used by the built-in tools."""
        return self.execution_mode or ExecutionMode.FLEXIBLE
