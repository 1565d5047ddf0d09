"""Tests for configuration, core types, errors and logging setup."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from toolwarden.config import AgentConfig, CoreConfig
from toolwarden.errors import (
    ConfigurationError,
    ExecutionFailedError,
    PermissionDeniedError,
    SkillLoadError,
)
from toolwarden.logging_utils import abbreviate, configure_logging
from toolwarden.types import ExecutionMode, ExecutionResult, SandboxConfig, resolve_image


class TestCoreConfig:
    """Tests for environment-driven configuration."""

    def test_defaults(self) -> None:
        """An empty environment keeps every default."""
        config = CoreConfig.from_env({})
        assert config.execution_mode is ExecutionMode.FLEXIBLE
        assert config.max_agent_turns == 10
        assert config.debug is False
        assert config.skills_dir is None

    def test_from_env(self, temp_dir: Path) -> None:
        """TOOLWARDEN_* variables override the defaults."""
        config = CoreConfig.from_env(
            {
                "TOOLWARDEN_WORKSPACE": str(temp_dir),
                "TOOLWARDEN_PROVIDER": "anthropic",
                "TOOLWARDEN_MODEL": "claude",
                "TOOLWARDEN_MAX_TURNS": "4",
                "TOOLWARDEN_EXECUTION_MODE": "Sandbox",
                "TOOLWARDEN_DEBUG": "yes",
                "TOOLWARDEN_SKILLS_DIR": str(temp_dir / "skills"),
            }
        )
        assert config.workspace_path == temp_dir
        assert config.default_provider == "anthropic"
        assert config.default_model == "claude"
        assert config.max_agent_turns == 4
        assert config.execution_mode is ExecutionMode.SANDBOX
        assert config.debug is True
        assert config.skills_dir == temp_dir / "skills"

    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("TOOLWARDEN_MAX_TURNS", "many"),
            ("TOOLWARDEN_MAX_TURNS", "0"),
            ("TOOLWARDEN_EXECUTION_MODE", "chroot"),
            ("TOOLWARDEN_DEBUG", "perhaps"),
        ],
    )
    def test_invalid_values(self, name: str, value: str) -> None:
        """Malformed values raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            CoreConfig.from_env({name: value})


class TestAgentConfig:
    """Tests for per-agent configuration."""

    def test_from_core(self, temp_dir: Path) -> None:
        """Agent configs inherit core defaults unless overridden."""
        core = CoreConfig(workspace_path=temp_dir, default_model="m1", max_agent_turns=7)
        agent = AgentConfig.from_core(core, name="Researcher", max_turns=3)
        assert agent.model == "m1"
        assert agent.workspace_path == temp_dir
        assert agent.max_turns == 3
        assert agent.name == "Researcher"

    def test_sandbox_mode(self) -> None:
        """Built-in tools default to Flexible."""
        assert AgentConfig().sandbox_mode is ExecutionMode.FLEXIBLE
        assert AgentConfig(execution_mode=ExecutionMode.DIRECT).sandbox_mode is ExecutionMode.DIRECT

    def test_unique_ids(self) -> None:
        """Each agent gets its own id."""
        assert AgentConfig().id != AgentConfig().id


class TestCoreTypes:
    """Tests for modes, sandbox configs and results."""

    def test_parse_mode(self) -> None:
        """Mode names are case-insensitive."""
        assert ExecutionMode.parse(" DIRECT ") is ExecutionMode.DIRECT
        assert ExecutionMode.parse(ExecutionMode.SANDBOX) is ExecutionMode.SANDBOX
        with pytest.raises(ConfigurationError):
            ExecutionMode.parse("docker")

    def test_sandbox_config_helpers(self) -> None:
        """Presets and with_* helpers return new configs."""
        base = SandboxConfig()
        assert base.network_enabled is False
        assert base.timeout_seconds == 300
        assert SandboxConfig.python().image == "python:3.11-slim"
        assert SandboxConfig.nodejs().image == "node:20-slim"
        tuned = base.with_timeout(5).with_network(True)
        assert (tuned.timeout_seconds, tuned.network_enabled) == (5, True)
        assert base.timeout_seconds == 300

    def test_resolve_image(self) -> None:
        """Aliases expand; full references pass through."""
        assert resolve_image("node") == "node:20-slim"
        assert resolve_image("ghcr.io/acme/tool:1") == "ghcr.io/acme/tool:1"

    def test_result_from_exit(self) -> None:
        """Exit 124 is a timeout; 0 is success."""
        assert ExecutionResult.from_exit(0, "out", "").success
        timed_out = ExecutionResult.from_exit(124, "", "")
        assert timed_out.timed_out
        assert timed_out.exit_code == 124
        assert not timed_out.success
        assert ExecutionResult.from_exit(2, "", "bad").to_dict() == {
            "success": False,
            "stdout": "",
            "stderr": "bad",
            "exit_code": 2,
            "timed_out": False,
        }


class TestErrors:
    """Tests for error rendering."""

    def test_tool_error_dict(self) -> None:
        """Tool errors carry their kind."""
        assert PermissionDeniedError().to_dict() == {
            "kind": "permission_denied",
            "message": "Permission denied: User denied permission",
        }
        failed = ExecutionFailedError("exit 1", stderr="trace")
        assert failed.to_dict()["stderr"] == "trace"

    def test_skill_load_error_path(self, temp_dir: Path) -> None:
        """The path is kept and shown in the message."""
        error = SkillLoadError("bad frontmatter", temp_dir)
        assert error.path == temp_dir
        assert str(temp_dir) in str(error)


class TestLogging:
    """Tests for logging helpers."""

    def test_invalid_level(self) -> None:
        """Unknown level names are rejected."""
        with pytest.raises(ConfigurationError):
            configure_logging("LOUD")

    def test_configures_package_logger(self, temp_dir: Path) -> None:
        """A log file gets a handler on the toolwarden logger."""
        logger = logging.getLogger("toolwarden")
        saved = (logger.level, logger.propagate, list(logger.handlers))
        try:
            configure_logging("debug", log_file=str(temp_dir / "logs" / "tw.log"))
            assert logger.level == logging.DEBUG
            assert isinstance(logger.handlers[0], logging.FileHandler)
            logger.handlers[0].close()
        finally:
            logger.level, logger.propagate, logger.handlers = saved[0], saved[1], saved[2]

    def test_abbreviate(self) -> None:
        """Newlines are escaped and long text is cut."""
        assert abbreviate("a\nb") == "a\\nb"
        assert abbreviate("x" * 10, limit=4) == "xxxx..."
        assert abbreviate(None) == ""
