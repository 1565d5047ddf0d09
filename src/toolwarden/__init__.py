"""
Top-level facade for toolwarden.

Permission-gated, sandboxed tool execution for autonomous agents.
"""

from toolwarden.agent import AgentCoordinator, CompletionModel, build_system_prompt
from toolwarden.config import AgentConfig, CoreConfig
from toolwarden.errors import (
    ConfigurationError,
    DependencyError,
    ExecutionError,
    ExecutionFailedError,
    InvalidArgumentError,
    MissingArgumentError,
    PermissionDeniedError,
    SandboxUnavailableError,
    SkillLoadError,
    ToolError,
    ToolwardenError,
    ValidationFailedError,
)
from toolwarden.events import AgentObserver, EventBridge, EventChannel
from toolwarden.logging_utils import configure_logging
from toolwarden.permissions import (
    AllowAllHandler,
    AllowAlwaysHandler,
    CallbackHandler,
    DenyAllHandler,
    PermissionManager,
    PermissionRequest,
    PermissionResponse,
    PermissionType,
    ScopeEnforcer,
)
from toolwarden.sandbox import DockerSandbox, NativeSandbox, Sandbox, create_sandbox
from toolwarden.skills import SkillRegistry, SkillTool, load_skill, load_skills
from toolwarden.tools import BashTool, FilesystemTool, OfficeTool, SearchTool, Tool, ToolContext
from toolwarden.types import ExecutionMode, ExecutionResult, SandboxConfig

__version__ = "0.1.0"

# Exports
__all__ = [
    "AgentConfig",
    "AgentCoordinator",
    "AgentObserver",
    "AllowAllHandler",
    "AllowAlwaysHandler",
    "BashTool",
    "CallbackHandler",
    "CompletionModel",
    "ConfigurationError",
    "CoreConfig",
    "DenyAllHandler",
    "DependencyError",
    "DockerSandbox",
    "EventBridge",
    "EventChannel",
    "ExecutionError",
    "ExecutionFailedError",
    "ExecutionMode",
    "ExecutionResult",
    "FilesystemTool",
    "InvalidArgumentError",
    "MissingArgumentError",
    "NativeSandbox",
    "OfficeTool",
    "PermissionDeniedError",
    "PermissionManager",
    "PermissionRequest",
    "PermissionResponse",
    "PermissionType",
    "Sandbox",
    "SandboxConfig",
    "SandboxUnavailableError",
    "ScopeEnforcer",
    "SearchTool",
    "SkillLoadError",
    "SkillRegistry",
    "SkillTool",
    "Tool",
    "ToolContext",
    "ToolError",
    "ToolwardenError",
    "ValidationFailedError",
    "build_system_prompt",
    "configure_logging",
    "create_sandbox",
    "load_skill",
    "load_skills",
]
