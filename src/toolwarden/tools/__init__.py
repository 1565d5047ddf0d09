"""
Built-in tools and the tool abstraction.
"""

from toolwarden.tools.base import (
    Tool,
    ToolContext,
    ToolDefinition,
    ToolResult,
    validate_relative_path,
)
from toolwarden.tools.bash import BashTool
from toolwarden.tools.filesystem import FilesystemTool
from toolwarden.tools.office import OfficeTool
from toolwarden.tools.search import SearchTool

__all__ = [
    "BashTool",
    "FilesystemTool",
    "OfficeTool",
    "SearchTool",
    "Tool",
    "ToolContext",
    "ToolDefinition",
    "ToolResult",
    "validate_relative_path",
]
