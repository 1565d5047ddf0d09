"""
PydanticAI integration for toolwarden.

Provides helpers to create PydanticAI-compatible tools.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

try:
    from pydantic_ai import Tool as PydanticAITool
except ImportError:
    raise ImportError(
        "PydanticAI integration requires 'pydantic-ai'. "
        "Install with `pip install toolwarden[pydantic-ai]`"
    )

from toolwarden.integrations._common import make_runner

if TYPE_CHECKING:
    from toolwarden.tools.base import Tool, ToolContext


def create_pydantic_ai_tools(tools: list[Tool], context: ToolContext) -> list[PydanticAITool]:
    """
    Create PydanticAI tools from toolwarden tools.

    The JSON schema of each tool's argument model is passed through unchanged.

    Example:
        >>> from pydantic_ai import Agent
        >>> context = ToolContext(PermissionManager(AllowAllHandler()))
        >>> agent = Agent("openai:gpt-4o", tools=create_pydantic_ai_tools([BashTool(".")], context))
    """
    return [
        PydanticAITool.from_schema(
            make_runner(tool, context),
            name=tool.name,
            description=tool.description,
            json_schema=tool.args_model.model_json_schema(),
        )
        for tool in tools
    ]
