"""LangChain integration for toolwarden."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from toolwarden.integrations._common import make_runner

if TYPE_CHECKING:
    from toolwarden.tools.base import Tool, ToolContext

HAS_LANGCHAIN = False
_StructuredTool: Any = None

try:
    import langchain_core.tools

    _StructuredTool = langchain_core.tools.StructuredTool
    HAS_LANGCHAIN = True
except ImportError:
    pass


def create_langchain_tools(tools: list[Tool], context: ToolContext) -> dict[str, Any]:
    """
    Create LangChain tools from toolwarden tools.

    Each tool keeps its permission gating: calls go through ``context``.

    Args:
        tools: The tools to wrap.
        context: Permission manager, observer and session used for every call.

    Returns:
        Dictionary of LangChain StructuredTool instances keyed by name.

    Raises:
        ImportError: If langchain-core is not installed.

    Example:
        >>> context = ToolContext(PermissionManager(AllowAllHandler()))
        >>> lc_tools = create_langchain_tools([BashTool(".")], context)
        >>> agent = create_react_agent(llm, list(lc_tools.values()))
    """
    if not HAS_LANGCHAIN:
        raise ImportError(
            "LangChain integration requires langchain-core. "
            "Install with: pip install toolwarden[langchain]"
        )

    return {
        tool.name: _StructuredTool.from_function(
            coroutine=make_runner(tool, context),
            name=tool.name,
            description=tool.description,
            args_schema=tool.args_model,
        )
        for tool in tools
    }
