"""Shared glue for framework integrations."""

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable

from toolwarden.errors import ToolError
from toolwarden.tools.base import Tool, ToolContext


def render_tool_error(error: ToolError) -> str:
    return f"Error ({error.kind}): {error}"


def make_runner(tool: Tool, context: ToolContext) -> Callable[..., Awaitable[str]]:
    """
    Wrap ``tool`` as a keyword-argument coroutine returning text.

    Tool errors come back as ``"Error (<kind>): ..."`` strings so the
    framework can show them to the model instead of aborting the run.
    """

    async def run(**kwargs: Any) -> str:
        try:
            result = await tool.call(kwargs, context)
        except ToolError as e:
            return render_tool_error(e)
        return json.dumps(result, ensure_ascii=False, default=str)

    run.__name__ = tool.name
    run.__doc__ = tool.description
    return run
