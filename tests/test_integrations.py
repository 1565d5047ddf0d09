"""Tests for framework integrations."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import FakeSandbox
from toolwarden.integrations._common import make_runner
from toolwarden.permissions import AllowAllHandler, DenyAllHandler, PermissionManager
from toolwarden.tools import BashTool, ToolContext


@pytest.fixture
def deny_context() -> ToolContext:
    return ToolContext(PermissionManager(DenyAllHandler()))


@pytest.fixture
def allow_all_context() -> ToolContext:
    return ToolContext(PermissionManager(AllowAllHandler()))


class TestRunner:
    """Tests for the shared keyword runner."""

    async def test_renders_denial(self, temp_dir: Path, deny_context: ToolContext) -> None:
        """Tool errors come back as text instead of raising."""
        run = make_runner(BashTool(temp_dir, sandbox=FakeSandbox()), deny_context)
        assert await run(command="ls") == "Error (permission_denied): Permission denied: User denied permission"

    async def test_returns_json(self, temp_dir: Path, allow_all_context: ToolContext) -> None:
        """Successful results are JSON text."""
        run = make_runner(BashTool(temp_dir, sandbox=FakeSandbox()), allow_all_context)
        assert json.loads(await run(command="ls"))["stdout"] == "ok\n"
        assert run.__name__ == "bash"

    async def test_missing_argument(self, temp_dir: Path, allow_all_context: ToolContext) -> None:
        """Schema errors are rendered too."""
        run = make_runner(BashTool(temp_dir, sandbox=FakeSandbox()), allow_all_context)
        assert (await run()).startswith("Error (missing_argument)")


class TestLangChain:
    """Tests for the LangChain adapter."""

    async def test_structured_tool(self, temp_dir: Path, deny_context: ToolContext) -> None:
        """Wrapped tools keep their name, schema and permission gating."""
        pytest.importorskip("langchain_core")
        from toolwarden.integrations.langchain import create_langchain_tools

        sandbox = FakeSandbox()
        tools = create_langchain_tools([BashTool(temp_dir, sandbox=sandbox)], deny_context)
        tool = tools["bash"]
        assert tool.name == "bash"
        assert "command" in tool.args_schema.model_fields

        result = await tool.ainvoke({"command": "ls"})
        assert result.startswith("Error (permission_denied)")
        assert sandbox.calls == []


class TestPydanticAI:
    """Tests for the PydanticAI adapter."""

    def test_tool_creation(self, temp_dir: Path, allow_all_context: ToolContext) -> None:
        """Each tool becomes a PydanticAI tool with the same name."""
        pytest.importorskip("pydantic_ai")
        from toolwarden.integrations.pydantic_ai import create_pydantic_ai_tools

        [tool] = create_pydantic_ai_tools([BashTool(temp_dir)], allow_all_context)
        assert tool.name == "bash"
        assert tool.description == BashTool.description
