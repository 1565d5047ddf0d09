"""Pytest configuration and fixtures for toolwarden tests."""

from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path
from typing import Any, Generator, Optional

import pytest

from toolwarden.permissions import (
    PermissionManager,
    PermissionRequest,
    PermissionResponse,
)
from toolwarden.sandbox import NativeSandbox, Sandbox
from toolwarden.tools import ToolContext
from toolwarden.types import ExecutionResult, SandboxConfig


class SpyObserver:
    """Records every (topic, payload) pair it is given."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, topic: str, payload: dict[str, Any]) -> None:
        self.events.append((topic, payload))

    def of_type(self, kind: str) -> list[dict[str, Any]]:
        return [payload for _, payload in self.events if payload.get("type") == kind]


class RecordingHandler:
    """Answers every request with a fixed response and remembers what it was asked."""

    def __init__(self, response: PermissionResponse = PermissionResponse.ALLOW) -> None:
        self.response = response
        self.requests: list[PermissionRequest] = []

    async def request_permission(self, request: PermissionRequest) -> PermissionResponse:
        self.requests.append(request)
        return self.response


class FakeSandbox(Sandbox):
    """Backend that records calls and returns a canned result."""

    def __init__(
        self,
        *,
        name: str = "fake",
        available: bool = True,
        result: Optional[ExecutionResult] = None,
    ) -> None:
        self.name = name
        self.available = available
        self.result = result or ExecutionResult.ok(stdout="ok\n")
        self.probes = 0
        self.calls: list[dict[str, Any]] = []

    async def is_available(self) -> bool:
        self.probes += 1
        return self.available

    async def execute(self, command: str, workspace: Path, config: Optional[SandboxConfig] = None) -> ExecutionResult:
        return await self.execute_with_files(command, workspace, None, config)

    async def execute_with_files(
        self,
        command: str,
        workspace: Path,
        extra_files: Optional[Path],
        config: Optional[SandboxConfig] = None,
    ) -> ExecutionResult:
        self.calls.append(
            {"command": command, "workspace": workspace, "extra_files": extra_files, "config": config}
        )
        return self.result


async def wait_for_pending(manager: PermissionManager, count: int = 1) -> list[str]:
    """Yield to the loop until ``count`` approvals are pending."""
    for _ in range(500):
        pending = manager.list_pending()
        if len(pending) >= count:
            return pending
        await asyncio.sleep(0.01)
    raise AssertionError("permission request never became pending")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory(prefix="toolwarden_test_") as tmp:
        yield Path(tmp).resolve()


@pytest.fixture
def spy() -> SpyObserver:
    return SpyObserver()


@pytest.fixture
def native() -> NativeSandbox:
    return NativeSandbox()


@pytest.fixture
def allow_context() -> ToolContext:
    """Context whose manager allows everything."""
    return ToolContext(PermissionManager(RecordingHandler()), session_id="test-session")


@pytest.fixture
def watched_context(spy: SpyObserver) -> ToolContext:
    """Context with no handler, so every uncached request goes to the spy observer."""
    return ToolContext(PermissionManager(), observer=spy, session_id="test-session")
