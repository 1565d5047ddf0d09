"""
Sandbox backends and mode-driven backend selection.
"""

from __future__ import annotations

import logging
from typing import Callable

from toolwarden.errors import SandboxUnavailableError
from toolwarden.sandbox._base import Sandbox, decode_output
from toolwarden.sandbox.docker import DockerSandbox
from toolwarden.sandbox.native import NativeSandbox
from toolwarden.types import ExecutionMode

logger = logging.getLogger(__name__)

SandboxFactory = Callable[[], Sandbox]


async def create_sandbox(
    mode: ExecutionMode | str,
    *,
    docker_factory: SandboxFactory = DockerSandbox,
    native_factory: SandboxFactory = NativeSandbox,
) -> Sandbox:
    """
    Create the backend for ``mode``.

    Sandbox mode never falls back to native execution. Flexible mode prefers
    the container backend and falls back when it cannot be constructed or is
    not available. Availability is probed on every call.

    Raises:
        SandboxUnavailableError: In Sandbox mode when no container runtime is usable.
    """
    mode = ExecutionMode.parse(mode)

    if mode is ExecutionMode.DIRECT:
        return native_factory()

    try:
        backend = docker_factory()
    except Exception as e:
        if mode is ExecutionMode.SANDBOX:
            raise SandboxUnavailableError(f"Sandbox mode requires Docker: {e}") from e
        logger.info("Container backend unavailable (%s); using native execution", e)
        return native_factory()

    if await backend.is_available():
        logger.info("Using %s backend", backend.name)
        return backend

    if mode is ExecutionMode.SANDBOX:
        raise SandboxUnavailableError("Sandbox mode requires Docker but it is not available")
    logger.info("Container runtime not running; using native execution")
    return native_factory()


__all__ = [
    "DockerSandbox",
    "NativeSandbox",
    "Sandbox",
    "SandboxFactory",
    "create_sandbox",
    "decode_output",
]
