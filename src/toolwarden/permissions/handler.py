"""
Permission handlers: strategies that answer a request without a human.
"""

from __future__ import annotations

import inspect
from typing import Awaitable, Callable, Protocol, Union, runtime_checkable

from toolwarden.permissions.types import PermissionRequest, PermissionResponse

PermissionCallback = Callable[
    [PermissionRequest],
    Union[PermissionResponse, bool, Awaitable[Union[PermissionResponse, bool]]],
]


@runtime_checkable
class PermissionHandler(Protocol):
    async def request_permission(self, request: PermissionRequest) -> PermissionResponse:
        ...


class AllowAllHandler:
    """Answers ``allow`` to everything. Nothing is cached."""

    async def request_permission(self, request: PermissionRequest) -> PermissionResponse:
        return PermissionResponse.ALLOW


class AllowAlwaysHandler:
    """Answers ``allow_always``, so each key is asked at most once."""

    async def request_permission(self, request: PermissionRequest) -> PermissionResponse:
        return PermissionResponse.ALLOW_ALWAYS


class DenyAllHandler:
    async def request_permission(self, request: PermissionRequest) -> PermissionResponse:
        return PermissionResponse.DENY


class CallbackHandler:
    """
    Wraps a plain callable as a handler.

    The callable may be sync or async and may return a ``PermissionResponse``
    or a bool (``True`` meaning ``allow``).
    """

    def __init__(self, callback: PermissionCallback) -> None:
        self._callback = callback

    async def request_permission(self, request: PermissionRequest) -> PermissionResponse:
        answer = self._callback(request)
        if inspect.isawaitable(answer):
            answer = await answer
        if isinstance(answer, PermissionResponse):
            return answer
        return PermissionResponse.ALLOW if answer else PermissionResponse.DENY
