"""
Permission manager: caching plus the human-in-the-loop approval protocol.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from toolwarden.events.bridge import session_topic
from toolwarden.logging_utils import abbreviate
from toolwarden.permissions.cache import PendingApprovals, PermissionCache, ResponseSlot
from toolwarden.permissions.types import PermissionRequest, PermissionResponse

if TYPE_CHECKING:
    from toolwarden.events.bridge import AgentObserver
    from toolwarden.permissions.handler import PermissionHandler

logger = logging.getLogger(__name__)

GLOBAL_PERMISSION_TOPIC = "permission_request"


class PermissionManager:
    """
    Decides whether a tool may proceed.

    Resolution order for ``check_or_request``: cache, then handler, then a
    human approval round-trip through the observer. With neither a handler
    nor an observer the request is denied. Only ``allow_always`` answers
    are cached.

    The cache and pending table belong to the instance; pass them in to share
    state between managers.

    Example:
        >>> manager = PermissionManager(AllowAlwaysHandler())
        >>> request = PermissionRequest(PermissionType.SHELL_EXECUTE, "Run ls")
        >>> await manager.check_or_request(request.with_resource("ls"))
        True
    """

    def __init__(
        self,
        handler: PermissionHandler | None = None,
        *,
        cache: PermissionCache | None = None,
        pending: PendingApprovals | None = None,
    ) -> None:
        self.handler = handler
        self._cache = cache if cache is not None else PermissionCache()
        self._pending = pending if pending is not None else PendingApprovals()

    async def check_or_request(
        self,
        request: PermissionRequest,
        observer: Optional[AgentObserver] = None,
    ) -> bool:
        """
        Return whether ``request`` is granted, asking for it if needed.

        Suspends until the handler answers or a human resolves the request via
        ``approve``/``reject``. An abandoned request is a denial.
        """
        key = request.cache_key()
        if self._cache.get(key):
            logger.debug("Permission cache hit for %s", key)
            return True

        response: Optional[PermissionResponse]
        if self.handler is not None:
            response = await self.handler.request_permission(request)
        elif observer is not None:
            response = await self._ask_observer(request, observer)
        else:
            logger.warning("No handler or observer for permission %s; denying", key)
            response = PermissionResponse.DENY

        if response is not None and response.should_cache:
            self._cache.set(key, True)

        allowed = response is not None and response.is_allowed
        if not allowed:
            logger.warning(
                "Permission denied: %s (%s)",
                abbreviate(request.message, 120),
                key,
            )
        return allowed

    async def _ask_observer(
        self, request: PermissionRequest, observer: AgentObserver
    ) -> Optional[PermissionResponse]:
        topic = session_topic(request.session_id) if request.session_id else GLOBAL_PERMISSION_TOPIC
        slot = ResponseSlot()
        self._pending.register(request.id, slot)
        try:
            try:
                observer.emit(topic, {"type": "permission_request", "request": request.to_dict()})
            except Exception:
                logger.exception("Failed to emit permission request %s", request.id)
                return None
            response = await slot.wait()
        finally:
            self._pending.pop(request.id)

        if response is None:
            logger.warning("Approval slot for request %s was abandoned", request.id)

        allowed = response is not None and response.is_allowed
        try:
            observer.emit(
                topic,
                {"type": "permission_resolved", "request_id": request.id, "allowed": allowed},
            )
        except Exception:
            logger.exception("Failed to emit permission resolution for %s", request.id)
        return response

    # --- Resolution entry points ---

    def approve(self, request_id: str, *, always: bool = False) -> bool:
        """Grant a pending request. Returns False if no such request is pending."""
        slot = self._pending.pop(request_id)
        if slot is None:
            return False
        response = PermissionResponse.ALLOW_ALWAYS if always else PermissionResponse.ALLOW
        return slot.resolve(response)

    def reject(self, request_id: str) -> bool:
        slot = self._pending.pop(request_id)
        if slot is None:
            return False
        return slot.resolve(PermissionResponse.DENY)

    def abandon(self, request_id: str) -> bool:
        """Drop a pending request without an answer. Its waiter sees a denial."""
        slot = self._pending.pop(request_id)
        if slot is None:
            return False
        return slot.abandon()

    def abandon_all(self) -> int:
        slots = self._pending.drain()
        for slot in slots:
            slot.abandon()
        return len(slots)

    def list_pending(self) -> list[str]:
        return self._pending.ids()

    # --- Cache helpers ---

    def pre_approve(self, cache_key: str) -> None:
        self._cache.set(cache_key, True)

    def clear_cache(self) -> None:
        self._cache.clear()

    def clear_session_cache(self, session_id: str) -> None:
        self._cache.clear_prefix(f"{session_id}:")

    @property
    def cache_size(self) -> int:
        return len(self._cache)
