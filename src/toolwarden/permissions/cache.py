"""
Concurrent storage for the permission manager.

``PermissionCache`` remembers ``allow_always`` answers. ``PendingApprovals``
holds one ``ResponseSlot`` per request that is waiting on a human.
"""

from __future__ import annotations

import asyncio
import threading
import zlib
from typing import Optional

from toolwarden.permissions.types import PermissionResponse

DEFAULT_SHARDS = 16


class PermissionCache:
    """
    Sharded, lock-guarded map of cache key to granted flag.

    The shard is picked from the key's first segment (the session id for
    session-scoped keys), so unrelated sessions never contend on one lock.
    """

    def __init__(self, shards: int = DEFAULT_SHARDS) -> None:
        if shards < 1:
            raise ValueError("shards must be at least 1")
        self._shards: list[dict[str, bool]] = [{} for _ in range(shards)]
        self._locks = [threading.Lock() for _ in range(shards)]

    def _index(self, key: str) -> int:
        head = key.split(":", 1)[0]
        return zlib.crc32(head.encode("utf-8")) % len(self._shards)

    def get(self, key: str) -> Optional[bool]:
        i = self._index(key)
        with self._locks[i]:
            return self._shards[i].get(key)

    def set(self, key: str, granted: bool = True) -> None:
        i = self._index(key)
        with self._locks[i]:
            self._shards[i][key] = granted

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def clear(self) -> None:
        for shard, lock in zip(self._shards, self._locks):
            with lock:
                shard.clear()

    def clear_prefix(self, prefix: str) -> int:
        """Remove every key starting with ``prefix``. Returns how many were removed."""
        removed = 0
        for shard, lock in zip(self._shards, self._locks):
            with lock:
                doomed = [key for key in shard if key.startswith(prefix)]
                for key in doomed:
                    del shard[key]
                removed += len(doomed)
        return removed

    def __len__(self) -> int:
        total = 0
        for shard, lock in zip(self._shards, self._locks):
            with lock:
                total += len(shard)
        return total


class ResponseSlot:
    """
    Single-use answer to one pending permission request.

    The slot is bound to the event loop that created it. ``resolve`` and
    ``abandon`` may be called from any thread; only the first call wins.
    An abandoned slot yields ``None`` to its waiter.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._future: asyncio.Future[Optional[PermissionResponse]] = self._loop.create_future()
        self._lock = threading.Lock()
        self._settled = False

    @property
    def settled(self) -> bool:
        return self._settled

    def resolve(self, response: PermissionResponse) -> bool:
        return self._settle(response)

    def abandon(self) -> bool:
        return self._settle(None)

    def _settle(self, value: Optional[PermissionResponse]) -> bool:
        with self._lock:
            if self._settled:
                return False
            self._settled = True

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            self._set(value)
        elif not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._set, value)
        return True

    def _set(self, value: Optional[PermissionResponse]) -> None:
        if not self._future.done():
            self._future.set_result(value)

    async def wait(self) -> Optional[PermissionResponse]:
        return await self._future


class PendingApprovals:
    """Thread-safe table of request id to ``ResponseSlot``."""

    def __init__(self) -> None:
        self._slots: dict[str, ResponseSlot] = {}
        self._lock = threading.Lock()

    def register(self, request_id: str, slot: ResponseSlot) -> None:
        with self._lock:
            self._slots[request_id] = slot

    def get(self, request_id: str) -> Optional[ResponseSlot]:
        with self._lock:
            return self._slots.get(request_id)

    def pop(self, request_id: str) -> Optional[ResponseSlot]:
        with self._lock:
            return self._slots.pop(request_id, None)

    def drain(self) -> list[ResponseSlot]:
        with self._lock:
            slots = list(self._slots.values())
            self._slots.clear()
        return slots

    def ids(self) -> list[str]:
        with self._lock:
            return list(self._slots)

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots)
