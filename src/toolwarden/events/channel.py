"""
Broadcast channel for agent events.

Each subscriber owns a bounded queue. A slow subscriber never blocks the
emitter; when its queue is full the oldest pending event is discarded.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import AsyncIterator, Optional

from toolwarden.events.types import AgentEvent

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 256


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class ChannelClosed(Exception):
    """Raised by ``Subscription.recv`` after the subscription is closed."""


class Subscription:
    """A single receiver on an ``EventChannel``."""

    def __init__(self, channel: EventChannel, capacity: int) -> None:
        self._channel = channel
        self._loop = _running_loop()
        self._queue: asyncio.Queue[Optional[AgentEvent]] = asyncio.Queue(maxsize=capacity)
        self._closed = False
        self.lagged = 0
        """Number of events dropped because this subscriber fell behind."""

    @property
    def closed(self) -> bool:
        return self._closed

    def _push(self, event: Optional[AgentEvent]) -> None:
        loop = self._loop
        if loop is not None and not loop.is_closed() and _running_loop() is not loop:
            loop.call_soon_threadsafe(self._put, event)
            return
        self._put(event)

    def _put(self, event: Optional[AgentEvent]) -> None:
        while True:
            try:
                self._queue.put_nowait(event)
                return
            except asyncio.QueueFull:
                try:
                    self._queue.get_nowait()
                except asyncio.QueueEmpty:
                    continue
                self.lagged += 1

    async def recv(self) -> AgentEvent:
        """
        Wait for the next event.

        Raises:
            ChannelClosed: If the subscription has been closed.
        """
        if self._closed and self._queue.empty():
            raise ChannelClosed()
        event = await self._queue.get()
        if event is None:
            raise ChannelClosed()
        return event

    def recv_nowait(self) -> Optional[AgentEvent]:
        """Return the next pending event, or None if nothing is queued."""
        try:
            event = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None
        return event

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        """Unregister from the channel and wake any waiting ``recv``."""
        if self._closed:
            return
        self._closed = True
        self._channel._unsubscribe(self)
        self._push(None)

    def __aiter__(self) -> AsyncIterator[AgentEvent]:
        return self

    async def __anext__(self) -> AgentEvent:
        try:
            return await self.recv()
        except ChannelClosed:
            raise StopAsyncIteration from None


class EventChannel:
    """
    Multi-producer, multi-consumer broadcast of ``AgentEvent`` values.

    Subscribers only see events emitted after they subscribed. ``emit`` may be
    called from any thread: a subscription created inside an event loop has
    its events handed over to that loop, so its queue is only touched there.

    Example:
        >>> channel = EventChannel()
        >>> sub = channel.subscribe()
        >>> channel.emit(Token(content="hi"))
        >>> await sub.recv()
        Token(content='hi')
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._subscribers: list[Subscription] = []
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def receiver_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self) -> Subscription:
        subscription = Subscription(self, self._capacity)
        with self._lock:
            self._subscribers.append(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)

    def emit(self, event: AgentEvent) -> None:
        """Deliver an event to every current subscriber. Never blocks."""
        with self._lock:
            subscribers = list(self._subscribers)
        for subscription in subscribers:
            subscription._push(event)
        if subscribers:
            logger.debug("Emitted %s to %d subscriber(s)", event.type, len(subscribers))
