"""
Forwarding of channel events to a presentation-layer observer.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Protocol, runtime_checkable

from toolwarden.events.channel import EventChannel, Subscription

logger = logging.getLogger(__name__)


@runtime_checkable
class AgentObserver(Protocol):
    """Sink for serialized events, implemented by the UI or transport layer."""

    def emit(self, topic: str, payload: dict[str, Any]) -> None:
        ...


def session_topic(session_id: str) -> str:
    return f"session:{session_id}"


class EventBridge:
    """
    Subscribes to an ``EventChannel`` and forwards every event to an observer.

    Example:
        >>> bridge = EventBridge(channel, observer, session_id="abc")
        >>> bridge.start()
        >>> ...
        >>> await bridge.stop()
    """

    def __init__(self, channel: EventChannel, observer: AgentObserver, session_id: str) -> None:
        self._channel = channel
        self._observer = observer
        self._topic = session_topic(session_id)
        self._subscription: Optional[Subscription] = None
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Subscribe and start forwarding. Calling twice is a no-op."""
        if self.running:
            return
        self._subscription = self._channel.subscribe()
        self._task = asyncio.create_task(self._forward(self._subscription))

    async def stop(self) -> None:
        """Stop forwarding after delivering what is already queued."""
        if self._subscription is not None:
            self._subscription.close()
        if self._task is not None:
            await self._task
        self._subscription = None
        self._task = None

    async def _forward(self, subscription: Subscription) -> None:
        async for event in subscription:
            try:
                self._observer.emit(self._topic, event.to_dict())
            except Exception:
                logger.exception("Observer failed to handle %s event", event.type)
