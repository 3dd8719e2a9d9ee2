"""Publish/subscribe fan-out of relation events.

Listeners subscribe with a pattern:
- "*" matches every event
- "relation.*" matches every event in the category
- "document.synced" matches one event type

A failing listener is logged and counted; it never affects the publisher
or the other listeners.
"""

import asyncio
from collections import defaultdict
from typing import Protocol

from shards.domain.events import RelationEvent
from shards.observability.logging import get_logger
from shards.observability.metrics import record_listener_failure

logger = get_logger(__name__)


class EventListener(Protocol):
    """Async callable receiving relation events."""

    async def __call__(self, event: RelationEvent) -> None: ...


class RelationEventBus:
    """Routes relation events to matching listeners."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[EventListener]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def subscribe(self, pattern: str, listener: EventListener) -> None:
        async with self._lock:
            self._listeners[pattern].append(listener)
            logger.debug(
                "event_listener_registered",
                pattern=pattern,
                total_listeners=len(self._listeners[pattern]),
            )

    async def unsubscribe(self, pattern: str, listener: EventListener) -> bool:
        """Remove a listener. Returns False when it was not registered."""
        async with self._lock:
            listeners = self._listeners.get(pattern, [])
            if listener not in listeners:
                logger.warning("event_listener_not_found", pattern=pattern)
                return False
            listeners.remove(listener)
            if not listeners:
                del self._listeners[pattern]
            return True

    async def publish(self, event: RelationEvent) -> None:
        """Dispatch an event to every matching listener concurrently."""
        listeners = await self._matching(event)
        if not listeners:
            return

        logger.debug(
            "publishing_event",
            event_type=event.type.value,
            listener_count=len(listeners),
        )
        await asyncio.gather(*(self._dispatch(listener, event) for listener in listeners))

    async def _matching(self, event: RelationEvent) -> list[EventListener]:
        event_type = event.type.value
        async with self._lock:
            return [
                listener
                for pattern, listeners in self._listeners.items()
                if matches_pattern(event_type, pattern)
                for listener in listeners
            ]

    async def _dispatch(self, listener: EventListener, event: RelationEvent) -> None:
        try:
            await listener(event)
        except Exception as e:
            record_listener_failure(event.type.value)
            logger.error(
                "event_listener_failed",
                event_type=event.type.value,
                error=str(e),
                exc_info=True,
            )


def matches_pattern(event_type: str, pattern: str) -> bool:
    if pattern == "*" or pattern == event_type:
        return True
    if pattern.endswith(".*"):
        return event_type.startswith(pattern[:-1])
    return False
