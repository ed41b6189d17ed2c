import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

from motion_gateway.messages import DriveEvent

T = TypeVar("T")
Handler = Callable[[T], Coroutine[Any, Any, None]]

logger = logging.getLogger(__name__)


def drive_topic(event: DriveEvent) -> str:
    return f"drive/{event.state.value}"


class EventBus:
    def __init__(self) -> None:
        self._subscribers: dict[str, list[Handler[Any]]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def subscribe(self, topic: str, handler: Handler[T]) -> None:
        async with self._lock:
            self._subscribers[topic].append(handler)  # type: ignore[arg-type]

    async def publish(self, topic: str, message: T) -> None:
        async with self._lock:
            handlers = list(self._subscribers.get(topic, []))
        if not handlers:
            return
        results = await asyncio.gather(*(h(message) for h in handlers), return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error("Handler for %s failed: %r", topic, result)

    async def publish_drive_event(self, event: DriveEvent) -> None:
        await self.publish(drive_topic(event), event)
