"""Notification fan-out for stream status changes.

Delivery is best effort: a failing subscriber or channel never blocks the caller,
it is logged and skipped.
"""

import asyncio
from typing import Protocol

import orjson
from loguru import logger

from app.shared.storage.redis import get_redis_manager

from .notification_models import StreamStatusEvent


class StatusFanout(Protocol):
    async def notify(self, event: StreamStatusEvent) -> None: ...


class LocalBroadcaster:
    """In-process subscribers, one bounded queue per websocket client."""

    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._subscribers: set[asyncio.Queue[dict]] = set()

    def subscribe(self) -> asyncio.Queue[dict]:
        queue: asyncio.Queue[dict] = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers.add(queue)
        logger.debug(f"Status subscriber added, total={len(self._subscribers)}")
        return queue

    def unsubscribe(self, queue: asyncio.Queue[dict]) -> None:
        self._subscribers.discard(queue)
        logger.debug(f"Status subscriber removed, total={len(self._subscribers)}")

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def notify(self, event: StreamStatusEvent) -> None:
        payload = event.to_payload()
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(payload)
            except asyncio.QueueFull:
                # Slow consumer: drop the event for this subscriber only
                logger.warning(f"Status subscriber queue full, dropping event for {event.session_id}")


class RedisStatusPublisher:
    """Publishes status events on a Redis pub/sub channel for other processes."""

    def __init__(self, channel: str, label: str = "default"):
        self.channel = channel
        self.label = label

    async def notify(self, event: StreamStatusEvent) -> None:
        client = get_redis_manager().get_client(self.label)
        receivers = await client.publish(self.channel, orjson.dumps(event.to_payload()))
        logger.debug(f"Published {event.status} for {event.session_id} to {self.channel} ({receivers} receivers)")


class FanoutGroup:
    """Delivers each event to every member, isolating member failures."""

    def __init__(self, members: list[StatusFanout] | None = None):
        self.members: list[StatusFanout] = list(members or [])

    def add(self, member: StatusFanout) -> None:
        self.members.append(member)

    async def notify(self, event: StreamStatusEvent) -> None:
        for member in self.members:
            try:
                await member.notify(event)
            except Exception:
                logger.exception(
                    f"Status notification via {type(member).__name__} failed for session {event.session_id}"
                )
