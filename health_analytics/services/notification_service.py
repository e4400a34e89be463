"""
User notifications.

The Redis sink writes a notification into three keys per user (unread set,
time-ordered index, JSON body). The dispatcher sits between the ingestion
consumers and the sink so a slow or failing Redis never holds up a commit.
"""

import asyncio
import contextlib
import json
import uuid
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

from health_analytics.exceptions import NotificationError
from health_analytics.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(slots=True)
class Notification:
    id: str
    user_id: str
    message: str
    created: datetime

    def to_json(self) -> str:
        data = asdict(self)
        data["created"] = self.created.isoformat()
        return json.dumps(data)


class NotificationSink(Protocol):
    async def push(self, user_id: str, message: str) -> Notification: ...


class RedisNotificationSink:
    """Push notifications into Redis."""

    def __init__(self, client: redis.Redis):
        self._client = client

    async def push(self, user_id: str, message: str) -> Notification:
        notification = Notification(
            id=str(uuid.uuid4()),
            user_id=user_id,
            message=message,
            created=datetime.now(UTC),
        )

        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.sadd(f"unread:{user_id}", notification.id)
                pipe.zadd(
                    f"notifications:{user_id}",
                    {notification.id: notification.created.timestamp()},
                )
                pipe.set(f"notification:{notification.id}", notification.to_json())
                await pipe.execute()
        except RedisError as e:
            raise NotificationError(
                f"Failed to store notification for user {user_id}: {e}", operation="push"
            ) from e

        logger.debug("Notification stored", user_id=user_id, notification_id=notification.id)
        return notification


class NotificationDispatcher:
    """
    Fire-and-forget front for a NotificationSink.

    ``submit`` only enqueues; one background task drains the queue into the
    sink. When the queue is full the notification is dropped and logged.
    """

    def __init__(self, sink: NotificationSink, max_pending: int = 1000):
        self._sink = sink
        self._queue: asyncio.Queue[tuple[str, str]] = asyncio.Queue(maxsize=max_pending)
        self._task: asyncio.Task | None = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._drain(), name="notification-dispatcher")
            logger.info("Notification dispatcher started", max_pending=self._queue.maxsize)

    def submit(self, user_id: str, message: str) -> bool:
        try:
            self._queue.put_nowait((user_id, message))
        except asyncio.QueueFull:
            logger.warning("Notification queue full, dropping notification", user_id=user_id)
            return False
        return True

    async def flush(self) -> None:
        """Wait until every queued notification has been attempted."""
        await self._queue.join()

    async def stop(self, timeout: float = 5.0) -> None:
        if self._task is None:
            return

        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except TimeoutError:
            logger.warning("Notification dispatcher stopped with pending items", pending=self.pending)

        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Notification dispatcher stopped")

    async def _drain(self) -> None:
        while True:
            user_id, message = await self._queue.get()
            try:
                await self._sink.push(user_id, message)
            except Exception as e:
                logger.warning(
                    "Notification delivery failed",
                    user_id=user_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
            finally:
                self._queue.task_done()
