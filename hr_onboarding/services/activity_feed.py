from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

import redis.asyncio as redis

from hr_onboarding.core.config import settings

logger = logging.getLogger("onb.activity_feed")


class ActivityFeed:
    """Live activity notifications for the dashboard stream.

    Without a Redis URL delivery stays inside this process. With one, every
    publish goes through the Redis channel and a single relay task per process
    hands messages to the local subscribers, so all workers see all activity.
    """

    def __init__(self, redis_url: str = "", *, channel: str = "onb:activity", queue_size: int = 200) -> None:
        self.channel = channel
        self._queue_size = queue_size
        self._redis_url = redis_url.strip()
        self._client: redis.Redis | None = None
        self._relay_task: asyncio.Task | None = None
        self._queues: set[asyncio.Queue[str]] = set()
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def subscription(self) -> AsyncIterator[asyncio.Queue[str]]:
        queue: asyncio.Queue[str] = asyncio.Queue(maxsize=self._queue_size)
        async with self._lock:
            self._queues.add(queue)
        await self._redis()
        try:
            yield queue
        finally:
            async with self._lock:
                self._queues.discard(queue)

    async def publish(self, payload: Dict[str, Any]) -> None:
        message = json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)
        client = await self._redis()
        if client is not None:
            try:
                await client.publish(self.channel, message)
                return
            except redis.RedisError:
                logger.warning("activity_publish_failed", extra={"channel": self.channel}, exc_info=True)
        await self._deliver(message)

    async def close(self) -> None:
        if self._relay_task is not None:
            self._relay_task.cancel()
            self._relay_task = None
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _deliver(self, message: str) -> None:
        async with self._lock:
            for queue in self._queues:
                if queue.full():
                    # Slow reader: the oldest message goes.
                    queue.get_nowait()
                queue.put_nowait(message)

    async def _redis(self) -> redis.Redis | None:
        if not self._redis_url:
            return None
        if self._client is None:
            self._client = redis.from_url(self._redis_url, decode_responses=True)
        if self._relay_task is None or self._relay_task.done():
            self._relay_task = asyncio.create_task(self._relay(self._client))
        return self._client

    async def _relay(self, client: redis.Redis) -> None:
        pubsub = client.pubsub()
        await pubsub.subscribe(self.channel)
        try:
            async for message in pubsub.listen():
                if message.get("type") == "message" and isinstance(message.get("data"), str):
                    await self._deliver(message["data"])
        except redis.RedisError:
            logger.warning("activity_relay_stopped", extra={"channel": self.channel}, exc_info=True)
        finally:
            await pubsub.aclose()


activity_feed = ActivityFeed(settings.redis_url)
