"""Redis pub/sub implementation of the cart event bus.

Lets widgets rendered by separate processes (or a server-side cart service)
see each other's cart-update and cart-error events.
"""

import asyncio
import json
import logging
from typing import Any

import redis.asyncio as aioredis

from product_search.core.config import settings
from product_search.integrations.events import CartEvent, EventHandler, Unsubscribe

logger = logging.getLogger(__name__)


class RedisEventBus:
    """Cart event bus backed by Redis channels, one channel per event."""

    def __init__(self, redis: aioredis.Redis, channel_prefix: str | None = None) -> None:
        self.redis = redis
        self.channel_prefix = channel_prefix or settings.redis_channel_prefix
        self._listeners: set[asyncio.Task[None]] = set()
        self._subscribed: list[asyncio.Event] = []

    def channel(self, event: CartEvent) -> str:
        return f"{self.channel_prefix}:{event.value}"

    async def publish(self, event: CartEvent, payload: dict[str, Any]) -> None:
        await self.redis.publish(self.channel(event), json.dumps(payload, default=str))

    def subscribe(self, event: CartEvent, handler: EventHandler) -> Unsubscribe:
        """Start a listener task; must be called from a running event loop."""
        subscribed = asyncio.Event()
        self._subscribed.append(subscribed)
        task = asyncio.create_task(self._listen(event, handler, subscribed))
        self._listeners.add(task)
        task.add_done_callback(self._listeners.discard)

        def unsubscribe() -> None:
            task.cancel()

        return unsubscribe

    async def wait_ready(self) -> None:
        """Wait until every listener has its channel subscription in place."""
        await asyncio.gather(*(event.wait() for event in self._subscribed))

    async def aclose(self) -> None:
        listeners = list(self._listeners)
        for task in listeners:
            task.cancel()
        await asyncio.gather(*listeners, return_exceptions=True)

    async def _listen(
        self, event: CartEvent, handler: EventHandler, subscribed: asyncio.Event
    ) -> None:
        pubsub = self.redis.pubsub(ignore_subscribe_messages=True)
        try:
            await pubsub.subscribe(self.channel(event))
            subscribed.set()
            async for message in pubsub.listen():
                try:
                    payload = json.loads(message["data"])
                except (TypeError, ValueError):
                    logger.warning("Ignoring malformed %s message on %s", event, self.channel(event))
                    continue
                try:
                    handler(payload)
                except Exception:
                    logger.exception("Subscriber for %s failed", event)
        except aioredis.RedisError as exc:
            logger.warning("Redis listener for %s stopped: %s", event, exc)
        finally:
            subscribed.set()
            await pubsub.aclose()
