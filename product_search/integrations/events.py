"""Publish/subscribe bus shared with other widgets on the page."""

import logging
from collections import defaultdict
from collections.abc import Callable
from enum import StrEnum
from typing import Any, Protocol

logger = logging.getLogger(__name__)

EventHandler = Callable[[dict[str, Any]], None]
Unsubscribe = Callable[[], None]


class CartEvent(StrEnum):
    """Fixed event vocabulary understood by every cart-aware widget."""

    CART_UPDATE = "cart-update"
    CART_ERROR = "cart-error"


class EventBus(Protocol):
    async def publish(self, event: CartEvent, payload: dict[str, Any]) -> None: ...

    def subscribe(self, event: CartEvent, handler: EventHandler) -> Unsubscribe: ...


class InMemoryEventBus:
    """Bus for widgets living in the same process and event loop."""

    def __init__(self) -> None:
        self._handlers: dict[CartEvent, list[EventHandler]] = defaultdict(list)

    async def publish(self, event: CartEvent, payload: dict[str, Any]) -> None:
        # Copy so handlers may unsubscribe while being notified.
        for handler in list(self._handlers[event]):
            try:
                handler(payload)
            except Exception:
                logger.exception("Subscriber for %s failed", event)

    def subscribe(self, event: CartEvent, handler: EventHandler) -> Unsubscribe:
        self._handlers[event].append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers[event]
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def subscriber_count(self, event: CartEvent) -> int:
        return len(self._handlers[event])
