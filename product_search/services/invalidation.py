"""Cache invalidation driven by cart changes made anywhere on the page."""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from product_search.core.config import settings
from product_search.integrations.events import CartEvent, EventBus
from product_search.services.coordinator import RequestCoordinator
from product_search.view import CartRegion

logger = logging.getLogger(__name__)


class InvalidationListeners:
    """Clears cached results and resyncs the cart when the cart changes.

    Two triggers feed the same remediation: ``cart-update`` events on the bus
    and changes to the cart-display region. Remediation waits a settle delay
    so other widgets finish their own updates first; triggers inside that
    window re-arm it.
    """

    def __init__(
        self,
        coordinator: RequestCoordinator,
        bus: EventBus,
        cart_region: CartRegion | None = None,
        *,
        settle_seconds: float | None = None,
    ) -> None:
        self.coordinator = coordinator
        self.bus = bus
        self.cart_region = cart_region or CartRegion()
        self.settle_seconds = settings.settle_seconds if settle_seconds is None else settle_seconds
        self._unsubscribers: list[Callable[[], None]] = []
        self._pending: asyncio.Task[None] | None = None

    @property
    def started(self) -> bool:
        return bool(self._unsubscribers)

    def start(self) -> None:
        if self.started:
            return
        self._unsubscribers = [
            self.bus.subscribe(CartEvent.CART_UPDATE, self._on_cart_update),
            self.cart_region.observe(self.trigger),
        ]

    def trigger(self) -> None:
        """Schedule remediation after the settle delay, re-arming any pending one."""
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = asyncio.create_task(self._settle_then_remediate())

    async def remediate(self) -> None:
        self.coordinator.cache.clear()
        await self.coordinator.cart_tracker.refresh()
        if not self.coordinator.replay_last_query():
            # Results for the last query are gone; re-typing it must fetch again.
            self.coordinator.forget_last_query()

    async def wait_until_idle(self) -> None:
        while self._pending is not None and not self._pending.done():
            await asyncio.gather(self._pending, return_exceptions=True)

    async def stop(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        pending, self._pending = self._pending, None
        if pending is not None and not pending.done():
            pending.cancel()
            await asyncio.gather(pending, return_exceptions=True)

    def _on_cart_update(self, payload: dict[str, Any]) -> None:
        logger.debug("cart-update from %s", payload.get("source"))
        self.trigger()

    async def _settle_then_remediate(self) -> None:
        await asyncio.sleep(self.settle_seconds)
        try:
            await self.remediate()
        except Exception:
            logger.exception("Cart invalidation failed")
