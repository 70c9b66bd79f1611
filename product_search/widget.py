"""One search widget occurrence and everything it owns."""

import logging
from types import TracebackType
from typing import Self

from product_search.core.config import Settings, settings
from product_search.integrations.events import EventBus, InMemoryEventBus
from product_search.integrations.storefront.client import StorefrontClient
from product_search.schemas.storefront import AddToCartResult, Product
from product_search.services.cache import SearchCache
from product_search.services.cart_mutation import CartMutationHandler
from product_search.services.cart_tracker import CartTracker
from product_search.services.coordinator import RequestCoordinator
from product_search.services.invalidation import InvalidationListeners
from product_search.view import CartRegion, CartSurface, SearchView

logger = logging.getLogger(__name__)


class ProductSearchWidget:
    """Composition root for a single widget.

    Cache, cart snapshot and timers belong to this instance; two widgets on
    one page share only the storefront client and the event bus.
    """

    def __init__(
        self,
        client: StorefrontClient,
        view: SearchView | None = None,
        bus: EventBus | None = None,
        cart_surface: CartSurface | None = None,
        cart_region: CartRegion | None = None,
        *,
        config: Settings | None = None,
        sections_url: str = "/",
    ) -> None:
        config = config or settings
        self.client = client
        self.view = view or SearchView()
        self.bus = bus or InMemoryEventBus()

        self.cache = SearchCache(config.cache_max_entries)
        self.cart_tracker = CartTracker(client)
        self.coordinator = RequestCoordinator(
            client,
            self.cache,
            self.cart_tracker,
            self.view,
            debounce_seconds=config.debounce_seconds,
            min_query_length=config.min_query_length,
            search_limit=config.search_limit,
        )
        self.mutations = CartMutationHandler(
            client,
            self.cart_tracker,
            self.bus,
            self.view,
            cart_surface,
            source=config.event_source,
            sections_url=sections_url,
        )
        self.listeners = InvalidationListeners(
            self.coordinator,
            self.bus,
            cart_region,
            settle_seconds=config.settle_seconds,
        )

    async def __aenter__(self) -> Self:
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def start(self) -> None:
        self.listeners.start()

    def on_input(self, raw_text: str) -> None:
        self.coordinator.on_input(raw_text)

    async def select_product(self, product: Product) -> AddToCartResult | None:
        """Add a single-variant product, or open the page of a multi-variant one."""
        self.coordinator.hide()
        self.view.clear_input()
        if product.has_multiple_variants:
            self.view.navigate(f"/products/{product.handle}")
            return None
        return await self.mutations.add_to_cart(product)

    async def select_variant(self, product: Product, variant_id: int) -> AddToCartResult:
        self.coordinator.hide()
        self.view.clear_input()
        return await self.mutations.add_to_cart_by_variant_id(product, variant_id)

    async def wait_until_idle(self) -> None:
        await self.coordinator.wait_until_idle()
        await self.listeners.wait_until_idle()

    async def close(self) -> None:
        await self.listeners.stop()
        await self.coordinator.close()
        logger.debug("Search widget closed")
