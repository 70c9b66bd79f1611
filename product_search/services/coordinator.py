"""Turns keystrokes into at most one live search and renders its results."""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from product_search.core.cancellation import InFlightRequest
from product_search.core.config import settings
from product_search.core.exceptions import RequestCancelled
from product_search.core.logging_config import dispatch_id_var, generate_dispatch_id
from product_search.integrations.storefront.client import StorefrontClient
from product_search.schemas.storefront import Product
from product_search.services.cache import SearchCache
from product_search.services.cart_tracker import CartTracker
from product_search.services.enrichment import enrich_products
from product_search.view import SearchView

logger = logging.getLogger(__name__)


class RequestCoordinator:
    """Debounces input, owns the in-flight search, and decides what to show.

    Decision order for each input:

    1. shorter than ``min_query_length`` -> hide, cancel, no network
    2. same as the last dispatched query -> nothing
    3. cached -> render from cache, no network, no debounce
    4. otherwise -> loading indicator now, ``dispatch`` after the debounce delay

    Every failure except cancellation ends with hidden output. Nothing is
    raised to the caller.
    """

    def __init__(
        self,
        client: StorefrontClient,
        cache: SearchCache,
        cart_tracker: CartTracker,
        view: SearchView,
        *,
        debounce_seconds: float | None = None,
        min_query_length: int | None = None,
        search_limit: int | None = None,
    ) -> None:
        self.client = client
        self.cache = cache
        self.cart_tracker = cart_tracker
        self.view = view
        self.debounce_seconds = (
            settings.debounce_seconds if debounce_seconds is None else debounce_seconds
        )
        self.min_query_length = (
            settings.min_query_length if min_query_length is None else min_query_length
        )
        self.search_limit = settings.search_limit if search_limit is None else search_limit

        self.last_query = ""
        self.output_visible = False
        self._in_flight: InFlightRequest | None = None
        self._debounce: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> InFlightRequest | None:
        return self._in_flight

    def on_input(self, raw_text: str) -> None:
        """Handle the current contents of the search box."""
        query = raw_text.strip()
        self._clear_debounce()

        if len(query) < self.min_query_length:
            # Nothing is shown for the old query any more; typing it again must not be a no-op.
            self._cancel_in_flight()
            self.last_query = ""
            self._hide()
            return

        if query == self.last_query:
            return

        cached = self.cache.get(query)
        if cached is not None:
            self._cancel_in_flight()
            self.last_query = query
            logger.debug("cache_hit q=%r", query)
            self.render(cached)
            return

        self._show_loading()
        self._debounce = self._spawn(self._dispatch_after_delay(query))

    async def dispatch(self, query: str) -> None:
        """Fetch, enrich, cache and render ``query``, superseding any older fetch.

        The work runs in a task owned by the coordinator, so superseding it
        never cancels the caller.
        """
        await asyncio.wait([self._start_dispatch(query)])

    def _start_dispatch(self, query: str) -> asyncio.Task[None]:
        # Registered before the task first runs, so it is cancellable at once.
        self.last_query = query
        self._cancel_in_flight()
        request = InFlightRequest(query=query)
        task = request.task = self._spawn(self._run(request))
        self._in_flight = request
        return task

    async def _run(self, request: InFlightRequest) -> None:
        query = request.query
        dispatch_id_var.set(generate_dispatch_id())

        try:
            _, hits = await asyncio.gather(
                self.cart_tracker.refresh(),
                self.client.search_products(query, self.search_limit, token=request.token),
            )
            request.token.raise_if_cancelled()

            products = [Product.model_validate(hit) for hit in hits]
            if not products:
                logger.info("No results for q=%r", query)
                self._hide()
                return

            enriched = await enrich_products(self.client, products, token=request.token)
            request.token.raise_if_cancelled()

            self.cache.set(query, enriched)
            self.render(enriched)
        except RequestCancelled:
            logger.debug("Search for q=%r cancelled", query)
        except Exception as exc:
            logger.warning("Search for q=%r failed: %s", query, exc)
            if not request.token.cancelled:
                self._hide()
        finally:
            if self._in_flight is request:
                self._in_flight = None

    def render(self, products: list[Product]) -> None:
        """Render ``products`` minus anything already in the cart."""
        visible = [product for product in products if product.id not in self.cart_tracker]
        if not visible:
            self._hide()
            return
        self.output_visible = True
        self.view.render(visible)

    def replay_last_query(self) -> bool:
        """Re-render the last query from cache if results are showing."""
        if not self.output_visible or not self.last_query:
            return False
        cached = self.cache.get(self.last_query)
        if cached is None:
            return False
        self.render(cached)
        return True

    def hide(self) -> None:
        self._hide()

    def forget_last_query(self) -> None:
        self.last_query = ""

    async def wait_until_idle(self) -> None:
        """Wait for pending debounce timers and searches to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Cancel the debounce timer and the in-flight search."""
        self._clear_debounce()
        self._cancel_in_flight()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _dispatch_after_delay(self, query: str) -> None:
        await asyncio.sleep(self.debounce_seconds)
        self._debounce = None
        # A separate task, so clearing a later debounce never aborts this search.
        self._start_dispatch(query)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _clear_debounce(self) -> None:
        if self._debounce is not None and not self._debounce.done():
            self._debounce.cancel()
        self._debounce = None

    def _cancel_in_flight(self) -> bool:
        request = self._in_flight
        if request is None:
            return False
        self._in_flight = None
        request.cancel()
        logger.debug("Cancelled in-flight search for q=%r", request.query)
        return True

    def _show_loading(self) -> None:
        self.output_visible = True
        self.view.show_loading()

    def _hide(self) -> None:
        self.output_visible = False
        self.view.hide()
