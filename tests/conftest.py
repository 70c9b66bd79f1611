"""Pytest configuration and fixtures for the product search test suite.

Provides:
- A scripted fake storefront served through ``httpx.MockTransport``
- StorefrontClient wired to the fake storefront
- Recording doubles for the search view and the cart surface
- Settings with short debounce/settle timers
- Factories for search hits and product-detail payloads
"""

import asyncio
from collections import defaultdict
from collections.abc import AsyncGenerator
from typing import Any
from urllib.parse import parse_qs

import fakeredis.aioredis
import httpx
import pytest
import pytest_asyncio

from product_search.core.config import Settings
from product_search.integrations.events import InMemoryEventBus
from product_search.integrations.storefront.client import StorefrontClient
from product_search.schemas.storefront import Product
from product_search.services.cache import SearchCache
from product_search.services.cart_tracker import CartTracker
from product_search.services.coordinator import RequestCoordinator
from product_search.view import CartSurface, ObservableCartRegion, SearchView, Severity
from product_search.widget import ProductSearchWidget

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
STOREFRONT_URL = "http://shop.test"
FAST_TIMER = 0.01


# ---------------------------------------------------------------------------
# Payload factories
# ---------------------------------------------------------------------------


def make_hit(product_id: int, handle: str | None = None, **overrides: Any) -> dict[str, Any]:
    """A product entry as returned by the search endpoint."""
    hit: dict[str, Any] = {
        "id": product_id,
        "title": f"Product {product_id}",
        "handle": handle or f"product-{product_id}",
        "url": f"/products/{handle or f'product-{product_id}'}",
        "image": f"https://cdn.test/{product_id}.jpg",
        "price": "19.99",
    }
    hit.update(overrides)
    return hit


def make_detail(
    product_id: int,
    handle: str | None = None,
    variants: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """A product payload as returned by the product-detail endpoint."""
    if variants is None:
        variants = [{"id": product_id * 100 + 1, "available": True, "price": 1999}]
    return {
        "id": product_id,
        "handle": handle or f"product-{product_id}",
        "title": f"Product {product_id}",
        "variants": variants,
    }


# ---------------------------------------------------------------------------
# Fake storefront
# ---------------------------------------------------------------------------


class FakeStorefront:
    """In-memory storefront answering the four AJAX endpoints.

    Searches for a query listed in ``search_gates`` block until the gate is
    set; ``search_started[query]`` is set as soon as that search arrives.
    """

    def __init__(self) -> None:
        self.search_results: dict[str, list[dict[str, Any]]] = {}
        self.search_status = 200
        self.search_gates: dict[str, asyncio.Event] = {}
        self.search_started: defaultdict[str, asyncio.Event] = defaultdict(asyncio.Event)
        self.products: dict[str, dict[str, Any]] = {}
        self.failing_handles: set[str] = set()
        self.cart_items: list[dict[str, Any]] = []
        self.cart_status = 200
        self.cart_body: Any = None
        self.add_status = 200
        self.add_body: Any = None
        self.add_error: Exception | None = None
        self.requests: list[httpx.Request] = []
        self.add_forms: list[dict[str, list[str]]] = []

    def add_product(self, product_id: int, handle: str | None = None, **detail: Any) -> dict:
        hit = make_hit(product_id, handle)
        self.products[hit["handle"]] = make_detail(product_id, hit["handle"], **detail)
        return hit

    @property
    def search_queries(self) -> list[str]:
        return [
            request.url.params["q"]
            for request in self.requests
            if request.url.path == "/search/suggest.json"
        ]

    def count(self, path: str) -> int:
        return sum(1 for request in self.requests if request.url.path == path)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/search/suggest.json":
            query = request.url.params["q"]
            self.search_started[query].set()
            gate = self.search_gates.get(query)
            if gate is not None:
                await gate.wait()
            if self.search_status != 200:
                return httpx.Response(self.search_status, text="search unavailable")
            products = self.search_results.get(query, [])
            return httpx.Response(200, json={"resources": {"results": {"products": products}}})

        if path.startswith("/products/") and path.endswith(".js"):
            handle = path.removeprefix("/products/").removesuffix(".js")
            if handle in self.failing_handles:
                return httpx.Response(500, text="boom")
            if handle not in self.products:
                return httpx.Response(404, json={"status": 404, "message": "Not Found"})
            return httpx.Response(200, json=self.products[handle])

        if path == "/cart.js":
            if self.cart_status != 200:
                return httpx.Response(self.cart_status, text="cart unavailable")
            if self.cart_body is not None:
                return httpx.Response(200, json=self.cart_body)
            return httpx.Response(
                200, json={"items": self.cart_items, "item_count": len(self.cart_items)}
            )

        if path == "/cart/add.js" and request.method == "POST":
            form = parse_qs(request.content.decode())
            self.add_forms.append(form)
            if self.add_error is not None:
                raise self.add_error
            if isinstance(self.add_body, str):
                return httpx.Response(self.add_status, text=self.add_body)
            if self.add_status == 200 and self.add_body is None:
                variant_id = int(form["id"][0])
                product_id = variant_id // 100
                self.cart_items.append({"product_id": product_id, "variant_id": variant_id})
                return httpx.Response(
                    200, json={"id": variant_id, "product_id": product_id, "quantity": 1}
                )
            return httpx.Response(self.add_status, json=self.add_body)

        return httpx.Response(404, text="not found")


# ---------------------------------------------------------------------------
# View doubles
# ---------------------------------------------------------------------------


class RecordingView(SearchView):
    """Records every hook call in order."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []

    def render(self, products: list[Product]) -> None:
        self.calls.append(("render", [product.id for product in products]))

    def show_loading(self) -> None:
        self.calls.append(("show_loading",))

    def hide(self) -> None:
        self.calls.append(("hide",))

    def notify(self, message: str, severity: Severity = "info") -> None:
        self.calls.append(("notify", message, severity))

    def clear_input(self) -> None:
        self.calls.append(("clear_input",))

    def navigate(self, url: str) -> None:
        self.calls.append(("navigate", url))

    @property
    def renders(self) -> list[list[int]]:
        return [call[1] for call in self.calls if call[0] == "render"]

    @property
    def notifications(self) -> list[tuple[str, str]]:
        return [(call[1], call[2]) for call in self.calls if call[0] == "notify"]


class RecordingCartSurface(CartSurface):
    """Cart drawer double that asks for two sections."""

    def __init__(self, sections: list[str] | None = None) -> None:
        self.sections = sections or []
        self.rendered: list[dict[str, Any]] = []
        self.count_refreshes = 0

    def sections_to_render(self) -> list[str]:
        return self.sections

    def render_contents(self, payload: dict[str, Any]) -> None:
        self.rendered.append(payload)

    def request_count_refresh(self) -> None:
        self.count_refreshes += 1


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def storefront() -> FakeStorefront:
    return FakeStorefront()


@pytest_asyncio.fixture
async def http_client(storefront: FakeStorefront) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(storefront.handler)) as client:
        yield client


@pytest.fixture
def client(http_client: httpx.AsyncClient) -> StorefrontClient:
    return StorefrontClient(STOREFRONT_URL, http_client=http_client)


@pytest.fixture
def view() -> RecordingView:
    return RecordingView()


@pytest.fixture
def cart_surface() -> RecordingCartSurface:
    return RecordingCartSurface()


@pytest.fixture
def bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest.fixture
def cart_region() -> ObservableCartRegion:
    return ObservableCartRegion()


@pytest.fixture
def fake_redis() -> fakeredis.aioredis.FakeRedis:
    """Provide a fresh fakeredis instance per test."""
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        storefront_url=STOREFRONT_URL,
        debounce_seconds=FAST_TIMER,
        settle_seconds=FAST_TIMER,
    )


@pytest.fixture
def cart_tracker(client: StorefrontClient) -> CartTracker:
    return CartTracker(client)


@pytest_asyncio.fixture
async def coordinator(
    client: StorefrontClient, cart_tracker: CartTracker, view: RecordingView
) -> AsyncGenerator[RequestCoordinator, None]:
    coordinator = RequestCoordinator(
        client, SearchCache(), cart_tracker, view, debounce_seconds=FAST_TIMER
    )
    yield coordinator
    await coordinator.close()


@pytest_asyncio.fixture
async def widget(
    client: StorefrontClient,
    view: RecordingView,
    bus: InMemoryEventBus,
    cart_surface: RecordingCartSurface,
    cart_region: ObservableCartRegion,
    test_settings: Settings,
) -> AsyncGenerator[ProductSearchWidget, None]:
    async with ProductSearchWidget(
        client, view, bus, cart_surface, cart_region, config=test_settings
    ) as widget:
        yield widget
