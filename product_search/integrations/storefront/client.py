"""Storefront AJAX API client using httpx."""

import logging
from types import TracebackType
from typing import Any, Self
from urllib.parse import quote

import httpx

from product_search.core.cancellation import CancellationToken
from product_search.core.config import settings

logger = logging.getLogger(__name__)


class StorefrontClient:
    """Async client for the storefront search, product and cart endpoints.

    One client is shared by every component of a widget so connections are
    pooled. Pass ``http_client`` to supply a preconfigured ``httpx.AsyncClient``
    (the caller then owns its lifetime).
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = (base_url or str(settings.storefront_url)).rstrip("/")
        self.headers = {"Accept": "application/json"}
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            headers=self.headers,
            timeout=timeout if timeout is not None else settings.http_timeout,
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def search_products(
        self,
        query: str,
        limit: int | None = None,
        token: CancellationToken | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch product suggestions for a query, capped at ``limit``."""
        limit = settings.search_limit if limit is None else limit
        response = await self._http.get(
            f"{self.base_url}/search/suggest.json",
            params={
                "q": query,
                "resources[type]": "product",
                "resources[limit]": limit,
            },
        )
        if token is not None:
            token.raise_if_cancelled()
        response.raise_for_status()
        data = response.json()
        products: list[dict[str, Any]] = (
            data.get("resources", {}).get("results", {}).get("products") or []
        )
        return products[:limit]

    async def get_product(
        self, handle: str, token: CancellationToken | None = None
    ) -> dict[str, Any]:
        """Fetch full product data, including variants, by handle."""
        response = await self._http.get(f"{self.base_url}/products/{quote(handle, safe='')}.js")
        if token is not None:
            token.raise_if_cancelled()
        response.raise_for_status()
        product: dict[str, Any] = response.json()
        return product

    async def get_cart(self) -> dict[str, Any]:
        """Fetch current cart contents, bypassing any HTTP cache."""
        response = await self._http.get(
            f"{self.base_url}/cart.js",
            headers={"Cache-Control": "no-cache"},
        )
        response.raise_for_status()
        cart: dict[str, Any] = response.json()
        return cart

    async def add_to_cart(
        self,
        variant_id: int,
        quantity: int = 1,
        sections: list[str] | None = None,
        sections_url: str | None = None,
    ) -> httpx.Response:
        """Submit a single-item cart add.

        The response is returned as-is; callers decide what a rejection looks
        like. Transport errors propagate.
        """
        form: dict[str, str] = {"id": str(variant_id), "quantity": str(quantity)}
        if sections:
            form["sections"] = ",".join(sections)
            form["sections_url"] = sections_url or "/"

        response = await self._http.post(
            f"{self.base_url}/cart/add.js",
            data=form,
            headers={"X-Requested-With": "XMLHttpRequest"},
        )
        logger.debug("Cart add for variant %s returned %s", variant_id, response.status_code)
        return response
