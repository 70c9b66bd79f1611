"""Add-to-cart transactions with optimistic cart tracking."""

import json
import logging
from typing import Any

import httpx

from product_search.core.config import settings
from product_search.core.exceptions import (
    CartMutationError,
    MutationRejected,
    MutationTransportFailure,
    VariantUnavailable,
)
from product_search.integrations.events import CartEvent, EventBus
from product_search.integrations.storefront.client import StorefrontClient
from product_search.schemas.storefront import AddToCartResult, Product, ProductDetail
from product_search.services.cart_tracker import CartTracker
from product_search.view import CartSurface, SearchView

logger = logging.getLogger(__name__)

PRODUCT_ADD_FAILED = "Failed to add product to cart"
VARIANT_ADD_FAILED = "Failed to add variant to cart"


class CartMutationHandler:
    """Adds a product or a specific variant to the cart.

    On success the product is marked in-cart locally, ``cart-update`` is
    published for sibling widgets and the cart surface is asked to redraw. On
    failure the shopper gets an error banner. Neither path raises.
    """

    def __init__(
        self,
        client: StorefrontClient,
        cart_tracker: CartTracker,
        bus: EventBus,
        view: SearchView,
        cart_surface: CartSurface | None = None,
        *,
        source: str | None = None,
        sections_url: str = "/",
    ) -> None:
        self.client = client
        self.cart_tracker = cart_tracker
        self.bus = bus
        self.view = view
        self.cart_surface = cart_surface or CartSurface()
        self.source = source or settings.event_source
        self.sections_url = sections_url

    async def add_to_cart(self, product: Product) -> AddToCartResult:
        """Add the first available variant, judged from fresh product data."""
        try:
            variant_id = await self._first_available_variant_id(product)
        except CartMutationError as exc:
            return await self._fail(exc, None, PRODUCT_ADD_FAILED)
        try:
            payload = await self._submit(variant_id)
        except CartMutationError as exc:
            return await self._fail(exc, variant_id, PRODUCT_ADD_FAILED)
        return await self._succeed(product, variant_id, payload)

    async def add_to_cart_by_variant_id(self, product: Product, variant_id: int) -> AddToCartResult:
        """Add a variant the caller has already resolved."""
        try:
            payload = await self._submit(variant_id)
        except CartMutationError as exc:
            return await self._fail(exc, variant_id, VARIANT_ADD_FAILED)
        return await self._succeed(product, variant_id, payload)

    async def _first_available_variant_id(self, product: Product) -> int:
        # Search-time variants may be stale; a sold-out variant must not be added.
        try:
            detail = ProductDetail.model_validate(await self.client.get_product(product.handle))
        except Exception as exc:
            raise MutationTransportFailure(f"Product lookup failed: {exc}") from exc

        variant = detail.first_available_variant()
        if variant is None:
            raise VariantUnavailable(f"No available variants for {product.handle}")
        return variant.id

    async def _submit(self, variant_id: int) -> dict[str, Any]:
        try:
            response = await self.client.add_to_cart(
                variant_id,
                quantity=1,
                sections=self.cart_surface.sections_to_render(),
                sections_url=self.sections_url,
            )
        except httpx.HTTPError as exc:
            raise MutationTransportFailure(str(exc)) from exc
        except Exception as exc:
            raise MutationTransportFailure(f"Unexpected cart add failure: {exc}") from exc

        payload = _parse_body(response)
        if not response.is_success or "status" in payload:
            raise MutationRejected(
                response.status_code,
                description=payload.get("description") or payload.get("message"),
                payload=payload,
            )
        return payload

    async def _succeed(
        self, product: Product, variant_id: int, payload: dict[str, Any]
    ) -> AddToCartResult:
        self.cart_tracker.mark_added(product.id)
        logger.info("Added variant %s of product %s to cart", variant_id, product.id)

        await self._publish(
            CartEvent.CART_UPDATE,
            {"source": self.source, "productVariantId": variant_id, "cartData": payload},
        )
        try:
            self.cart_surface.render_contents(payload)
        except Exception:
            logger.exception("Cart surface failed to redraw after adding %s", variant_id)
        try:
            self.cart_surface.request_count_refresh()
        except Exception:
            logger.exception("Cart count refresh failed after adding %s", variant_id)

        return AddToCartResult(success=True, variant_id=variant_id, cart_data=payload)

    async def _fail(
        self, exc: CartMutationError, variant_id: int | None, fallback: str
    ) -> AddToCartResult:
        message = fallback
        if isinstance(exc, MutationRejected):
            message = exc.description or fallback
            logger.warning(
                "Cart add for variant %s rejected (%s): %s", variant_id, exc.status_code, message
            )
            await self._publish(
                CartEvent.CART_ERROR,
                {
                    "source": self.source,
                    "productVariantId": variant_id,
                    "errors": exc.payload.get("errors") or exc.payload.get("description"),
                    "message": exc.payload.get("message"),
                },
            )
        else:
            logger.warning("Cart add for variant %s failed: %s", variant_id, exc)

        self.view.notify(message, "error")
        return AddToCartResult(
            success=False,
            variant_id=variant_id,
            message=message,
            reason=exc.reason,  # type: ignore[arg-type]
        )

    async def _publish(self, event: CartEvent, payload: dict[str, Any]) -> None:
        try:
            await self.bus.publish(event, payload)
        except Exception:
            logger.exception("Failed to publish %s", event)


def _parse_body(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON object body; anything else reads as empty."""
    try:
        body = json.loads(response.text)
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
