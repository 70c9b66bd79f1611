"""Tracks which products are already in the shopper's cart."""

import logging

from product_search.integrations.storefront.client import StorefrontClient
from product_search.schemas.storefront import Cart

logger = logging.getLogger(__name__)


class CartTracker:
    """Snapshot of cart product ids, replaced wholesale on every refresh."""

    def __init__(self, client: StorefrontClient) -> None:
        self.client = client
        self._product_ids: frozenset[int] = frozenset()

    @property
    def product_ids(self) -> frozenset[int]:
        return self._product_ids

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._product_ids

    async def refresh(self) -> Cart | None:
        """Rebuild the snapshot from the cart endpoint.

        On any failure the snapshot is emptied rather than left stale: showing
        an item that is already in the cart is better than hiding one that
        is not.
        """
        try:
            cart = Cart.model_validate(await self.client.get_cart())
        except Exception as exc:
            logger.warning("Cart refresh failed, clearing tracked products: %s", exc)
            self._product_ids = frozenset()
            return None

        self._product_ids = cart.product_ids
        return cart

    def mark_added(self, product_id: int) -> None:
        """Record a just-added product before the next refresh confirms it."""
        self._product_ids = self._product_ids | {product_id}
