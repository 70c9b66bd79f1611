"""Exception types raised inside the search engine.

None of these escape the public operations: each is caught at the boundary of
the operation that raised it and turned into hidden output, an empty cart
snapshot, or a user notification.
"""

from typing import Any


class ProductSearchError(Exception):
    """Base class for engine errors."""


class RequestCancelled(ProductSearchError):
    """A search request was superseded or torn down. Never user-visible."""


class CartMutationError(ProductSearchError):
    """An add-to-cart transaction failed."""

    reason = "transport"


class VariantUnavailable(CartMutationError):
    """The product has no variant that can currently be purchased."""

    reason = "unavailable"


class MutationRejected(CartMutationError):
    """The storefront declined the cart-add request."""

    reason = "rejected"

    def __init__(
        self,
        status_code: int,
        description: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(description or f"Cart add rejected with status {status_code}")
        self.status_code = status_code
        self.description = description
        self.payload = payload or {}


class MutationTransportFailure(CartMutationError):
    """The cart-add request never produced a usable response."""

    reason = "transport"
