"""Incremental product search and add-to-cart engine for storefront pages."""

from product_search.integrations.events import CartEvent, InMemoryEventBus
from product_search.integrations.storefront.client import StorefrontClient
from product_search.view import CartRegion, CartSurface, ObservableCartRegion, SearchView
from product_search.widget import ProductSearchWidget

__all__ = [
    "CartEvent",
    "CartRegion",
    "CartSurface",
    "InMemoryEventBus",
    "ObservableCartRegion",
    "ProductSearchWidget",
    "SearchView",
    "StorefrontClient",
]
