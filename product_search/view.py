"""Hooks the engine calls on the page it is embedded in.

The engine owns no markup. A host subclasses these no-op bases and overrides
the capabilities its page actually has.
"""

from collections.abc import Callable
from typing import Any, Literal

from product_search.schemas.storefront import Product

Severity = Literal["info", "success", "error"]


class SearchView:
    """Results panel and input box of one search widget."""

    def render(self, products: list[Product]) -> None:
        """Show ``products``; already filtered against the cart."""

    def show_loading(self) -> None:
        """Show the loading indicator in the results panel."""

    def hide(self) -> None:
        """Hide the results panel."""

    def notify(self, message: str, severity: Severity = "info") -> None:
        """Show a transient banner."""

    def clear_input(self) -> None:
        """Empty the search input after a selection."""

    def navigate(self, url: str) -> None:
        """Leave the page, e.g. for a product with several variants."""


class CartSurface:
    """Cart drawer or notification element that shows cart contents."""

    def sections_to_render(self) -> list[str]:
        """Section ids the cart-add response should include, if any."""
        return []

    def render_contents(self, payload: dict[str, Any]) -> None:
        """Redraw from a successful cart-add payload."""

    def request_count_refresh(self) -> None:
        """Refresh the displayed cart item count."""


CartRegionCallback = Callable[[], None]


class CartRegion:
    """A cart-display region whose changes invalidate search results."""

    def observe(self, callback: CartRegionCallback) -> Callable[[], None]:
        return lambda: None


class ObservableCartRegion(CartRegion):
    """In-process region; the host calls ``notify_changed`` after redrawing."""

    def __init__(self) -> None:
        self._observers: list[CartRegionCallback] = []

    def observe(self, callback: CartRegionCallback) -> Callable[[], None]:
        self._observers.append(callback)

        def disconnect() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return disconnect

    def notify_changed(self) -> None:
        for callback in list(self._observers):
            callback()
