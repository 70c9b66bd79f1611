"""Tests for the terminal driver."""

from typing import Any

import pytest

from product_search.cli import ConsoleView, format_minor_units
from product_search.schemas.storefront import Product


class TestConsoleView:
    """Tests for the terminal results panel."""

    @pytest.mark.parametrize(("amount", "expected"), [(1999, "19.99"), (0, "0.00"), (None, "-")])
    def test_format_minor_units(self, amount: int | None, expected: str) -> None:
        assert format_minor_units(amount) == expected

    def test_render_lists_products(self, capsys: Any) -> None:
        view = ConsoleView()
        products = [Product(id=1, title="Red Shirt", handle="red-shirt", price="19.99")]

        view.render(products)

        out = capsys.readouterr().out
        assert "results: 1" in out
        assert "01. Red Shirt | 19.99 | red-shirt | variants=0" in out
        assert view.shown == products

    def test_hide_forgets_results(self) -> None:
        view = ConsoleView()
        view.shown = [Product(id=1, handle="x")]

        view.hide()

        assert view.shown == []
