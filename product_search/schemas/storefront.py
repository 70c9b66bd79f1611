"""Pydantic schemas for storefront search, product and cart payloads."""

from decimal import Decimal, InvalidOperation
from typing import Any, Literal

from pydantic import Field, field_validator

from product_search.schemas.common import BaseSchema


def to_minor_units(value: Any) -> int | None:
    """Normalize a storefront price to integer minor currency units.

    The product and cart endpoints already send cents as integers; the search
    endpoint sends decimal strings such as ``"19.99"``.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("price must be a number")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and "." not in value:
        try:
            return int(value)
        except ValueError as exc:
            raise ValueError(f"invalid price {value!r}") from exc
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"invalid price {value!r}") from exc
    return int((amount * 100).to_integral_value())


class Variant(BaseSchema):
    """A purchasable product variant."""

    id: int
    available: bool = False
    title: str | None = None
    price: int | None = None
    sku: str | None = None

    @field_validator("price", mode="before")
    @classmethod
    def normalize_price(cls, value: Any) -> int | None:
        return to_minor_units(value)


class Product(BaseSchema):
    """A search hit, optionally enriched with its full variant list."""

    id: int
    title: str = ""
    handle: str
    url: str | None = None
    image: str | None = None
    price: int | None = None
    full_variants: list[Variant] | None = None

    @field_validator("price", mode="before")
    @classmethod
    def normalize_price(cls, value: Any) -> int | None:
        return to_minor_units(value)

    @field_validator("image", mode="before")
    @classmethod
    def flatten_image(cls, value: Any) -> Any:
        # Some themes send image objects instead of a plain URL.
        if isinstance(value, dict):
            return value.get("url") or value.get("src")
        return value

    @property
    def has_multiple_variants(self) -> bool:
        return len(self.full_variants or []) > 1


class ProductDetail(BaseSchema):
    """Full product payload from the product-detail endpoint."""

    id: int
    handle: str
    title: str = ""
    variants: list[Variant] = Field(default_factory=list)

    def first_available_variant(self) -> Variant | None:
        return next((variant for variant in self.variants if variant.available), None)


class CartLineItem(BaseSchema):
    """A cart line; only the identifiers matter to the engine."""

    product_id: int
    variant_id: int | None = None
    quantity: int = 1


class Cart(BaseSchema):
    """Current cart contents."""

    items: list[CartLineItem] = Field(default_factory=list)
    item_count: int = 0

    @property
    def product_ids(self) -> frozenset[int]:
        return frozenset(item.product_id for item in self.items)


class AddToCartResult(BaseSchema):
    """Outcome of an add-to-cart transaction."""

    success: bool
    variant_id: int | None = None
    message: str | None = None
    reason: Literal["rejected", "transport", "unavailable"] | None = None
    cart_data: dict[str, Any] | None = None
