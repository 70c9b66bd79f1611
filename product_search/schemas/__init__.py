"""Pydantic schemas for storefront payloads."""

from product_search.schemas.common import BaseSchema
from product_search.schemas.storefront import (
    AddToCartResult,
    Cart,
    CartLineItem,
    Product,
    ProductDetail,
    Variant,
)

__all__ = [
    "AddToCartResult",
    "BaseSchema",
    "Cart",
    "CartLineItem",
    "Product",
    "ProductDetail",
    "Variant",
]
