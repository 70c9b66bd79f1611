"""Attach full variant data to search hits."""

import asyncio
import logging

from product_search.core.cancellation import CancellationToken
from product_search.core.exceptions import RequestCancelled
from product_search.integrations.storefront.client import StorefrontClient
from product_search.schemas.storefront import Product, ProductDetail

logger = logging.getLogger(__name__)


async def enrich_product(
    client: StorefrontClient,
    product: Product,
    token: CancellationToken | None = None,
) -> Product:
    """Return a copy of ``product`` with ``full_variants`` set.

    A failed lookup yields an empty variant list instead of an error.
    """
    try:
        detail = ProductDetail.model_validate(await client.get_product(product.handle, token=token))
    except RequestCancelled:
        raise
    except Exception as exc:
        logger.warning("Variant lookup failed for %s: %s", product.handle, exc)
        return product.model_copy(update={"full_variants": []})
    return product.model_copy(update={"full_variants": detail.variants})


async def enrich_products(
    client: StorefrontClient,
    products: list[Product],
    token: CancellationToken | None = None,
) -> list[Product]:
    """Enrich every product concurrently; output keeps input order and length."""
    return list(await asyncio.gather(*(enrich_product(client, p, token) for p in products)))
