"""Bounded in-memory cache of enriched search results."""

import logging
from collections import OrderedDict

from product_search.core.config import settings
from product_search.schemas.storefront import Product

logger = logging.getLogger(__name__)


class SearchCache:
    """Query -> result mapping evicted in insertion order.

    Eviction follows insertion, not access: reads never reorder entries, and
    once the cache holds more than ``max_entries`` the oldest insertion goes.
    """

    def __init__(self, max_entries: int | None = None) -> None:
        self.max_entries = settings.cache_max_entries if max_entries is None else max_entries
        self._entries: OrderedDict[str, list[Product]] = OrderedDict()

    def __contains__(self, query: object) -> bool:
        return query in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, query: str) -> list[Product] | None:
        return self._entries.get(query)

    def set(self, query: str, result: list[Product]) -> None:
        # Re-inserting a query counts as a fresh insertion.
        self._entries.pop(query, None)
        self._entries[query] = result
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("cache_evict q=%r", evicted)

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        return list(self._entries)
