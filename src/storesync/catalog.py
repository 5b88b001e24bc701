"""Cached read paths: product listings, product detail, categories."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar, cast

from storesync.api import StoreApi
from storesync.cache import CacheStore, make_key
from storesync.codec import decode_listing, decode_product, encode_listing, encode_product
from storesync.errors import SyncError
from storesync.notices import Notifier
from storesync.types import (
    Category,
    Fetched,
    Product,
    ProductId,
    ProductPage,
    ProductQuery,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listing = ProductPage | list[Category]

CATEGORIES_KEY = "categories"


def page_key(query: ProductQuery) -> str:
    return f"products:{make_key(query.to_params())}"


def detail_key(product_id: ProductId) -> str:
    return f"product:{product_id}"


class CatalogReader:
    """Serves catalog reads from the page and detail caches.

    Fresh entries are returned without a request. Misses and stale entries
    are refetched; concurrent refetches of one key share a single request.
    If the refetch fails and a stale entry exists, the stale value is served
    with ``stale=True`` and a warning notice.
    """

    def __init__(
        self,
        api: StoreApi,
        *,
        pages: CacheStore[Listing],
        details: CacheStore[Product],
        notifier: Notifier,
    ) -> None:
        self._api = api
        self._pages = pages
        self._details = details
        self._notifier = notifier
        self._in_flight: dict[str, asyncio.Future[Any]] = {}
        self._epoch = 0

    @property
    def pages(self) -> CacheStore[Listing]:
        return self._pages

    @property
    def details(self) -> CacheStore[Product]:
        return self._details

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def list_products(self, query: ProductQuery | None = None) -> Fetched[ProductPage]:
        query = query or ProductQuery()
        epoch = self._epoch

        async def fetch() -> ProductPage:
            page = await self._api.list_products(query)
            # Listings double as detail-cache fills.
            if self._is_current(epoch):
                for product in page.products:
                    self._details.put(detail_key(product.product_id), product)
            return page

        result = await self._read(self._pages, page_key(query), fetch, "products")
        return cast(Fetched[ProductPage], result)

    async def get_product(self, product_id: ProductId) -> Fetched[Product]:
        return await self._read(
            self._details,
            detail_key(product_id),
            lambda: self._api.get_product(product_id),
            "product details",
        )

    async def list_categories(self) -> Fetched[list[Category]]:
        result = await self._read(
            self._pages, CATEGORIES_KEY, self._api.list_categories, "categories"
        )
        return cast(Fetched[list[Category]], result)

    def cached_product(self, product_id: ProductId) -> Product | None:
        """Detail-cache value regardless of freshness, without fetching."""
        return self._details.lookup(detail_key(product_id)).value

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def invalidate_all(self) -> None:
        """Clear both caches; fetches already in flight will not repopulate them."""
        self._pages.invalidate_all()
        self._details.invalidate_all()
        self._epoch += 1

    def dump(self) -> dict[str, list[dict[str, Any]]]:
        return {
            "pages": self._pages.snapshot(encode_listing),
            "details": self._details.snapshot(encode_product),
        }

    def load(self, pages: Any, details: Any) -> int:
        restored = 0
        if pages is not None:
            restored += self._pages.restore(pages, decode_listing)
        if details is not None:
            restored += self._details.restore(details, decode_product)
        return restored

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _is_current(self, epoch: int) -> bool:
        return epoch == self._epoch

    async def _read(
        self,
        store: CacheStore[Any],
        key: str,
        fetch: Callable[[], Awaitable[T]],
        label: str,
    ) -> Fetched[T]:
        lookup = store.lookup(key)
        if lookup.is_fresh:
            logger.debug("Cache hit for %s", key)
            return Fetched(cast(T, lookup.value))

        epoch = self._epoch
        try:
            value = await self._coalesce(key, fetch)
        except SyncError as exc:
            fallback = store.lookup(key)
            if not fallback.found:
                raise
            logger.warning("Serving stale %s for %s: %s", label, key, exc)
            self._notifier.warning(
                f"Could not refresh {label}; showing saved data that may be out of date."
            )
            return Fetched(cast(T, fallback.value), stale=True)

        if self._is_current(epoch):
            store.put(key, value)
        return Fetched(value)

    async def _coalesce(self, key: str, fetch: Callable[[], Awaitable[T]]) -> T:
        """Coalesce concurrent requests for the same key."""
        existing = self._in_flight.get(key)
        if existing is not None:
            return cast(T, await asyncio.shield(existing))

        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            result = await fetch()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            future.exception()  # mark retrieved when nobody else is waiting
            raise
        else:
            future.set_result(result)
            return result
        finally:
            del self._in_flight[key]
