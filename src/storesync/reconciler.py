"""Login-time reconciliation of cart and wishlist with the backend."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import TypeVar

from storesync.api import StoreApi
from storesync.catalog import CatalogReader
from storesync.errors import AuthorizationError, SyncError
from storesync.notices import Notifier
from storesync.session import SessionStore
from storesync.state import LocalState, dedupe
from storesync.types import CartLine, Product, ProductId, WishlistEntry

logger = logging.getLogger(__name__)

L = TypeVar("L", CartLine, WishlistEntry)


@dataclass(frozen=True, slots=True)
class ReconcileReport:
    cart_ok: bool
    wishlist_ok: bool
    discarded: bool = False
    errors: tuple[SyncError, ...] = ()

    @property
    def ok(self) -> bool:
        return self.cart_ok and self.wishlist_ok and not self.discarded


def _fill_display(line: L, product: Product) -> L:
    """Fill blank display fields of ``line`` from ``product``."""
    return replace(
        line,
        name=line.name or product.name,
        price=line.price or product.price,
        image_url=line.image_url if line.image_url is not None else product.image_url,
    )


class Reconciler:
    """Replaces local cart and wishlist with the authoritative versions.

    Both collections are fetched concurrently and independently: a failure
    on one side empties that side and emits a warning without affecting the
    other. Pre-existing local state is never merged in.
    """

    def __init__(
        self,
        api: StoreApi,
        catalog: CatalogReader,
        state: LocalState,
        session: SessionStore,
        notifier: Notifier,
        *,
        on_unauthorized: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self._api = api
        self._catalog = catalog
        self._state = state
        self._session = session
        self._notifier = notifier
        self._on_unauthorized = on_unauthorized

    async def reconcile(self) -> ReconcileReport:
        generation = self._session.generation
        cart, wishlist = await asyncio.gather(
            self._settle(self._load(self._api.fetch_cart, "cart")),
            self._settle(self._load(self._api.fetch_wishlist, "wishlist")),
        )

        if generation != self._session.generation:
            logger.info("Session changed during reconciliation; discarding results")
            return ReconcileReport(cart_ok=False, wishlist_ok=False, discarded=True)

        errors = tuple(r for r in (cart, wishlist) if isinstance(r, SyncError))
        cart_ok = not isinstance(cart, SyncError)
        wishlist_ok = not isinstance(wishlist, SyncError)
        self._state.replace(
            cart=cart if not isinstance(cart, SyncError) else (),
            wishlist=wishlist if not isinstance(wishlist, SyncError) else (),
        )
        if not cart_ok:
            self._notifier.warning("Could not load your cart. Showing it as empty.")
        if not wishlist_ok:
            self._notifier.warning("Could not load your wishlist. Showing it as empty.")

        if any(isinstance(e, AuthorizationError) for e in errors) and self._on_unauthorized:
            await self._on_unauthorized()
        return ReconcileReport(cart_ok=cart_ok, wishlist_ok=wishlist_ok, errors=errors)

    async def _settle(self, work: Awaitable[tuple[L, ...]]) -> tuple[L, ...] | SyncError:
        try:
            return await work
        except SyncError as exc:
            return exc

    async def _load(
        self, fetch: Callable[[], Awaitable[list[L]]], label: str
    ) -> tuple[L, ...]:
        try:
            remote = await fetch()
        except SyncError as exc:
            logger.warning("Failed to fetch %s: %s", label, exc)
            raise
        lines, dropped = dedupe(remote)
        if dropped:
            logger.warning("Collapsed duplicate %s entries for %s", label, dropped)
        return tuple(await asyncio.gather(*(self._resolve(line) for line in lines)))

    async def _resolve(self, line: L) -> L:
        product = await self._product(line.product_id)
        return line if product is None else _fill_display(line, product)

    async def _product(self, product_id: ProductId) -> Product | None:
        cached = self._catalog.cached_product(product_id)
        if cached is not None:
            return cached
        try:
            return (await self._catalog.get_product(product_id)).value
        except SyncError as exc:
            logger.warning("No display data for product %s: %s", product_id, exc)
            return None
