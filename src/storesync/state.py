"""Local cart and wishlist collections."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TypeVar, cast

from storesync.guard import MutationKind
from storesync.types import CartLine, ProductId, WishlistEntry

Line = CartLine | WishlistEntry
L = TypeVar("L", bound=CartLine | WishlistEntry)


def index_of(items: tuple[L, ...], product_id: ProductId) -> int | None:
    for index, item in enumerate(items):
        if item.product_id == product_id:
            return index
    return None


def with_item(items: tuple[L, ...], item: L) -> tuple[L, ...]:
    """Replace the line for ``item.product_id`` in place, or append it."""
    index = index_of(items, item.product_id)
    if index is None:
        return (*items, item)
    return (*items[:index], item, *items[index + 1 :])


def without_item(items: tuple[L, ...], product_id: ProductId) -> tuple[L, ...]:
    return tuple(item for item in items if item.product_id != product_id)


def restore_item(
    items: tuple[L, ...],
    product_id: ProductId,
    previous: L | None,
    index: int | None,
) -> tuple[L, ...]:
    """Put back the line a mutation replaced, at its original position."""
    remaining = without_item(items, product_id)
    if previous is None or index is None:
        return remaining
    index = min(index, len(remaining))
    return (*remaining[:index], previous, *remaining[index:])


def dedupe(items: Iterable[L]) -> tuple[tuple[L, ...], list[ProductId]]:
    """Keep the first line per product id; returns (lines, dropped ids)."""
    seen: set[ProductId] = set()
    kept: list[L] = []
    dropped: list[ProductId] = []
    for item in items:
        if item.product_id in seen:
            dropped.append(item.product_id)
            continue
        seen.add(item.product_id)
        kept.append(item)
    return tuple(kept), dropped


class LocalState:
    """Advisory cart and wishlist, keyed by product id.

    Collections are immutable tuples that are swapped wholesale, so a
    snapshot taken by UI code can never change under it.
    """

    def __init__(self) -> None:
        self._cart: tuple[CartLine, ...] = ()
        self._wishlist: tuple[WishlistEntry, ...] = ()

    @property
    def cart(self) -> tuple[CartLine, ...]:
        return self._cart

    @property
    def wishlist(self) -> tuple[WishlistEntry, ...]:
        return self._wishlist

    @property
    def wishlist_ids(self) -> frozenset[ProductId]:
        return frozenset(entry.product_id for entry in self._wishlist)

    @property
    def cart_count(self) -> int:
        return len(self._cart)

    @property
    def cart_total(self) -> float:
        return sum(line.total for line in self._cart)

    def cart_line(self, product_id: ProductId) -> CartLine | None:
        index = index_of(self._cart, product_id)
        return None if index is None else self._cart[index]

    def is_wishlisted(self, product_id: ProductId) -> bool:
        return index_of(self._wishlist, product_id) is not None

    def collection(self, kind: MutationKind) -> tuple[Line, ...]:
        return self._cart if kind is MutationKind.CART else self._wishlist

    def set_collection(self, kind: MutationKind, items: tuple[Line, ...]) -> None:
        if kind is MutationKind.CART:
            self._cart = cast(tuple[CartLine, ...], items)
        else:
            self._wishlist = cast(tuple[WishlistEntry, ...], items)

    def replace(
        self,
        *,
        cart: Iterable[CartLine] | None = None,
        wishlist: Iterable[WishlistEntry] | None = None,
    ) -> None:
        if cart is not None:
            self._cart = tuple(cart)
        if wishlist is not None:
            self._wishlist = tuple(wishlist)

    def reset(self) -> None:
        self._cart = ()
        self._wishlist = ()
