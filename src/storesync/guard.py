"""Per-entity in-flight guard for mutations."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum

from storesync.types import ProductId


class MutationKind(Enum):
    CART = "cart"
    WISHLIST = "wishlist"


class PendingOperationGuard:
    """Tracks which entities have a mutation in flight, one set per kind.

    Cart and wishlist never share a set, so toggling a product's wishlist
    state does not block adding the same product to the cart.
    """

    def __init__(self) -> None:
        self._pending: dict[MutationKind, set[ProductId]] = {
            kind: set() for kind in MutationKind
        }
        self._epoch = 0

    def try_acquire(self, kind: MutationKind, entity_id: ProductId) -> bool:
        """Mark ``entity_id`` pending. Returns False if it already is."""
        pending = self._pending[kind]
        if entity_id in pending:
            return False
        pending.add(entity_id)
        return True

    def release(self, kind: MutationKind, entity_id: ProductId) -> None:
        self._pending[kind].discard(entity_id)

    def is_pending(self, kind: MutationKind, entity_id: ProductId) -> bool:
        return entity_id in self._pending[kind]

    def pending(self, kind: MutationKind) -> frozenset[ProductId]:
        return frozenset(self._pending[kind])

    def clear(self) -> None:
        """Forget every pending entry (logout)."""
        for pending in self._pending.values():
            pending.clear()
        self._epoch += 1

    @contextmanager
    def hold(self, kind: MutationKind, entity_id: ProductId) -> Iterator[bool]:
        """Acquire for the duration of the block; yields whether it was acquired.

        Release happens on every exit path. If ``clear()`` ran while the block
        was active, the release is skipped so it cannot free an acquisition
        made after the clear.
        """
        acquired = self.try_acquire(kind, entity_id)
        epoch = self._epoch
        try:
            yield acquired
        finally:
            if acquired and epoch == self._epoch:
                self.release(kind, entity_id)
