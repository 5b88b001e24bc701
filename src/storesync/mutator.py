"""Optimistic cart and wishlist mutations with rollback."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from enum import Enum

from storesync.api import StoreApi
from storesync.errors import AuthorizationError, AuthRequiredError, SyncError
from storesync.guard import MutationKind, PendingOperationGuard
from storesync.notices import Notice, NoticeLevel, Notifier
from storesync.session import SessionStore
from storesync.state import Line, LocalState, index_of, restore_item, with_item, without_item
from storesync.types import (
    CartLine,
    MutationIntent,
    Product,
    ProductId,
    RemoveLine,
    SetQuantity,
    SetWishlisted,
    WishlistEntry,
)

logger = logging.getLogger(__name__)

# Anything carrying display fields can be added to the cart or wishlist.
Item = Product | CartLine | WishlistEntry


class MutationStatus(Enum):
    COMMITTED = "committed"  # applied locally and confirmed remotely
    SKIPPED = "skipped"  # same entity already in flight, nothing done
    FAILED = "failed"  # rolled back (or never applied)
    DISCARDED = "discarded"  # session changed while in flight


@dataclass(frozen=True, slots=True)
class MutationOutcome:
    status: MutationStatus
    error: SyncError | None = None

    @property
    def ok(self) -> bool:
        return self.status is MutationStatus.COMMITTED


@dataclass(frozen=True, slots=True)
class _Plan:
    intent: MutationIntent
    updated: tuple[Line, ...]
    notice: Notice | None = None


def _cart_line(item: Item, quantity: int) -> CartLine:
    return CartLine(
        product_id=item.product_id,
        quantity=quantity,
        name=item.name,
        price=item.price,
        image_url=item.image_url,
    )


def _wishlist_entry(item: Item) -> WishlistEntry:
    return WishlistEntry(
        product_id=item.product_id,
        name=item.name,
        price=item.price,
        image_url=item.image_url,
    )


class OptimisticMutator:
    """Applies cart/wishlist changes locally, then confirms them remotely.

    Per call: the entity's guard is taken (a second call for the same entity
    while one is in flight is a no-op), the affected line is snapshotted,
    the new state is installed before any network I/O, and the intent is
    sent. On failure the snapshot is put back exactly and an error notice is
    emitted. The guard is held until the outcome has been applied.
    """

    def __init__(
        self,
        api: StoreApi,
        state: LocalState,
        guard: PendingOperationGuard,
        session: SessionStore,
        notifier: Notifier,
        *,
        on_unauthorized: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self._api = api
        self._state = state
        self._guard = guard
        self._session = session
        self._notifier = notifier
        self._on_unauthorized = on_unauthorized

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    async def add_to_cart(self, item: Item) -> MutationOutcome:
        """Add one unit; an existing line is incremented, never duplicated."""

        def plan() -> _Plan:
            line = self._state.cart_line(item.product_id)
            if line is None:
                line = _cart_line(item, 1)
            else:
                line = replace(line, quantity=line.quantity + 1)
            return _Plan(
                SetQuantity(item.product_id, line.quantity),
                with_item(self._state.cart, line),
                Notice(NoticeLevel.SUCCESS, f"{item.name} added to cart!"),
            )

        return await self._mutate(MutationKind.CART, item.product_id, plan)

    async def update_quantity(
        self, product_id: ProductId, quantity: int
    ) -> MutationOutcome:
        """Set a line's quantity. Anything below 1 removes the line."""
        if quantity < 1:
            return await self.remove_from_cart(product_id)
        if self._state.cart_line(product_id) is None:
            logger.debug("update_quantity for %s: no cart line", product_id)
            return MutationOutcome(MutationStatus.SKIPPED)

        def plan() -> _Plan:
            line = self._state.cart_line(product_id)
            updated = self._state.cart
            if line is not None:
                updated = with_item(updated, replace(line, quantity=quantity))
            return _Plan(SetQuantity(product_id, quantity), updated)

        return await self._mutate(MutationKind.CART, product_id, plan)

    async def remove_from_cart(self, product_id: ProductId) -> MutationOutcome:
        def plan() -> _Plan:
            return _Plan(
                RemoveLine(product_id),
                without_item(self._state.cart, product_id),
                Notice(NoticeLevel.INFO, "Item removed from cart."),
            )

        return await self._mutate(MutationKind.CART, product_id, plan)

    async def toggle_wishlist(self, item: Item) -> MutationOutcome:
        """Flip wishlist membership.

        The intended new state is computed from local state before the
        optimistic change is applied, and that value is what gets sent.
        """

        def plan() -> _Plan:
            wishlist = self._state.wishlist
            if not self._state.is_wishlisted(item.product_id):
                return _Plan(
                    SetWishlisted(item.product_id, True),
                    with_item(wishlist, _wishlist_entry(item)),
                    Notice(NoticeLevel.SUCCESS, f"{item.name} added to wishlist!"),
                )
            return _Plan(
                SetWishlisted(item.product_id, False),
                without_item(wishlist, item.product_id),
                Notice(NoticeLevel.INFO, f"{item.name} removed from wishlist."),
            )

        return await self._mutate(MutationKind.WISHLIST, item.product_id, plan)

    # -------------------------------------------------------------------------
    # Protocol
    # -------------------------------------------------------------------------

    async def _mutate(
        self,
        kind: MutationKind,
        product_id: ProductId,
        plan: Callable[[], _Plan],
    ) -> MutationOutcome:
        if not self._session.is_active:
            error = AuthRequiredError()
            self._notifier.error(error.user_message)
            return MutationOutcome(MutationStatus.FAILED, error)

        with self._guard.hold(kind, product_id) as acquired:
            if not acquired:
                logger.debug("%s mutation for %s already in flight", kind.value, product_id)
                return MutationOutcome(MutationStatus.SKIPPED)

            generation = self._session.generation
            before = self._state.collection(kind)
            index = index_of(before, product_id)
            previous = None if index is None else before[index]

            step = plan()
            self._state.set_collection(kind, step.updated)

            try:
                await self._api.send(step.intent)
            except SyncError as exc:
                if generation != self._session.generation:
                    logger.info("Dropping result of %s for a cleared session", step.intent)
                    return MutationOutcome(MutationStatus.DISCARDED, exc)
                current = self._state.collection(kind)
                self._state.set_collection(
                    kind, restore_item(current, product_id, previous, index)
                )
                logger.warning("Rolled back %s: %s", step.intent, exc)
                self._notifier.error(exc.user_message)
                if isinstance(exc, AuthorizationError) and self._on_unauthorized:
                    await self._on_unauthorized()
                return MutationOutcome(MutationStatus.FAILED, exc)

            if generation != self._session.generation:
                return MutationOutcome(MutationStatus.DISCARDED)
            if step.notice is not None:
                self._notifier.emit(step.notice.level, step.notice.message)
            return MutationOutcome(MutationStatus.COMMITTED)
