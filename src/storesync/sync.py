"""StoreSync: the owned instance wiring every component together."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable
from typing import Any, TypeVar

import httpx

from storesync.api import StoreApi
from storesync.cache import CacheStore
from storesync.catalog import CatalogReader
from storesync.config import SyncConfig
from storesync.errors import AuthorizationError, RequestRejectedError, SyncError
from storesync.executor import RequestExecutor
from storesync.guard import MutationKind, PendingOperationGuard
from storesync.mutator import Item, MutationOutcome, OptimisticMutator
from storesync.notices import Notifier
from storesync.reconciler import Reconciler, ReconcileReport
from storesync.session import SessionStore
from storesync.state import LocalState
from storesync.storage import AsyncFileStorage, AsyncMemoryStorage, AsyncStorage
from storesync.types import (
    CartLine,
    Category,
    Fetched,
    Order,
    Product,
    ProductDraft,
    ProductId,
    ProductPage,
    ProductQuery,
    Session,
    WishlistEntry,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

PAGES_KEY = "storesync:cache:pages"
DETAILS_KEY = "storesync:cache:details"


def _default_storage(config: SyncConfig) -> AsyncStorage:
    if config.redis_url:
        from storesync.storage.redis import AsyncRedisStorage

        return AsyncRedisStorage.from_url(config.redis_url)
    if config.storage_path is not None:
        return AsyncFileStorage(config.storage_path)
    return AsyncMemoryStorage()


def _login_failure(exc: SyncError, fallback: str) -> str:
    """Server message for rejected credentials, else the classified message."""
    if isinstance(exc, (AuthorizationError, RequestRejectedError)):
        message = str(exc)
        return fallback if message.startswith("HTTP ") or message == "Unauthorized" else message
    return exc.user_message


class StoreSync:
    """Client-side synchronization layer for a storefront.

    Owns the session, both caches, the pending-operation guard and the local
    cart and wishlist. UI code calls into this object and subscribes to
    ``notifier`` for toast-style messages.

    Example::

        async with StoreSync.create(load_config(Path.cwd())) as store:
            await store.login("ada@example.com", "secret")
            page = await store.list_products(ProductQuery(search_term="lamp"))
            await store.add_to_cart(page.value.products[0])
    """

    def __init__(
        self,
        api: StoreApi,
        storage: AsyncStorage,
        session: SessionStore,
        catalog: CatalogReader,
        notifier: Notifier,
        *,
        persist_caches: bool = True,
    ) -> None:
        self._api = api
        self._storage = storage
        self._session = session
        self._catalog = catalog
        self._notifier = notifier
        self._persist_caches = persist_caches
        self._state = LocalState()
        self._guard = PendingOperationGuard()
        self._mutator = OptimisticMutator(
            api,
            self._state,
            self._guard,
            session,
            notifier,
            on_unauthorized=self._expire_session,
        )
        self._reconciler = Reconciler(
            api,
            catalog,
            self._state,
            session,
            notifier,
            on_unauthorized=self._expire_session,
        )

    @classmethod
    def create(
        cls,
        config: SyncConfig | None = None,
        *,
        storage: AsyncStorage | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> StoreSync:
        """Build the default stack from ``config``."""
        config = config or SyncConfig()
        storage = storage or _default_storage(config)
        session = SessionStore(storage)
        executor = RequestExecutor(config.retry_policy())
        if client is None:
            api = StoreApi.connect(
                config.base_url, executor, session, timeout=config.http_timeout
            )
        else:
            api = StoreApi(client, executor, session)
        notifier = Notifier()
        catalog = CatalogReader(
            api,
            pages=CacheStore(
                ttl=config.page_ttl, max_entries=config.page_max_entries, name="pages"
            ),
            details=CacheStore(
                ttl=config.detail_ttl,
                max_entries=config.detail_max_entries,
                name="details",
            ),
            notifier=notifier,
        )
        return cls(
            api, storage, session, catalog, notifier, persist_caches=config.persist_caches
        )

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    @property
    def session(self) -> Session | None:
        return self._session.current

    @property
    def is_admin(self) -> bool:
        return self._session.is_admin

    @property
    def cart(self) -> tuple[CartLine, ...]:
        return self._state.cart

    @property
    def cart_total(self) -> float:
        return self._state.cart_total

    @property
    def wishlist(self) -> tuple[WishlistEntry, ...]:
        return self._state.wishlist

    @property
    def wishlist_ids(self) -> frozenset[ProductId]:
        return self._state.wishlist_ids

    @property
    def catalog(self) -> CatalogReader:
        return self._catalog

    def pending(self, kind: MutationKind) -> frozenset[ProductId]:
        """Entities with a mutation in flight, for disabling their controls."""
        return self._guard.pending(kind)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def init(self) -> None:
        """Restore persisted state; reconcile if a session survived."""
        session = await self._session.restore()
        if self._persist_caches:
            await self._load_caches()
        if session is not None:
            await self._reconciler.reconcile()

    async def teardown(self) -> None:
        """Persist caches (if enabled) and release connections."""
        try:
            if self._persist_caches:
                await self._save_caches()
        finally:
            await self._api.close()
            await self._storage.disconnect()

    async def __aenter__(self) -> StoreSync:
        await self.init()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.teardown()

    async def _load_caches(self) -> None:
        rows: dict[str, Any] = {}
        for name, key in (("pages", PAGES_KEY), ("details", DETAILS_KEY)):
            raw = await self._storage.get(key)
            if raw is None:
                continue
            try:
                rows[name] = json.loads(raw)
            except ValueError as exc:
                logger.warning("Discarding corrupt cache snapshot %s: %s", key, exc)
                await self._storage.delete(key)
        restored = self._catalog.load(rows.get("pages"), rows.get("details"))
        logger.debug("Restored %d cache entries", restored)

    async def _save_caches(self) -> None:
        dump = self._catalog.dump()
        await self._storage.set(PAGES_KEY, json.dumps(dump["pages"]))
        await self._storage.set(DETAILS_KEY, json.dumps(dump["details"]))

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    async def login(self, email: str, password: str) -> ReconcileReport:
        return await self._sign_in(
            self._api.login(email, password), "Login failed. Please check your credentials."
        )

    async def signup(
        self, name: str, email: str, password: str, confirm_password: str
    ) -> ReconcileReport:
        return await self._sign_in(
            self._api.signup(name, email, password, confirm_password),
            "Signup failed. Please try again.",
        )

    async def _sign_in(
        self, request: Awaitable[Session], failure: str
    ) -> ReconcileReport:
        # Nothing from a previous identity may survive into the new one.
        self._reset_local()
        try:
            session = await request
        except SyncError as exc:
            self._notifier.error(_login_failure(exc, failure))
            raise
        await self._session.establish(session)
        self._notifier.success(f"Welcome back, {session.profile.name}!")
        return await self._reconciler.reconcile()

    async def logout(self) -> None:
        self._reset_local()
        await self._session.clear(PAGES_KEY, DETAILS_KEY)
        self._notifier.info("You have been logged out.")

    async def _expire_session(self) -> None:
        if not self._session.is_active:
            return
        logger.info("Session rejected by the server; logging out")
        self._reset_local()
        await self._session.clear(PAGES_KEY, DETAILS_KEY)
        self._notifier.warning(AuthorizationError().user_message)

    def _reset_local(self) -> None:
        self._state.reset()
        self._guard.clear()
        self._catalog.invalidate_all()

    # -------------------------------------------------------------------------
    # Catalog
    # -------------------------------------------------------------------------

    async def list_products(
        self, query: ProductQuery | None = None
    ) -> Fetched[ProductPage]:
        return await self._surface(self._catalog.list_products(query))

    async def get_product(self, product_id: ProductId) -> Fetched[Product]:
        return await self._surface(self._catalog.get_product(product_id))

    async def list_categories(self) -> Fetched[list[Category]]:
        return await self._surface(self._catalog.list_categories())

    # -------------------------------------------------------------------------
    # Cart and wishlist
    # -------------------------------------------------------------------------

    async def add_to_cart(self, item: Item) -> MutationOutcome:
        return await self._mutator.add_to_cart(item)

    async def update_quantity(
        self, product_id: ProductId, quantity: int
    ) -> MutationOutcome:
        return await self._mutator.update_quantity(product_id, quantity)

    async def remove_from_cart(self, product_id: ProductId) -> MutationOutcome:
        return await self._mutator.remove_from_cart(product_id)

    async def toggle_wishlist(self, item: Item) -> MutationOutcome:
        return await self._mutator.toggle_wishlist(item)

    async def refresh(self) -> ReconcileReport:
        """Re-pull cart and wishlist from the server."""
        return await self._reconciler.reconcile()

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    async def checkout(self) -> Order:
        return await self._surface(self._api.checkout())

    async def orders(self) -> list[Order]:
        return await self._surface(self._api.list_orders())

    async def order(self, order_id: ProductId) -> Order:
        return await self._surface(self._api.get_order(order_id))

    async def confirm_payment(self, order_id: ProductId) -> None:
        generation = self._session.generation
        await self._surface(self._api.confirm_payment(order_id))
        if generation == self._session.generation:
            self._state.replace(cart=())
        self._notifier.success("Payment successful! Your order has been placed.")

    # -------------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------------

    async def admin_products(self) -> list[Product]:
        return await self._surface(self._api.admin_list_products())

    async def admin_orders(self) -> list[Order]:
        return await self._surface(self._api.admin_list_orders())

    async def create_product(self, draft: ProductDraft) -> None:
        await self._surface(self._api.admin_create_product(draft))
        self._catalog.invalidate_all()
        self._notifier.success("Product added successfully!")

    async def update_product(self, product_id: ProductId, draft: ProductDraft) -> None:
        await self._surface(self._api.admin_update_product(product_id, draft))
        self._catalog.invalidate_all()
        self._notifier.success("Product updated successfully!")

    async def delete_product(self, product_id: ProductId) -> None:
        await self._surface(self._api.admin_delete_product(product_id))
        self._catalog.invalidate_all()
        self._notifier.success("Product deleted successfully!")

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    async def _surface(self, work: Awaitable[T]) -> T:
        """Await ``work``; classified failures become a notice and re-raise."""
        try:
            return await work
        except AuthorizationError as exc:
            if self._session.is_active:
                await self._expire_session()
            else:
                self._notifier.error(exc.user_message)
            raise
        except SyncError as exc:
            self._notifier.error(exc.user_message)
            raise
