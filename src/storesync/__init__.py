"""storesync - Client-side synchronization layer for storefront APIs."""

from contextlib import suppress

# Remote API and request handling
from storesync.api import StoreApi
from storesync.cache import CacheStore, make_key
from storesync.catalog import CatalogReader
from storesync.config import SyncConfig, load_config

# Duration parsing
from storesync.duration import parse_duration

# Errors
from storesync.errors import (
    AuthorizationError,
    AuthRequiredError,
    DecodeError,
    NetworkError,
    RequestRejectedError,
    RequestTimeoutError,
    ServerError,
    SyncError,
    TransientError,
)
from storesync.executor import RequestExecutor, RetryPolicy
from storesync.guard import MutationKind, PendingOperationGuard
from storesync.mutator import MutationOutcome, MutationStatus, OptimisticMutator
from storesync.notices import Notice, NoticeCollector, NoticeLevel, Notifier
from storesync.reconciler import Reconciler, ReconcileReport
from storesync.session import SessionStore

# Storage (async only)
from storesync.storage import AsyncFileStorage, AsyncMemoryStorage, AsyncStorage
from storesync.sync import StoreSync

# Core types
from storesync.types import (
    CartLine,
    Category,
    Duration,
    Fetched,
    Order,
    OrderItem,
    Product,
    ProductDraft,
    ProductPage,
    ProductQuery,
    Profile,
    RemoveLine,
    Session,
    SetQuantity,
    SetWishlisted,
    WishlistEntry,
)

# Optional storage imports - only available when dependencies are installed
with suppress(ImportError):
    from storesync.storage import AsyncRedisStorage

__version__ = "0.1.0"

__all__ = [
    "AsyncFileStorage",
    "AsyncMemoryStorage",
    "AsyncRedisStorage",
    "AsyncStorage",
    "AuthRequiredError",
    "AuthorizationError",
    "CacheStore",
    "CartLine",
    "CatalogReader",
    "Category",
    "DecodeError",
    "Duration",
    "Fetched",
    "MutationKind",
    "MutationOutcome",
    "MutationStatus",
    "NetworkError",
    "Notice",
    "NoticeCollector",
    "NoticeLevel",
    "Notifier",
    "OptimisticMutator",
    "Order",
    "OrderItem",
    "PendingOperationGuard",
    "Product",
    "ProductDraft",
    "ProductPage",
    "ProductQuery",
    "Profile",
    "ReconcileReport",
    "Reconciler",
    "RemoveLine",
    "RequestExecutor",
    "RequestRejectedError",
    "RequestTimeoutError",
    "RetryPolicy",
    "ServerError",
    "Session",
    "SessionStore",
    "SetQuantity",
    "SetWishlisted",
    "StoreApi",
    "StoreSync",
    "SyncConfig",
    "SyncError",
    "TransientError",
    "WishlistEntry",
    "load_config",
    "make_key",
    "parse_duration",
]
