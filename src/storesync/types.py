"""Core types for the storesync layer."""

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")
V = TypeVar("V")

# Canonical product identifier. Numeric ids from the wire stay ints.
ProductId = int | str

# Duration type alias
Duration = str | int | timedelta  # "30s", "5m", "2h", "1d", ms or timedelta

ADMIN_ROLE = "ROLE_ADMIN"


class CacheHit(Enum):
    """Outcome of a cache lookup."""

    FRESH = "fresh"
    STALE = "stale"
    MISS = "miss"


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[V]):
    """A cached value with its insertion time (seconds, from the store clock)."""

    value: V
    inserted_at: float


@dataclass(frozen=True, slots=True)
class Lookup(Generic[V]):
    """Result of ``CacheStore.lookup``."""

    hit: CacheHit
    value: V | None = None

    @property
    def is_fresh(self) -> bool:
        return self.hit is CacheHit.FRESH

    @property
    def found(self) -> bool:
        return self.hit is not CacheHit.MISS


@dataclass(frozen=True, slots=True)
class Fetched(Generic[T]):
    """A value served by a read path; ``stale`` marks a degraded fallback."""

    value: T
    stale: bool = False


# -----------------------------------------------------------------------------
# Catalog
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Category:
    id: ProductId
    name: str
    product_count: int | None = None


@dataclass(frozen=True, slots=True)
class Product:
    product_id: ProductId
    name: str
    price: float
    original_price: float | None = None
    image_url: str | None = None
    description: str | None = None
    category_id: ProductId | None = None
    category_name: str | None = None
    rating: float | None = None
    reviews: int | None = None
    in_stock: bool = True
    is_new: bool = False
    on_sale: bool = False


@dataclass(frozen=True, slots=True)
class ProductPage:
    products: tuple[Product, ...]
    total_pages: int
    total_elements: int


@dataclass(frozen=True, slots=True)
class ProductQuery:
    """Listing filters. Unset optional filters are left out of the request."""

    page: int = 0
    size: int = 9
    sort: str = "rating-desc"
    search_term: str | None = None
    category_id: ProductId | None = None
    min_price: float | None = None
    max_price: float | None = None
    is_new: bool = False
    on_sale: bool = False

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {
            "page": self.page,
            "size": self.size,
            "sort": self.sort,
        }
        if self.search_term:
            params["searchTerm"] = self.search_term
        if self.category_id is not None:
            params["categoryId"] = self.category_id
        if self.min_price is not None:
            params["minPrice"] = self.min_price
        if self.max_price is not None:
            params["maxPrice"] = self.max_price
        if self.is_new:
            params["isNew"] = "true"
        if self.on_sale:
            params["onSale"] = "true"
        return params


@dataclass(frozen=True, slots=True)
class ProductDraft:
    """Payload for admin product create/update."""

    name: str
    description: str
    category_id: ProductId
    price: float
    image_url: str
    original_price: float | None = None
    in_stock: bool = True
    is_new: bool = True
    on_sale: bool = False


# -----------------------------------------------------------------------------
# Identity
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Profile:
    id: ProductId
    email: str
    name: str
    roles: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Session:
    token: str
    profile: Profile

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in self.profile.roles


# -----------------------------------------------------------------------------
# Cart and wishlist
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CartLine:
    product_id: ProductId
    quantity: int
    name: str = ""
    price: float = 0.0
    image_url: str | None = None

    @property
    def total(self) -> float:
        return self.price * self.quantity


@dataclass(frozen=True, slots=True)
class WishlistEntry:
    product_id: ProductId
    name: str = ""
    price: float = 0.0
    image_url: str | None = None


@dataclass(frozen=True, slots=True)
class SetQuantity:
    """Set a cart line's quantity (>= 1)."""

    product_id: ProductId
    quantity: int


@dataclass(frozen=True, slots=True)
class SetWishlisted:
    """Set wishlist membership to the intended new state."""

    product_id: ProductId
    wishlisted: bool


@dataclass(frozen=True, slots=True)
class RemoveLine:
    """Drop a cart line entirely."""

    product_id: ProductId


MutationIntent = SetQuantity | SetWishlisted | RemoveLine


# -----------------------------------------------------------------------------
# Orders
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class OrderItem:
    product_id: ProductId
    product_name: str
    quantity: int
    price: float
    image_url: str | None = None


@dataclass(frozen=True, slots=True)
class Order:
    id: ProductId
    total_amount: float
    order_date: str | None = None
    status: str | None = None
    user_name: str | None = None
    items: tuple[OrderItem, ...] = field(default_factory=tuple)
