"""Wire and persistence codecs.

Every payload entering the layer passes through a decode function here.
Shape mismatches raise ``DecodeError`` instead of defaulting to empty
values, and the ``id``/``productId`` ambiguity of the backend is resolved
to ``product_id`` so nothing past this module sees the raw field names.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from storesync.errors import DecodeError
from storesync.types import (
    CartLine,
    Category,
    Order,
    OrderItem,
    Product,
    ProductDraft,
    ProductId,
    ProductPage,
    Profile,
    Session,
    SetQuantity,
    SetWishlisted,
    WishlistEntry,
)

_MISSING = object()


def _as_mapping(obj: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(obj, Mapping):
        raise DecodeError(f"Expected {what} object, got {type(obj).__name__}")
    return obj


def _as_list(obj: Any, what: str) -> list[Any]:
    if not isinstance(obj, list):
        raise DecodeError(f"Expected {what} array, got {type(obj).__name__}")
    return obj


def _field(obj: Mapping[str, Any], key: str, what: str, default: Any = _MISSING) -> Any:
    value = obj.get(key, _MISSING)
    if value is _MISSING or value is None:
        if default is _MISSING:
            raise DecodeError(f"{what} is missing required field {key!r}")
        return default
    return value


def _number(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError(f"Field {key!r} must be a number, got {value!r}")
    return float(value)


def _optional_number(value: Any, key: str) -> float | None:
    return None if value is None else _number(value, key)


def _integer(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"Field {key!r} must be an integer, got {value!r}")
    return value


def _text(value: Any, key: str) -> str:
    if not isinstance(value, str):
        raise DecodeError(f"Field {key!r} must be a string, got {value!r}")
    return value


def _optional_text(value: Any, key: str) -> str | None:
    return None if value is None else _text(value, key)


def normalize_product_id(raw: Any) -> ProductId:
    """Canonicalise a product identifier. Digit-only strings become ints."""
    if isinstance(raw, bool):
        raise DecodeError(f"Invalid product id: {raw!r}")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip():
        raw = raw.strip()
        return int(raw) if raw.isdigit() else raw
    raise DecodeError(f"Invalid product id: {raw!r}")


def _line_product_id(obj: Mapping[str, Any], what: str) -> ProductId:
    # Cart DTOs carry productId; older payloads only have id.
    raw = obj.get("productId")
    if raw is None:
        raw = obj.get("id")
    if raw is None:
        raise DecodeError(f"{what} has neither 'productId' nor 'id'")
    return normalize_product_id(raw)


# -----------------------------------------------------------------------------
# Catalog
# -----------------------------------------------------------------------------


def decode_product(obj: Any) -> Product:
    data = _as_mapping(obj, "product")
    category = data.get("category")
    category_id = data.get("categoryId")
    category_name = data.get("categoryName")
    if isinstance(category, Mapping):
        category_id = category.get("id", category_id)
        category_name = category.get("name", category_name)
    reviews = data.get("reviews")
    return Product(
        product_id=_line_product_id(data, "product"),
        name=_text(_field(data, "name", "product"), "name"),
        price=_number(_field(data, "price", "product"), "price"),
        original_price=_optional_number(data.get("originalPrice"), "originalPrice"),
        image_url=_optional_text(data.get("imageUrl"), "imageUrl"),
        description=_optional_text(data.get("description"), "description"),
        category_id=(
            normalize_product_id(category_id) if category_id is not None else None
        ),
        category_name=_optional_text(category_name, "categoryName"),
        rating=_optional_number(data.get("rating"), "rating"),
        reviews=_integer(reviews, "reviews") if reviews is not None else None,
        in_stock=bool(data.get("inStock", True)),
        is_new=bool(data.get("isNew", False)),
        on_sale=bool(data.get("onSale", False)),
    )


def encode_product(product: Product) -> dict[str, Any]:
    return {
        "id": product.product_id,
        "name": product.name,
        "price": product.price,
        "originalPrice": product.original_price,
        "imageUrl": product.image_url,
        "description": product.description,
        "categoryId": product.category_id,
        "categoryName": product.category_name,
        "rating": product.rating,
        "reviews": product.reviews,
        "inStock": product.in_stock,
        "isNew": product.is_new,
        "onSale": product.on_sale,
    }


def decode_product_list(obj: Any) -> list[Product]:
    return [decode_product(item) for item in _as_list(obj, "product")]


def decode_product_page(obj: Any) -> ProductPage:
    data = _as_mapping(obj, "product page")
    content = _as_list(_field(data, "content", "product page"), "content")
    return ProductPage(
        products=tuple(decode_product(item) for item in content),
        total_pages=_integer(_field(data, "totalPages", "product page"), "totalPages"),
        total_elements=_integer(
            _field(data, "totalElements", "product page"), "totalElements"
        ),
    )


def encode_product_page(page: ProductPage) -> dict[str, Any]:
    return {
        "content": [encode_product(p) for p in page.products],
        "totalPages": page.total_pages,
        "totalElements": page.total_elements,
    }


def decode_category(obj: Any) -> Category:
    data = _as_mapping(obj, "category")
    count = data.get("productCount", data.get("count"))
    return Category(
        id=normalize_product_id(_field(data, "id", "category")),
        name=_text(_field(data, "name", "category"), "name"),
        product_count=_integer(count, "productCount") if count is not None else None,
    )


def encode_category(category: Category) -> dict[str, Any]:
    return {
        "id": category.id,
        "name": category.name,
        "productCount": category.product_count,
    }


def decode_categories(obj: Any) -> list[Category]:
    return [decode_category(item) for item in _as_list(obj, "category")]


def encode_listing(value: ProductPage | list[Category]) -> dict[str, Any]:
    """Encode a page-cache value (a product page or the category list)."""
    if isinstance(value, ProductPage):
        return {"kind": "page", "page": encode_product_page(value)}
    return {"kind": "categories", "items": [encode_category(c) for c in value]}


def decode_listing(obj: Any) -> ProductPage | list[Category]:
    data = _as_mapping(obj, "listing")
    kind = data.get("kind")
    if kind == "page":
        return decode_product_page(data.get("page"))
    if kind == "categories":
        return decode_categories(data.get("items"))
    raise DecodeError(f"Unknown listing kind: {kind!r}")


def encode_product_draft(draft: ProductDraft) -> dict[str, Any]:
    original = draft.original_price if draft.original_price else draft.price
    return {
        "name": draft.name,
        "description": draft.description,
        "categoryId": draft.category_id,
        "price": float(draft.price),
        "originalPrice": float(original),
        "imageUrl": draft.image_url,
        "inStock": draft.in_stock,
        "isNew": draft.is_new,
        "onSale": draft.on_sale,
    }


# -----------------------------------------------------------------------------
# Cart and wishlist
# -----------------------------------------------------------------------------


def decode_cart_line(obj: Any) -> CartLine:
    data = _as_mapping(obj, "cart line")
    quantity = _integer(_field(data, "quantity", "cart line"), "quantity")
    if quantity < 1:
        raise DecodeError(f"Cart line quantity must be >= 1, got {quantity}")
    return CartLine(
        product_id=_line_product_id(data, "cart line"),
        quantity=quantity,
        name=_text(data.get("name") or "", "name"),
        price=_number(data.get("price") or 0, "price"),
        image_url=_optional_text(data.get("imageUrl"), "imageUrl"),
    )


def decode_cart(obj: Any) -> list[CartLine]:
    return [decode_cart_line(item) for item in _as_list(obj, "cart")]


def decode_wishlist_entry(obj: Any) -> WishlistEntry:
    data = _as_mapping(obj, "wishlist entry")
    return WishlistEntry(
        product_id=_line_product_id(data, "wishlist entry"),
        name=_text(data.get("name") or "", "name"),
        price=_number(data.get("price") or 0, "price"),
        image_url=_optional_text(data.get("imageUrl"), "imageUrl"),
    )


def decode_wishlist(obj: Any) -> list[WishlistEntry]:
    return [decode_wishlist_entry(item) for item in _as_list(obj, "wishlist")]


def encode_upsert(intent: SetQuantity | SetWishlisted) -> dict[str, Any]:
    """Map an upsert intent onto the shared ``POST /cart`` body."""
    if isinstance(intent, SetQuantity):
        if intent.quantity < 1:
            raise ValueError("SetQuantity requires quantity >= 1; use RemoveLine")
        return {
            "productId": intent.product_id,
            "quantity": intent.quantity,
            "isWishlisted": False,
        }
    return {
        "productId": intent.product_id,
        "quantity": 1,
        "isWishlisted": intent.wishlisted,
    }


# -----------------------------------------------------------------------------
# Identity
# -----------------------------------------------------------------------------


def _decode_roles(raw: Any) -> tuple[str, ...]:
    if raw is None:
        return ()
    return tuple(_text(role, "roles") for role in _as_list(raw, "roles"))


def decode_auth_response(obj: Any, email: str) -> Session:
    """Build a session from ``{token, id, name, roles}``."""
    data = _as_mapping(obj, "auth response")
    token = _text(_field(data, "token", "auth response"), "token")
    if not token:
        raise DecodeError("auth response has an empty token")
    return Session(
        token=token,
        profile=Profile(
            id=normalize_product_id(_field(data, "id", "auth response")),
            email=_text(data.get("email") or email, "email"),
            name=_text(_field(data, "name", "auth response"), "name"),
            roles=_decode_roles(data.get("roles")),
        ),
    )


def encode_session(session: Session) -> dict[str, Any]:
    profile = session.profile
    return {
        "token": session.token,
        "profile": {
            "id": profile.id,
            "email": profile.email,
            "name": profile.name,
            "roles": list(profile.roles),
        },
    }


def decode_session(obj: Any) -> Session:
    data = _as_mapping(obj, "session")
    token = _text(_field(data, "token", "session"), "token")
    if not token:
        raise DecodeError("session has an empty token")
    profile = _as_mapping(_field(data, "profile", "session"), "profile")
    return Session(
        token=token,
        profile=Profile(
            id=normalize_product_id(_field(profile, "id", "profile")),
            email=_text(_field(profile, "email", "profile"), "email"),
            name=_text(_field(profile, "name", "profile"), "name"),
            roles=_decode_roles(profile.get("roles")),
        ),
    )


# -----------------------------------------------------------------------------
# Orders
# -----------------------------------------------------------------------------


def decode_order(obj: Any) -> Order:
    data = _as_mapping(obj, "order")
    items = []
    for raw in _as_list(data.get("orderItems") or [], "orderItems"):
        item = _as_mapping(raw, "order item")
        items.append(
            OrderItem(
                product_id=_line_product_id(item, "order item"),
                product_name=_text(
                    item.get("productName") or item.get("name") or "", "productName"
                ),
                quantity=_integer(_field(item, "quantity", "order item"), "quantity"),
                price=_number(_field(item, "price", "order item"), "price"),
                image_url=_optional_text(item.get("imageUrl"), "imageUrl"),
            )
        )
    return Order(
        id=normalize_product_id(_field(data, "id", "order")),
        total_amount=_number(_field(data, "totalAmount", "order"), "totalAmount"),
        order_date=_optional_text(data.get("orderDate"), "orderDate"),
        status=_optional_text(data.get("status"), "status"),
        user_name=_optional_text(data.get("userName"), "userName"),
        items=tuple(items),
    )


def decode_orders(obj: Any) -> list[Order]:
    """Decode an order list, newest first."""
    orders = [decode_order(item) for item in _as_list(obj, "order")]
    orders.sort(key=lambda order: order.order_date or "", reverse=True)
    return orders
