"""Tests for wire and persistence codecs."""

import pytest

from conftest import ALICE, page_json, product_json
from storesync import (
    CartLine,
    Category,
    DecodeError,
    ProductDraft,
    ProductQuery,
    SetQuantity,
    SetWishlisted,
)
from storesync.codec import (
    decode_auth_response,
    decode_cart,
    decode_listing,
    decode_orders,
    decode_product,
    decode_product_page,
    decode_session,
    decode_wishlist,
    encode_listing,
    encode_product_draft,
    encode_session,
    encode_upsert,
    normalize_product_id,
)


class TestProducts:
    """Tests for product decoding."""

    def test_decode_product(self) -> None:
        """Test decoding a full product payload."""
        product = decode_product(
            product_json(
                3,
                originalPrice=15.0,
                category={"id": 2, "name": "Lamps"},
                reviews=12,
                onSale=True,
            )
        )
        assert product.product_id == 3
        assert product.price == 10.0
        assert product.original_price == 15.0
        assert product.category_id == 2
        assert product.category_name == "Lamps"
        assert product.reviews == 12
        assert product.on_sale
        assert product.in_stock

    def test_numeric_string_ids_normalised(self) -> None:
        """Test that "12" and 12 are the same product."""
        assert decode_product(product_json(0, id="12")).product_id == 12
        assert normalize_product_id("sku-9") == "sku-9"

    def test_missing_required_field(self) -> None:
        """Test that a product without a price is rejected, not defaulted."""
        data = product_json(1)
        del data["price"]
        with pytest.raises(DecodeError, match="price"):
            decode_product(data)

    def test_wrong_type(self) -> None:
        """Test that a string price is rejected."""
        with pytest.raises(DecodeError):
            decode_product(product_json(1, price="10"))

    def test_page(self) -> None:
        """Test decoding a listing page."""
        page = decode_product_page(page_json(1, 2, total_pages=4))
        assert [p.product_id for p in page.products] == [1, 2]
        assert page.total_pages == 4
        assert page.total_elements == 2

    def test_page_requires_counts(self) -> None:
        """Test that a page without totalPages is a shape mismatch."""
        with pytest.raises(DecodeError, match="totalPages"):
            decode_product_page({"content": [], "totalElements": 0})

    def test_page_must_be_object(self) -> None:
        """Test that a bare list is not a page."""
        with pytest.raises(DecodeError):
            decode_product_page([])

    def test_listing_round_trip(self) -> None:
        """Test the tagged encoding used for page-cache snapshots."""
        page = decode_product_page(page_json(5))
        assert decode_listing(encode_listing(page)) == page
        categories = [Category(id=1, name="Lamps", product_count=3)]
        assert decode_listing(encode_listing(categories)) == categories

    def test_unknown_listing_kind(self) -> None:
        """Test that an unrecognised snapshot is rejected."""
        with pytest.raises(DecodeError):
            decode_listing({"kind": "other"})


class TestCart:
    """Tests for cart and wishlist decoding."""

    def test_product_id_preferred_over_id(self) -> None:
        """Test that cart DTOs resolve productId before the row id."""
        lines = decode_cart(
            [
                {"id": 900, "productId": 4, "quantity": 2, "name": "Lamp", "price": 5},
                {"id": 6, "quantity": 1},
            ]
        )
        assert lines == [
            CartLine(product_id=4, quantity=2, name="Lamp", price=5.0),
            CartLine(product_id=6, quantity=1),
        ]

    def test_line_without_any_id(self) -> None:
        """Test that a line with no identifier is rejected."""
        with pytest.raises(DecodeError):
            decode_cart([{"quantity": 1}])

    def test_zero_quantity_rejected(self) -> None:
        """Test that a non-positive quantity is a shape mismatch."""
        with pytest.raises(DecodeError):
            decode_cart([{"productId": 1, "quantity": 0}])

    def test_wishlist(self) -> None:
        """Test decoding wishlist entries."""
        entries = decode_wishlist([{"productId": "3", "name": "Rug", "price": 20}])
        assert entries[0].product_id == 3
        assert entries[0].name == "Rug"

    def test_cart_must_be_list(self) -> None:
        """Test that a non-list cart is rejected."""
        with pytest.raises(DecodeError):
            decode_cart({"items": []})


class TestIntents:
    """Tests for mutation intent encoding."""

    def test_set_quantity(self) -> None:
        """Test the body for a quantity change."""
        assert encode_upsert(SetQuantity(4, 3)) == {
            "productId": 4,
            "quantity": 3,
            "isWishlisted": False,
        }

    def test_set_wishlisted(self) -> None:
        """Test the body for a wishlist toggle."""
        assert encode_upsert(SetWishlisted(4, True)) == {
            "productId": 4,
            "quantity": 1,
            "isWishlisted": True,
        }

    def test_quantity_below_one_is_not_an_upsert(self) -> None:
        """Test that zero quantities must go through RemoveLine."""
        with pytest.raises(ValueError):
            encode_upsert(SetQuantity(4, 0))

    def test_draft_original_price_defaults_to_price(self) -> None:
        """Test the admin product payload."""
        draft = ProductDraft(
            name="Lamp", description="Bright", category_id=2, price=30, image_url="/l.jpg"
        )
        body = encode_product_draft(draft)
        assert body["originalPrice"] == 30.0
        assert body["categoryId"] == 2
        assert body["isNew"] is True


class TestIdentity:
    """Tests for session payloads."""

    def test_auth_response(self) -> None:
        """Test building a session from the login response."""
        session = decode_auth_response(
            {"token": "t", "id": 7, "name": "Alice", "roles": ["ROLE_ADMIN"]},
            "alice@example.com",
        )
        assert session.token == "t"
        assert session.profile.email == "alice@example.com"
        assert session.is_admin

    def test_auth_response_without_token(self) -> None:
        """Test that a login response without a token is rejected."""
        with pytest.raises(DecodeError):
            decode_auth_response({"id": 7, "name": "Alice"}, "a@example.com")

    def test_session_round_trip(self) -> None:
        """Test the persisted session form."""
        assert decode_session(encode_session(ALICE)) == ALICE

    def test_session_without_profile(self) -> None:
        """Test that a token without a profile is not a session."""
        with pytest.raises(DecodeError):
            decode_session({"token": "t"})


class TestOrders:
    """Tests for order decoding."""

    def test_newest_first(self) -> None:
        """Test that order lists are sorted by date, newest first."""
        orders = decode_orders(
            [
                {"id": 1, "totalAmount": 10, "orderDate": "2024-01-01T10:00:00"},
                {"id": 2, "totalAmount": 20, "orderDate": "2024-03-01T10:00:00"},
                {
                    "id": 3,
                    "totalAmount": 30,
                    "orderDate": "2024-02-01T10:00:00",
                    "orderItems": [
                        {"productId": 5, "productName": "Lamp", "quantity": 1, "price": 30}
                    ],
                },
            ]
        )
        assert [o.id for o in orders] == [2, 3, 1]
        assert orders[1].items[0].product_name == "Lamp"


class TestQueryParams:
    """Tests for ProductQuery serialisation."""

    def test_defaults(self) -> None:
        """Test that unset filters are omitted."""
        assert ProductQuery().to_params() == {"page": 0, "size": 9, "sort": "rating-desc"}

    def test_filters(self) -> None:
        """Test that set filters use the backend's names."""
        params = ProductQuery(
            search_term="lamp", category_id=2, max_price=50, on_sale=True
        ).to_params()
        assert params["searchTerm"] == "lamp"
        assert params["categoryId"] == 2
        assert params["maxPrice"] == 50
        assert params["onSale"] == "true"
        assert "isNew" not in params
