"""Typed client for the storefront's remote API."""

from __future__ import annotations

from typing import Any

import httpx

from storesync.codec import (
    decode_auth_response,
    decode_cart,
    decode_categories,
    decode_order,
    decode_orders,
    decode_product,
    decode_product_list,
    decode_product_page,
    decode_wishlist,
    encode_product_draft,
    encode_upsert,
)
from storesync.errors import AuthRequiredError, DecodeError
from storesync.executor import RequestExecutor
from storesync.session import SessionStore
from storesync.types import (
    CartLine,
    Category,
    MutationIntent,
    Order,
    Product,
    ProductDraft,
    ProductId,
    ProductPage,
    ProductQuery,
    RemoveLine,
    Session,
    WishlistEntry,
)


class StoreApi:
    """Remote API surface, one method per endpoint.

    Every call goes through the request executor. Authenticated calls
    attach the session's bearer token and fail locally with
    ``AuthRequiredError`` when there is none.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        executor: RequestExecutor,
        session: SessionStore,
    ) -> None:
        self._client = client
        self._executor = executor
        self._session = session

    @classmethod
    def connect(
        cls,
        base_url: str,
        executor: RequestExecutor,
        session: SessionStore,
        *,
        timeout: float = 45.0,
    ) -> StoreApi:
        client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )
        return cls(client, executor, session)

    def _auth_headers(self) -> dict[str, str]:
        token = self._session.token
        if not token:
            raise AuthRequiredError()
        return {"Authorization": f"Bearer {token}"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        auth: bool = False,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        headers = self._auth_headers() if auth else {}
        return await self._executor.execute(
            lambda: self._client.request(
                method, path, params=params, json=body, headers=headers
            )
        )

    async def _json(
        self,
        method: str,
        path: str,
        *,
        auth: bool = False,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        response = await self._request(
            method, path, auth=auth, params=params, body=body
        )
        try:
            return response.json()
        except ValueError as exc:
            raise DecodeError(f"{method} {path}: response is not JSON") from exc

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    # -------------------------------------------------------------------------
    # Catalog
    # -------------------------------------------------------------------------

    async def list_products(self, query: ProductQuery) -> ProductPage:
        return decode_product_page(
            await self._json("GET", "/products", params=query.to_params())
        )

    async def get_product(self, product_id: ProductId) -> Product:
        return decode_product(await self._json("GET", f"/products/{product_id}"))

    async def list_categories(self) -> list[Category]:
        return decode_categories(await self._json("GET", "/categories"))

    # -------------------------------------------------------------------------
    # Cart and wishlist
    # -------------------------------------------------------------------------

    async def fetch_cart(self) -> list[CartLine]:
        return decode_cart(await self._json("GET", "/cart", auth=True))

    async def fetch_wishlist(self) -> list[WishlistEntry]:
        return decode_wishlist(await self._json("GET", "/cart/wishlist", auth=True))

    async def send(self, intent: MutationIntent) -> None:
        """Send a mutation intent to the authoritative backend."""
        if isinstance(intent, RemoveLine):
            await self._request("DELETE", f"/cart/{intent.product_id}", auth=True)
            return
        await self._request("POST", "/cart", auth=True, body=encode_upsert(intent))

    # -------------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------------

    async def login(self, email: str, password: str) -> Session:
        data = await self._json(
            "POST", "/auth/login", body={"email": email, "password": password}
        )
        return decode_auth_response(data, email)

    async def signup(
        self, name: str, email: str, password: str, confirm_password: str
    ) -> Session:
        data = await self._json(
            "POST",
            "/auth/signup",
            body={
                "name": name,
                "email": email,
                "password": password,
                "confirmPassword": confirm_password,
            },
        )
        return decode_auth_response(data, email)

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    async def checkout(self) -> Order:
        return decode_order(await self._json("POST", "/checkout", auth=True, body={}))

    async def list_orders(self) -> list[Order]:
        return decode_orders(await self._json("GET", "/orders", auth=True))

    async def get_order(self, order_id: ProductId) -> Order:
        return decode_order(await self._json("GET", f"/orders/{order_id}", auth=True))

    async def confirm_payment(self, order_id: ProductId) -> None:
        await self._request("POST", f"/payment/confirm/{order_id}", auth=True, body={})

    # -------------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------------

    async def admin_list_products(self) -> list[Product]:
        return decode_product_list(await self._json("GET", "/admin/products", auth=True))

    async def admin_create_product(self, draft: ProductDraft) -> None:
        await self._request(
            "POST", "/admin/products", auth=True, body=encode_product_draft(draft)
        )

    async def admin_update_product(
        self, product_id: ProductId, draft: ProductDraft
    ) -> None:
        await self._request(
            "PUT",
            f"/admin/products/{product_id}",
            auth=True,
            body=encode_product_draft(draft),
        )

    async def admin_delete_product(self, product_id: ProductId) -> None:
        await self._request("DELETE", f"/admin/products/{product_id}", auth=True)

    async def admin_list_orders(self) -> list[Order]:
        return decode_orders(await self._json("GET", "/admin/orders", auth=True))
