"""Shared pytest fixtures."""

from typing import Any

import httpx
import pytest
import respx

from storesync import (
    AsyncMemoryStorage,
    CacheStore,
    CatalogReader,
    NoticeCollector,
    Notifier,
    Product,
    Profile,
    RequestExecutor,
    RetryPolicy,
    Session,
    SessionStore,
    StoreApi,
)

BASE_URL = "https://api.test/api"

ALICE = Session(
    token="token-alice",
    profile=Profile(id=7, email="alice@example.com", name="Alice", roles=("ROLE_USER",)),
)


class FakeClock:
    """Manually advanced clock (seconds)."""

    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Stand-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_product(product_id: int, name: str = "", price: float = 10.0) -> Product:
    return Product(
        product_id=product_id,
        name=name or f"Product {product_id}",
        price=price,
        image_url=f"/img/{product_id}.jpg",
    )


def product_json(product_id: int, **overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": product_id,
        "name": f"Product {product_id}",
        "price": 10.0,
        "imageUrl": f"/img/{product_id}.jpg",
        "rating": 4.5,
    }
    data.update(overrides)
    return data


def page_json(*product_ids: int, total_pages: int = 1) -> dict[str, Any]:
    return {
        "content": [product_json(pid) for pid in product_ids],
        "totalPages": total_pages,
        "totalElements": len(product_ids),
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def storage() -> AsyncMemoryStorage:
    """Create a fresh AsyncMemoryStorage for each test."""
    return AsyncMemoryStorage()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def notices(notifier: Notifier) -> NoticeCollector:
    """Collector subscribed to the shared notifier."""
    collector = NoticeCollector()
    notifier.subscribe(collector)
    return collector


@pytest.fixture
def session_store(storage: AsyncMemoryStorage) -> SessionStore:
    return SessionStore(storage)


@pytest.fixture
async def signed_in(session_store: SessionStore) -> SessionStore:
    """Session store with Alice logged in."""
    await session_store.establish(ALICE)
    return session_store


@pytest.fixture
def executor(sleeper: RecordingSleep) -> RequestExecutor:
    return RequestExecutor(
        RetryPolicy(max_retries=3, base_delay="10ms", max_delay="40ms"),
        sleep=sleeper,
    )


@pytest.fixture
def remote():
    """respx router for the fake backend; unmatched requests fail the test."""
    with respx.mock(base_url=BASE_URL, assert_all_called=False) as mock:
        yield mock


@pytest.fixture
async def http_client():
    async with httpx.AsyncClient(base_url=BASE_URL) as client:
        yield client


@pytest.fixture
def api(
    http_client: httpx.AsyncClient,
    executor: RequestExecutor,
    session_store: SessionStore,
) -> StoreApi:
    return StoreApi(http_client, executor, session_store)


@pytest.fixture
def catalog(api: StoreApi, clock: FakeClock, notifier: Notifier) -> CatalogReader:
    return CatalogReader(
        api,
        pages=CacheStore(ttl="5m", max_entries=20, clock=clock, name="pages"),
        details=CacheStore(ttl="10m", max_entries=50, clock=clock, name="details"),
        notifier=notifier,
    )
