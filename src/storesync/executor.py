"""Request executor with timeouts, error classification and backoff."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from storesync.duration import to_seconds
from storesync.errors import (
    AuthorizationError,
    NetworkError,
    RequestRejectedError,
    RequestTimeoutError,
    ServerError,
    SyncError,
    TransientError,
)
from storesync.types import Duration

logger = logging.getLogger(__name__)

RequestFn = Callable[[], Awaitable[httpx.Response]]


class wait_capped_jitter(wait_exponential):
    """Exponential wait stretched by up to ``jitter`` and capped at ``max``."""

    def __init__(self, multiplier: float, max: float, jitter: float) -> None:
        super().__init__(multiplier=multiplier, max=max)
        self.jitter = jitter

    def __call__(self, retry_state: RetryCallState) -> float:
        delay = super().__call__(retry_state)
        return min(delay * (1 + random.uniform(0, self.jitter)), self.max)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retry configuration.

    ``max_retries`` is the total number of attempts made before the last
    error is returned to the caller. The wait before attempt ``n`` is
    ``min(base_delay * 2**(n-2), max_delay)``.
    """

    max_retries: int = 3
    base_delay: Duration = "500ms"
    max_delay: Duration = "8s"
    timeout: Duration = "45s"
    jitter: float = 0.0

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if not 0 <= self.jitter <= 1:
            raise ValueError("jitter must be between 0 and 1")

    def wait(self) -> wait_exponential:
        """Tenacity wait strategy for this policy."""
        base = to_seconds(self.base_delay)
        cap = to_seconds(self.max_delay)
        if self.jitter:
            return wait_capped_jitter(multiplier=base, max=cap, jitter=self.jitter)
        return wait_exponential(multiplier=base, max=cap)


def _body_message(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        for field in ("message", "error"):
            value = body.get(field)
            if isinstance(value, str) and value:
                return value
    return None


def server_message(response: httpx.Response) -> str:
    """Extract a human-readable error from a failed response."""
    return _body_message(response) or f"HTTP {response.status_code}"


def classify_response(response: httpx.Response) -> SyncError | None:
    """Return the classified error for a non-success response, else None."""
    if response.is_success:
        return None
    status = response.status_code
    message = server_message(response)
    if status == 401:
        return AuthorizationError(message)
    if status >= 500:
        return ServerError(status, message, user_message=_body_message(response))
    if status >= 400:
        return RequestRejectedError(status, message)
    # 1xx/3xx reaching us means redirects were not followed.
    return RequestRejectedError(status, message)


class RequestExecutor:
    """Issues requests with a per-attempt timeout and bounded retries.

    Only transient failures (timeouts, broken connections, HTTP 5xx) are
    retried. The executor never touches cache or session state.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._policy = policy or RetryPolicy()
        self._sleep = sleep

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def _attempt(self, request: RequestFn) -> httpx.Response:
        try:
            response = await asyncio.wait_for(
                request(), timeout=to_seconds(self._policy.timeout)
            )
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise RequestTimeoutError(f"Request timed out: {exc!r}") from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"Network error: {exc!r}") from exc
        except httpx.HTTPError as exc:
            # Undecodable bodies, redirect loops: retrying will not help.
            raise SyncError(f"Request failed: {exc!r}") from exc

        error = classify_response(response)
        if error is not None:
            raise error
        return response

    async def execute(self, request: RequestFn) -> httpx.Response:
        """Run ``request`` until it succeeds, fails terminally, or attempts run out."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._policy.max_retries),
            wait=self._policy.wait(),
            retry=retry_if_exception_type(TransientError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )
        try:
            return await retrying(self._attempt, request)
        except TransientError as exc:
            logger.warning(
                "Giving up after %d attempts: %s", self._policy.max_retries, exc
            )
            raise
