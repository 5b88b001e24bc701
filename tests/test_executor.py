"""Tests for the request executor."""

import asyncio

import httpx
import pytest
import respx

from conftest import RecordingSleep
from storesync import (
    AuthorizationError,
    NetworkError,
    RequestExecutor,
    RequestRejectedError,
    RequestTimeoutError,
    RetryPolicy,
    ServerError,
    SyncError,
)
from storesync.errors import GENERIC_MESSAGE
from storesync.executor import classify_response, server_message


class TestRetryPolicy:
    """Tests for backoff calculation."""

    @respx.mock
    async def test_exponential_backoff_is_capped(self, sleeper: RecordingSleep) -> None:
        """Test that the wait doubles per attempt and never exceeds max_delay."""
        executor = RequestExecutor(
            RetryPolicy(max_retries=5, base_delay="500ms", max_delay="1s"),
            sleep=sleeper,
        )
        respx.get("https://api.test/down").mock(return_value=httpx.Response(503))
        async with httpx.AsyncClient() as client:
            with pytest.raises(ServerError):
                await executor.execute(lambda: client.get("https://api.test/down"))

        assert sleeper.delays == [0.5, 1.0, 1.0, 1.0]

    @respx.mock
    async def test_jitter_stays_within_bounds(self, sleeper: RecordingSleep) -> None:
        """Test that jitter only lengthens the wait, up to the cap."""
        executor = RequestExecutor(
            RetryPolicy(max_retries=4, base_delay="1s", max_delay="3s", jitter=0.5),
            sleep=sleeper,
        )
        respx.get("https://api.test/down").mock(return_value=httpx.Response(503))
        async with httpx.AsyncClient() as client:
            with pytest.raises(ServerError):
                await executor.execute(lambda: client.get("https://api.test/down"))

        first, second, third = sleeper.delays
        assert 1.0 <= first <= 1.5
        assert 2.0 <= second <= 3.0
        assert third == 3.0

    def test_validation(self) -> None:
        """Test that nonsensical policies are rejected."""
        with pytest.raises(ValueError):
            RetryPolicy(max_retries=0)
        with pytest.raises(ValueError):
            RetryPolicy(jitter=2.0)


class TestClassification:
    """Tests for response classification."""

    def test_success_is_not_an_error(self) -> None:
        """Test that 2xx responses classify to None."""
        assert classify_response(httpx.Response(200, json={})) is None
        assert classify_response(httpx.Response(204)) is None

    def test_401(self) -> None:
        """Test that 401 becomes AuthorizationError."""
        error = classify_response(httpx.Response(401, json={"message": "Expired"}))
        assert isinstance(error, AuthorizationError)
        assert str(error) == "Expired"

    def test_5xx(self) -> None:
        """Test that 5xx becomes a retryable ServerError."""
        error = classify_response(httpx.Response(503))
        assert isinstance(error, ServerError)
        assert error.status_code == 503
        assert error.retryable

    def test_5xx_surfaces_server_message(self) -> None:
        """Test that a 5xx body message reaches the user."""
        error = classify_response(
            httpx.Response(503, json={"message": "Store is under maintenance"})
        )
        assert isinstance(error, ServerError)
        assert error.user_message == "Store is under maintenance"

    def test_5xx_without_body_uses_generic_message(self) -> None:
        """Test that a bare 5xx falls back to the generic text."""
        error = classify_response(httpx.Response(502, text="<html>"))
        assert error is not None
        assert error.user_message == GENERIC_MESSAGE

    def test_other_4xx_surfaces_server_message(self) -> None:
        """Test that the server's message reaches the user verbatim."""
        error = classify_response(
            httpx.Response(400, json={"message": "Out of stock"})
        )
        assert isinstance(error, RequestRejectedError)
        assert error.status_code == 400
        assert error.user_message == "Out of stock"
        assert not error.retryable

    def test_message_fallbacks(self) -> None:
        """Test message extraction order and the status fallback."""
        assert server_message(httpx.Response(400, json={"error": "Bad"})) == "Bad"
        assert server_message(httpx.Response(502, text="<html>")) == "HTTP 502"


class TestExecute:
    """Tests for RequestExecutor.execute with mocked transport."""

    @respx.mock
    async def test_success_first_try(
        self, executor: RequestExecutor, sleeper: RecordingSleep
    ) -> None:
        """Test that a successful request is returned without retries."""
        route = respx.get("https://api.test/ok").mock(
            return_value=httpx.Response(200, json={"ok": True})
        )
        async with httpx.AsyncClient() as client:
            response = await executor.execute(lambda: client.get("https://api.test/ok"))

        assert response.json() == {"ok": True}
        assert route.call_count == 1
        assert sleeper.delays == []

    @respx.mock
    async def test_retries_server_errors(
        self, executor: RequestExecutor, sleeper: RecordingSleep
    ) -> None:
        """Test that a 5xx is retried and a later success returned."""
        route = respx.get("https://api.test/flaky").mock(
            side_effect=[httpx.Response(500), httpx.Response(200, json=[1])]
        )
        async with httpx.AsyncClient() as client:
            response = await executor.execute(
                lambda: client.get("https://api.test/flaky")
            )

        assert response.json() == [1]
        assert route.call_count == 2
        assert sleeper.delays == [0.01]

    @respx.mock
    async def test_gives_up_after_max_retries(
        self, executor: RequestExecutor, sleeper: RecordingSleep
    ) -> None:
        """Test that the last transient error is raised once attempts run out."""
        route = respx.get("https://api.test/down").mock(
            return_value=httpx.Response(500, json={"message": "boom"})
        )
        async with httpx.AsyncClient() as client:
            with pytest.raises(ServerError, match="boom"):
                await executor.execute(lambda: client.get("https://api.test/down"))

        assert route.call_count == 3
        assert sleeper.delays == [0.01, 0.02]

    @respx.mock
    async def test_client_errors_are_not_retried(
        self, executor: RequestExecutor
    ) -> None:
        """Test that 4xx fails on the first attempt."""
        route = respx.get("https://api.test/missing").mock(
            return_value=httpx.Response(404, json={"message": "Product not found"})
        )
        async with httpx.AsyncClient() as client:
            with pytest.raises(RequestRejectedError, match="Product not found"):
                await executor.execute(lambda: client.get("https://api.test/missing"))
        assert route.call_count == 1

    @respx.mock
    async def test_401_is_not_retried(self, executor: RequestExecutor) -> None:
        """Test that authorization failures are terminal."""
        route = respx.get("https://api.test/cart").mock(
            return_value=httpx.Response(401)
        )
        async with httpx.AsyncClient() as client:
            with pytest.raises(AuthorizationError):
                await executor.execute(lambda: client.get("https://api.test/cart"))
        assert route.call_count == 1

    @respx.mock
    async def test_connection_errors_become_network_errors(
        self, executor: RequestExecutor
    ) -> None:
        """Test that transport failures are classified and retried."""
        route = respx.get("https://api.test/x").mock(
            side_effect=httpx.ConnectError("refused")
        )
        async with httpx.AsyncClient() as client:
            with pytest.raises(NetworkError):
                await executor.execute(lambda: client.get("https://api.test/x"))
        assert route.call_count == 3

    @respx.mock
    async def test_transport_timeout(self, executor: RequestExecutor) -> None:
        """Test that httpx timeouts are classified as RequestTimeoutError."""
        respx.get("https://api.test/slow").mock(
            side_effect=httpx.ReadTimeout("slow")
        )
        async with httpx.AsyncClient() as client:
            with pytest.raises(RequestTimeoutError):
                await executor.execute(lambda: client.get("https://api.test/slow"))

    @respx.mock
    async def test_undecodable_body_is_terminal(self, executor: RequestExecutor) -> None:
        """Test that non-transport httpx errors are classified, not leaked."""
        route = respx.get("https://api.test/gz").mock(
            side_effect=httpx.DecodingError("bad gzip")
        )
        async with httpx.AsyncClient() as client:
            with pytest.raises(SyncError) as info:
                await executor.execute(lambda: client.get("https://api.test/gz"))

        assert not info.value.retryable
        assert isinstance(info.value.__cause__, httpx.DecodingError)
        assert route.call_count == 1

    async def test_attempt_timeout(self) -> None:
        """Test that the per-attempt deadline is enforced by the executor."""
        executor = RequestExecutor(RetryPolicy(max_retries=1, timeout="20ms"))

        async def hang() -> httpx.Response:
            await asyncio.sleep(5)
            return httpx.Response(200)

        with pytest.raises(RequestTimeoutError):
            await executor.execute(hang)
