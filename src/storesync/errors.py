"""Classified errors raised by the synchronization layer.

Transport exceptions are translated into one of these inside the request
executor. Anything crossing into the mutator, reconciler or UI is a
``SyncError``.
"""

from __future__ import annotations

GENERIC_MESSAGE = "Something went wrong. Please try again."


class SyncError(Exception):
    """Base exception for synchronization failures."""

    retryable = False

    def __init__(self, message: str, *, user_message: str | None = None) -> None:
        super().__init__(message)
        self.user_message = user_message or GENERIC_MESSAGE


class TransientError(SyncError):
    """Network-level or server-side failure; safe to retry."""

    retryable = True


class NetworkError(TransientError):
    """Connection refused, reset, or otherwise broken transport."""


class RequestTimeoutError(TransientError):
    """The request did not complete within its timeout."""


class ServerError(TransientError):
    """HTTP 5xx from the remote API."""

    def __init__(
        self, status_code: int, message: str, *, user_message: str | None = None
    ) -> None:
        super().__init__(message, user_message=user_message)
        self.status_code = status_code


class AuthorizationError(SyncError):
    """HTTP 401: the credential is missing, invalid or expired."""

    status_code = 401

    def __init__(
        self, message: str = "Unauthorized", *, user_message: str | None = None
    ) -> None:
        super().__init__(
            message,
            user_message=user_message
            or "Your session has expired. Please log in again.",
        )


class AuthRequiredError(SyncError):
    """An authenticated call was attempted without a session."""

    def __init__(self, message: str = "No active session") -> None:
        super().__init__(message, user_message="Please log in to perform this action.")


class RequestRejectedError(SyncError):
    """HTTP 4xx other than 401; the server message is surfaced verbatim."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message, user_message=message)
        self.status_code = status_code


class DecodeError(SyncError):
    """A response or persisted payload does not have the expected shape."""

    def __init__(self, message: str) -> None:
        super().__init__(message, user_message=GENERIC_MESSAGE)
