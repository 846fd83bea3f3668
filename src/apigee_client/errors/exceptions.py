"""Structured exceptions for API and transport errors."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from apigee_client.errors.models import ErrorDetail


class APIError(Exception):
    """Base exception for non-2xx management API responses."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: "httpx.Response | None" = None,
        detail: "ErrorDetail | None" = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response = response
        self.detail = detail

    @property
    def body(self) -> str:
        """Response body as returned by the server."""
        return self.response.text if self.response is not None else ""


class ClientError(APIError):
    """4xx client errors."""

    pass


class BadRequestError(ClientError):
    """400 Bad Request."""

    pass


class NotFoundError(ClientError):
    """404 Not Found."""

    pass


class ConflictError(ClientError):
    """409 Conflict."""

    pass


class RateLimitError(ClientError):
    """429 Too Many Requests."""

    def __init__(self, message: str, retry_after: int | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class ServerError(APIError):
    """5xx server errors."""

    pass


class NetworkError(Exception):
    """Transport-level failure: DNS, connect, TLS, read or write errors.

    The originating httpx exception is chained as ``__cause__``.
    """

    def __init__(self, message: str, request: "httpx.Request | None" = None):
        super().__init__(message)
        self.request = request
