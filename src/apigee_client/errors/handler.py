"""Error handling utilities for HTTP responses."""

import httpx

from apigee_client.auth.exceptions import AuthError
from apigee_client.errors.exceptions import (
    APIError,
    BadRequestError,
    ClientError,
    ConflictError,
    NotFoundError,
    RateLimitError,
    ServerError,
)
from apigee_client.errors.models import ErrorDetail

AUTH_FAILURE_STATUS_CODES: frozenset[int] = frozenset([401, 403])


def error_message(response: httpx.Response, detail: ErrorDetail | None) -> str:
    """Build a human-readable message for a failed response."""
    status_code = response.status_code
    if detail:
        return f"HTTP {status_code}: {detail.to_exception_message()}"
    response_text = response.text[:200]
    return f"HTTP {status_code}: {response_text}" if response_text else f"HTTP {status_code}"


def raise_for_status(response: httpx.Response) -> None:
    """Raise appropriate exception for HTTP error responses.

    401 and 403 map to AuthError; every other non-2xx status maps to an
    APIError subclass. Successful responses pass through untouched.

    Args:
        response: HTTP response object

    Raises:
        AuthError: for 401/403
        APIError subclass based on status code
    """
    if response.is_success:
        return

    detail = ErrorDetail.from_response(response)
    status_code = response.status_code
    message = error_message(response, detail)

    if status_code in AUTH_FAILURE_STATUS_CODES:
        raise AuthError(message, status_code=status_code, response=response, detail=detail)

    exception_map = {
        400: BadRequestError,
        404: NotFoundError,
        409: ConflictError,
        429: RateLimitError,
    }

    if status_code in exception_map:
        exc_class = exception_map[status_code]
    elif 400 <= status_code < 500:
        exc_class = ClientError
    elif 500 <= status_code < 600:
        exc_class = ServerError
    else:
        exc_class = APIError

    if exc_class == RateLimitError:
        retry_after = None
        if "retry-after" in response.headers:
            try:
                retry_after = int(response.headers["retry-after"])
            except (ValueError, TypeError):
                retry_after = None
        raise exc_class(
            message=message,
            retry_after=retry_after,
            status_code=status_code,
            response=response,
            detail=detail,
        )

    raise exc_class(
        message=message,
        status_code=status_code,
        response=response,
        detail=detail,
    )
