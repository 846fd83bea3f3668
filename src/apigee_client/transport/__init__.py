"""Transport construction for the Apigee client.

Modules:
    retry: Opt-in retry transport with rate-limit awareness
"""

import httpx

from apigee_client.transport.retry import RetryTransport


def create_transport(
    *,
    max_retries: int = 0,
    backoff_factor: float = 1.0,
    max_backoff: float = 60.0,
    retry_methods: frozenset[str] | None = None,
    verify: bool = True,
) -> httpx.AsyncBaseTransport:
    """Build the transport stack for an :class:`~apigee_client.ApigeeClient`.

    With the default ``max_retries=0`` this is a plain
    ``httpx.AsyncHTTPTransport``; anything else wraps it in a
    :class:`RetryTransport`.
    """
    transport = httpx.AsyncHTTPTransport(verify=verify)
    if max_retries <= 0:
        return transport
    return RetryTransport(
        wrapped_transport=transport,
        max_retries=max_retries,
        backoff_factor=backoff_factor,
        max_backoff=max_backoff,
        retry_methods=retry_methods,
    )


__all__ = ["RetryTransport", "create_transport"]
