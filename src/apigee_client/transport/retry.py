"""Opt-in retry transport for resource operations.

``ApigeeClient`` never retries 5xx responses or network failures on its own,
because whether a call is safe to repeat depends on the operation. Callers
that know their calls are safe to repeat can compose this transport:

| Condition | Retried for |
|-----------|-------------|
| 429 (Rate Limit) | every method, honouring ``Retry-After`` |
| configured 5xx codes | ``retry_methods`` only |
| transport errors | ``retry_methods`` only |

```python
from apigee_client import ApigeeClient
from apigee_client.transport import create_transport

transport = create_transport(max_retries=3, max_backoff=30)
client = ApigeeClient(bundle, transport=transport)
```
"""

import asyncio
import logging
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

import httpx

logger = logging.getLogger(__name__)


class RetryTransport(httpx.AsyncBaseTransport):
    """Retry transport with exponential backoff and rate-limit awareness.

    Args:
        wrapped_transport: The underlying transport to wrap
        max_retries: Maximum number of retry attempts (default: 3)
        backoff_factor: Multiplier for exponential backoff (default: 1.0)
        max_backoff: Maximum backoff time in seconds (default: 60)
        retry_methods: Methods that may be repeated after 5xx or transport errors
        retry_status_codes: 5xx codes that trigger a retry (default: 502, 503, 504)
    """

    # Idempotent HTTP methods (per RFC 7231)
    IDEMPOTENT_METHODS: frozenset[str] = frozenset(["HEAD", "GET", "PUT", "DELETE", "OPTIONS", "TRACE"])

    DEFAULT_RETRY_STATUS_CODES: frozenset[int] = frozenset([502, 503, 504])

    def __init__(
        self,
        *,
        wrapped_transport: httpx.AsyncBaseTransport,
        max_retries: int = 3,
        backoff_factor: float = 1.0,
        max_backoff: float = 60.0,
        retry_methods: frozenset[str] | None = None,
        retry_status_codes: frozenset[int] | None = None,
    ) -> None:
        self._wrapped_transport = wrapped_transport
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.max_backoff = max_backoff
        self.retry_methods = retry_methods or self.IDEMPOTENT_METHODS
        self.retry_status_codes = retry_status_codes or self.DEFAULT_RETRY_STATUS_CODES

    async def __aenter__(self):
        await self._wrapped_transport.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return await self._wrapped_transport.__aexit__(exc_type, exc_val, exc_tb)

    async def aclose(self) -> None:
        await self._wrapped_transport.aclose()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """Send ``request``, retrying according to the configured policy."""
        attempt = 0

        while True:
            try:
                response = await self._wrapped_transport.handle_async_request(request)
            except httpx.TransportError as e:
                if attempt >= self.max_retries or request.method not in self.retry_methods:
                    raise
                attempt += 1
                delay = self._calculate_backoff_delay(attempt)
                reason = repr(e)
            else:
                delay = self._retry_delay(request, response, attempt)
                if delay is None:
                    return response
                await response.aclose()
                attempt += 1
                reason = str(response.status_code)

            logger.warning(
                f"{request.method} {request.url} failed with {reason}, "
                f"retry {attempt}/{self.max_retries} in {delay}s"
            )
            await asyncio.sleep(delay)

    def _retry_delay(self, request: httpx.Request, response: httpx.Response, attempt: int) -> float | None:
        """Seconds to wait before repeating ``request``, or None to return ``response``."""
        if attempt >= self.max_retries:
            return None

        if response.status_code == 429:
            retry_after = self._parse_retry_after(response)
            return retry_after if retry_after is not None else self._calculate_backoff_delay(attempt + 1)

        if response.status_code in self.retry_status_codes and request.method in self.retry_methods:
            return self._calculate_backoff_delay(attempt + 1)

        return None

    def _parse_retry_after(self, response: httpx.Response) -> float | None:
        """Parse Retry-After header (delay-seconds or HTTP-date), capped at max_backoff.

        Returns:
            Delay in seconds, or None if header is missing, negative or invalid
        """
        retry_after = response.headers.get("Retry-After")
        if not retry_after:
            return None

        try:
            delay = int(retry_after)
        except ValueError:
            try:
                retry_date = parsedate_to_datetime(retry_after)
            except (ValueError, TypeError):
                return None
            delay = (retry_date - datetime.now(UTC)).total_seconds()

        # Negative values and dates in the past (clock skew)
        if delay < 0:
            return None
        return float(min(delay, self.max_backoff))

    def _calculate_backoff_delay(self, retry_number: int) -> float:
        """Exponential backoff: backoff_factor * 2**(retry_number - 1), capped at max_backoff."""
        delay = self.backoff_factor * (2 ** (retry_number - 1))
        return min(delay, self.max_backoff)
