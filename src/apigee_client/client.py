"""Authenticated client for the Apigee management API.

One :class:`ApigeeClient` is built per provider process and shared by every
resource operation. Construction resolves the authentication mode, so an
invalid configuration fails before any network traffic:

```python
async with ApigeeClient.from_env() as client:
    response = await client.request("GET", client.organization_path("apis"))
    proxies = response.body
```

Response classification:

| Status | Result |
|--------|--------|
| 2xx | :class:`APIResponse`, payload untouched |
| 401/403 (OAuth) | token invalidated, request retried once, then ``AuthError`` |
| 401/403 (Basic, static token) | ``AuthError`` |
| other | ``APIError`` subclass from :func:`~apigee_client.errors.raise_for_status` |
| transport failure | ``NetworkError`` |

Nothing else is retried here; see :mod:`apigee_client.transport` for an
opt-in retry layer.
"""

import json
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

from apigee_client.auth.credentials import CredentialBundle, CredentialLoader
from apigee_client.auth.modes import OAuthPasswordGrant, resolve_auth_mode
from apigee_client.auth.tokens import DEFAULT_CLIENT_ID, DEFAULT_CLIENT_SECRET, DEFAULT_SKEW, TokenManager
from apigee_client.errors.exceptions import NetworkError
from apigee_client.errors.handler import AUTH_FAILURE_STATUS_CODES, raise_for_status

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
ORGANIZATION_PLACEHOLDER = "{organization}"


@dataclass(frozen=True)
class APIResponse:
    """Status code and raw payload of a successful management API call."""

    status_code: int
    content: bytes = field(repr=False)
    headers: httpx.Headers = field(default_factory=httpx.Headers, repr=False)

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> "APIResponse":
        return cls(status_code=response.status_code, content=response.content, headers=response.headers)

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.content)

    @property
    def body(self) -> Any:
        """Parsed JSON for JSON responses, decoded text otherwise, None when empty."""
        if not self.content:
            return None
        if "json" in self.headers.get("content-type", ""):
            return self.json()
        return self.text


def build_base_url(server: str, port: int, server_path: str = "") -> str:
    """Return ``https://server:port[/server_path]`` without a trailing slash."""
    base_url = f"https://{server}:{port}"
    path = server_path.strip("/")
    return f"{base_url}/{path}" if path else base_url


class ApigeeClient:
    """Shared, authenticated HTTP client for Apigee management API calls.

    Args:
        bundle: Provider settings; the authentication mode is derived from it.
        transport: Optional httpx transport (see :mod:`apigee_client.transport`).
        timeout: Transport timeout in seconds.
        token_skew: Seconds before expiry at which OAuth tokens are renewed.
        oauth_client_id: Client identifier for the OAuth token endpoint.
        oauth_client_secret: Client secret for the OAuth token endpoint.
        clock: Monotonic time source for token expiry.

    Raises:
        ConfigError: If the bundle does not describe exactly one valid
            authentication mode.
    """

    def __init__(
        self,
        bundle: CredentialBundle,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        token_skew: float = DEFAULT_SKEW,
        oauth_client_id: str = DEFAULT_CLIENT_ID,
        oauth_client_secret: str = DEFAULT_CLIENT_SECRET,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.auth_mode = resolve_auth_mode(bundle)
        self.organization = bundle.organization
        self.base_url = build_base_url(bundle.server, bundle.port, bundle.server_path)

        self._http = httpx.AsyncClient(
            transport=transport,
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

        self.token_manager: TokenManager | None = None
        if isinstance(self.auth_mode, OAuthPasswordGrant):
            self.token_manager = TokenManager(
                self.auth_mode,
                self._http,
                client_id=oauth_client_id,
                client_secret=oauth_client_secret,
                skew=token_skew,
                clock=clock,
            )

        logger.debug(
            f"Configured Apigee client for organization '{self.organization}' at {self.base_url} "
            f"using {type(self.auth_mode).__name__}"
        )

    @classmethod
    def from_env(
        cls,
        *,
        loader: CredentialLoader | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        token_skew: float = DEFAULT_SKEW,
        oauth_client_id: str = DEFAULT_CLIENT_ID,
        oauth_client_secret: str = DEFAULT_CLIENT_SECRET,
        clock: Callable[[], float] = time.monotonic,
        **settings: str | int | None,
    ) -> "ApigeeClient":
        """Build a client from ``APIGEE_*`` variables, with ``settings`` taking precedence.

        The remaining keyword arguments are passed to the constructor unchanged.
        """
        loader = loader or CredentialLoader()
        return cls(
            loader.load(**settings),
            transport=transport,
            timeout=timeout,
            token_skew=token_skew,
            oauth_client_id=oauth_client_id,
            oauth_client_secret=oauth_client_secret,
            clock=clock,
        )

    async def __aenter__(self) -> "ApigeeClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def url_for(self, path: str) -> str:
        """Join ``path`` onto the base URL, filling in ``{organization}``."""
        path = path.replace(ORGANIZATION_PLACEHOLDER, quote(self.organization, safe=""))
        return f"{self.base_url}/{path.lstrip('/')}"

    def organization_path(self, *segments: str | int) -> str:
        """Return ``/v1/o/<organization>/<segment>/...`` with every part URL-quoted."""
        parts = [quote(self.organization, safe="")] + [quote(str(segment), safe="") for segment in segments]
        return "/v1/o/" + "/".join(parts)

    async def auth_headers(self) -> dict[str, str]:
        """Return the ``Authorization`` header a request would carry right now."""
        _, authorization = await self._authorization()
        return {"Authorization": authorization}

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        content_type: str | None = None,
        files: Any = None,
    ) -> APIResponse:
        """Perform an authenticated call against the management API.

        Args:
            method: HTTP method.
            path: Path below the base URL; may contain ``{organization}``.
            body: ``dict``/``list`` are sent as JSON, ``str``/``bytes`` as-is.
                ``None`` or an empty string sends no body.
            params: Query parameters.
            headers: Extra request headers.
            content_type: Content-Type for ``str``/``bytes`` bodies.
            files: Multipart files; a ``dict`` body becomes the form fields.

        Returns:
            The successful response.

        Raises:
            AuthError: Credentials rejected, or token acquisition failed.
            APIError: Any other non-2xx response.
            NetworkError: The request could not be completed.
        """
        method = method.upper()
        url = self.url_for(path)
        send_kwargs = self._encode_body(body, content_type, files)

        token, response = await self._send(method, url, params, headers, send_kwargs)

        if response.status_code in AUTH_FAILURE_STATUS_CODES and self.token_manager is not None:
            logger.warning(f"{method} {url} returned {response.status_code}, re-authenticating and retrying once")
            self.token_manager.invalidate(token)
            _, response = await self._send(method, url, params, headers, send_kwargs)

        raise_for_status(response)
        return APIResponse.from_httpx(response)

    async def _authorization(self) -> tuple[str | None, str]:
        """Return (bearer token used, ``Authorization`` header value)."""
        if self.token_manager is not None:
            token = await self.token_manager.current_bearer()
            return token, f"Bearer {token}"
        return None, self.auth_mode.authorization()

    @staticmethod
    def _encode_body(body: Any, content_type: str | None, files: Any) -> dict[str, Any]:
        if files is not None:
            return {"files": files, "data": body} if body else {"files": files}

        if body is None or body == "" or body == b"":
            return {}
        if isinstance(body, (dict, list)):
            return {"json": body}
        if isinstance(body, str):
            return {"content": body.encode(), "content_type": content_type or "application/json"}
        if isinstance(body, bytes):
            return {"content": body, "content_type": content_type or "application/octet-stream"}
        raise TypeError(f"Unsupported request body type: {type(body).__name__}")

    async def _send(
        self,
        method: str,
        url: str,
        params: Mapping[str, Any] | None,
        headers: Mapping[str, str] | None,
        send_kwargs: dict[str, Any],
    ) -> tuple[str | None, httpx.Response]:
        token, authorization = await self._authorization()

        kwargs = dict(send_kwargs)
        request_headers = {"Authorization": authorization}
        explicit_content_type = kwargs.pop("content_type", None)
        if explicit_content_type:
            request_headers["Content-Type"] = explicit_content_type
        if headers:
            request_headers.update(headers)

        request = self._http.build_request(method, url, params=params, headers=request_headers, **kwargs)
        try:
            response = await self._http.send(request)
        except httpx.RequestError as e:
            raise NetworkError(f"{method} {url} failed: {e}", request=request) from e

        logger.debug(f"{method} {url} -> {response.status_code}")
        return token, response
