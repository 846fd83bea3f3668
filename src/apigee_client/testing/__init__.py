"""Testing utilities for code built on :class:`~apigee_client.ApigeeClient`.

:class:`FakeApigee` is an in-memory stand-in for both the OAuth token endpoint
and the management API, served through ``httpx.MockTransport``.

Example:
    ```python
    from apigee_client import ApigeeClient, CredentialBundle
    from apigee_client.testing import FakeApigee

    fake = FakeApigee()
    bundle = CredentialBundle(
        organization="org1", username="u", password="p", oauth_server=fake.oauth_host
    )

    async def test_lists_proxies():
        async with ApigeeClient(bundle, transport=fake.transport) as client:
            fake.queue_response(200, json=["proxy-a"])
            response = await client.request("GET", "/v1/o/org1/apis")
        assert response.body == ["proxy-a"]
        assert fake.grant_types == ["password"]
    ```
"""

import asyncio
from collections import deque
from typing import Any
from urllib.parse import parse_qs

import httpx


def token_payload(access_token: str, refresh_token: str, expires_in: int = 1799) -> dict[str, Any]:
    """Body of a successful token endpoint response."""
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "expires_in": expires_in,
        "scope": "scim.me openid password.write approvals.me oauth.approvals",
    }


class FakeApigee:
    """Fake OAuth server plus management API.

    Token requests to ``oauth_host`` mint ``access-1``/``refresh-1``,
    ``access-2``/``refresh-2``, ... API requests to any other host pop the
    next queued response, or answer ``200 {}`` when the queue is empty.
    Responses queued with :meth:`queue_response_for` are served only to
    requests carrying that bearer token.

    Attributes:
        token_requests: Parsed form of every token request, in order.
        api_requests: Every management API request, in order.
        reject_refresh: Answer refresh-token grants with ``reject_refresh_status``.
        reject_refresh_status: Status used to reject refresh-token grants (401).
        grant_status: Answer every grant with this status instead of a token.
        token_delay: Seconds each token response is delayed by.
        api_delay: Seconds each management API response is delayed by.
        max_api_in_flight: Peak number of API requests being served at once.
        expires_in: ``expires_in`` reported for minted tokens.
    """

    def __init__(self, *, oauth_host: str = "login.example.com", expires_in: int = 1799) -> None:
        self.oauth_host = oauth_host
        self.expires_in = expires_in
        self.token_requests: list[dict[str, str]] = []
        self.token_authorizations: list[str | None] = []
        self.api_requests: list[httpx.Request] = []
        self.reject_refresh = False
        self.reject_refresh_status = 401
        self.grant_status: int | None = None
        self.token_delay = 0.0
        self.api_delay = 0.0
        self.max_api_in_flight = 0
        self._api_in_flight = 0
        self.network_down = False
        self._minted = 0
        self._responses: deque[httpx.Response] = deque()
        self._token_responses: dict[str, deque[httpx.Response]] = {}

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    @property
    def grant_types(self) -> list[str]:
        return [form.get("grant_type", "") for form in self.token_requests]

    @property
    def api_authorizations(self) -> list[str | None]:
        return [request.headers.get("Authorization") for request in self.api_requests]

    def queue_response(self, status_code: int, **kwargs: Any) -> None:
        """Queue the next management API response (``httpx.Response`` kwargs)."""
        self._responses.append(httpx.Response(status_code, **kwargs))

    def queue_response_for(self, access_token: str, status_code: int, **kwargs: Any) -> None:
        """Queue a response served only to requests bearing ``access_token``.

        These take precedence over :meth:`queue_response`.
        """
        self._token_responses.setdefault(access_token, deque()).append(httpx.Response(status_code, **kwargs))

    async def handle(self, request: httpx.Request) -> httpx.Response:
        if self.network_down:
            raise httpx.ConnectError("Connection refused", request=request)
        if request.url.host == self.oauth_host:
            return await self._handle_token(request)
        self.api_requests.append(request)
        self._api_in_flight += 1
        self.max_api_in_flight = max(self.max_api_in_flight, self._api_in_flight)
        try:
            if self.api_delay:
                await asyncio.sleep(self.api_delay)
            return self._next_api_response(request)
        finally:
            self._api_in_flight -= 1

    def _next_api_response(self, request: httpx.Request) -> httpx.Response:
        authorization = request.headers.get("Authorization", "")
        bearer = authorization.removeprefix("Bearer ")
        per_token = self._token_responses.get(bearer)
        if per_token:
            return per_token.popleft()
        if self._responses:
            return self._responses.popleft()
        return httpx.Response(200, json={})

    async def _handle_token(self, request: httpx.Request) -> httpx.Response:
        form = {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
        self.token_requests.append(form)
        self.token_authorizations.append(request.headers.get("Authorization"))

        if self.token_delay:
            await asyncio.sleep(self.token_delay)

        if self.grant_status is not None:
            return httpx.Response(
                self.grant_status,
                json={"error": "unauthorized", "error_description": "Bad credentials"},
            )
        if form.get("grant_type") == "refresh_token" and self.reject_refresh:
            return httpx.Response(
                self.reject_refresh_status,
                json={"error": "invalid_token", "error_description": "Invalid refresh token (expired)"},
            )

        self._minted += 1
        return httpx.Response(
            200,
            json=token_payload(f"access-{self._minted}", f"refresh-{self._minted}", self.expires_in),
        )


__all__ = ["FakeApigee", "token_payload"]
