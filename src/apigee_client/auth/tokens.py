"""OAuth token acquisition and refresh for the password-grant mode.

:class:`TokenManager` owns the cached access/refresh token pair. Callers only
ever see the current bearer string:

```python
manager = TokenManager(grant, http_client)
token = await manager.current_bearer()   # grants on first use, cached afterwards
manager.invalidate(token)                # after a 401/403 with that token
```

Renewal is single-flight: at most one grant or refresh request is in flight,
and every caller that arrives meanwhile awaits the same task. The task is
shielded, so a cancelled caller never discards a grant that later succeeds.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

import httpx

from apigee_client.auth.exceptions import AuthError
from apigee_client.auth.modes import OAuthPasswordGrant, basic_authorization
from apigee_client.errors.exceptions import NetworkError
from apigee_client.errors.models import ErrorDetail

logger = logging.getLogger(__name__)

# Public client registered by Apigee for management API password grants
DEFAULT_CLIENT_ID = "edgecli"
DEFAULT_CLIENT_SECRET = "edgeclisecret"

DEFAULT_SKEW = 30.0
DEFAULT_EXPIRES_IN = 1799.0

# Token endpoint answers an expired or revoked refresh token with one of these
REFRESH_REJECTED_STATUS_CODES: frozenset[int] = frozenset([400, 401])


@dataclass(frozen=True)
class TokenState:
    """A cached token pair and the monotonic time at which the access token expires."""

    access_token: str = field(default="", repr=False)
    refresh_token: str = field(default="", repr=False)
    expires_at: float = 0.0
    expires_in: float = 0.0

    def is_fresh(self, now: float, skew: float) -> bool:
        # Skew never exceeds half the token lifetime
        if self.expires_in:
            skew = min(skew, self.expires_in / 2)
        return bool(self.access_token) and now < self.expires_at - skew


class TokenManager:
    """Cache and renew bearer tokens for an :class:`OAuthPasswordGrant`.

    Args:
        grant: Username, password and token endpoint location.
        http_client: Client used for token requests. Not closed by the manager.
        client_id: OAuth client identifier sent as HTTP Basic to the token endpoint.
        client_secret: OAuth client secret sent alongside ``client_id``.
        skew: Seconds before expiry at which a cached token stops being used.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        grant: OAuthPasswordGrant,
        http_client: httpx.AsyncClient,
        *,
        client_id: str = DEFAULT_CLIENT_ID,
        client_secret: str = DEFAULT_CLIENT_SECRET,
        skew: float = DEFAULT_SKEW,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._grant = grant
        self._http = http_client
        self._client_authorization = basic_authorization(client_id, client_secret)
        self._skew = skew
        self._clock = clock
        self._state = TokenState()
        self._renewal: asyncio.Task[TokenState] | None = None

    @property
    def token_url(self) -> str:
        return self._grant.token_url

    async def current_bearer(self) -> str:
        """Return a usable access token, renewing it first if needed.

        Raises:
            AuthError: If the token endpoint rejects the grant.
            NetworkError: If the token endpoint cannot be reached.
        """
        state = self._state
        if state.is_fresh(self._clock(), self._skew):
            return state.access_token

        if self._renewal is None or self._renewal.done():
            self._renewal = asyncio.get_running_loop().create_task(self._renew())
            self._renewal.add_done_callback(self._renewal_finished)

        state = await asyncio.shield(self._renewal)
        return state.access_token

    def invalidate(self, token: str | None = None) -> None:
        """Expire the cached access token so the next read renews it.

        The refresh token is kept. When ``token`` is given and is no longer
        the cached one, a concurrent caller already renewed it and nothing
        happens.
        """
        state = self._state
        if token is not None and token != state.access_token:
            return
        self._state = TokenState(refresh_token=state.refresh_token)
        logger.debug("Invalidated cached access token")

    def _renewal_finished(self, task: "asyncio.Task[TokenState]") -> None:
        if self._renewal is task:
            self._renewal = None
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Token renewal failed: {task.exception()}")

    async def _renew(self) -> TokenState:
        previous = self._state
        if previous.refresh_token:
            try:
                payload = await self._request_token(
                    {"grant_type": "refresh_token", "refresh_token": previous.refresh_token}
                )
            except AuthError as e:
                if e.status_code not in REFRESH_REJECTED_STATUS_CODES:
                    raise
                logger.warning(
                    f"Refresh token rejected by {self._grant.oauth_server} (HTTP {e.status_code}), "
                    "falling back to password grant"
                )
                previous = replace(previous, refresh_token="")
                self._state = previous
                payload = await self._password_grant()
        else:
            payload = await self._password_grant()

        expires_in = self._expires_in(payload)
        state = TokenState(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token") or previous.refresh_token,
            expires_at=self._clock() + expires_in,
            expires_in=expires_in,
        )
        self._state = state
        logger.info(f"Acquired access token from {self._grant.oauth_server} (expires_in={expires_in:.0f}s)")
        return state

    async def _password_grant(self) -> dict[str, Any]:
        return await self._request_token(
            {
                "grant_type": "password",
                "username": self._grant.username,
                "password": self._grant.password,
            }
        )

    async def _request_token(self, form: dict[str, str]) -> dict[str, Any]:
        """POST a grant to the token endpoint and return the JSON payload."""
        logger.debug(f"Requesting {form['grant_type']} grant from {self.token_url}")
        request = self._http.build_request(
            "POST",
            self.token_url,
            data=form,
            headers={"Authorization": self._client_authorization, "Accept": "application/json"},
        )
        try:
            response = await self._http.send(request)
        except httpx.RequestError as e:
            raise NetworkError(f"Token request to {self.token_url} failed: {e}", request=request) from e

        if not response.is_success:
            detail = ErrorDetail.from_response(response)
            message = f"Token request failed with HTTP {response.status_code}"
            if detail:
                message += f": {detail.to_exception_message()}"
            raise AuthError(message, status_code=response.status_code, response=response, detail=detail)

        try:
            payload = response.json()
        except ValueError:
            raise AuthError("Token response is not valid JSON", response=response) from None

        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise AuthError("Token response missing 'access_token' field", response=response)

        return payload

    @staticmethod
    def _expires_in(payload: dict[str, Any]) -> float:
        try:
            return float(payload.get("expires_in", DEFAULT_EXPIRES_IN))
        except (TypeError, ValueError):
            return DEFAULT_EXPIRES_IN
