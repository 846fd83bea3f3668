"""Authentication modes and the resolver that selects one from a bundle.

The three supported modes are mutually exclusive. :func:`resolve_auth_mode`
is the one place where the combination rules are checked; it is a pure
function of the bundle and runs once, when the client is built.
"""

import base64
import logging
from dataclasses import dataclass, field

from apigee_client.auth.credentials import (
    ENV_ACCESS_TOKEN,
    ENV_OAUTH_SERVER,
    ENV_ORGANIZATION,
    ENV_PASSWORD,
    ENV_USERNAME,
    CredentialBundle,
)
from apigee_client.auth.exceptions import ConfigError

logger = logging.getLogger(__name__)


def basic_authorization(username: str, password: str) -> str:
    """Return an HTTP Basic ``Authorization`` header value."""
    encoded = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
    return f"Basic {encoded}"


@dataclass(frozen=True)
class BasicCredentials:
    """Username/password sent as HTTP Basic on every request."""

    username: str
    password: str = field(repr=False)

    def authorization(self) -> str:
        return basic_authorization(self.username, self.password)


@dataclass(frozen=True)
class StaticToken:
    """Pre-issued bearer token, used verbatim."""

    access_token: str = field(repr=False)

    def authorization(self) -> str:
        return f"Bearer {self.access_token}"


@dataclass(frozen=True)
class OAuthPasswordGrant:
    """Username/password exchanged for bearer tokens at an OAuth server."""

    username: str
    password: str = field(repr=False)
    oauth_server: str
    oauth_server_path: str = ""
    oauth_port: int = 443

    @property
    def token_url(self) -> str:
        url = f"https://{self.oauth_server}:{self.oauth_port}"
        path = self.oauth_server_path.strip("/")
        return f"{url}/{path}" if path else f"{url}/"


AuthMode = BasicCredentials | StaticToken | OAuthPasswordGrant


def resolve_auth_mode(bundle: CredentialBundle) -> AuthMode:
    """Determine the single authentication mode a bundle describes.

    Priority order:
    1. ``access_token`` set -> StaticToken
    2. ``username``, ``password`` and ``oauth_server`` set -> OAuthPasswordGrant
    3. ``username`` and ``password`` set -> BasicCredentials

    Args:
        bundle: The loaded provider settings.

    Returns:
        The selected authentication mode.

    Raises:
        ConfigError: If the organization is missing, the settings combine
            conflicting strategies, or no strategy is fully specified.
    """
    if not bundle.organization:
        raise ConfigError("organization is required", env_var_name=ENV_ORGANIZATION)

    has_username = bool(bundle.username)
    has_password = bool(bundle.password)
    has_oauth_server = bool(bundle.oauth_server)

    if bundle.access_token:
        conflicting = [
            name
            for name, present in (
                ("username", has_username),
                ("password", has_password),
                ("oauth_server", has_oauth_server),
            )
            if present
        ]
        if conflicting:
            raise ConfigError(
                f"access_token cannot be combined with {', '.join(conflicting)}",
                env_var_name=ENV_ACCESS_TOKEN,
            )
        logger.debug("Using static bearer token authentication")
        return StaticToken(access_token=bundle.access_token)

    if has_username != has_password:
        missing = ENV_PASSWORD if has_username else ENV_USERNAME
        raise ConfigError("username and password must be provided together", env_var_name=missing)

    if has_oauth_server and not has_username:
        raise ConfigError("oauth_server requires username and password", env_var_name=ENV_OAUTH_SERVER)

    if has_username and has_oauth_server:
        logger.debug(f"Using OAuth password grant against {bundle.oauth_server}")
        return OAuthPasswordGrant(
            username=bundle.username,
            password=bundle.password,
            oauth_server=bundle.oauth_server,
            oauth_server_path=bundle.oauth_server_path,
            oauth_port=bundle.oauth_port,
        )

    if has_username:
        logger.debug("Using HTTP Basic authentication")
        return BasicCredentials(username=bundle.username, password=bundle.password)

    raise ConfigError(
        "no valid authentication method: specify username/password for Basic authentication, "
        "username/password/oauth_server for OAuth authentication, or access_token"
    )
