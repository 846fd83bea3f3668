"""Apigee Client Core - authenticated HTTP client for the Apigee management API.

This library provides the credential and token core shared by every Apigee
resource operation:
- Multi-source credential loading (value → env → .env → default)
- Selection of exactly one authentication mode (Basic, static token, OAuth)
- Single-flight OAuth token acquisition and refresh
- Response classification into success, auth, API and network errors

Example:
    ```python
    from apigee_client import ApigeeClient

    async with ApigeeClient.from_env(organization="acme") as client:
        response = await client.request("GET", client.organization_path("apis"))
    ```
"""

from apigee_client.auth import (
    AuthError,
    BasicCredentials,
    ConfigError,
    CredentialBundle,
    CredentialLoader,
    OAuthPasswordGrant,
    StaticToken,
    TokenManager,
    resolve_auth_mode,
)
from apigee_client.client import APIResponse, ApigeeClient
from apigee_client.errors import APIError, NetworkError

__version__ = "0.1.0"

__all__ = [
    "APIError",
    "APIResponse",
    "ApigeeClient",
    "AuthError",
    "BasicCredentials",
    "ConfigError",
    "CredentialBundle",
    "CredentialLoader",
    "NetworkError",
    "OAuthPasswordGrant",
    "StaticToken",
    "TokenManager",
    "__version__",
    "resolve_auth_mode",
]
