"""Authentication components for the Apigee management API.

This module provides:
- Multi-source loading of the credential bundle (value → env → .env → default)
- Resolution of the bundle into exactly one authentication mode
- OAuth password-grant token caching and refresh

Example:
    ```python
    from apigee_client.auth import CredentialLoader, resolve_auth_mode

    bundle = CredentialLoader().load()
    mode = resolve_auth_mode(bundle)
    ```
"""

from apigee_client.auth.credentials import CredentialBundle, CredentialLoader
from apigee_client.auth.exceptions import AuthError, ConfigError, CredentialError
from apigee_client.auth.modes import (
    AuthMode,
    BasicCredentials,
    OAuthPasswordGrant,
    StaticToken,
    resolve_auth_mode,
)
from apigee_client.auth.tokens import TokenManager, TokenState

__all__ = [
    "AuthError",
    "AuthMode",
    "BasicCredentials",
    "ConfigError",
    "CredentialBundle",
    "CredentialError",
    "CredentialLoader",
    "OAuthPasswordGrant",
    "StaticToken",
    "TokenManager",
    "TokenState",
    "resolve_auth_mode",
]
