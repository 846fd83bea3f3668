"""Exceptions for configuration and authentication failures.

``ConfigError`` is raised before any network activity when the supplied
credentials are contradictory or incomplete. ``AuthError`` is raised when a
token cannot be obtained, or when a request is still rejected after the one
forced re-authentication.

Example:
    ```python
    from apigee_client.auth.exceptions import ConfigError

    if not bundle.organization:
        raise ConfigError("organization is required", env_var_name="APIGEE_ORGANIZATION")
    ```
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from apigee_client.errors.models import ErrorDetail


class CredentialError(Exception):
    """Base exception for credential-related errors.

    Both configuration and authentication failures inherit from this class,
    making it easy to catch anything credential-related.
    """

    pass


class ConfigError(CredentialError):
    """Raised when the credential bundle cannot produce an authentication mode.

    Attributes:
        env_var_name: The environment variable the offending setting maps to (if any).

    Example:
        ```python
        try:
            client = ApigeeClient.from_env()
        except ConfigError as e:
            print(f"Bad provider configuration: {e} ({e.env_var_name})")
        ```
    """

    def __init__(self, message: str, env_var_name: str | None = None):
        """Initialize ConfigError.

        Args:
            message: Error message describing the configuration problem.
            env_var_name: Optional environment variable name for reference.
        """
        super().__init__(message)
        self.env_var_name = env_var_name


class AuthError(CredentialError):
    """Raised when a bearer token cannot be acquired or is rejected.

    Attributes:
        status_code: HTTP status of the failing response, if there was one.
        response: The failing response, if there was one.
        detail: Parsed Apigee error payload, if the body carried one.
    """

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
        """Raw response text, or an empty string when no response was received."""
        return self.response.text if self.response is not None else ""
