"""Multi-source loading of the Apigee credential bundle.

Every provider setting is resolved independently, first match wins:

1. Explicitly provided value
2. Environment variable (``APIGEE_*``)
3. .env file (python-dotenv, merged into the environment on first use)
4. Default value

The result is an immutable :class:`CredentialBundle`. Loading never decides
which authentication strategy applies; that is the job of
:func:`apigee_client.auth.modes.resolve_auth_mode`.

Example:
    ```python
    from apigee_client.auth import CredentialLoader

    loader = CredentialLoader()
    bundle = loader.load(organization="my-org")
    ```

Security Considerations:
    - Passwords and access tokens are never logged (masked with ***)
    - ``repr()`` of a bundle omits the same fields
    - Thread-safe dotenv loading with lock
"""

import logging
import os
from dataclasses import dataclass, field, fields
from threading import Lock

from dotenv import load_dotenv

from apigee_client.auth.exceptions import ConfigError

logger = logging.getLogger(__name__)

PUBLIC_APIGEE_SERVER = "api.enterprise.apigee.com"
DEFAULT_SERVER_PATH = ""
DEFAULT_OAUTH_SERVER_PATH = "oauth/token"
DEFAULT_PORT = 443
MAX_PORT = 65535

ENV_USERNAME = "APIGEE_USERNAME"
ENV_PASSWORD = "APIGEE_PASSWORD"
ENV_ACCESS_TOKEN = "APIGEE_ACCESS_TOKEN"
ENV_SERVER = "APIGEE_SERVER"
ENV_SERVER_PATH = "APIGEE_SERVER_PATH"
ENV_PORT = "APIGEE_PORT"
ENV_OAUTH_SERVER = "APIGEE_OAUTH_SERVER"
ENV_OAUTH_SERVER_PATH = "APIGEE_OAUTH_SERVER_PATH"
ENV_OAUTH_PORT = "APIGEE_OAUTH_PORT"
ENV_ORGANIZATION = "APIGEE_ORGANIZATION"


@dataclass(frozen=True)
class CredentialBundle:
    """Immutable provider settings from which the authentication mode is derived.

    ``password`` and ``access_token`` are excluded from ``repr()``.
    """

    organization: str
    username: str = ""
    password: str = field(default="", repr=False)
    access_token: str = field(default="", repr=False)
    server: str = PUBLIC_APIGEE_SERVER
    server_path: str = DEFAULT_SERVER_PATH
    port: int = DEFAULT_PORT
    oauth_server: str = ""
    oauth_server_path: str = DEFAULT_OAUTH_SERVER_PATH
    oauth_port: int = DEFAULT_PORT


# (field name, env var, default, sensitive)
_STRING_SETTINGS: tuple[tuple[str, str, str, bool], ...] = (
    ("username", ENV_USERNAME, "", False),
    ("password", ENV_PASSWORD, "", True),
    ("access_token", ENV_ACCESS_TOKEN, "", True),
    ("server", ENV_SERVER, PUBLIC_APIGEE_SERVER, False),
    ("server_path", ENV_SERVER_PATH, DEFAULT_SERVER_PATH, False),
    ("oauth_server", ENV_OAUTH_SERVER, "", False),
    ("oauth_server_path", ENV_OAUTH_SERVER_PATH, DEFAULT_OAUTH_SERVER_PATH, False),
    ("organization", ENV_ORGANIZATION, "", False),
)

_PORT_SETTINGS: tuple[tuple[str, str], ...] = (
    ("port", ENV_PORT),
    ("oauth_port", ENV_OAUTH_PORT),
)


class CredentialLoader:
    """Load a :class:`CredentialBundle` from explicit values, the environment and defaults.

    Attributes:
        _dotenv_loaded: Whether .env file has been loaded.
        _dotenv_lock: Thread lock for safe dotenv loading.

    Example:
        ```python
        loader = CredentialLoader(load_dotenv=False)

        # Everything from APIGEE_* environment variables
        bundle = loader.load()

        # Explicit values win over the environment
        bundle = loader.load(username="ops@example.com", password="s3cret", organization="acme")
        ```
    """

    def __init__(self, dotenv_path: str | None = None, load_dotenv: bool = True):
        """Initialize credential loader.

        Args:
            dotenv_path: Path to .env file. If None, searches parent directories
                for .env file (default behavior of python-dotenv).
            load_dotenv: Whether to load .env file. Set to False to skip
                .env file loading (useful for testing).
        """
        self._dotenv_loaded = False
        self._dotenv_lock = Lock()
        self._dotenv_path = dotenv_path
        self._load_dotenv_enabled = load_dotenv

        if self._load_dotenv_enabled:
            self._ensure_dotenv_loaded()

    def _ensure_dotenv_loaded(self) -> None:
        """Ensure .env file is loaded (thread-safe, at most once)."""
        if self._dotenv_loaded:
            return

        with self._dotenv_lock:
            if self._dotenv_loaded:
                return

            try:
                load_dotenv(dotenv_path=self._dotenv_path)
                logger.debug("Loaded .env file for Apigee settings")
            except OSError as e:
                logger.warning(f"Failed to load .env file: {e}")
            self._dotenv_loaded = True

    def resolve(
        self,
        *,
        value: str | None = None,
        env_var_name: str | None = None,
        default: str | None = None,
        sensitive: bool = False,
    ) -> str | None:
        """Resolve a single setting.

        Args:
            value: Explicitly provided value (highest priority).
            env_var_name: Environment variable name to check.
            default: Default value if not found elsewhere.
            sensitive: Mask the value in log messages.

        Returns:
            Resolved value, or None if no source provides one.
        """
        result = None
        source = None

        if value is not None:
            result = value
            source = "explicit parameter"
        elif env_var_name and os.environ.get(env_var_name):
            # An empty variable counts as unset
            result = os.environ[env_var_name]
            source = f"environment variable '{env_var_name}'"
        elif default is not None:
            result = default
            source = "default value"

        if result is not None:
            shown = "***" if sensitive else result
            logger.debug(f"Resolved {env_var_name or 'setting'} from {source}: {shown}")

        return result

    def resolve_port(self, *, value: int | str | None = None, env_var_name: str) -> int:
        """Resolve a port setting and check it lies in [0, 65535].

        Raises:
            ConfigError: If the value is not an integer or is out of range.
        """
        raw = self.resolve(
            value=None if value is None else str(value),
            env_var_name=env_var_name,
            default=str(DEFAULT_PORT),
        )
        try:
            port = int(raw)
        except (TypeError, ValueError):
            raise ConfigError(f"{env_var_name} must be an integer, got {raw!r}", env_var_name=env_var_name) from None

        if not 0 <= port <= MAX_PORT:
            raise ConfigError(
                f"{env_var_name} must be between 0 and {MAX_PORT}, got {port}",
                env_var_name=env_var_name,
            )
        return port

    def load(self, **explicit: str | int | None) -> CredentialBundle:
        """Build a bundle, with ``explicit`` keyword values taking precedence.

        Keyword names match the :class:`CredentialBundle` fields. ``None``
        means "not set explicitly".

        Raises:
            ConfigError: For unknown setting names or invalid ports.
        """
        known = {f.name for f in fields(CredentialBundle)}
        unknown = sorted(set(explicit) - known)
        if unknown:
            raise ConfigError(f"Unknown Apigee setting(s): {', '.join(unknown)}")

        settings: dict[str, str | int] = {}
        for name, env_var_name, default, sensitive in _STRING_SETTINGS:
            explicit_value = explicit.get(name)
            settings[name] = self.resolve(
                value=None if explicit_value is None else str(explicit_value),
                env_var_name=env_var_name,
                default=default,
                sensitive=sensitive,
            )
        for name, env_var_name in _PORT_SETTINGS:
            settings[name] = self.resolve_port(value=explicit.get(name), env_var_name=env_var_name)

        return CredentialBundle(**settings)
