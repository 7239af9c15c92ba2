# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Client configuration.

Configuration is read from a YAML file or from the standard AWS
environment variables.  The default file location follows the XDG Base
Directory Specification:

    ``$XDG_CONFIG_HOME/s3lite/s3lite.yaml``
    (typically ``~/.config/s3lite/s3lite.yaml``)

Example::

    access_key_id: !env AWS_ACCESS_KEY_ID
    secret_access_key: !env AWS_SECRET_ACCESS_KEY
    region: eu-west-1
    # endpoint_url: http://localhost:9000   # S3-compatible server
    timeout: 30
    verify_tls: true
    sign_payload: true

``!env`` tags resolve values from environment variables.  A ``.env``
file in the XDG config directory or the working directory is loaded
first, without overriding variables already set.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from platformdirs import user_config_path

from s3lite.credentials import DEFAULT_REGION, REGION_RE
from s3lite.errors import ConfigError
from s3lite.transport import DEFAULT_TIMEOUT_SECONDS


logger = logging.getLogger(__name__)

#: Application name for XDG path resolution.
_APP_NAME = "s3lite"

_BOOL_TRUTHY = frozenset({"true", "1", "yes", "on"})
_BOOL_FALSY = frozenset({"false", "0", "no", "off"})

_MISSING = object()

_dotenv_loaded = False


def get_config_path() -> Path:
    """Return the default config file path.

    Returns:
        ``$XDG_CONFIG_HOME/s3lite/s3lite.yaml``.
    """
    return user_config_path(_APP_NAME) / "s3lite.yaml"


def get_dotenv_path() -> Path:
    """Return the ``.env`` path inside the XDG config directory."""
    return user_config_path(_APP_NAME) / ".env"


def load_dotenv_once() -> None:
    """Load ``.env`` files once per process.

    The XDG file is loaded before the working directory's ``.env``;
    ``python-dotenv`` does not overwrite variables that are already set,
    so the environment and then the XDG file take precedence.
    """
    global _dotenv_loaded
    if _dotenv_loaded:
        return

    for path in (get_dotenv_path(), Path.cwd() / ".env"):
        if path.exists():
            load_dotenv(path)
            logger.debug("Loaded .env from %s", path)

    _dotenv_loaded = True


def reset_dotenv_state() -> None:
    """Reset the dotenv loaded state. For testing only."""
    global _dotenv_loaded
    _dotenv_loaded = False


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------


class _EnvVar:
    """Placeholder for an unresolved ``!env VAR_NAME`` tag."""

    def __init__(self, var_name: str) -> None:
        self.var_name = var_name


def _env_constructor(loader: yaml.SafeLoader, node: yaml.Node) -> _EnvVar:
    """Handle ``!env VAR_NAME`` in YAML."""
    value = loader.construct_scalar(node)
    return _EnvVar(str(value))


def _make_loader() -> type[yaml.SafeLoader]:
    """Create a YAML loader that understands ``!env``."""

    class EnvLoader(yaml.SafeLoader):
        pass

    EnvLoader.add_constructor("!env", _env_constructor)
    return EnvLoader


# ---------------------------------------------------------------------------
# Value resolution
# ---------------------------------------------------------------------------


def _coerce_bool(value: object) -> bool:
    """Coerce a value to bool, handling string representations."""
    if isinstance(value, bool):
        return value
    s = str(value).lower().strip()
    if s in _BOOL_TRUTHY:
        return True
    if s in _BOOL_FALSY:
        return False
    raise ConfigError(f"Cannot convert {value!r} to bool")


def _resolve(
    value: object,
    coerce: type[Any],
    *,
    name: str,
    default: object = _MISSING,
) -> Any:
    """Resolve a raw config value.

    Resolves ``!env`` placeholders, applies the default when the value
    is absent (or the variable is unset) and coerces to ``coerce``.
    Without a default, an absent value is an error.

    Args:
        value: Raw value from YAML (``_EnvVar``, None or a literal).
        coerce: Target type (``str``, ``int``, ``float``, ``bool``).
        name: Field name used in error messages.
        default: Value used when absent.

    Returns:
        The resolved, coerced value.

    Raises:
        ConfigError: If a required value is missing or cannot be coerced.
    """
    resolved: object = value
    if isinstance(value, _EnvVar):
        resolved = os.environ.get(value.var_name)

    if resolved is None:
        if default is not _MISSING:
            return default
        if isinstance(value, _EnvVar):
            raise ConfigError(
                f"Required config '{name}': environment variable "
                f"'{value.var_name}' is not set"
            )
        raise ConfigError(f"Required config '{name}' is missing")

    if coerce is bool:
        return _coerce_bool(resolved)
    if isinstance(resolved, coerce):
        return resolved
    try:
        return coerce(resolved)
    except (TypeError, ValueError) as e:
        raise ConfigError(
            f"Config '{name}': cannot convert {resolved!r} to "
            f"{coerce.__name__}",
            cause=e,
        ) from e


# ---------------------------------------------------------------------------
# Client configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClientConfig:
    """Settings needed to build an ``S3Client``.

    Attributes:
        access_key_id: AWS access key ID.
        secret_access_key: AWS secret access key.  Hidden from ``repr``.
        region: Signing region.
        endpoint_url: Base URL of an S3-compatible server.  When set,
            requests use path-style addressing against this endpoint.
        timeout: Transport timeout in seconds.
        verify_tls: Verify TLS certificates.
        proxy: Proxy URL for the transport.
        sign_payload: Hash request bodies; when False the payload hash is
            ``UNSIGNED-PAYLOAD``.
    """

    access_key_id: str
    secret_access_key: str = field(repr=False)
    region: str = DEFAULT_REGION
    endpoint_url: str | None = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    verify_tls: bool = True
    proxy: str | None = None
    sign_payload: bool = True

    def __post_init__(self) -> None:
        """Validate values that are not credential checks.

        Raises:
            ConfigError: If validation fails.
        """
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")
        if not REGION_RE.match(self.region):
            raise ConfigError(f"Invalid region: {self.region!r}")
        if self.endpoint_url is not None and not self.endpoint_url.startswith(
            ("http://", "https://")
        ):
            raise ConfigError(
                f"endpoint_url must start with http:// or https://: "
                f"{self.endpoint_url}"
            )

    @classmethod
    def from_yaml(cls, config_path: Path | None = None) -> "ClientConfig":
        """Load configuration from a YAML file.

        Args:
            config_path: Path to YAML config file.  Defaults to
                ``~/.config/s3lite/s3lite.yaml`` (XDG).

        Returns:
            ClientConfig instance.

        Raises:
            ConfigError: If the file is missing or values are invalid.
        """
        load_dotenv_once()

        if config_path is None:
            config_path = get_config_path()

        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")

        try:
            with open(config_path) as f:
                raw = yaml.load(f, Loader=_make_loader())
        except yaml.YAMLError as e:
            raise ConfigError(
                f"Invalid YAML in {config_path}: {e}", cause=e
            ) from e

        if not isinstance(raw, dict):
            raise ConfigError(
                f"Config file must be a YAML mapping: {config_path}"
            )

        config = cls._from_raw(raw)
        logger.info(
            "Loaded config from %s (region=%s, endpoint=%s)",
            config_path,
            config.region,
            config.endpoint_url or "aws",
        )
        return config

    @classmethod
    def _from_raw(cls, raw: dict) -> "ClientConfig":
        """Build config from a parsed (but unresolved) YAML mapping."""
        return cls(
            access_key_id=_resolve(
                raw.get("access_key_id"), str, name="access_key_id"
            ),
            secret_access_key=_resolve(
                raw.get("secret_access_key"), str, name="secret_access_key"
            ),
            region=_resolve(
                raw.get("region"), str, name="region", default=DEFAULT_REGION
            ),
            endpoint_url=_resolve(
                raw.get("endpoint_url"), str, name="endpoint_url", default=None
            ),
            timeout=_resolve(
                raw.get("timeout"),
                float,
                name="timeout",
                default=DEFAULT_TIMEOUT_SECONDS,
            ),
            verify_tls=_resolve(
                raw.get("verify_tls"), bool, name="verify_tls", default=True
            ),
            proxy=_resolve(raw.get("proxy"), str, name="proxy", default=None),
            sign_payload=_resolve(
                raw.get("sign_payload"), bool, name="sign_payload", default=True
            ),
        )

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Build configuration from standard AWS environment variables.

        Reads ``AWS_ACCESS_KEY_ID``, ``AWS_SECRET_ACCESS_KEY``,
        ``AWS_REGION`` (or ``AWS_DEFAULT_REGION``) and
        ``S3LITE_ENDPOINT_URL``.

        Returns:
            ClientConfig instance.

        Raises:
            ConfigError: If the access key variables are not set.
        """
        load_dotenv_once()
        return cls._from_raw(
            {
                "access_key_id": _EnvVar("AWS_ACCESS_KEY_ID"),
                "secret_access_key": _EnvVar("AWS_SECRET_ACCESS_KEY"),
                "region": os.environ.get("AWS_REGION")
                or os.environ.get("AWS_DEFAULT_REGION"),
                "endpoint_url": _EnvVar("S3LITE_ENDPOINT_URL"),
            }
        )
