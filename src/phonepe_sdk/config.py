"""Gateway client configuration from YAML file and environment.

Loads from a YAML file (optional) with all settings under a ``phonepe:``
section, then applies PHONEPE_* environment variable overrides:

    phonepe:
      client_id: ${PHONEPE_CLIENT_ID}
      client_version: "1"
      client_secret: ${PHONEPE_CLIENT_SECRET}
      merchant_id: M123
      environment: sandbox
      timeout_seconds: 30
      token_refresh_buffer_seconds: 60

Environment variables ARE supported using ${VAR_NAME} and
${VAR_NAME:-default} syntax in YAML files. A .env file is loaded first
(without overriding variables already set in the process).
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from phonepe_sdk.auth.models import ClientIdentity
from phonepe_sdk.constants import (
    API_ENDPOINTS,
    DEFAULT_AUTH_HEADER_SCHEME,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_DELAY_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_TOKEN_REFRESH_BUFFER_SECONDS,
    ENVIRONMENTS,
)
from phonepe_sdk.errors.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_SECTION = "phonepe"
ENV_PREFIX = "PHONEPE_"

_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::-(([^}]*))?)?\}")

_TRUE_VALUES = {"1", "true", "yes", "on"}


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} in config data."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return _ENV_PATTERN.sub(replacer, data)
    else:
        return data


def _to_bool(value: Any) -> bool:
    # bool('false') would be True
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


@dataclass
class GatewayConfig:
    """PhonePe gateway client configuration.

    All durations are in seconds.
    """

    client_id: str
    client_version: str
    client_secret: str = field(repr=False)
    merchant_id: str = ""
    environment: str = "sandbox"

    # Endpoint overrides (default: derived from environment)
    base_url: str = ""
    auth_url: str = ""

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS
    token_refresh_buffer_seconds: float = DEFAULT_TOKEN_REFRESH_BUFFER_SECONDS
    auth_header_scheme: str = DEFAULT_AUTH_HEADER_SCHEME
    debug: bool = False
    custom_headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        """Ensure proper types from YAML/env vars, then validate."""
        self.client_version = str(self.client_version)
        self.environment = str(self.environment).strip().lower()
        self.timeout_seconds = float(self.timeout_seconds)
        self.retry_attempts = int(self.retry_attempts)
        self.retry_delay_seconds = float(self.retry_delay_seconds)
        self.token_refresh_buffer_seconds = float(self.token_refresh_buffer_seconds)
        self.debug = _to_bool(self.debug)
        self.custom_headers = dict(self.custom_headers or {})
        self.validate()

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigurationError: On the first invalid field
        """
        for name in ("client_id", "client_version", "client_secret"):
            if not getattr(self, name):
                raise ConfigurationError(f"{name} is required", field_name=name)

        if self.environment not in ENVIRONMENTS:
            raise ConfigurationError(
                f"environment must be one of {ENVIRONMENTS}, got {self.environment!r}",
                field_name="environment",
            )

        for name in ("base_url", "auth_url"):
            value = getattr(self, name)
            if value and not value.startswith(("http://", "https://")):
                raise ConfigurationError(
                    f"{name} must start with http:// or https://, got: {value!r}",
                    field_name=name,
                )

        if self.timeout_seconds <= 0:
            raise ConfigurationError("timeout_seconds must be > 0", field_name="timeout_seconds")
        if self.retry_attempts < 1:
            raise ConfigurationError("retry_attempts must be >= 1", field_name="retry_attempts")
        if self.retry_delay_seconds < 0:
            raise ConfigurationError(
                "retry_delay_seconds must be >= 0", field_name="retry_delay_seconds"
            )
        if self.token_refresh_buffer_seconds < 0:
            raise ConfigurationError(
                "token_refresh_buffer_seconds must be >= 0",
                field_name="token_refresh_buffer_seconds",
            )

    @property
    def resolved_base_url(self) -> str:
        return (self.base_url or API_ENDPOINTS[self.environment]["base_url"]).rstrip("/")

    @property
    def token_url(self) -> str:
        if self.auth_url:
            return self.auth_url
        return self.resolved_base_url + API_ENDPOINTS[self.environment]["auth"]

    def endpoint(self, name_or_path: str) -> str:
        """Absolute URL for a named endpoint (e.g. "refund") or a path."""
        if name_or_path.startswith(("http://", "https://")):
            return name_or_path
        path = API_ENDPOINTS[self.environment].get(name_or_path, name_or_path)
        return f"{self.resolved_base_url}/{path.lstrip('/')}"

    def identity(self) -> ClientIdentity:
        return ClientIdentity(
            client_id=self.client_id,
            client_version=self.client_version,
            client_secret=self.client_secret,
        )


# YAML key -> environment variable suffix
_ENV_OVERRIDES = {
    "client_id": "CLIENT_ID",
    "client_version": "CLIENT_VERSION",
    "client_secret": "CLIENT_SECRET",
    "merchant_id": "MERCHANT_ID",
    "environment": "ENVIRONMENT",
    "base_url": "BASE_URL",
    "auth_url": "AUTH_URL",
    "timeout_seconds": "TIMEOUT_SECONDS",
    "retry_attempts": "RETRY_ATTEMPTS",
    "retry_delay_seconds": "RETRY_DELAY_SECONDS",
    "token_refresh_buffer_seconds": "TOKEN_REFRESH_BUFFER_SECONDS",
    "auth_header_scheme": "AUTH_HEADER_SCHEME",
    "debug": "DEBUG",
}


def load_config(
    config_path: Path | str | None = None,
    env_file: Path | str | None = None,
    overrides: dict[str, Any] | None = None,
) -> GatewayConfig:
    """Load gateway configuration.

    Priority (highest to lowest):
    1. overrides argument
    2. PHONEPE_* environment variables
    3. YAML file ``phonepe:`` section (with ${VAR} expansion)
    4. GatewayConfig defaults

    Args:
        config_path: YAML file path (optional; missing file is ignored)
        env_file: .env file to load first (default: .env in the working dir)
        overrides: Explicit values, e.g. from tests

    Raises:
        ConfigurationError: If required values are missing or invalid
    """
    load_dotenv(dotenv_path=env_file, override=False)

    data: dict[str, Any] = {}
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s", path)
        yaml_data = _expand_env_vars(load_yaml(path))
        data.update(yaml_data.get(CONFIG_SECTION, {}) or {})

    for key, suffix in _ENV_OVERRIDES.items():
        value = os.getenv(ENV_PREFIX + suffix)
        if value:
            data[key] = value

    if overrides:
        data.update(overrides)

    unknown = set(data) - set(GatewayConfig.__dataclass_fields__)
    if unknown:
        logger.warning("Ignoring unknown config keys: %s", sorted(unknown))
        for key in unknown:
            data.pop(key)

    for name in ("client_id", "client_version", "client_secret"):
        data.setdefault(name, "")

    config = GatewayConfig(**data)

    logger.debug(
        "Configuration loaded",
        extra={"environment": config.environment, "merchant_id": config.merchant_id},
    )
    return config


__all__ = ["GatewayConfig", "load_config", "load_yaml"]
