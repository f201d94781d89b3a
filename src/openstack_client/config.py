"""Configuration management for the OpenStack catalog client.

This module handles loading and validating client configuration from a JSON
config file and the standard OS_* environment variables.
"""

import json
import logging
import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError
from .models import Credentials, SelectionCriteria

# Default configuration values
DEFAULT_TIMEOUT = 30
DEFAULT_LOG_LEVEL = "info"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "openstack-client" / "config.json"
VALID_LOG_LEVELS = ["debug", "info", "warning", "error"]
MIN_TIMEOUT = 1
MAX_TIMEOUT = 300

PACKAGE_LOGGER = "openstack_client"

logger = logging.getLogger(__name__)


@dataclass
class ClientConfig:
    """Configuration for authenticating against an identity endpoint.

    Args:
        auth_url: Identity endpoint URL (http or https)
        tenant: Tenant (project) name
        username: User name
        password: Password
        region: Preferred region for service endpoints (optional)
        timeout: Request timeout in seconds (1-300, default: 30)
        verify_tls: Whether to verify TLS certificates (default: True)
        log_level: Logging level (debug/info/warning/error, default: info)
    """

    auth_url: str
    tenant: str
    username: str
    password: str = field(repr=False)
    region: Optional[str] = None
    timeout: int = DEFAULT_TIMEOUT
    verify_tls: bool = True
    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self):
        """Validate configuration after initialization."""
        for name in ("auth_url", "tenant", "username", "password"):
            value = getattr(self, name)
            if not value:
                raise ConfigurationError(f"{name} cannot be empty")
            if not isinstance(value, str):
                raise ConfigurationError(
                    f"{name} must be a string. Got: {type(value).__name__}"
                )

        if not self.auth_url.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"auth_url must be an http or https URL. Got: {self.auth_url[:20]}..."
            )

        if isinstance(self.timeout, bool) or not isinstance(self.timeout, int):
            raise ConfigurationError(
                f"timeout must be an integer. Got: {self.timeout!r}"
            )
        if self.timeout < MIN_TIMEOUT or self.timeout > MAX_TIMEOUT:
            raise ConfigurationError(
                f"timeout must be between {MIN_TIMEOUT} and {MAX_TIMEOUT} seconds. "
                f"Got: {self.timeout}"
            )

        if not isinstance(self.log_level, str):
            raise ConfigurationError(
                f"log_level must be a string. Got: {self.log_level!r}"
            )
        self.log_level = self.log_level.lower()
        if self.log_level not in VALID_LOG_LEVELS:
            raise ConfigurationError(
                f"log_level must be one of {VALID_LOG_LEVELS}. "
                f"Got: {self.log_level}"
            )

        self.auth_url = self.auth_url.rstrip("/")

    def credentials(self) -> Credentials:
        return Credentials(
            tenant=self.tenant, username=self.username, password=self.password
        )

    def selection(self, **options) -> SelectionCriteria:
        """Selection criteria defaulting to the configured region."""
        options.setdefault("region", self.region)
        return SelectionCriteria.from_options(**options)

    def configure_logging(self) -> None:
        """Apply log_level to the package logger."""
        logging.getLogger(PACKAGE_LOGGER).setLevel(self.log_level.upper())


def _env_bool(value: str) -> bool:
    return value.strip().lower() not in ("0", "false", "no", "off", "")


def load_config(
    config_path: Optional[str] = None, use_env: bool = False
) -> ClientConfig:
    """Load configuration from file and/or environment variables.

    Args:
        config_path: Path to config JSON file (default: DEFAULT_CONFIG_PATH)
        use_env: Whether to use environment variables (overrides file config)

    Returns:
        ClientConfig instance

    Raises:
        FileNotFoundError: If config file not found
        ConfigurationError: If the file is invalid or required fields are
            missing or invalid

    Environment Variables:
        OS_AUTH_URL: Identity endpoint URL
        OS_TENANT_NAME or OS_PROJECT_NAME: Tenant name (OS_TENANT_NAME wins)
        OS_USERNAME: User name
        OS_PASSWORD: Password
        OS_REGION_NAME: Preferred region
        OS_TIMEOUT: Timeout in seconds
        OS_INSECURE: Disable TLS verification when true
        OS_LOG_LEVEL: Log level
    """
    config_data = {}

    # Load from file if path provided or not using the environment alone
    if config_path is not None or not use_env:
        path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        path = path.expanduser().resolve()

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        # The file holds a password
        file_perms = os.stat(path).st_mode & 0o777
        if file_perms & (stat.S_IRWXG | stat.S_IRWXO):
            logger.warning(
                f"Configuration file {path} has insecure permissions {oct(file_perms)}. "
                f"Recommend setting to 0600: chmod 0600 {path}"
            )

        try:
            with open(path) as f:
                config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in config file {path}: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Config file {path} must contain a JSON object")

    if use_env:
        env = os.environ
        if "OS_AUTH_URL" in env:
            config_data["auth_url"] = env["OS_AUTH_URL"]

        if "OS_TENANT_NAME" in env:
            config_data["tenant"] = env["OS_TENANT_NAME"]
        elif "OS_PROJECT_NAME" in env:
            config_data["tenant"] = env["OS_PROJECT_NAME"]

        if "OS_USERNAME" in env:
            config_data["username"] = env["OS_USERNAME"]
        if "OS_PASSWORD" in env:
            config_data["password"] = env["OS_PASSWORD"]
        if "OS_REGION_NAME" in env:
            config_data["region"] = env["OS_REGION_NAME"]

        if "OS_TIMEOUT" in env:
            try:
                config_data["timeout"] = int(env["OS_TIMEOUT"])
            except ValueError as e:
                raise ConfigurationError(
                    f"OS_TIMEOUT must be an integer. Got: {env['OS_TIMEOUT']}"
                ) from e

        if "OS_INSECURE" in env:
            config_data["verify_tls"] = not _env_bool(env["OS_INSECURE"])
        if "OS_LOG_LEVEL" in env:
            config_data["log_level"] = env["OS_LOG_LEVEL"]

    hints = {
        "auth_url": "OS_AUTH_URL",
        "tenant": "OS_TENANT_NAME",
        "username": "OS_USERNAME",
        "password": "OS_PASSWORD",
    }
    for name, variable in hints.items():
        if name not in config_data:
            raise ConfigurationError(
                f"Missing required field: {name}\n"
                f"  Fix: Set {variable} environment variable\n"
                f"  Or: Add '{name}' to {DEFAULT_CONFIG_PATH}"
            )

    known = set(ClientConfig.__dataclass_fields__)
    unknown = set(config_data) - known
    if unknown:
        raise ConfigurationError(f"Unknown config fields: {sorted(unknown)}")

    return ClientConfig(**config_data)
