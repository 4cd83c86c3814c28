"""Client configuration management.

Loads the IDX client settings from an okta.yaml file and environment
variables. Environment variables take precedence over file settings.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml

from idxclient.core.errors import ConfigError

# Default config locations
DEFAULT_CONFIG_DIR = Path.home() / ".okta"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "okta.yaml"

# Environment variable prefix
ENV_PREFIX = "OKTA_IDX_"

DEFAULT_SCOPES = ["openid", "profile"]
DEFAULT_TIMEOUT = 60.0


@dataclass
class IDXConfig:
    """Settings of one IDX client application."""

    issuer: str = ""
    client_id: str = ""
    client_secret: str = field(default="", repr=False)
    redirect_uri: str = ""
    scopes: list[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))
    timeout: float = DEFAULT_TIMEOUT
    config_path: Path | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], config_path: Path | None = None) -> IDXConfig:
        """Create IDXConfig from the 'okta.idx' section of a config file."""
        return cls(
            issuer=data.get("issuer", ""),
            client_id=data.get("clientId", ""),
            client_secret=data.get("clientSecret", ""),
            redirect_uri=data.get("redirectUri", ""),
            scopes=_parse_scopes(data.get("scopes")) or list(DEFAULT_SCOPES),
            timeout=float(data.get("timeout", DEFAULT_TIMEOUT)),
            config_path=config_path,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the okta.yaml layout."""
        return {
            "okta": {
                "idx": {
                    "issuer": self.issuer,
                    "clientId": self.client_id,
                    "clientSecret": self.client_secret,
                    "redirectUri": self.redirect_uri,
                    "scopes": list(self.scopes),
                    "timeout": self.timeout,
                }
            }
        }

    @property
    def interact_endpoint(self) -> str:
        """The interact endpoint of the authorization server."""
        return f"{self.issuer.rstrip('/')}/v1/interact"

    @property
    def introspect_endpoint(self) -> str:
        """The introspect endpoint, served from the org root."""
        parsed = urlparse(self.issuer)
        return f"{parsed.scheme}://{parsed.netloc}/idp/idx/introspect"

    def validate(self) -> None:
        """Check that every setting needed by the flows is present.

        Raises:
            ConfigError: Describing the first invalid setting.
        """
        if not self.issuer:
            raise ConfigError("issuer is required")
        parsed = urlparse(self.issuer)
        if parsed.scheme != "https" or not parsed.netloc:
            raise ConfigError(f"issuer must be an https URL, got '{self.issuer}'")
        if "{" in self.issuer:
            raise ConfigError("issuer still contains a template placeholder")
        if not self.client_id:
            raise ConfigError("client id is required")
        if not self.client_secret:
            raise ConfigError("client secret is required")
        if not self.redirect_uri:
            raise ConfigError("redirect URI is required")
        if not self.scopes:
            raise ConfigError("at least one scope is required")
        if self.timeout <= 0:
            raise ConfigError("timeout must be positive")


def _parse_scopes(value: Any) -> list[str]:
    """Accept a list or a comma/space separated string of scopes."""
    if value is None:
        return []
    if isinstance(value, str):
        return [s for s in re.split(r"[,\s]+", value) if s]
    return [str(s) for s in value]


def load_config(config_path: Path | None = None) -> IDXConfig:
    """Load client configuration.

    Configuration is loaded in this order (later values override earlier):
    1. Default values
    2. okta.yaml file (if exists)
    3. Environment variables

    Args:
        config_path: Path to config file. Uses default if not specified.

    Returns:
        IDXConfig with merged settings. Call validate() before use.

    Raises:
        ConfigError: If the config file exists but cannot be parsed.
    """
    config = IDXConfig()

    file_path = config_path or DEFAULT_CONFIG_FILE
    if file_path.exists():
        try:
            with open(file_path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"failed to read config file {file_path}: {e}") from e
        idx_section = (data.get("okta") or {}).get("idx") or {}
        config = IDXConfig.from_dict(idx_section, config_path=file_path)

    if os.environ.get(f"{ENV_PREFIX}ISSUER"):
        config.issuer = os.environ[f"{ENV_PREFIX}ISSUER"]

    if os.environ.get(f"{ENV_PREFIX}CLIENTID"):
        config.client_id = os.environ[f"{ENV_PREFIX}CLIENTID"]

    if os.environ.get(f"{ENV_PREFIX}CLIENTSECRET"):
        config.client_secret = os.environ[f"{ENV_PREFIX}CLIENTSECRET"]

    if os.environ.get(f"{ENV_PREFIX}REDIRECTURI"):
        config.redirect_uri = os.environ[f"{ENV_PREFIX}REDIRECTURI"]

    if os.environ.get(f"{ENV_PREFIX}SCOPES"):
        config.scopes = _parse_scopes(os.environ[f"{ENV_PREFIX}SCOPES"])

    if os.environ.get(f"{ENV_PREFIX}TIMEOUT"):
        try:
            config.timeout = float(os.environ[f"{ENV_PREFIX}TIMEOUT"])
        except ValueError:
            raise ConfigError(f"{ENV_PREFIX}TIMEOUT must be a number") from None

    return config


def get_default_config_yaml() -> str:
    """Get the default okta.yaml content as a string.

    Useful for generating example configuration files.
    """
    return """\
# IDX client configuration
# Environment variables override these settings (prefix: OKTA_IDX_)

okta:
  idx:
    # Authorization server issuer, e.g. https://dev-123456.okta.com/oauth2/default
    issuer: "https://{yourOktaDomain}/oauth2/default"

    # Client credentials of the application (interaction code grant enabled)
    clientId: "{clientId}"
    clientSecret: "{clientSecret}"

    # Scopes requested for the tokens
    scopes:
      - "openid"
      - "profile"

    # Redirect URI registered on the application
    redirectUri: "http://localhost:8080/login/callback"

    # HTTP request timeout in seconds
    timeout: 60
"""
