"""Configuration management using Pydantic Settings."""

from pathlib import Path
from typing import Any, Literal
from urllib.parse import urlsplit

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

# Config file location
CONFIG_PATH = Path.home() / ".config" / "redaxo-relay" / "config.yaml"

# The browser never pings more often than this, whatever is configured.
MIN_REFRESH_INTERVAL = 30


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads from YAML config file."""

    def get_field_value(
        self, field: Any, field_name: str
    ) -> tuple[Any, str, bool]:
        """Get field value from YAML config."""
        config = load_config()
        if field_name in config:
            return config[field_name], field_name, False
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        """Return all config values."""
        return load_config()


def resolve_location(location: str, base_url: str | None) -> str:
    """Turn a portal-relative location into an absolute URL.

    Args:
        location: Absolute URL or path starting with '/'
        base_url: Absolute base URL of the portal

    Returns:
        The absolute URL

    Raises:
        ValueError: If a relative location cannot be resolved
    """
    if location.startswith("/"):
        if not base_url:
            raise ValueError(
                f"Cannot resolve relative location {location!r} without a portal base URL"
            )
        return base_url.rstrip("/") + location
    return location


def validate_external_location(value: str, base_url: str | None = None) -> str:
    """Validate the CMS location entered by an administrator.

    An empty value is accepted and means "reset".

    Returns:
        The absolute URL (or the empty string)

    Raises:
        ValueError: If scheme or host are unusable
    """
    value = value.strip()
    if value == "":
        return value

    url = resolve_location(value, base_url)
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https"):
        raise ValueError(
            f"Scheme of external URL must be one of `http' or `https', `{parts.scheme}' given."
        )
    if not parts.hostname:
        raise ValueError("Host-part of external URL seems to be empty")
    return url


def validate_refresh_interval(value: str | int) -> int:
    """Validate the authentication refresh interval (seconds, >= 0)."""
    try:
        interval = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Value {value!r} for authenticationRefreshInterval is not an integer")
    if interval < 0:
        raise ValueError(f"Value {value!r} for authenticationRefreshInterval is not in the allowed range")
    return interval


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="REDAXO_RELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_name: str = Field(
        default="redaxo",
        description="Application name, used as key into the session store",
    )
    external_location: str | None = Field(
        default=None,
        description="URL of the Redaxo backend, or a path relative to the portal",
    )
    portal_base_url: str | None = Field(
        default=None,
        description="Absolute base URL of the portal, used for relative locations",
    )
    authentication_refresh_interval: int = Field(
        default=600,
        ge=0,
        description="Seconds between keep-alive pings issued by the browser",
    )
    enable_ssl_verify: bool = Field(default=True, description="Verify TLS certificates of the CMS")
    relogin_delay: int = Field(
        default=5,
        ge=0,
        description="Seconds during which a known login status is trusted without re-probing",
    )
    timeout: int = Field(default=30, ge=5, le=120, description="HTTP timeout in seconds")
    dialect: Literal["redaxo5", "redaxo4"] = Field(
        default="redaxo5",
        description="Markup dialect of the CMS backend",
    )

    @field_validator("external_location", mode="after")
    @classmethod
    def empty_location_is_unset(cls, v: str | None) -> str | None:
        """Treat an empty location as not configured."""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def client_refresh_interval(self) -> int:
        """Refresh interval handed to the browser, clamped to the minimum."""
        return max(MIN_REFRESH_INTERVAL, self.authentication_refresh_interval)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources - priority: env > yaml > defaults."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
        )


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (useful for testing)."""
    global _settings
    _settings = None


def load_config() -> dict[str, Any]:
    """Load config from YAML file.

    Returns:
        Dictionary of config values, empty dict if file doesn't exist or is invalid.
    """
    if not CONFIG_PATH.exists():
        return {}
    try:
        with open(CONFIG_PATH) as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError:
        return {}


def save_config(config: dict[str, Any]) -> None:
    """Save config to YAML file.

    Args:
        config: Dictionary of config values to save.
    """
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    with open(CONFIG_PATH, "w") as f:
        yaml.dump(config, f, default_flow_style=False, allow_unicode=True)
