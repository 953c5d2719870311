"""Configuration structures and loading for agentquota."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

import msgspec

from agentquota.core.context import CookieSourceMode
from agentquota.core.context import ProviderSettingsSnapshot
from agentquota.core.context import SourceMode

logger = logging.getLogger(__name__)

# Default values
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_CONCURRENT = 5
DEFAULT_PROBE_TIMEOUT = 8.0
DEFAULT_LOG_LEVEL = "WARNING"


class FetchConfig(msgspec.Struct, omit_defaults=True):
    """Fetch behavior settings."""

    timeout: float = DEFAULT_TIMEOUT
    max_concurrent: int = DEFAULT_MAX_CONCURRENT
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT


class ProviderConfig(msgspec.Struct, omit_defaults=True):
    """Configuration for a specific provider."""

    source: SourceMode = SourceMode.AUTO
    enabled: bool = True
    cookie_source: CookieSourceMode = CookieSourceMode.AUTO
    cookie_header: str | None = None
    api_token: str | None = None
    custom: dict[str, str] = msgspec.field(default_factory=dict)


class Config(msgspec.Struct, omit_defaults=True):
    """Main configuration structure."""

    enabled_providers: list[str] = []
    log_level: str = DEFAULT_LOG_LEVEL
    fetch: FetchConfig = msgspec.field(default_factory=FetchConfig)
    providers: dict[str, ProviderConfig] = msgspec.field(default_factory=dict)

    def get_provider_config(self, provider_id: str) -> ProviderConfig:
        """Get config for a provider, with defaults."""
        return self.providers.get(provider_id, ProviderConfig())

    def is_provider_enabled(self, provider_id: str) -> bool:
        """Check if a provider is enabled.

        A provider is enabled if:
        1. It's not explicitly disabled in providers config
        2. It's either in enabled_providers list OR enabled_providers is empty (all enabled)
        """
        provider_cfg = self.get_provider_config(provider_id)
        if not provider_cfg.enabled:
            return False
        if not self.enabled_providers:
            return True
        return provider_id in self.enabled_providers

    def settings_snapshot(self, provider_id: str) -> ProviderSettingsSnapshot:
        """Build the read-only settings view handed to fetch strategies."""
        provider_cfg = self.get_provider_config(provider_id)
        return ProviderSettingsSnapshot(
            cookie_source=provider_cfg.cookie_source,
            manual_cookie_header=provider_cfg.cookie_header,
            api_token=provider_cfg.api_token,
            custom_settings=dict(provider_cfg.custom),
        )


def _load_from_toml(path: Path) -> dict:
    """Load configuration from TOML file."""
    if not path.exists():
        return {}

    with path.open("rb") as f:
        return tomllib.load(f)


def _save_to_toml(data: dict, path: Path) -> None:
    """Save configuration to TOML file."""
    import tomli_w

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as f:
        tomli_w.dump(data, f)


def convert_config(data: dict) -> Config:
    """Convert raw dict to Config struct."""
    return msgspec.convert(data, type=Config)


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config.

    AGENTQUOTA_ENABLED_PROVIDERS: Comma-separated list of providers
    AGENTQUOTA_LOG_LEVEL: Logging level name
    """
    if "AGENTQUOTA_ENABLED_PROVIDERS" in os.environ:
        providers_str = os.environ["AGENTQUOTA_ENABLED_PROVIDERS"]
        enabled = [p.strip() for p in providers_str.split(",") if p.strip()]
        config = msgspec.structs.replace(config, enabled_providers=enabled)

    if level := os.environ.get("AGENTQUOTA_LOG_LEVEL"):
        config = msgspec.structs.replace(config, log_level=level.upper())

    return config


# Config state storage
_config: Config | None = None


def get_config() -> Config:
    """Get the current configuration (singleton)."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload configuration from disk."""
    global _config
    _config = load_config()
    return _config


def load_config(path: Path | None = None) -> Config:
    """Load configuration from file with defaults."""
    from .paths import config_file

    config_path = path or config_file()

    raw_data = _load_from_toml(config_path)
    if not raw_data:
        config = Config()
    else:
        logger.debug("Loaded configuration from %s", config_path)
        config = convert_config(raw_data)

    return _apply_env_overrides(config)


def save_config(config: Config, path: Path | None = None) -> None:
    """Save configuration to file."""
    from .paths import config_file

    config_path = path or config_file()

    # omit_defaults keeps the file minimal; TOML has no null
    data = msgspec.to_builtins(config)

    def clean_none(d: dict) -> dict:
        return {
            k: clean_none(v) if isinstance(v, dict) else v
            for k, v in d.items()
            if v is not None
        }

    _save_to_toml(clean_none(data), config_path)

    global _config
    _config = config
