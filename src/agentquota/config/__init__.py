"""Configuration management for agentquota."""

from agentquota.config.credentials import (
    credential_path,
    has_secure_permissions,
    read_credential,
    read_json_credential,
)
from agentquota.config.paths import (
    config_dir,
    config_file,
    credentials_dir,
    ensure_directories,
)
from agentquota.config.settings import (
    Config,
    FetchConfig,
    ProviderConfig,
    get_config,
    load_config,
    reload_config,
    save_config,
)

__all__ = [
    # paths
    "config_dir",
    "credentials_dir",
    "config_file",
    "ensure_directories",
    # settings
    "Config",
    "FetchConfig",
    "ProviderConfig",
    "get_config",
    "load_config",
    "reload_config",
    "save_config",
    # credentials
    "credential_path",
    "has_secure_permissions",
    "read_credential",
    "read_json_credential",
]
