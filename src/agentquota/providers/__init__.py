"""Provider implementations and the provider catalog for agentquota."""

from agentquota.providers.registry import AuthMethod
from agentquota.providers.registry import ProviderCLIConfig
from agentquota.providers.registry import ProviderDescriptor
from agentquota.providers.registry import ProviderMetadata
from agentquota.providers.registry import ProviderRegistry
from agentquota.providers.registry import build_registry

__all__ = [
    "AuthMethod",
    "ProviderCLIConfig",
    "ProviderDescriptor",
    "ProviderMetadata",
    "ProviderRegistry",
    "build_registry",
]
