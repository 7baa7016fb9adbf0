"""
Cloud Module

Provides the provider capability interface and the bundled backends.
"""

from .base import Instance, PowerStatus, ServerProviderClient
from .memory_provider import InMemoryProvider
from .factory import BUILTIN_CLIENTS, get_client, resolve_client_class

__all__ = [
    # Base classes
    "Instance",
    "PowerStatus",
    "ServerProviderClient",
    # Implementations
    "InMemoryProvider",
    # Factory
    "BUILTIN_CLIENTS",
    "get_client",
    "resolve_client_class",
]
