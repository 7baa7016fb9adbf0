"""
Cloud Provider Factory

Resolves a backend from a short name or a `package.module:ClassName` path.
"""

import importlib
from typing import Dict, Type

from ..configs.types import Settings
from .base import ServerProviderClient
from .memory_provider import InMemoryProvider


BUILTIN_CLIENTS: Dict[str, Type[ServerProviderClient]] = {
    "memory": InMemoryProvider,
}


def resolve_client_class(name: str) -> Type[ServerProviderClient]:
    """
    Look up a backend class.

    Args:
        name: Either a builtin name (e.g. "memory") or "package.module:ClassName"

    Returns:
        The ServerProviderClient subclass

    Raises:
        ValueError: If the name cannot be resolved to a backend class
    """
    if name in BUILTIN_CLIENTS:
        return BUILTIN_CLIENTS[name]

    module_name, sep, class_name = name.partition(":")
    if not sep or not module_name or not class_name:
        raise ValueError(f"Unsupported cloud provider: {name}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ValueError(f"Cannot import provider module {module_name}: {e}") from e

    cls = getattr(module, class_name, None)
    if not isinstance(cls, type) or not issubclass(cls, ServerProviderClient):
        raise ValueError(f"{name} is not a ServerProviderClient")
    return cls


def get_client(name: str, settings: Settings) -> ServerProviderClient:
    """Instantiate the backend `name` for the given settings"""
    return resolve_client_class(name).from_settings(settings)
