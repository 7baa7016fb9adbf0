"""
Configuration Module

Provides the settings model and loading utilities.
"""

from .types import Repository, Settings
from .loader import get_public_key_body, load_settings, load_ssh_public_key, settings_from_dict

__all__ = [
    "Repository",
    "Settings",
    "get_public_key_body",
    "load_settings",
    "load_ssh_public_key",
    "settings_from_dict",
]
