"""
Configuration Loader

Loads testbed settings from TOML files and reads the SSH key material
referenced by them.
"""

from pathlib import Path
from typing import Any, Dict, Union

import tomllib
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes
from loguru import logger
from pydantic import ValidationError

from ..errors import ConfigurationError
from .types import Settings


def load_settings(config_path: Union[str, Path]) -> Settings:
    """Load settings from a TOML file"""
    path = Path(config_path)
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Configuration file not found: {path}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e

    return settings_from_dict(data)


def settings_from_dict(data: Dict[str, Any]) -> Settings:
    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e


def load_ssh_public_key(settings: Settings) -> str:
    """
    Read the OpenSSH public key registered with the provider.

    The private key is loaded too, readiness probes log in with it, and the
    public key file must belong to it. Falls back to deriving the public key
    from the private key when no public key file exists next to it.

    Raises:
        ConfigurationError: If the key material is missing, malformed or
            the two keys do not form a pair
    """
    private_key = load_private_key(settings.ssh_private_key_file)

    public_path = settings.public_key_path
    if public_path.exists():
        try:
            text = public_path.read_text().strip()
        except OSError as e:
            raise ConfigurationError(f"Cannot read public key {public_path}: {e}") from e
        try:
            serialization.load_ssh_public_key(text.encode("utf-8"))
        except (ValueError, UnsupportedAlgorithm) as e:
            raise ConfigurationError(f"Malformed public key {public_path}: {e}") from e
        if text.split()[:2] != _openssh_public_key(private_key).split()[:2]:
            raise ConfigurationError(
                f"Public key {public_path} does not match private key {settings.ssh_private_key_file}")
        return text

    if settings.ssh_public_key_file is not None:
        raise ConfigurationError(f"Public key file not found: {public_path}")

    logger.debug(f"{public_path} not found, deriving public key from {settings.ssh_private_key_file}")
    return _openssh_public_key(private_key)


def get_public_key_body(path: Union[str, Path]) -> str:
    """
    Extract the OpenSSH public key from a private key file.

    Args:
        path: Private key path (PEM or OpenSSH format, unencrypted)

    Returns:
        Public key string in OpenSSH format
    """
    return _openssh_public_key(load_private_key(path))


def load_private_key(path: Union[str, Path]) -> PrivateKeyTypes:
    """Load an unencrypted private key, trying PEM first and OpenSSH second"""
    try:
        with open(path, "rb") as f:
            key_data = f.read()
    except OSError as e:
        raise ConfigurationError(f"Cannot read private key {path}: {e}") from e

    try:
        try:
            return serialization.load_pem_private_key(key_data, password=None)
        except ValueError:
            return serialization.load_ssh_private_key(key_data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise ConfigurationError(f"Malformed private key {path}: {e}") from e


def _openssh_public_key(private_key: PrivateKeyTypes) -> str:
    public_key_bytes = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.OpenSSH,
        format=serialization.PublicFormat.OpenSSH,
    )
    return public_key_bytes.decode("utf-8").strip()
