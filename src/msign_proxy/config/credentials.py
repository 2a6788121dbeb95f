"""
Certificate password storage in the system keychain.

The password for a client certificate can be kept in the OS keyring
(entry name = resolved certificate path) instead of the settings file.
"""

from __future__ import annotations

__all__ = [
    "delete_keyring_password",
    "get_credential_storage_info",
    "get_keyring_password",
    "save_keyring_password",
]

import logging
from typing import TYPE_CHECKING

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from ..constants import KEYRING_SERVICE
from ..errors import ConfigurationError

if TYPE_CHECKING:
    from pathlib import Path

_logger = logging.getLogger(__name__)


def get_keyring_password(cert_path: Path) -> str | None:
    """Look up the stored password for a certificate, or None."""
    try:
        password = keyring.get_password(KEYRING_SERVICE, str(cert_path))
    except (KeyringError, RuntimeError, OSError) as e:
        _logger.debug("Keyring lookup failed: %s", e)
        return None
    if password:
        _logger.debug("Certificate password found in keyring")
    return password or None


def save_keyring_password(cert_path: Path, password: str) -> None:
    """Store a certificate password in the keyring.

    Raises:
        ConfigurationError: If no usable keyring backend is available.
    """
    try:
        keyring.set_password(KEYRING_SERVICE, str(cert_path), password)
    except (KeyringError, RuntimeError, OSError) as e:
        raise ConfigurationError(f"Cannot store password in keyring: {e}") from e
    _logger.info("Stored certificate password in %s", get_credential_storage_info())


def delete_keyring_password(cert_path: Path) -> bool:
    """Remove a stored password. Returns False if there was none."""
    try:
        keyring.delete_password(KEYRING_SERVICE, str(cert_path))
    except PasswordDeleteError:
        return False
    except (KeyringError, RuntimeError, OSError) as e:
        _logger.debug("Keyring delete failed: %s", e)
        return False
    return True


def get_credential_storage_info() -> str:
    """Return a human-readable name of the active keyring backend."""
    backend = keyring.get_keyring()
    module = type(backend).__module__ or ""
    if "macOS" in module:
        return "macOS Keychain"
    if "Windows" in module or "WinVault" in module:
        return "Windows Credential Manager"
    if "SecretService" in module:
        return "Linux Secret Service"
    if "KWallet" in module:
        return "KDE Wallet"
    return f"System keychain ({type(backend).__name__})"
