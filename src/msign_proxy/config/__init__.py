"""
Configuration loading.

Import from this package rather than the individual submodules.
"""

from __future__ import annotations

from ._storage import content_root, load_settings_section, settings_file_path
from .credentials import (
    delete_keyring_password,
    get_credential_storage_info,
    get_keyring_password,
    save_keyring_password,
)
from .settings import (
    GatewaySettings,
    load_settings,
    parse_flag,
    resolve_cert_path,
)

__all__ = [
    "GatewaySettings",
    "content_root",
    "delete_keyring_password",
    "get_credential_storage_info",
    "get_keyring_password",
    "load_settings",
    "load_settings_section",
    "parse_flag",
    "resolve_cert_path",
    "save_keyring_password",
    "settings_file_path",
]
