"""
Gateway settings resolution.

Priority for every value: environment variable > settings file > default.
The certificate password additionally consults the system keyring before
falling back to the settings file.
"""

from __future__ import annotations

__all__ = [
    "GatewaySettings",
    "load_settings",
    "parse_flag",
    "resolve_cert_path",
]

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from ..constants import (
    DEFAULT_ENDPOINT_URL,
    DEFAULT_LANGUAGE,
    DEFAULT_REDIRECT_BASE_URL,
    ENV_CERT_PASSWORD,
    ENV_CERT_PATH,
    ENV_ENDPOINT_URL,
    ENV_INSECURE_SKIP_VERIFY,
    ENV_LANGUAGE,
    ENV_REDIRECT_BASE_URL,
)
from ..errors import ConfigurationError
from ._storage import content_root, load_settings_section
from .credentials import get_keyring_password

_logger = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


@dataclass(frozen=True)
class GatewaySettings:
    """Everything needed to build a signing client."""

    content_root: Path
    cert_path: str | None = None
    cert_password: str | None = field(default=None, repr=False)
    endpoint_url: str = DEFAULT_ENDPOINT_URL
    redirect_base_url: str = DEFAULT_REDIRECT_BASE_URL
    language: str = DEFAULT_LANGUAGE
    insecure_skip_verify: bool = False

    @property
    def resolved_cert_path(self) -> Path | None:
        if not self.cert_path:
            return None
        return resolve_cert_path(self.cert_path, self.content_root)


def resolve_cert_path(configured: str, base_dir: Path) -> Path:
    """Anchor a possibly relative certificate path at the content root."""
    path = Path(configured).expanduser()
    return path if path.is_absolute() else base_dir / path


def parse_flag(value: str, name: str) -> bool:
    """Parse a boolean environment value.

    Raises:
        ConfigurationError: If the value is not a recognized boolean.
    """
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name}={value!r} is not a boolean (use true/false)")


def _env(name: str) -> str:
    return os.environ.get(name, "").strip()


def load_settings() -> GatewaySettings:
    """Resolve settings from environment, keyring and settings file."""
    section = load_settings_section()
    root = content_root()

    cert_path = _env(ENV_CERT_PATH) or section.get("CertPath") or None

    cert_password = os.environ.get(ENV_CERT_PASSWORD) or None
    if cert_password is None and cert_path:
        cert_password = get_keyring_password(resolve_cert_path(cert_path, root))
    if cert_password is None:
        cert_password = section.get("CertPassword") or None

    insecure_env = _env(ENV_INSECURE_SKIP_VERIFY)
    if insecure_env:
        insecure = parse_flag(insecure_env, ENV_INSECURE_SKIP_VERIFY)
    else:
        insecure = section.get("InsecureSkipServerValidation", False)

    settings = GatewaySettings(
        content_root=root,
        cert_path=cert_path,
        cert_password=cert_password,
        endpoint_url=_env(ENV_ENDPOINT_URL) or section.get("EndpointUrl") or DEFAULT_ENDPOINT_URL,
        redirect_base_url=(
            _env(ENV_REDIRECT_BASE_URL)
            or section.get("RedirectBaseUrl")
            or DEFAULT_REDIRECT_BASE_URL
        ),
        language=_env(ENV_LANGUAGE) or section.get("Language") or DEFAULT_LANGUAGE,
        insecure_skip_verify=insecure,
    )
    _logger.debug("Resolved settings: %s", settings)
    return settings

