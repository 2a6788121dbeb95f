"""
Low-level settings file I/O.

Reads the ``MSignConfig`` section of ``appsettings.json`` from the content
root.  Only known keys with the right types survive validation; anything
else is dropped with a log line rather than failing startup.
"""

from __future__ import annotations

__all__ = [
    "SettingsDict",
    "content_root",
    "load_raw_settings",
    "load_settings_section",
    "settings_file_path",
]

import json
import logging
import os
from pathlib import Path
from typing import Any, TypedDict, cast

from ..constants import ENV_CONTENT_ROOT, ENV_SETTINGS_FILE, SETTINGS_FILE_NAME, SETTINGS_SECTION

_logger = logging.getLogger(__name__)

_STR_KEYS = ("CertPath", "CertPassword", "EndpointUrl", "RedirectBaseUrl", "Language")


class SettingsDict(TypedDict, total=False):
    """Type definition for the MSignConfig section."""

    CertPath: str
    CertPassword: str
    EndpointUrl: str
    RedirectBaseUrl: str
    Language: str
    InsecureSkipServerValidation: bool


def content_root() -> Path:
    """Base directory for relative paths (settings file, certificate)."""
    configured = os.environ.get(ENV_CONTENT_ROOT, "").strip()
    return Path(configured) if configured else Path.cwd()


def settings_file_path() -> Path:
    """Location of the settings file: explicit env path, else <content root>/appsettings.json."""
    configured = os.environ.get(ENV_SETTINGS_FILE, "").strip()
    if configured:
        return Path(configured)
    return content_root() / SETTINGS_FILE_NAME


def load_raw_settings(path: Path | None = None) -> dict[str, object]:
    """Load the whole settings document, or {} if missing or unreadable."""
    path = path or settings_file_path()
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            return cast("dict[str, object]", data)
        _logger.warning("Settings file %s is not a JSON object, ignoring", path)
    except FileNotFoundError:
        _logger.debug("No settings file at %s", path)
    except json.JSONDecodeError as e:
        _logger.warning("Settings file corrupted, ignoring: %s", e)
    except OSError as e:
        _logger.warning("Cannot read settings file: %s", e)
    return {}


def _validate_section(data: dict[str, object]) -> SettingsDict:
    result: SettingsDict = {}
    for key in _STR_KEYS:
        val = data.get(key)
        if isinstance(val, str):
            result[key] = val  # type: ignore[literal-required]  # dynamic key from known set
        elif val is not None:
            _logger.warning("Setting %s.%s must be a string, ignoring", SETTINGS_SECTION, key)
    flag = data.get("InsecureSkipServerValidation")
    if isinstance(flag, bool):
        result["InsecureSkipServerValidation"] = flag
    elif flag is not None:
        _logger.warning(
            "Setting %s.InsecureSkipServerValidation must be true/false, ignoring",
            SETTINGS_SECTION,
        )
    return result


def load_settings_section(path: Path | None = None) -> SettingsDict:
    """Load and validate the MSignConfig section."""
    section = load_raw_settings(path).get(SETTINGS_SECTION)
    if section is None:
        return {}
    if not isinstance(section, dict):
        _logger.warning("Settings section %s is not an object, ignoring", SETTINGS_SECTION)
        return {}
    return _validate_section(cast("dict[str, object]", section))
