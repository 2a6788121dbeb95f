"""Tests for msign_proxy.config -- settings file, environment and keyring."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from keyring.errors import KeyringError, PasswordDeleteError

from msign_proxy.config import (
    delete_keyring_password,
    get_keyring_password,
    load_settings,
    load_settings_section,
    parse_flag,
    resolve_cert_path,
    save_keyring_password,
    settings_file_path,
)
from msign_proxy.constants import (
    DEFAULT_ENDPOINT_URL,
    DEFAULT_LANGUAGE,
    DEFAULT_REDIRECT_BASE_URL,
    ENV_CERT_PASSWORD,
    ENV_CERT_PATH,
    ENV_ENDPOINT_URL,
    ENV_INSECURE_SKIP_VERIFY,
    ENV_SETTINGS_FILE,
    KEYRING_SERVICE,
)
from msign_proxy.errors import ConfigurationError


def _write_settings(root: Path, section: object) -> Path:
    path = root / "appsettings.json"
    path.write_text(json.dumps({"Logging": {"LogLevel": "Information"}, "MSignConfig": section}))
    return path


# ── settings file ────────────────────────────────────────────────────


def test_settings_file_defaults_to_content_root(tmp_path):
    assert settings_file_path() == tmp_path / "appsettings.json"


def test_settings_file_env_override(tmp_path, monkeypatch):
    custom = tmp_path / "elsewhere.json"
    monkeypatch.setenv(ENV_SETTINGS_FILE, str(custom))
    assert settings_file_path() == custom


def test_missing_settings_file_is_empty():
    assert load_settings_section() == {}


def test_corrupted_settings_file_is_ignored(tmp_path):
    (tmp_path / "appsettings.json").write_text("{not json")
    assert load_settings_section() == {}


def test_section_drops_wrong_types(tmp_path):
    _write_settings(
        tmp_path,
        {
            "CertPath": "client.pfx",
            "CertPassword": 1234,
            "InsecureSkipServerValidation": "yes",
            "Unknown": "x",
        },
    )
    assert load_settings_section() == {"CertPath": "client.pfx"}


def test_section_not_an_object(tmp_path):
    _write_settings(tmp_path, ["CertPath"])
    assert load_settings_section() == {}


# ── load_settings ────────────────────────────────────────────────────


def test_defaults_without_any_source(tmp_path):
    settings = load_settings()
    assert settings.content_root == tmp_path
    assert settings.cert_path is None
    assert settings.cert_password is None
    assert settings.endpoint_url == DEFAULT_ENDPOINT_URL
    assert settings.redirect_base_url == DEFAULT_REDIRECT_BASE_URL
    assert settings.language == DEFAULT_LANGUAGE
    assert settings.insecure_skip_verify is False


def test_values_from_settings_file(tmp_path):
    _write_settings(
        tmp_path,
        {
            "CertPath": "certs/client.pfx",
            "CertPassword": "from-file",
            "EndpointUrl": "https://gw.example/MSign.svc",
            "RedirectBaseUrl": "https://sign.example",
            "Language": "ro",
            "InsecureSkipServerValidation": True,
        },
    )
    settings = load_settings()
    assert settings.cert_path == "certs/client.pfx"
    assert settings.resolved_cert_path == tmp_path / "certs" / "client.pfx"
    assert settings.cert_password == "from-file"
    assert settings.endpoint_url == "https://gw.example/MSign.svc"
    assert settings.redirect_base_url == "https://sign.example"
    assert settings.language == "ro"
    assert settings.insecure_skip_verify is True


def test_environment_overrides_file(tmp_path, monkeypatch):
    _write_settings(tmp_path, {"CertPath": "file.pfx", "CertPassword": "from-file"})
    monkeypatch.setenv(ENV_CERT_PATH, "env.pfx")
    monkeypatch.setenv(ENV_CERT_PASSWORD, "from-env")
    monkeypatch.setenv(ENV_ENDPOINT_URL, "https://env.example/MSign.svc")
    settings = load_settings()
    assert settings.cert_path == "env.pfx"
    assert settings.cert_password == "from-env"
    assert settings.endpoint_url == "https://env.example/MSign.svc"


def test_keyring_password_beats_file(tmp_path):
    _write_settings(tmp_path, {"CertPath": "client.pfx", "CertPassword": "from-file"})
    with patch(
        "msign_proxy.config.settings.get_keyring_password", return_value="from-keyring"
    ) as lookup:
        settings = load_settings()
    assert settings.cert_password == "from-keyring"
    lookup.assert_called_once_with(tmp_path / "client.pfx")


def test_password_not_in_repr(monkeypatch):
    monkeypatch.setenv(ENV_CERT_PASSWORD, "hunter2")
    assert "hunter2" not in repr(load_settings())


def test_insecure_flag_from_env(monkeypatch):
    monkeypatch.setenv(ENV_INSECURE_SKIP_VERIFY, "true")
    assert load_settings().insecure_skip_verify is True


def test_invalid_insecure_flag_raises(monkeypatch):
    monkeypatch.setenv(ENV_INSECURE_SKIP_VERIFY, "maybe")
    with pytest.raises(ConfigurationError, match="not a boolean"):
        load_settings()


@pytest.mark.parametrize(
    ("value", "expected"),
    [("1", True), ("TRUE", True), (" yes ", True), ("on", True), ("0", False), ("off", False)],
)
def test_parse_flag(value, expected):
    assert parse_flag(value, "X") is expected


def test_resolve_cert_path_absolute_kept(tmp_path):
    absolute = tmp_path / "abs.pfx"
    assert resolve_cert_path(str(absolute), Path("/ignored")) == absolute


def test_resolve_cert_path_relative_anchored(tmp_path):
    assert resolve_cert_path("c/client.pfx", tmp_path) == tmp_path / "c" / "client.pfx"


# ── keyring ──────────────────────────────────────────────────────────


def test_get_keyring_password_found(tmp_path):
    with patch("msign_proxy.config.credentials.keyring") as kr:
        kr.get_password.return_value = "pw"
        assert get_keyring_password(tmp_path / "c.pfx") == "pw"
    kr.get_password.assert_called_once_with(KEYRING_SERVICE, str(tmp_path / "c.pfx"))


def test_get_keyring_password_backend_error(tmp_path):
    with patch("msign_proxy.config.credentials.keyring") as kr:
        kr.get_password.side_effect = KeyringError("no backend")
        assert get_keyring_password(tmp_path / "c.pfx") is None


def test_save_keyring_password_failure_raises(tmp_path):
    with patch("msign_proxy.config.credentials.keyring") as kr:
        kr.set_password.side_effect = KeyringError("locked")
        with pytest.raises(ConfigurationError, match="Cannot store password"):
            save_keyring_password(tmp_path / "c.pfx", "pw")


def test_delete_keyring_password(tmp_path):
    with patch("msign_proxy.config.credentials.keyring") as kr:
        assert delete_keyring_password(tmp_path / "c.pfx") is True
        kr.delete_password.side_effect = PasswordDeleteError("none")
        assert delete_keyring_password(tmp_path / "c.pfx") is False
