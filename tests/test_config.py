import json
from pathlib import Path

import pytest

from keyvault import VaultConfigurationError, VaultSettings
from keyvault.utils.config_manager import ConfigManager


def write_config(tmp_path, section):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"keyvault": section}))
    return ConfigManager(path)


def test_defaults():
    settings = VaultSettings()
    assert settings.storage_prefix == "PRIVATE_ETH_KEY#"
    assert settings.record_version == "1.0.0"
    assert settings.storage_backend == "memory"
    assert settings.log_level == "INFO"


@pytest.mark.parametrize(
    "password, allowed",
    [
        ("simple", True),
        ("with spaces and symbols !@#$%^&*()", True),
        ("ünïcödé", True),
        ("line\nbreak", False),
        ("carriage\rreturn", False),
        ("del\x7f", False),
        ("separator\u2028", False),
        ("", False),
    ],
)
def test_default_password_pattern(password, allowed):
    assert VaultSettings().password_allowed(password) is allowed


def test_load_reads_keyvault_section(tmp_path):
    manager = write_config(
        tmp_path,
        {"storage_backend": "file", "storage_path": str(tmp_path / "keys.json"), "log_level": "debug", "unknown": 1},
    )

    settings = VaultSettings.load(manager)

    assert settings.storage_backend == "file"
    assert settings.storage_path == tmp_path / "keys.json"
    assert settings.log_level == "DEBUG"


def test_environment_overrides_config_file(tmp_path, monkeypatch):
    manager = write_config(tmp_path, {"storage_backend": "memory", "password_pattern": "[a-z]+"})
    monkeypatch.setenv("KEYVAULT_STORAGE_BACKEND", "file")
    monkeypatch.setenv("KEYVAULT_STORAGE_PATH", "/tmp/vault.json")

    settings = VaultSettings.load(manager)

    assert settings.storage_backend == "file"
    assert settings.storage_path == Path("/tmp/vault.json")
    assert settings.password_pattern == "[a-z]+"


def test_missing_config_file_yields_defaults(tmp_path):
    settings = VaultSettings.load(ConfigManager(tmp_path / "absent.json"))
    assert settings == VaultSettings()


@pytest.mark.parametrize(
    "section",
    [
        {"storage_backend": "sqlite"},
        {"password_pattern": "[unclosed"},
        {"log_level": "LOUD"},
        {"storage_prefix": ""},
    ],
)
def test_invalid_settings_raise_configuration_error(tmp_path, section):
    with pytest.raises(VaultConfigurationError):
        VaultSettings.load(write_config(tmp_path, section))


def test_non_object_section_is_rejected(tmp_path):
    with pytest.raises(VaultConfigurationError, match="must be an object"):
        VaultSettings.load(write_config(tmp_path, ["not", "a", "dict"]))


def test_config_manager_dotted_access(tmp_path):
    path = tmp_path / "config.json"
    manager = ConfigManager(path)
    assert manager.get("keyvault.log_level", "INFO") == "INFO"

    manager.set("keyvault.log_level", "DEBUG")

    assert json.loads(path.read_text()) == {"keyvault": {"log_level": "DEBUG"}}
    assert ConfigManager(path).get("keyvault.log_level") == "DEBUG"
    assert manager.list_config() == {"keyvault": {"log_level": "DEBUG"}}


def test_config_manager_ignores_unreadable_file(tmp_path, caplog):
    path = tmp_path / "config.json"
    path.write_text("{broken")
    assert ConfigManager(path).list_config() == {}
    assert "Error loading config" in caplog.text
