import pytest

from keyvault import (
    AesGcmCipher,
    ConfirmationBus,
    FileSecureStore,
    InMemorySecureStore,
    SystemRandomSource,
    VaultConfigurationError,
    VaultSettings,
    build_key_vault,
)
from keyvault import factory


def test_defaults_from_settings(caplog):
    vault = build_key_vault(VaultSettings())

    assert isinstance(vault.store, InMemorySecureStore)
    assert isinstance(vault.bus, ConfirmationBus)
    assert isinstance(vault.cipher, AesGcmCipher)
    assert isinstance(vault.random_source, SystemRandomSource)
    assert "in-memory secure store" in caplog.text


def test_file_backend(tmp_path):
    path = tmp_path / "keys.json"
    vault = build_key_vault(VaultSettings(storage_backend="file", storage_path=path))

    assert isinstance(vault.store, FileSecureStore)
    assert vault.store.path == path


def test_explicit_collaborators_take_priority(cipher):
    bus = ConfirmationBus()
    store = InMemorySecureStore()
    settings = VaultSettings(storage_backend="file")

    vault = build_key_vault(settings, bus=bus, store=store, cipher=cipher)

    assert vault.bus is bus
    assert vault.store is store
    assert vault.cipher is cipher
    assert vault.settings is settings


def test_loads_dotenv_and_config_when_no_settings(tmp_path, monkeypatch):
    calls = {}
    monkeypatch.setattr(factory, "load_dotenv", lambda *args, **kwargs: calls.setdefault("dotenv", True))
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("KEYVAULT_STORAGE_BACKEND", "file")
    monkeypatch.setenv("KEYVAULT_STORAGE_PATH", str(tmp_path / "env.json"))

    vault = build_key_vault()

    assert calls == {"dotenv": True}
    assert isinstance(vault.store, FileSecureStore)
    assert vault.store.path == tmp_path / "env.json"


def test_unknown_backend_is_rejected():
    settings = VaultSettings.model_construct(storage_backend="sqlite")
    with pytest.raises(VaultConfigurationError, match="sqlite"):
        build_key_vault(settings)


@pytest.mark.asyncio
async def test_built_vault_round_trip(tmp_path):
    vault = build_key_vault(VaultSettings(storage_backend="file", storage_path=tmp_path / "keys.json"))
    key = await vault.create_private_key()
    await vault.save_private_key(key)

    reopened = build_key_vault(VaultSettings(storage_backend="file", storage_path=tmp_path / "keys.json"))
    pairs = await reopened.all_key_pairs()

    assert [record.value for record in pairs.values()] == [key]
