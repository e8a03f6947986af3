import pytest

from keyvault import ConfirmationBus, DecryptionError, InMemorySecureStore, KeyVault, SecretCipher


class ReversingCipher(SecretCipher):
    """Fast deterministic stand-in for the PBKDF2 cipher."""

    def encrypt(self, plaintext, password):
        return f"FAKE:{password}:{plaintext[::-1]}"

    def decrypt(self, ciphertext, password):
        prefix = f"FAKE:{password}:"
        if not ciphertext.startswith(prefix):
            raise DecryptionError("wrong password")
        return ciphertext[len(prefix):][::-1]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in (
        "KEYVAULT_PASSWORD_PATTERN",
        "KEYVAULT_STORAGE_BACKEND",
        "KEYVAULT_STORAGE_PATH",
        "KEYVAULT_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def bus():
    return ConfirmationBus()


@pytest.fixture
def store():
    return InMemorySecureStore()


@pytest.fixture
def cipher():
    return ReversingCipher()


@pytest.fixture
def vault(store, bus, cipher):
    return KeyVault(store=store, bus=bus, cipher=cipher)
