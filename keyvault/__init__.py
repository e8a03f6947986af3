"""
Local key vault for Ethereum private keys.

This package provides:
- KeyVault: generation, encrypted-at-rest storage and confirmation-gated use of keys
- ConfirmationBus: publish/subscribe channel for decrypt and sign approvals
- SecureStore implementations: in-memory and JSON file backends
- AesGcmCipher: AES-256-GCM + PBKDF2 password encryption of keys
- build_key_vault: factory wiring a vault from configuration
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as _dist_version

from .cipher import ENCRYPTED_PREFIX, AesGcmCipher, DecryptionError, SecretCipher
from .config import VaultSettings
from .confirmation import (
    DECRYPT_PRIVATE_KEY_EVENT,
    SIGN_TX_EVENT,
    ConfirmationBus,
    DecryptionRequest,
    SigningRequest,
)
from .errors import (
    AbortedDecryption,
    AbortedSigningOfTx,
    CorruptedKeyRecord,
    DecryptedValueIsNotAPrivateKey,
    FailedToDecryptPrivateKeyPasswordInvalid,
    InvalidChecksumAddress,
    InvalidEncryptionAlgorithm,
    InvalidMnemonicError,
    InvalidPrivateKeyError,
    InvalidTransaction,
    KeyVaultError,
    NoEquivalentPrivateKey,
    PasswordContainsSpecialChars,
    PasswordMismatch,
    RandomSourceError,
    VaultConfigurationError,
)
from .factory import build_key_vault
from .models import EncryptionAlgorithm, StoredKeyRecord
from .random_source import RandomKeySource, SystemRandomSource
from .storage import FileSecureStore, InMemorySecureStore, SecureStore
from .transactions import SignedTransaction
from .vault import KeyVault


def _resolve_version() -> str:
    try:
        return _dist_version("eth-keyvault")
    except PackageNotFoundError:
        return "0.0.0"


__version__: str = _resolve_version()

__all__ = [
    "__version__",
    # Vault
    "KeyVault",
    "build_key_vault",
    "VaultSettings",
    # Confirmation protocol
    "ConfirmationBus",
    "DecryptionRequest",
    "SigningRequest",
    "DECRYPT_PRIVATE_KEY_EVENT",
    "SIGN_TX_EVENT",
    # Collaborators
    "SecureStore",
    "InMemorySecureStore",
    "FileSecureStore",
    "SecretCipher",
    "AesGcmCipher",
    "ENCRYPTED_PREFIX",
    "RandomKeySource",
    "SystemRandomSource",
    # Data
    "EncryptionAlgorithm",
    "StoredKeyRecord",
    "SignedTransaction",
    # Errors
    "KeyVaultError",
    "AbortedDecryption",
    "AbortedSigningOfTx",
    "CorruptedKeyRecord",
    "DecryptedValueIsNotAPrivateKey",
    "DecryptionError",
    "FailedToDecryptPrivateKeyPasswordInvalid",
    "InvalidChecksumAddress",
    "InvalidEncryptionAlgorithm",
    "InvalidMnemonicError",
    "InvalidPrivateKeyError",
    "InvalidTransaction",
    "NoEquivalentPrivateKey",
    "PasswordContainsSpecialChars",
    "PasswordMismatch",
    "RandomSourceError",
    "VaultConfigurationError",
]
