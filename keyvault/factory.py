"""
Vault factory: resolves each collaborator in priority order
explicit argument -> configured backend -> default implementation.
"""

import logging
from typing import Optional

from dotenv import load_dotenv

from .cipher import AesGcmCipher, SecretCipher
from .config import VaultSettings
from .confirmation import ConfirmationBus
from .errors import VaultConfigurationError
from .random_source import RandomKeySource, SystemRandomSource
from .storage import FileSecureStore, InMemorySecureStore, SecureStore
from .vault import KeyVault

logger = logging.getLogger(__name__)


def _store_from_settings(settings: VaultSettings) -> SecureStore:
    backend = settings.storage_backend
    if backend == "memory":
        logger.warning("Using in-memory secure store; keys are lost when the process exits.")
        return InMemorySecureStore()
    if backend == "file":
        logger.info("Using file secure store at %s", settings.storage_path)
        return FileSecureStore(settings.storage_path)
    raise VaultConfigurationError(f"Unknown storage backend {backend!r}; expected 'memory' or 'file'.")


def build_key_vault(
    settings: Optional[VaultSettings] = None,
    *,
    bus: Optional[ConfirmationBus] = None,
    store: Optional[SecureStore] = None,
    cipher: Optional[SecretCipher] = None,
    random_source: Optional[RandomKeySource] = None,
) -> KeyVault:
    """
    Build a KeyVault wired from settings.

    Without explicit settings, `.env` is loaded and `VaultSettings.load()`
    reads config.json plus KEYVAULT_* environment variables.
    """
    if settings is None:
        load_dotenv()
        settings = VaultSettings.load()

    return KeyVault(
        store=store if store is not None else _store_from_settings(settings),
        bus=bus if bus is not None else ConfirmationBus(),
        cipher=cipher if cipher is not None else AesGcmCipher(),
        random_source=random_source if random_source is not None else SystemRandomSource(),
        settings=settings,
    )
