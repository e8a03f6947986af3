"""
KeyVault: lifecycle of Ethereum private keys with confirmation-gated use.

Keys are generated from a RandomKeySource, stored in a SecureStore under
`<prefix><checksum address>` either as plaintext or encrypted with a
SecretCipher, and handed back as stored. Revealing a key and signing with it
always go through the ConfirmationBus: the vault publishes a request and waits
for the UI layer to approve or abort it.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from eth_account import Account

from . import codec
from .cipher import AesGcmCipher, DecryptionError, SecretCipher
from .config import VaultSettings
from .confirmation import (
    DECRYPT_PRIVATE_KEY_EVENT,
    SIGN_TX_EVENT,
    Aborted,
    ConfirmationBus,
    DecryptionRequest,
    PendingConfirmation,
    SigningRequest,
)
from .errors import (
    AbortedDecryption,
    AbortedSigningOfTx,
    DecryptedValueIsNotAPrivateKey,
    FailedToDecryptPrivateKeyPasswordInvalid,
    InvalidEncryptionAlgorithm,
    InvalidPrivateKeyError,
    NoEquivalentPrivateKey,
    PasswordContainsSpecialChars,
    PasswordMismatch,
)
from .models import EncryptionAlgorithm, StoredKeyRecord
from .random_source import RandomKeySource, SystemRandomSource
from .storage import SecureStore
from .transactions import SignedTransaction, build_legacy_transaction, describe_transaction

logger = logging.getLogger(__name__)

RecordLike = Union[StoredKeyRecord, Mapping[str, Any]]


class KeyVault:
    """
    Generates, stores, reveals and signs with private keys.

    Collaborators are injected so each can be swapped independently; the vault
    keeps no copy of stored records between calls.
    """

    def __init__(
        self,
        store: SecureStore,
        bus: ConfirmationBus,
        cipher: Optional[SecretCipher] = None,
        random_source: Optional[RandomKeySource] = None,
        settings: Optional[VaultSettings] = None,
    ):
        self.store = store
        self.bus = bus
        self.cipher = cipher or AesGcmCipher()
        self.random_source = random_source or SystemRandomSource()
        self.settings = settings or VaultSettings()

    # ------------------------------------------------------------------ #
    # Generation and storage
    # ------------------------------------------------------------------ #
    async def create_private_key(self) -> str:
        """Return a fresh random private key as lowercase hex. Nothing is stored."""
        raw = await self.random_source.random_bytes(codec.PRIVATE_KEY_BYTES)
        if not codec.is_valid_private_key(raw):
            raise InvalidPrivateKeyError("Random source produced an invalid private key")
        return bytes(raw).hex()

    async def save_private_key(
        self,
        key: str,
        password: Optional[str] = None,
        password_confirmation: Optional[str] = None,
    ) -> None:
        """
        Store `key` under its address, encrypted when a password is given.

        Passwords follow a both-or-neither rule and must match
        `settings.password_pattern`; both checks run before any encryption or
        storage call. An existing record for the same address is replaced.
        """
        password = password or None
        password_confirmation = password_confirmation or None
        if password != password_confirmation:
            raise PasswordMismatch()
        if password and not self.settings.password_allowed(password):
            raise PasswordContainsSpecialChars()

        normalized = codec.normalize_private_key(key)
        address = codec.private_key_to_address(normalized)

        if password:
            ciphertext = await self._run_cipher(self.cipher.encrypt, normalized, password)
            record = StoredKeyRecord.encrypted_with(
                EncryptionAlgorithm.AES_256, ciphertext, version=self.settings.record_version
            )
        else:
            record = StoredKeyRecord.plaintext(normalized, version=self.settings.record_version)

        await self.store.set(self._storage_key(address), record.to_json())
        logger.info("Saved %s private key for %s", "encrypted" if record.encrypted else "plaintext", address)

    async def get_private_key(self, address: str) -> StoredKeyRecord:
        """Return the stored record for `address` without decrypting it."""
        storage_key = await self._existing_storage_key(address)
        raw = await self.store.get(storage_key)
        if raw is None:
            # Removed between the existence check and the read.
            raise NoEquivalentPrivateKey(storage_key[len(self.settings.storage_prefix):])
        return StoredKeyRecord.from_json(raw, storage_key)

    async def all_key_pairs(self) -> Dict[str, StoredKeyRecord]:
        """Map every stored address to its (possibly encrypted) record."""
        prefix = self.settings.storage_prefix
        items = await self.store.fetch_items()
        return {
            storage_key[len(prefix):]: StoredKeyRecord.from_json(raw, storage_key)
            for storage_key, raw in items.items()
            if storage_key.startswith(prefix)
        }

    async def delete_private_key(self, address: str) -> None:
        storage_key = await self._existing_storage_key(address)
        await self.store.remove(storage_key)
        logger.info("Deleted private key for %s", storage_key[len(self.settings.storage_prefix):])

    # ------------------------------------------------------------------ #
    # Confirmation-gated operations
    # ------------------------------------------------------------------ #
    async def decrypt_private_key(self, record: RecordLike, reason: str, topic: str) -> str:
        """
        Reveal the private key held by `record` once the UI approves.

        Publishes a DecryptionRequest on `eth:decrypt-private-key` and waits for
        it to be approved with a password or aborted.

        Raises:
            InvalidEncryptionAlgorithm: unknown `encryption`; nothing is published.
            AbortedDecryption: the request was aborted.
            FailedToDecryptPrivateKeyPasswordInvalid: the cipher rejected the password.
            DecryptedValueIsNotAPrivateKey: the plaintext is not a valid key.
        """
        algorithm, value = self._unpack_record(record)

        request = DecryptionRequest(topic=topic, reason=reason)
        outcome = await self._request_confirmation(DECRYPT_PRIVATE_KEY_EVENT, request)
        if isinstance(outcome, Aborted):
            logger.info("Decryption request %s (%s) aborted", request.request_id, topic)
            raise AbortedDecryption()

        if algorithm is EncryptionAlgorithm.NONE:
            plaintext = value
        else:
            try:
                plaintext = await self._run_cipher(self.cipher.decrypt, value, outcome.payload)
            except DecryptionError as exc:
                logger.info("Decryption request %s (%s) failed: invalid password", request.request_id, topic)
                raise FailedToDecryptPrivateKeyPasswordInvalid() from exc

        try:
            return codec.normalize_private_key(plaintext)
        except InvalidPrivateKeyError as exc:
            logger.error("Decryption request %s (%s) produced a value that is not a private key", request.request_id, topic)
            raise DecryptedValueIsNotAPrivateKey() from exc

    async def sign_tx(self, tx_data: Mapping[str, Any], private_key: str) -> SignedTransaction:
        """
        Sign a legacy transaction with `private_key` once the UI confirms.

        The key is validated before anything is published. The signature uses
        deterministic ECDSA, so the same input always yields the same bytes.
        """
        normalized = codec.normalize_private_key(private_key)
        transaction = build_legacy_transaction(tx_data)

        request = SigningRequest(describe_transaction(transaction))
        outcome = await self._request_confirmation(SIGN_TX_EVENT, request)
        if isinstance(outcome, Aborted):
            logger.info("Signing request %s aborted", request.request_id)
            raise AbortedSigningOfTx()

        signed = Account.sign_transaction(transaction, bytes.fromhex(normalized))
        result = SignedTransaction.from_signed(signed)
        logger.info("Signed transaction %s from %s", result.hash, result.sender)
        return result

    # ------------------------------------------------------------------ #
    # Mnemonic helpers
    # ------------------------------------------------------------------ #
    def private_key_to_mnemonic(self, key: str) -> List[str]:
        return codec.private_key_to_mnemonic(key)

    def mnemonic_to_private_key(self, words: Union[str, Sequence[str]]) -> str:
        return codec.mnemonic_to_private_key(words)

    def mnemonic_valid(self, phrase: Union[str, Sequence[str]]) -> bool:
        return codec.mnemonic_valid(phrase)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #
    def _storage_key(self, address: str) -> str:
        return f"{self.settings.storage_prefix}{address}"

    async def _existing_storage_key(self, address: str) -> str:
        normalized = codec.normalize_address(address)
        storage_key = self._storage_key(normalized)
        if not await self.store.has(storage_key):
            raise NoEquivalentPrivateKey(normalized)
        return storage_key

    def _unpack_record(self, record: RecordLike) -> tuple[EncryptionAlgorithm, str]:
        if isinstance(record, StoredKeyRecord):
            return record.encryption, record.value
        if not isinstance(record, Mapping):
            raise InvalidEncryptionAlgorithm(None)

        raw_algorithm = record.get("encryption")
        try:
            algorithm = EncryptionAlgorithm(raw_algorithm)
        except ValueError as exc:
            logger.error("Refusing to decrypt record with unknown encryption %r", raw_algorithm)
            raise InvalidEncryptionAlgorithm(raw_algorithm) from exc
        return algorithm, record.get("value")

    async def _request_confirmation(self, event: str, request: PendingConfirmation):
        try:
            await self.bus.publish(event, request)
            return await request.wait()
        except BaseException:
            request.cancel()
            raise

    async def _run_cipher(self, func, *args):
        # Key derivation blocks; run it in the default executor.
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))
