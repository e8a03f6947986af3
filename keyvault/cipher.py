"""
AES-GCM helpers for encrypting and decrypting private keys with a password.
"""

import base64
import os
from abc import ABC, abstractmethod
from typing import Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

ENCRYPTED_PREFIX = "ENC:v1:"
_SALT_BYTES = 16
_IV_BYTES = 12
_TAG_BYTES = 16
_KDF_ITERATIONS = 200_000


class DecryptionError(ValueError):
    """Raised when a ciphertext cannot be decrypted with the given password."""


class SecretCipher(ABC):
    """Password based encryption of an opaque string payload."""

    @abstractmethod
    def encrypt(self, plaintext: str, password: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def decrypt(self, ciphertext: str, password: str) -> str:
        """Return the plaintext or raise DecryptionError."""
        raise NotImplementedError


def _derive_key(password: str, salt: bytes) -> bytes:
    """Derive a symmetric key from the password using PBKDF2-HMAC-SHA256."""
    if not password:
        raise ValueError("Password is required to derive encryption key.")

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=_KDF_ITERATIONS,
    )
    return kdf.derive(password.encode("utf-8"))


def _split_payload(payload: bytes) -> Tuple[bytes, bytes, bytes]:
    if len(payload) < _SALT_BYTES + _IV_BYTES + _TAG_BYTES:
        raise DecryptionError("Encrypted payload is malformed or truncated.")
    salt = payload[:_SALT_BYTES]
    iv = payload[_SALT_BYTES : _SALT_BYTES + _IV_BYTES]
    ciphertext = payload[_SALT_BYTES + _IV_BYTES :]
    return salt, iv, ciphertext


class AesGcmCipher(SecretCipher):
    """
    AES-256-GCM with a PBKDF2-derived key.

    Payload layout: `ENC:v1:<urlsafe-base64(salt || iv || ciphertext+tag)>`.
    A fresh salt and IV are drawn for every call, so encrypting the same key
    twice yields different payloads.
    """

    algorithm = "AES-256"

    def encrypt(self, plaintext: str, password: str) -> str:
        if not plaintext:
            raise ValueError("plaintext is required for encryption.")
        if not password:
            raise ValueError("password is required for encryption.")

        salt = os.urandom(_SALT_BYTES)
        iv = os.urandom(_IV_BYTES)
        key = _derive_key(password, salt)
        ciphertext = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
        payload = base64.urlsafe_b64encode(salt + iv + ciphertext).decode("utf-8")
        return f"{ENCRYPTED_PREFIX}{payload}"

    def decrypt(self, ciphertext: str, password: str) -> str:
        if not isinstance(ciphertext, str) or not ciphertext.startswith(ENCRYPTED_PREFIX):
            raise DecryptionError(f"Encrypted value must start with {ENCRYPTED_PREFIX}")
        if not password:
            raise DecryptionError("Password is required to decrypt the private key.")

        try:
            payload = base64.urlsafe_b64decode(ciphertext[len(ENCRYPTED_PREFIX) :])
        except ValueError as exc:
            raise DecryptionError("Encrypted payload is not valid base64.") from exc

        salt, iv, body = _split_payload(payload)
        key = _derive_key(password, salt)
        try:
            plaintext = AESGCM(key).decrypt(iv, body, None)
        except InvalidTag as exc:
            raise DecryptionError("Failed to decrypt private key; verify the password.") from exc

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptionError("Decrypted payload is not valid UTF-8.") from exc
