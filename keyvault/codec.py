"""
Key material helpers: validation, normalization, address derivation and
BIP-39 mnemonic conversion for secp256k1 private keys.

Keys travel through the vault as 64 lowercase hex characters without a `0x`
prefix. Addresses are always returned in their EIP-55 checksum form.
"""

from __future__ import annotations

import re
from typing import List, Sequence, Union

from eth_account import Account
from eth_keys.constants import SECPK1_N
from eth_utils import is_address, is_checksum_address, to_checksum_address
from mnemonic import Mnemonic

from .errors import InvalidChecksumAddress, InvalidMnemonicError, InvalidPrivateKeyError

PRIVATE_KEY_BYTES = 32
_PRIVATE_KEY_PATTERN = re.compile(r"[a-fA-F0-9]{64}")
_MNEMONIC_LANGUAGE = "english"

_mnemo: Mnemonic | None = None


def _wordlist_codec() -> Mnemonic:
    global _mnemo
    if _mnemo is None:
        _mnemo = Mnemonic(_MNEMONIC_LANGUAGE)
    return _mnemo


def is_valid_private_key(raw: bytes) -> bool:
    """Return True when `raw` is 32 bytes and a scalar in the range (0, n)."""
    if not isinstance(raw, (bytes, bytearray)) or len(raw) != PRIVATE_KEY_BYTES:
        return False
    return 0 < int.from_bytes(raw, "big") < SECPK1_N


def normalize_private_key(key: str) -> str:
    """
    Validate a textual private key and return its canonical form.

    Only a bare 64 character hex string is accepted; `0x` prefixed or otherwise
    malformed input raises InvalidPrivateKeyError. The result is lowercase, so
    the function is idempotent.
    """
    if not isinstance(key, str) or not _PRIVATE_KEY_PATTERN.fullmatch(key):
        raise InvalidPrivateKeyError()
    normalized = key.lower()
    if not is_valid_private_key(bytes.fromhex(normalized)):
        raise InvalidPrivateKeyError("Private key is outside of the secp256k1 curve order")
    return normalized


def normalize_address(address: str) -> str:
    """
    Return the checksum form of `address` or raise InvalidChecksumAddress.

    Uniformly cased input is converted; mixed case must already be a valid
    EIP-55 checksum.
    """
    if not isinstance(address, str) or not is_address(address):
        raise InvalidChecksumAddress(str(address))
    body = address[2:] if address[:2] in ("0x", "0X") else address
    if body not in (body.lower(), body.upper()) and not is_checksum_address(address):
        raise InvalidChecksumAddress(address)
    return to_checksum_address(address)


def private_key_to_address(key: str) -> str:
    normalized = normalize_private_key(key)
    return Account.from_key(bytes.fromhex(normalized)).address


def private_key_to_mnemonic(key: str) -> List[str]:
    """Encode a private key as its 24 word BIP-39 mnemonic."""
    normalized = normalize_private_key(key)
    phrase = _wordlist_codec().to_mnemonic(bytes.fromhex(normalized))
    return phrase.split(" ")


def mnemonic_to_private_key(words: Union[str, Sequence[str]]) -> str:
    """Decode a BIP-39 mnemonic (phrase or word list) back into the private key."""
    phrase = _join_words(words)
    try:
        entropy = bytes(_wordlist_codec().to_entropy(phrase))
    except (ValueError, LookupError) as exc:
        raise InvalidMnemonicError(f"Invalid mnemonic: {exc}") from exc

    if len(entropy) != PRIVATE_KEY_BYTES:
        raise InvalidMnemonicError(
            f"Mnemonic encodes {len(entropy)} bytes; a private key needs {PRIVATE_KEY_BYTES}"
        )
    if not is_valid_private_key(entropy):
        raise InvalidPrivateKeyError("Mnemonic does not encode a valid private key")
    return entropy.hex()


def mnemonic_valid(phrase: Union[str, Sequence[str]]) -> bool:
    """True iff every word is in the wordlist and the checksum holds."""
    try:
        return bool(_wordlist_codec().check(_join_words(phrase)))
    except (ValueError, LookupError, TypeError):
        return False


def _join_words(words: Union[str, Sequence[str]]) -> str:
    if isinstance(words, str):
        return " ".join(words.split())
    return " ".join(str(word).strip() for word in words)
