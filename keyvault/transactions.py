"""
Legacy (pre EIP-2718) transaction helpers.

`build_legacy_transaction` turns loosely typed caller input (ints or `0x` hex
strings, lowercase addresses, an optional `from`) into the dict shape that
`eth_account.Account.sign_transaction` expects. `SignedTransaction` wraps the
signing result; its `hex()` is the RLP serialization callers broadcast.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from eth_account import Account
from eth_utils import to_hex
from hexbytes import HexBytes

from .codec import normalize_address
from .errors import InvalidChecksumAddress, InvalidTransaction

_REQUIRED_FIELDS = ("nonce", "gasPrice", "gas", "to", "value")
_INT_FIELDS = ("nonce", "gasPrice", "gas", "value")
_EMPTY_TO = (None, "", "0x", b"")


def _to_int(field: str, value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidTransaction(f"Transaction field {field} must be an integer, not bool")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            result = int(text, 16) if text.lower().startswith("0x") else int(text, 10)
        except ValueError as exc:
            raise InvalidTransaction(f"Transaction field {field} is not a number: {value!r}") from exc
    else:
        raise InvalidTransaction(f"Transaction field {field} has unsupported type {type(value).__name__}")
    if result < 0:
        raise InvalidTransaction(f"Transaction field {field} must not be negative")
    return result


def _to_data(value: Any) -> bytes:
    if value is None:
        return b""
    try:
        return bytes(HexBytes(value))
    except (TypeError, ValueError) as exc:
        raise InvalidTransaction("Transaction data must be bytes or a hex string") from exc


def build_legacy_transaction(tx_data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Normalize `tx_data` into a signable legacy transaction dict.

    `from` is dropped because the signer is determined by the key. `gasLimit`
    is accepted as an alias of `gas`. Without `chainId` the resulting signature
    is not replay protected (v is 27 or 28).
    """
    if not isinstance(tx_data, Mapping):
        raise InvalidTransaction("Transaction data must be a mapping")

    fields = {k: v for k, v in tx_data.items() if k != "from"}
    if "gas" not in fields and "gasLimit" in fields:
        fields["gas"] = fields.pop("gasLimit")

    missing = [name for name in _REQUIRED_FIELDS if name not in fields]
    if missing:
        raise InvalidTransaction(f"Transaction is missing required field(s): {', '.join(missing)}")

    tx: Dict[str, Any] = {name: _to_int(name, fields[name]) for name in _INT_FIELDS}

    to = fields["to"]
    if to in _EMPTY_TO:
        tx["to"] = b""
    else:
        try:
            tx["to"] = normalize_address(to)
        except InvalidChecksumAddress as exc:
            raise InvalidTransaction(f"Transaction recipient is invalid: {exc}") from exc

    tx["data"] = _to_data(fields.get("data"))

    chain_id = fields.get("chainId")
    if chain_id is not None:
        tx["chainId"] = _to_int("chainId", chain_id)
    return tx


def describe_transaction(tx: Mapping[str, Any]) -> Dict[str, Any]:
    """JSON friendly view of a normalized transaction for confirmation prompts."""
    summary: Dict[str, Any] = {}
    for key, value in tx.items():
        if isinstance(value, (bytes, bytearray)):
            summary[key] = to_hex(value) if value else ("" if key == "to" else "0x")
        else:
            summary[key] = value
    return summary


@dataclass(frozen=True)
class SignedTransaction:
    raw_transaction: bytes
    hash: str
    r: int
    s: int
    v: int
    sender: Optional[str] = None

    @classmethod
    def from_signed(cls, signed: Any) -> "SignedTransaction":
        """Build from the object returned by `Account.sign_transaction`."""
        raw = getattr(signed, "raw_transaction", None)
        if raw is None:
            raw = signed.rawTransaction
        raw_bytes = bytes(HexBytes(raw))
        return cls(
            raw_transaction=raw_bytes,
            hash=to_hex(HexBytes(signed.hash)),
            r=int(signed.r),
            s=int(signed.s),
            v=int(signed.v),
            sender=Account.recover_transaction(raw_bytes),
        )

    def serialize(self) -> bytes:
        return self.raw_transaction

    def hex(self) -> str:
        """Unprefixed lowercase hex of the RLP encoded signed transaction."""
        return self.raw_transaction.hex()

    def __repr__(self) -> str:
        return f"SignedTransaction(hash={self.hash!r}, sender={self.sender!r})"
