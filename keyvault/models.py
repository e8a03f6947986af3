from __future__ import annotations

import json
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import CorruptedKeyRecord

RECORD_VERSION = "1.0.0"


class EncryptionAlgorithm(str, Enum):
    NONE = ""
    AES_256 = "AES-256"


class StoredKeyRecord(BaseModel):
    """Persisted unit for one address: the key itself or its ciphertext."""

    model_config = ConfigDict(frozen=True)

    encryption: EncryptionAlgorithm = Field(description="Cipher protecting `value`, empty when plaintext")
    value: str = Field(description="Raw private key or ciphertext")
    encrypted: bool = Field(description="Mirror of `encryption != NONE` for fast checks")
    version: str = Field(default=RECORD_VERSION)

    @model_validator(mode="after")
    def _encrypted_flag_matches_algorithm(self) -> "StoredKeyRecord":
        if self.encrypted != (self.encryption is not EncryptionAlgorithm.NONE):
            raise ValueError(
                f"encrypted={self.encrypted} contradicts encryption={self.encryption.value!r}"
            )
        return self

    @classmethod
    def plaintext(cls, key: str, version: str = RECORD_VERSION) -> "StoredKeyRecord":
        return cls(encryption=EncryptionAlgorithm.NONE, value=key, encrypted=False, version=version)

    @classmethod
    def encrypted_with(
        cls, algorithm: EncryptionAlgorithm, ciphertext: str, version: str = RECORD_VERSION
    ) -> "StoredKeyRecord":
        return cls(encryption=algorithm, value=ciphertext, encrypted=True, version=version)

    def to_json(self) -> str:
        """Compact JSON with the stable key order encryption, value, encrypted, version."""
        return json.dumps(self.model_dump(mode="json"), separators=(",", ":"))

    @classmethod
    def from_json(cls, raw: str, storage_key: str = "") -> "StoredKeyRecord":
        try:
            return cls.model_validate_json(raw)
        except ValidationError as exc:
            raise CorruptedKeyRecord(storage_key, reason=f"{exc.error_count()} validation error(s)") from exc
