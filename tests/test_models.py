import pytest
from pydantic import ValidationError

from keyvault.errors import CorruptedKeyRecord
from keyvault.models import EncryptionAlgorithm, StoredKeyRecord


def test_plaintext_record_serializes_compactly():
    record = StoredKeyRecord.plaintext("ab" * 32)
    assert record.to_json() == '{"encryption":"","value":"' + "ab" * 32 + '","encrypted":false,"version":"1.0.0"}'


def test_encrypted_record_round_trip():
    record = StoredKeyRecord.encrypted_with(EncryptionAlgorithm.AES_256, "ENC:v1:xyz", version="2.0.0")
    restored = StoredKeyRecord.from_json(record.to_json())

    assert restored == record
    assert restored.encryption is EncryptionAlgorithm.AES_256
    assert restored.encrypted is True


def test_encrypted_flag_must_match_algorithm():
    with pytest.raises(ValidationError):
        StoredKeyRecord(encryption=EncryptionAlgorithm.NONE, value="x", encrypted=True)
    with pytest.raises(ValidationError):
        StoredKeyRecord(encryption=EncryptionAlgorithm.AES_256, value="x", encrypted=False)


def test_records_are_frozen():
    record = StoredKeyRecord.plaintext("ab" * 32)
    with pytest.raises(ValidationError):
        record.value = "cd" * 32


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        '{"encryption":"ROT13","value":"x","encrypted":true,"version":"1.0.0"}',
        '{"encryption":"","encrypted":false}',
    ],
)
def test_from_json_reports_corruption(raw):
    with pytest.raises(CorruptedKeyRecord, match="PRIVATE_ETH_KEY#0x1") as exc_info:
        StoredKeyRecord.from_json(raw, "PRIVATE_ETH_KEY#0x1")
    assert exc_info.value.storage_key == "PRIVATE_ETH_KEY#0x1"
