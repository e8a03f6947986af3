import pytest

from keyvault import (
    AbortedSigningOfTx,
    InvalidPrivateKeyError,
    InvalidTransaction,
    SignedTransaction,
    SigningRequest,
)
from keyvault.codec import private_key_to_address
from keyvault.confirmation import SIGN_TX_EVENT

SIGNER_KEY = "affd0b4039708432bb2759fc747bf7b9b1fbdab71bf86eab6d812ae83419b708"
SIGNER_ADDRESS = "0xae481410716b6d087261e0d69480b4cb9305c624"
TX_DATA = {
    "nonce": "0x03",
    "gas": "0x5208",
    "from": SIGNER_ADDRESS,
    "to": "0x814944ed940f27eb40330882a24baad21c30818e",
    "value": "0x1",
    "gasPrice": "0x4a817c800",
}
EXPECTED_HEX = (
    "f864038504a817c80082520894814944ed940f27eb40330882a24baad21c30818e01801ba063a5002e"
    "8054f7c95e4520ad4ef7739e8d66adc3a11d511b53b15388d6cd8c84a0212ccf0f79cc23a1f53aa8f9"
    "0e8210633bceb2c85d6797bd0acfdec874c5b092"
)


def confirm_all(bus, confirm=True):
    requests = []

    def listener(request):
        requests.append(request)
        if confirm:
            request.confirm()
        else:
            request.abort()

    bus.subscribe(SIGN_TX_EVENT, listener)
    return requests


@pytest.mark.asyncio
async def test_sign_tx_produces_expected_serialization(vault, bus):
    requests = confirm_all(bus)

    signed = await vault.sign_tx(TX_DATA, SIGNER_KEY)

    assert isinstance(signed, SignedTransaction)
    assert signed.hex() == EXPECTED_HEX
    assert signed.serialize() == bytes.fromhex(EXPECTED_HEX)
    assert signed.v == 27
    assert signed.sender == private_key_to_address(SIGNER_KEY)
    assert len(requests) == 1 and isinstance(requests[0], SigningRequest)


@pytest.mark.asyncio
async def test_sign_tx_is_deterministic(vault, bus):
    confirm_all(bus)
    first = await vault.sign_tx(TX_DATA, SIGNER_KEY)
    second = await vault.sign_tx(dict(TX_DATA), SIGNER_KEY.upper())
    assert first == second


@pytest.mark.asyncio
async def test_signing_request_shows_transaction(vault, bus):
    requests = confirm_all(bus)
    await vault.sign_tx(TX_DATA, SIGNER_KEY)

    shown = dict(requests[0].transaction)
    assert shown["nonce"] == 3
    assert shown["value"] == 1
    assert shown["to"].lower() == TX_DATA["to"]
    assert "from" not in shown


@pytest.mark.asyncio
async def test_sign_tx_aborted_never_signs(vault, bus, monkeypatch):
    class NoSigning:
        @staticmethod
        def sign_transaction(*args, **kwargs):
            raise AssertionError("sign_transaction should not be called")

    monkeypatch.setattr("keyvault.vault.Account", NoSigning)
    confirm_all(bus, confirm=False)

    with pytest.raises(AbortedSigningOfTx):
        await vault.sign_tx(TX_DATA, SIGNER_KEY)


@pytest.mark.asyncio
@pytest.mark.parametrize("key", ["0x" + SIGNER_KEY, "abc", "0" * 64])
async def test_invalid_key_publishes_nothing(vault, bus, key):
    requests = confirm_all(bus)

    with pytest.raises(InvalidPrivateKeyError):
        await vault.sign_tx(TX_DATA, key)
    assert requests == []


@pytest.mark.asyncio
async def test_invalid_transaction_publishes_nothing(vault, bus):
    requests = confirm_all(bus)

    with pytest.raises(InvalidTransaction):
        await vault.sign_tx({"nonce": 1}, SIGNER_KEY)
    assert requests == []


@pytest.mark.asyncio
async def test_sign_with_chain_id_is_replay_protected(vault, bus):
    confirm_all(bus)
    signed = await vault.sign_tx({**TX_DATA, "chainId": 1}, SIGNER_KEY)
    assert signed.v in (37, 38)
    assert signed.sender == private_key_to_address(SIGNER_KEY)
