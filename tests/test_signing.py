import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import keccak, to_checksum_address

from payment_channel.constants import UINT256_MAX
from payment_channel.exceptions import InvalidSignature
from payment_channel.signing import (
    eth_sign_hash,
    payment_hash,
    private_key_to_address,
    recover_signer,
    sign_payment,
)
from payment_channel.typing import ChannelAddress, Signature, TokenAmount
from tests.constants import PRIVATE_KEY_1, PRIVATE_KEY_1_ADDRESS, PRIVATE_KEY_2_ADDRESS

CHANNEL_ADDRESS = ChannelAddress(bytes([7] * 20))


def test_private_key_to_address():
    address = private_key_to_address(PRIVATE_KEY_1)
    assert to_checksum_address(address) == Account.from_key(PRIVATE_KEY_1).address
    assert address == PRIVATE_KEY_1_ADDRESS


def test_payment_hash_matches_solidity_packing():
    amount = TokenAmount(10 ** 18)
    expected = keccak(CHANNEL_ADDRESS + amount.to_bytes(32, byteorder="big"))
    assert payment_hash(CHANNEL_ADDRESS, amount) == expected


def test_payment_hash_binds_channel_and_amount():
    other_channel = ChannelAddress(bytes([8] * 20))
    digest = payment_hash(CHANNEL_ADDRESS, TokenAmount(5))

    assert digest == payment_hash(CHANNEL_ADDRESS, TokenAmount(5))
    assert digest != payment_hash(CHANNEL_ADDRESS, TokenAmount(6))
    assert digest != payment_hash(other_channel, TokenAmount(5))


@pytest.mark.parametrize("amount", [-1, UINT256_MAX + 1, 1.5, True])
def test_payment_hash_rejects_invalid_amounts(amount):
    with pytest.raises(ValueError):
        payment_hash(CHANNEL_ADDRESS, amount)


def test_eth_sign_hash():
    message_hash = bytes(range(32))
    assert eth_sign_hash(message_hash) == keccak(
        b"\x19Ethereum Signed Message:\n32" + message_hash
    )


def test_sign_payment_is_compatible_with_eth_account():
    amount = TokenAmount(42)
    signature = sign_payment(PRIVATE_KEY_1, CHANNEL_ADDRESS, amount)
    message = encode_defunct(primitive=payment_hash(CHANNEL_ADDRESS, amount))

    assert len(signature) == 65
    assert signature[-1] in (27, 28)
    assert Account.recover_message(message, signature=signature) == to_checksum_address(
        PRIVATE_KEY_1_ADDRESS
    )

    signed = Account.sign_message(message, private_key=PRIVATE_KEY_1)
    digest = eth_sign_hash(payment_hash(CHANNEL_ADDRESS, amount))
    assert recover_signer(digest, Signature(bytes(signed.signature))) == PRIVATE_KEY_1_ADDRESS


def test_recover_signer_accepts_both_v_conventions():
    amount = TokenAmount(3)
    signature = sign_payment(PRIVATE_KEY_1, CHANNEL_ADDRESS, amount)
    digest = eth_sign_hash(payment_hash(CHANNEL_ADDRESS, amount))
    raw_v = Signature(signature[:-1] + bytes([signature[-1] - 27]))

    assert recover_signer(digest, signature) == PRIVATE_KEY_1_ADDRESS
    assert recover_signer(digest, raw_v) == PRIVATE_KEY_1_ADDRESS


def test_recover_signer_for_other_digest():
    signature = sign_payment(PRIVATE_KEY_1, CHANNEL_ADDRESS, TokenAmount(3))
    digest = eth_sign_hash(payment_hash(CHANNEL_ADDRESS, TokenAmount(4)))

    recovered = recover_signer(digest, signature)
    assert recovered not in (PRIVATE_KEY_1_ADDRESS, PRIVATE_KEY_2_ADDRESS)


@pytest.mark.parametrize(
    "signature",
    [
        b"",
        bytes(64),
        bytes(66),
        bytes(64) + bytes([29]),
        bytes(64) + bytes([27]),
    ],
)
def test_recover_signer_rejects_malformed_signatures(signature):
    digest = eth_sign_hash(payment_hash(CHANNEL_ADDRESS, TokenAmount(1)))
    with pytest.raises(InvalidSignature):
        recover_signer(digest, Signature(signature))
