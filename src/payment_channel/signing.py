from coincurve import PrivateKey as CoincurvePrivateKey, PublicKey
from eth_abi.packed import encode_packed
from eth_utils import keccak

from payment_channel.constants import ETH_SIGNED_MESSAGE_PREFIX, SIGNATURE_LENGTH, UINT256_MAX
from payment_channel.exceptions import InvalidSignature
from payment_channel.typing import Address, ChannelAddress, PrivateKey, Signature, TokenAmount


def public_key_to_address(public_key: PublicKey) -> Address:
    """Converts a public key to an Ethereum address."""
    key_bytes = public_key.format(compressed=False)
    return Address(keccak(key_bytes[1:])[-20:])


def private_key_to_address(private_key: PrivateKey) -> Address:
    """Converts a private key to an Ethereum address."""
    privkey = CoincurvePrivateKey(private_key)
    return public_key_to_address(privkey.public_key)


def validate_amount(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise ValueError(f"Amount must be an integer, got {amount!r}")
    if not 0 <= amount <= UINT256_MAX:
        raise ValueError(f"Amount out of uint256 range: {amount}")


def payment_hash(channel_address: ChannelAddress, amount: TokenAmount) -> bytes:
    """Hash binding an authorized amount to one channel instance

    Equivalent to Solidity's `keccak256(abi.encodePacked(address, uint256))`.
    """
    validate_amount(amount)
    return keccak(encode_packed(["address", "uint256"], [channel_address, amount]))


def eth_sign_hash(message_hash: bytes) -> bytes:
    """Wraps a 32 byte hash the way `personal_sign` does before signing it"""
    assert len(message_hash) == 32
    return keccak(ETH_SIGNED_MESSAGE_PREFIX + message_hash)


def recover_signer(digest: bytes, signature: Signature) -> Address:
    """Recover the address which signed `digest`

    Both the `0/1` and the `27/28` convention for `v` are accepted.
    Raises `InvalidSignature` if no public key can be recovered.
    """
    if not isinstance(signature, bytes) or len(signature) != SIGNATURE_LENGTH:
        raise InvalidSignature("Signature must be 65 bytes long", signature=signature)

    v = signature[-1]
    if v >= 27:
        v -= 27
    if v not in (0, 1):
        raise InvalidSignature("Invalid recovery id", v=signature[-1])

    try:
        public_key = PublicKey.from_signature_and_message(
            signature[:-1] + bytes([v]), digest, hasher=None
        )
    except (ValueError, TypeError) as ex:
        raise InvalidSignature(str(ex), signature=signature) from ex
    return public_key_to_address(public_key)


def sign_payment(
    private_key: PrivateKey, channel_address: ChannelAddress, amount: TokenAmount
) -> Signature:
    """Create the sender's authorization for a cumulative `amount`

    This is what the sender hands to the receiver off-chain.
    """
    digest = eth_sign_hash(payment_hash(channel_address, amount))
    signature = CoincurvePrivateKey(private_key).sign_recoverable(digest, hasher=None)
    return Signature(signature[:-1] + bytes([signature[-1] + 27]))
