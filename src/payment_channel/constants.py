from payment_channel.typing import Duration

# Prefix used by `eth_sign`/`personal_sign` for a 32 byte message
ETH_SIGNED_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n32"

UINT256_MAX = (2 ** 256) - 1

SIGNATURE_LENGTH = 65

DEFAULT_CLOSE_DURATION = Duration(60 * 60)  # in seconds

ENV_VAR_PREFIX = "PC"
