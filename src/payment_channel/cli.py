import json
import sys
from functools import wraps
from typing import Any, Callable, Optional

import click
import structlog
from eth_account import Account
from eth_utils import decode_hex, encode_hex, is_checksum_address, to_canonical_address

from payment_channel.constants import ENV_VAR_PREFIX, UINT256_MAX
from payment_channel.exceptions import InvalidSignature
from payment_channel.logging import setup_logging
from payment_channel.signing import (
    eth_sign_hash,
    payment_hash,
    private_key_to_address,
    recover_signer,
    sign_payment,
)
from payment_channel.typing import Address, ChannelAddress, PrivateKey, Signature, TokenAmount

log = structlog.get_logger(__name__)


def _open_keystore(keystore_file: str, password: str) -> PrivateKey:
    with open(keystore_file, "r") as keystore:
        try:
            private_key = bytes(
                Account.decrypt(keyfile_json=json.load(keystore), password=password)
            )
            return PrivateKey(private_key)
        except ValueError as error:
            log.critical(
                "Could not decode keyfile with given password. Please try again.",
                reason=str(error),
            )
            sys.exit(1)


def validate_address(
    _ctx: click.Context, _param: click.Parameter, value: Optional[str]
) -> Optional[Address]:
    if value is None:
        # None as default value allowed
        return None
    if not is_checksum_address(value):
        raise click.BadParameter("not an EIP-55 checksummed address")
    return Address(to_canonical_address(value))


def validate_hex(
    _ctx: click.Context, _param: click.Parameter, value: Optional[str]
) -> Optional[bytes]:
    if value is None:
        return None
    try:
        return decode_hex(value)
    except ValueError as ex:
        raise click.BadParameter("not a hex encoded value") from ex


def common_options(func: Callable) -> Callable:
    """A decorator to be used with all commands

    It sets up logging from `--log-level` and `--log-json`.
    """
    for option in reversed(
        [
            click.option(
                "--log-level",
                default="WARNING",
                type=click.Choice(["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]),
                help="Print log messages of this level and more important ones",
            ),
            click.option(
                "--log-json/--no-log-json",
                default=False,
                help="Enable or disable logging in JSON format",
            ),
        ]
    ):
        func = option(func)

    @wraps(func)
    def call_with_common_options_initialized(**params: Any) -> Any:
        try:
            setup_logging(log_level=params.pop("log_level"), log_json=params.pop("log_json"))
            return func(**params)
        finally:
            structlog.reset_defaults()

    return call_with_common_options_initialized


def key_options(func: Callable) -> Callable:
    """Provides `private_key`, either given directly or read from a keystore file"""
    for option in reversed(
        [
            click.option(
                "--private-key",
                type=str,
                callback=validate_hex,
                help="Hex encoded private key of the sender.",
            ),
            click.option(
                "--keystore-file",
                type=click.Path(exists=True, dir_okay=False, readable=True),
                help="Path to a keystore file, used instead of `--private-key`.",
            ),
            click.option(
                "--password",
                type=str,
                default="",
                help="Password to unlock the keystore file.",
            ),
        ]
    ):
        func = option(func)

    @wraps(func)
    def call_with_private_key(**params: Any) -> Any:
        private_key = params.pop("private_key")
        keystore_file = params.pop("keystore_file")
        password = params.pop("password")
        if keystore_file is not None:
            private_key = _open_keystore(keystore_file, password)
        if private_key is None:
            raise click.UsageError("Either --private-key or --keystore-file is required")
        params["private_key"] = PrivateKey(private_key)
        return func(**params)

    return call_with_private_key


channel_address_option = click.option(
    "--channel-address",
    required=True,
    type=str,
    callback=validate_address,
    help="Checksummed address of the payment channel",
)
amount_option = click.option(
    "--amount",
    required=True,
    type=click.IntRange(min=0, max=UINT256_MAX),
    help="Cumulative amount to authorize, in the smallest unit",
)


@click.group()
def main() -> None:
    """Off-chain tooling for unidirectional payment channels"""


@main.command("sign-payment")
@channel_address_option
@amount_option
@key_options
@common_options
def sign_payment_command(
    channel_address: ChannelAddress, amount: TokenAmount, private_key: PrivateKey
) -> None:
    """Sign an authorization for the receiver to claim `amount`"""
    signature = sign_payment(private_key, channel_address, amount)
    log.info(
        "Payment signed",
        channel=channel_address,
        amount=amount,
        sender=private_key_to_address(private_key),
    )
    click.echo(encode_hex(signature))


@main.command("verify-payment")
@channel_address_option
@amount_option
@click.option(
    "--signature", required=True, type=str, callback=validate_hex, help="Hex encoded signature"
)
@click.option(
    "--sender",
    required=True,
    type=str,
    callback=validate_address,
    help="Checksummed address of the channel's sender",
)
@common_options
def verify_payment_command(
    channel_address: ChannelAddress, amount: TokenAmount, signature: Signature, sender: Address
) -> None:
    """Check an authorization before submitting it to the channel"""
    digest = eth_sign_hash(payment_hash(channel_address, amount))
    try:
        signer = recover_signer(digest, signature)
    except InvalidSignature as ex:
        log.info("Could not recover signer", reason=ex.msg)
        signer = None

    if signer != sender:
        click.echo("Invalid signature")
        sys.exit(1)
    click.echo("Valid signature")


if __name__ == "__main__":
    main(auto_envvar_prefix=ENV_VAR_PREFIX)  # pragma: no cover
