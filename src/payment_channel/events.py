from dataclasses import dataclass

from payment_channel.typing import Address, ChannelAddress, Timestamp, TokenAmount


@dataclass(frozen=True)
class Event:  # pylint: disable=too-few-public-methods
    """Base class for events."""


@dataclass(frozen=True)
class ChannelOpened(Event):
    channel_address: ChannelAddress
    sender: Address
    receiver: Address
    deposit: TokenAmount
    timestamp: Timestamp


@dataclass(frozen=True)
class Deposited(Event):
    channel_address: ChannelAddress
    amount: TokenAmount
    escrowed_balance: TokenAmount
    timestamp: Timestamp


@dataclass(frozen=True)
class Withdrawn(Event):
    channel_address: ChannelAddress
    amount: TokenAmount
    paid: TokenAmount
    timestamp: Timestamp


@dataclass(frozen=True)
class SenderCloseRequested(Event):
    channel_address: ChannelAddress
    close_deadline: Timestamp
    timestamp: Timestamp


@dataclass(frozen=True)
class ChannelClosed(Event):
    channel_address: ChannelAddress
    amount: TokenAmount
    receiver_paid: TokenAmount
    sender_refunded: TokenAmount
    timestamp: Timestamp


@dataclass(frozen=True)
class TimeoutClaimed(Event):
    channel_address: ChannelAddress
    sender_refunded: TokenAmount
    timestamp: Timestamp
