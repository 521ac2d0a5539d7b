from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Optional, Type

import marshmallow
from eth_utils import to_checksum_address
from marshmallow_dataclass import add_schema

from payment_channel.marshmallow import ChecksumAddress
from payment_channel.typing import Address, ChannelAddress, Duration, Timestamp, TokenAmount


class ChannelStatus(Enum):
    OPEN = "open"
    SENDER_CLOSING = "sender_closing"
    CLOSED = "closed"


@add_schema
@dataclass
class Channel:
    """State of a unidirectional payment channel

    `escrowed_balance` is what the channel still holds, `withdrawn_total` the
    highest authorization already paid out to the receiver.
    """

    # pylint: disable=too-many-instance-attributes
    address: ChannelAddress = field(metadata={"marshmallow_field": ChecksumAddress(required=True)})
    sender: Address = field(metadata={"marshmallow_field": ChecksumAddress(required=True)})
    receiver: Address = field(metadata={"marshmallow_field": ChecksumAddress(required=True)})
    close_duration: Duration
    escrowed_balance: TokenAmount = TokenAmount(0)
    withdrawn_total: TokenAmount = TokenAmount(0)
    close_deadline: Optional[Timestamp] = None
    status: ChannelStatus = field(
        default=ChannelStatus.OPEN,
        metadata={"marshmallow_field": marshmallow.fields.Enum(ChannelStatus)},
    )

    Schema: ClassVar[Type[marshmallow.Schema]]

    @property
    def is_closed(self) -> bool:
        return self.status == ChannelStatus.CLOSED

    def __repr__(self) -> str:
        return "<Channel address={} sender={} receiver={} status={} escrow={} withdrawn={}>".format(
            to_checksum_address(self.address),
            to_checksum_address(self.sender),
            to_checksum_address(self.receiver),
            self.status.value,
            self.escrowed_balance,
            self.withdrawn_total,
        )
