import marshmallow
import pytest
from eth_utils import to_checksum_address

from payment_channel.model import Channel, ChannelStatus


def test_channel_schema(channel, sender, receiver):
    channel.initiate_sender_close(sender)

    dumped = Channel.Schema().dump(channel.channel)
    assert dumped["address"] == to_checksum_address(channel.address)
    assert dumped["sender"] == to_checksum_address(sender)
    assert dumped["receiver"] == to_checksum_address(receiver)
    assert dumped["status"] == ChannelStatus.SENDER_CLOSING.name
    assert dumped["close_deadline"] == channel.close_deadline

    assert Channel.Schema().load(dumped) == channel.channel


def test_channel_schema_requires_checksum_address(channel):
    dumped = Channel.Schema().dump(channel.channel)
    dumped["sender"] = dumped["sender"].lower()

    with pytest.raises(marshmallow.ValidationError):
        Channel.Schema().load(dumped)


def test_channel_repr(channel):
    assert to_checksum_address(channel.address) in repr(channel.channel)
    assert "status=open" in repr(channel.channel)
