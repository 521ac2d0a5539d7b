from payment_channel.model.channel import Channel, ChannelStatus

__all__ = ["Channel", "ChannelStatus"]
