from typing import NewType

Address = NewType("Address", bytes)
ChannelAddress = NewType("ChannelAddress", Address)
PrivateKey = NewType("PrivateKey", bytes)
Signature = NewType("Signature", bytes)
TokenAmount = NewType("TokenAmount", int)
Timestamp = NewType("Timestamp", int)
Duration = NewType("Duration", int)
