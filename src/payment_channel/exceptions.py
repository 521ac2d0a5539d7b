from typing import Any, Dict, Optional


class PaymentChannelError(Exception):
    """Base class for all rejected channel operations

    Every failure aborts the whole operation and leaves the channel untouched.
    """

    msg: str = "Unknown Error"
    error_code: int = 0
    error_details: Optional[Dict[str, Any]] = None

    def __init__(self, msg: Optional[str] = None, **details: Any):
        super().__init__(msg)
        if msg:
            self.msg = msg
        self.error_details = details

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.error_details})"


# ### Authorization errors 10xx ###


class InvalidCaller(PaymentChannelError):
    error_code = 1000
    msg = "The operation is restricted to another participant."


class InvalidSignature(PaymentChannelError):
    error_code = 1001
    msg = "The signature did not match the signed content."


# ### Settlement errors 11xx ###


class NonMonotonicAmount(PaymentChannelError):
    error_code = 1100
    msg = "The authorized amount does not exceed the amount already withdrawn."


class InsufficientEscrow(PaymentChannelError):
    error_code = 1101
    msg = "The requested payout exceeds the remaining escrow."


class InvalidState(PaymentChannelError):
    error_code = 1102
    msg = "The operation is not allowed in the current channel state."


class NotExpired(PaymentChannelError):
    error_code = 1103
    msg = "The close deadline has not been reached yet."


# ### Ledger errors 12xx ###


class TransferFailed(PaymentChannelError):
    error_code = 1200
    msg = "The ledger could not transfer the value."
