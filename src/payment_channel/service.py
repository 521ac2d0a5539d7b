from contextlib import contextmanager
from dataclasses import replace
from functools import wraps
from typing import Any, Callable, Iterator, List, Optional, TypeVar, cast

import structlog
from eth_utils import is_same_address

from payment_channel.constants import DEFAULT_CLOSE_DURATION
from payment_channel.events import (
    ChannelClosed,
    ChannelOpened,
    Deposited,
    Event,
    SenderCloseRequested,
    TimeoutClaimed,
    Withdrawn,
)
from payment_channel.exceptions import (
    InsufficientEscrow,
    InvalidCaller,
    InvalidSignature,
    InvalidState,
    NonMonotonicAmount,
    NotExpired,
    PaymentChannelError,
)
from payment_channel.ledger import Ledger
from payment_channel.model import Channel, ChannelStatus
from payment_channel.signing import eth_sign_hash, payment_hash, recover_signer, validate_amount
from payment_channel.typing import (
    Address,
    ChannelAddress,
    Duration,
    Signature,
    Timestamp,
    TokenAmount,
)

log = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def log_rejections(func: F) -> F:
    """Log every rejected operation before passing the error on to the caller"""

    @wraps(func)
    def wrapper(self: "PaymentChannel", *args: Any, **kwargs: Any) -> Any:
        try:
            return func(self, *args, **kwargs)
        except PaymentChannelError as ex:
            log.warning(
                "Channel operation rejected",
                operation=func.__name__,
                channel=self.address,
                error=ex.__class__.__name__,
                reason=ex.msg,
                **(ex.error_details or {}),
            )
            raise

    return cast(F, wrapper)


class PaymentChannel:
    """A unidirectional payment channel between `sender` and `receiver`

    The sender escrows value once and hands out signed authorizations for the
    cumulative amount the receiver may claim. Every operation either applies
    completely or raises without changing the channel or the ledger.
    """

    def __init__(self, ledger: Ledger, channel: Channel):
        self.ledger = ledger
        self.channel = channel
        self.events: List[Event] = []

    @property
    def address(self) -> ChannelAddress:
        return self.channel.address

    @property
    def sender(self) -> Address:
        return self.channel.sender

    @property
    def receiver(self) -> Address:
        return self.channel.receiver

    @property
    def status(self) -> ChannelStatus:
        return self.channel.status

    @property
    def escrowed_balance(self) -> TokenAmount:
        return self.channel.escrowed_balance

    @property
    def withdrawn_total(self) -> TokenAmount:
        return self.channel.withdrawn_total

    @property
    def close_duration(self) -> Duration:
        return self.channel.close_duration

    @property
    def close_deadline(self) -> Optional[Timestamp]:
        return self.channel.close_deadline

    # ### Authorization ###

    def compute_digest(self, amount: TokenAmount) -> bytes:
        """The hash a sender has to sign to authorize a cumulative `amount`"""
        return eth_sign_hash(payment_hash(self.address, amount))

    def verify(self, amount: TokenAmount, signature: Signature) -> bool:
        try:
            signer = recover_signer(self.compute_digest(amount), signature)
        except InvalidSignature:
            return False
        return is_same_address(signer, self.sender)

    # ### Funding ###

    @log_rejections
    def deposit(self, caller: Address, amount: TokenAmount) -> None:
        validate_amount(amount)
        self._require_status(ChannelStatus.OPEN)
        self._require_caller(caller, self.sender)

        with self._transition() as channel:
            self.ledger.transfer_value(self.sender, self.address, amount)
            channel.escrowed_balance = TokenAmount(channel.escrowed_balance + amount)

        log.info(
            "Deposit received",
            channel=self.address,
            amount=amount,
            escrowed_balance=self.escrowed_balance,
        )
        self._emit(
            Deposited(
                channel_address=self.address,
                amount=amount,
                escrowed_balance=self.escrowed_balance,
                timestamp=self.ledger.current_time(),
            )
        )

    # ### Settlement ###

    @log_rejections
    def withdraw(self, caller: Address, amount: TokenAmount, signature: Signature) -> TokenAmount:
        """Pay out the part of `amount` not yet withdrawn, return the paid delta

        The receiver may still withdraw while the sender's close request is pending.
        """
        validate_amount(amount)
        self._require_not_closed()
        self._require_caller(caller, self.receiver)
        self._require_valid_signature(amount, signature)
        if amount <= self.withdrawn_total:
            raise NonMonotonicAmount(amount=amount, withdrawn_total=self.withdrawn_total)
        payout = TokenAmount(amount - self.withdrawn_total)
        if payout > self.escrowed_balance:
            raise InsufficientEscrow(payout=payout, escrowed_balance=self.escrowed_balance)

        with self._transition() as channel:
            self.ledger.transfer_value(self.address, self.receiver, payout)
            channel.withdrawn_total = amount
            channel.escrowed_balance = TokenAmount(channel.escrowed_balance - payout)

        log.info("Withdrawal paid", channel=self.address, amount=amount, paid=payout)
        self._emit(
            Withdrawn(
                channel_address=self.address,
                amount=amount,
                paid=payout,
                timestamp=self.ledger.current_time(),
            )
        )
        return payout

    @log_rejections
    def close(self, caller: Address, amount: TokenAmount, signature: Signature) -> None:
        """Settle the channel with the receiver's best authorization

        The receiver gets what `amount` adds on top of earlier withdrawals, the
        rest of the escrow goes back to the sender.
        """
        validate_amount(amount)
        self._require_not_closed()
        self._require_caller(caller, self.receiver)
        self._require_valid_signature(amount, signature)
        if amount < self.withdrawn_total:
            raise NonMonotonicAmount(amount=amount, withdrawn_total=self.withdrawn_total)
        payout = TokenAmount(amount - self.withdrawn_total)
        if payout > self.escrowed_balance:
            raise InsufficientEscrow(payout=payout, escrowed_balance=self.escrowed_balance)
        refund = TokenAmount(self.escrowed_balance - payout)

        with self._transition() as channel:
            if payout > 0:
                self.ledger.transfer_value(self.address, self.receiver, payout)
            if refund > 0:
                self.ledger.transfer_value(self.address, self.sender, refund)
            channel.withdrawn_total = amount
            channel.escrowed_balance = TokenAmount(0)
            channel.status = ChannelStatus.CLOSED

        log.info(
            "Channel closed by receiver",
            channel=self.address,
            amount=amount,
            receiver_paid=payout,
            sender_refunded=refund,
        )
        self._emit(
            ChannelClosed(
                channel_address=self.address,
                amount=amount,
                receiver_paid=payout,
                sender_refunded=refund,
                timestamp=self.ledger.current_time(),
            )
        )

    @log_rejections
    def initiate_sender_close(self, caller: Address) -> Timestamp:
        """Start the close window, return the deadline after which the sender can reclaim"""
        self._require_status(ChannelStatus.OPEN)
        self._require_caller(caller, self.sender)

        now = self.ledger.current_time()
        deadline = Timestamp(now + self.channel.close_duration)
        with self._transition() as channel:
            channel.close_deadline = deadline
            channel.status = ChannelStatus.SENDER_CLOSING

        log.info("Sender requested close", channel=self.address, close_deadline=deadline)
        self._emit(
            SenderCloseRequested(
                channel_address=self.address, close_deadline=deadline, timestamp=now
            )
        )
        return deadline

    @log_rejections
    def claim_timeout(self, caller: Address) -> TokenAmount:
        """Return the remaining escrow to the sender once the close window expired

        Anybody may trigger this, the value always goes to the sender.
        """
        self._require_not_closed()
        now = self.ledger.current_time()
        if (
            self.status != ChannelStatus.SENDER_CLOSING
            or self.close_deadline is None
            or now < self.close_deadline
        ):
            raise NotExpired(now=now, close_deadline=self.close_deadline)
        refund = self.escrowed_balance

        with self._transition() as channel:
            self.ledger.transfer_value(self.address, self.sender, refund)
            channel.escrowed_balance = TokenAmount(0)
            channel.status = ChannelStatus.CLOSED

        log.info("Close timeout claimed", channel=self.address, caller=caller, refunded=refund)
        self._emit(
            TimeoutClaimed(channel_address=self.address, sender_refunded=refund, timestamp=now)
        )
        return refund

    # ### Helpers ###

    @contextmanager
    def _transition(self) -> Iterator[Channel]:
        """Apply changes to a copy of the channel, commit it if no error occurred"""
        shadow = replace(self.channel)
        with self.ledger.transaction():
            yield shadow
        self.channel = shadow

    def _emit(self, event: Event) -> None:
        self.events.append(event)

    def _require_not_closed(self) -> None:
        if self.channel.is_closed:
            raise InvalidState("The channel is already closed.", status=self.status.value)

    def _require_status(self, status: ChannelStatus) -> None:
        if self.status != status:
            raise InvalidState(status=self.status.value, required=status.value)

    @staticmethod
    def _require_caller(caller: Address, expected: Address) -> None:
        if not is_same_address(caller, expected):
            raise InvalidCaller(caller=caller, expected=expected)

    def _require_valid_signature(self, amount: TokenAmount, signature: Signature) -> None:
        if not self.verify(amount, signature):
            raise InvalidSignature(amount=amount, signature=signature)


def open_channel(
    ledger: Ledger,
    sender: Address,
    receiver: Address,
    close_duration: Duration = DEFAULT_CLOSE_DURATION,
    deposit: TokenAmount = TokenAmount(0),
) -> PaymentChannel:
    """Create a channel funded by `sender` with an initial `deposit`"""
    validate_amount(deposit)
    if close_duration <= 0:
        raise ValueError(f"Close duration must be positive, got {close_duration}")
    if is_same_address(sender, receiver):
        raise InvalidCaller("Sender and receiver must differ.", sender=sender)

    channel_address = ChannelAddress(ledger.new_account_address(sender))
    with ledger.transaction():
        ledger.transfer_value(sender, channel_address, deposit)

    channel = PaymentChannel(
        ledger=ledger,
        channel=Channel(
            address=channel_address,
            sender=sender,
            receiver=receiver,
            close_duration=close_duration,
            escrowed_balance=deposit,
        ),
    )
    now = ledger.current_time()
    log.info(
        "Channel opened",
        channel=channel_address,
        sender=sender,
        receiver=receiver,
        deposit=deposit,
        close_duration=close_duration,
    )
    channel.events.append(
        ChannelOpened(
            channel_address=channel_address,
            sender=sender,
            receiver=receiver,
            deposit=deposit,
            timestamp=now,
        )
    )
    return channel
