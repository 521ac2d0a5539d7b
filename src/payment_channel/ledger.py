from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterator, Set

import structlog
from eth_abi import encode
from eth_utils import keccak

from payment_channel.exceptions import TransferFailed
from payment_channel.typing import Address, Duration, Timestamp, TokenAmount

log = structlog.get_logger(__name__)


class Ledger(ABC):
    """The execution environment a channel lives in

    It holds value for every address, knows the current time and applies groups
    of transfers atomically.
    """

    @abstractmethod
    def current_time(self) -> Timestamp:
        pass

    @abstractmethod
    def balance_of(self, address: Address) -> TokenAmount:
        pass

    @abstractmethod
    def transfer_value(self, source: Address, to: Address, amount: TokenAmount) -> None:
        """Move `amount` from `source` to `to`, raise `TransferFailed` otherwise"""

    @abstractmethod
    def new_account_address(self, deployer: Address) -> Address:
        """Return a fresh address for an account created by `deployer`"""

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Either all transfers inside the block are applied or none is"""


class InMemoryLedger(Ledger):
    def __init__(self, start_time: Timestamp = Timestamp(0)) -> None:
        self.balances: Dict[Address, TokenAmount] = {}
        self.nonces: Dict[Address, int] = {}
        self.rejecting: Set[Address] = set()
        self._time = start_time

    def current_time(self) -> Timestamp:
        return self._time

    def set_time(self, timestamp: Timestamp) -> None:
        if timestamp < self._time:
            raise ValueError("Ledger time must not go backwards")
        self._time = timestamp

    def advance_time(self, seconds: Duration) -> Timestamp:
        self.set_time(Timestamp(self._time + seconds))
        return self._time

    def balance_of(self, address: Address) -> TokenAmount:
        return self.balances.get(address, TokenAmount(0))

    def mint(self, address: Address, amount: TokenAmount) -> None:
        if amount < 0:
            raise ValueError("Can not mint a negative amount")
        self.balances[address] = TokenAmount(self.balance_of(address) + amount)

    def reject_transfers_to(self, address: Address) -> None:
        """Let every following transfer to `address` fail"""
        self.rejecting.add(address)

    def transfer_value(self, source: Address, to: Address, amount: TokenAmount) -> None:
        if amount < 0:
            raise TransferFailed("Negative transfer amount", amount=amount)
        if to in self.rejecting:
            raise TransferFailed("Receiving account rejected the transfer", to=to)
        available = self.balance_of(source)
        if available < amount:
            raise TransferFailed(
                "Insufficient balance", source=source, available=available, amount=amount
            )

        self.balances[source] = TokenAmount(available - amount)
        self.balances[to] = TokenAmount(self.balance_of(to) + amount)
        log.debug("Value transferred", source=source, to=to, amount=amount)

    def new_account_address(self, deployer: Address) -> Address:
        nonce = self.nonces.get(deployer, 0)
        self.nonces[deployer] = nonce + 1
        return Address(keccak(deployer + encode(["uint256"], [nonce]))[-20:])

    @contextmanager
    def transaction(self) -> Iterator[None]:
        snapshot = dict(self.balances)
        try:
            yield
        except Exception:
            self.balances = snapshot
            raise
