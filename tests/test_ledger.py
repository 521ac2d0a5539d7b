import pytest

from payment_channel.exceptions import TransferFailed
from payment_channel.ledger import InMemoryLedger
from payment_channel.typing import Address, Duration, Timestamp, TokenAmount

ALICE = Address(bytes([1] * 20))
BOB = Address(bytes([2] * 20))


@pytest.fixture
def funded_ledger() -> InMemoryLedger:
    ledger = InMemoryLedger(start_time=Timestamp(100))
    ledger.mint(ALICE, TokenAmount(50))
    return ledger


def test_transfer_value(funded_ledger: InMemoryLedger):
    funded_ledger.transfer_value(ALICE, BOB, TokenAmount(20))

    assert funded_ledger.balance_of(ALICE) == 30
    assert funded_ledger.balance_of(BOB) == 20


def test_transfer_value_failures(funded_ledger: InMemoryLedger):
    with pytest.raises(TransferFailed):
        funded_ledger.transfer_value(ALICE, BOB, TokenAmount(51))
    with pytest.raises(TransferFailed):
        funded_ledger.transfer_value(ALICE, BOB, TokenAmount(-1))

    funded_ledger.reject_transfers_to(BOB)
    with pytest.raises(TransferFailed):
        funded_ledger.transfer_value(ALICE, BOB, TokenAmount(1))

    assert funded_ledger.balance_of(ALICE) == 50
    assert funded_ledger.balance_of(BOB) == 0


def test_transaction_is_atomic(funded_ledger: InMemoryLedger):
    with pytest.raises(TransferFailed):
        with funded_ledger.transaction():
            funded_ledger.transfer_value(ALICE, BOB, TokenAmount(30))
            funded_ledger.transfer_value(ALICE, BOB, TokenAmount(30))

    assert funded_ledger.balance_of(ALICE) == 50
    assert funded_ledger.balance_of(BOB) == 0

    with funded_ledger.transaction():
        funded_ledger.transfer_value(ALICE, BOB, TokenAmount(30))
    assert funded_ledger.balance_of(BOB) == 30


def test_clock(funded_ledger: InMemoryLedger):
    assert funded_ledger.current_time() == 100
    assert funded_ledger.advance_time(Duration(10)) == 110

    funded_ledger.set_time(Timestamp(200))
    assert funded_ledger.current_time() == 200

    with pytest.raises(ValueError):
        funded_ledger.set_time(Timestamp(199))


def test_new_account_address_is_unique(funded_ledger: InMemoryLedger):
    first = funded_ledger.new_account_address(ALICE)
    second = funded_ledger.new_account_address(ALICE)
    other = funded_ledger.new_account_address(BOB)

    assert len({first, second, other}) == 3
    assert all(len(address) == 20 for address in (first, second, other))
    assert InMemoryLedger().new_account_address(ALICE) == first
