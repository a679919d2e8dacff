from concurrent.futures import ThreadPoolExecutor

import pytest

from savings_pay.utils.balance import BalanceLedger


def test_debit_within_balance():
    ledger = BalanceLedger(500)

    assert ledger.try_debit(200) == (500, 300)
    assert ledger.current() == 300


def test_debit_of_whole_balance_is_allowed():
    ledger = BalanceLedger(100)

    assert ledger.try_debit(100) == (100, 0)
    assert ledger.current() == 0


def test_insufficient_debit_leaves_balance_untouched():
    ledger = BalanceLedger(100)

    assert ledger.try_debit(100.01) is None
    assert ledger.current() == 100


def test_credit_adds_funds():
    ledger = BalanceLedger(100)
    ledger.try_debit(40)

    assert ledger.credit(40) == 100


@pytest.mark.parametrize("amount", [0, -5])
def test_non_positive_amounts_are_rejected(amount):
    ledger = BalanceLedger(100)

    with pytest.raises(ValueError):
        ledger.try_debit(amount)
    with pytest.raises(ValueError):
        ledger.credit(amount)


def test_negative_opening_balance_is_rejected():
    with pytest.raises(ValueError):
        BalanceLedger(-1)


def test_concurrent_debits_never_overspend():
    ledger = BalanceLedger(100)

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(lambda _: ledger.try_debit(1), range(500)))

    assert sum(1 for r in results if r is not None) == 100
    assert ledger.current() == 0


@pytest.mark.parametrize("amount", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_amounts_never_reach_the_balance(amount):
    ledger = BalanceLedger(100)

    with pytest.raises(ValueError):
        ledger.try_debit(amount)
    with pytest.raises(ValueError):
        ledger.credit(amount)
    assert ledger.current() == 100


def test_non_finite_opening_balance_is_rejected():
    with pytest.raises(ValueError):
        BalanceLedger(float("nan"))
