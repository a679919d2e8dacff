# savings_pay/utils/balance.py
import math
import threading
import logging
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


class BalanceLedger:
    """
    The mock bank balance.

    One instance is created at startup and shared by every request. The
    check-then-subtract in ``try_debit`` is a single critical section with no
    ``await`` inside, so two concurrent settlements can never both spend the
    same funds.
    """

    def __init__(self, initial: float):
        if not math.isfinite(initial) or initial < 0:
            raise ValueError("initial balance must be a finite, non-negative number")
        self._balance = float(initial)
        self._lock = threading.Lock()

    def current(self) -> float:
        with self._lock:
            return self._balance

    def try_debit(self, amount: float) -> Optional[Tuple[float, float]]:
        """
        Subtract ``amount`` if the balance covers it.

        Returns ``(balance_before, balance_after)`` on success, ``None`` when
        funds are insufficient (the balance is left untouched).
        """
        if not math.isfinite(amount) or amount <= 0:
            raise ValueError("debit amount must be a positive finite number")
        with self._lock:
            if amount > self._balance:
                return None
            before = self._balance
            self._balance = before - amount
            return before, self._balance

    def credit(self, amount: float) -> float:
        """Add funds back, used to reverse a debit whose payment could not be stored."""
        if not math.isfinite(amount) or amount <= 0:
            raise ValueError("credit amount must be a positive finite number")
        with self._lock:
            self._balance += amount
            logger.info(f"Balance credited {amount:.2f}, now {self._balance:.2f}")
            return self._balance
