"""
Custody of public-sale proceeds.
"""

from decimal import Decimal
from typing import Callable, Optional

from ..logger import get_logger

logger = get_logger(__name__)


class PaymentVault:
    """
    Holds purchase payments until the administrator withdraws them.

    ``withdraw`` zeroes the balance *before* calling the payout function,
    so a payout that re-enters sees nothing left to take.
    """

    def __init__(self, balance: Decimal = Decimal("0")):
        self._balance = Decimal(balance)
        self._total_received = Decimal(balance)

    @property
    def balance(self) -> Decimal:
        return self._balance

    @property
    def total_received(self) -> Decimal:
        return self._total_received

    def deposit(self, payer: str, amount: Decimal) -> None:
        if amount < 0:
            raise ValueError("Deposit cannot be negative")
        self._balance += amount
        self._total_received += amount
        logger.debug(f"Vault deposit from {payer}: payment={amount}")

    def withdraw(
        self,
        to: str,
        payout_fn: Optional[Callable[[str, Decimal], None]] = None,
    ) -> Decimal:
        """
        Release the whole balance to *to*. If *payout_fn* raises, the
        balance is restored and the error propagates.
        """
        amount = self._balance
        self._balance = Decimal("0")
        if payout_fn is not None:
            try:
                payout_fn(to, amount)
            except Exception:
                self._balance = amount
                raise
        return amount

    def restore(self, balance: Decimal, total_received: Decimal) -> None:
        self._balance = Decimal(balance)
        self._total_received = Decimal(total_received)
