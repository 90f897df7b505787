"""
Collaborator interfaces consumed by the issuance core.

The core never stores balances, ownership, operator lists or proceeds
itself; it calls into objects implementing these protocols. Reference
in-memory implementations live in ``qmint.ledger``.
"""

from decimal import Decimal
from typing import Callable, Optional, Protocol, Sequence, runtime_checkable


@runtime_checkable
class TokenLedger(Protocol):
    """Multi-token balance ledger. Assumed correct and atomic per call."""

    def mint(self, to: str, type_id: int, amount: int) -> None:
        ...

    def burn(self, holder: str, type_id: int, amount: int) -> None:
        ...

    def balance_of(self, holder: str, type_id: int) -> int:
        ...

    def transfer(self, sender: str, recipient: str, type_id: int, amount: int) -> None:
        ...

    def batch_transfer(
        self,
        sender: str,
        recipient: str,
        type_ids: Sequence[int],
        amounts: Sequence[int],
    ) -> None:
        ...

    def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> None:
        ...

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        ...


@runtime_checkable
class OperatorAllowList(Protocol):
    """Third-party operator registry consulted by transfer/approval calls."""

    def is_operator_allowed(self, operator: str) -> bool:
        ...


@runtime_checkable
class AdminAuthority(Protocol):
    """Answers whether *caller* may perform administrator actions."""

    def is_authorized(self, caller: str) -> bool:
        ...


@runtime_checkable
class Clock(Protocol):
    """Read-only time source (unix seconds)."""

    def now(self) -> int:
        ...


@runtime_checkable
class PaymentSink(Protocol):
    """Custody of purchase proceeds."""

    def deposit(self, payer: str, amount: Decimal) -> None:
        ...

    def withdraw(
        self,
        to: str,
        payout_fn: Optional[Callable[[str, Decimal], None]] = None,
    ) -> Decimal:
        ...
