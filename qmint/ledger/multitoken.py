"""
In-memory multi-token balance ledger.

Stores balances per (holder, type) and operator approvals. It knows nothing
about caps, gates or prices; the collection core decides *whether* an
operation may happen and this ledger only carries it out.
"""

from typing import Any, Dict, List, Sequence, Tuple

from ..exceptions import InsufficientBalanceError, InvalidAmountError
from ..logger import get_logger

logger = get_logger(__name__)


class MultiTokenLedger:
    """Balances keyed by (holder, type_id). Each call is all-or-nothing."""

    def __init__(self):
        self._balances: Dict[Tuple[str, int], int] = {}
        self._approvals: Dict[Tuple[str, str], bool] = {}  # (owner, operator)

    # ── Reads ─────────────────────────────────────────────────────────

    def balance_of(self, holder: str, type_id: int) -> int:
        return self._balances.get((holder, type_id), 0)

    def balance_of_batch(self, holders: Sequence[str], type_ids: Sequence[int]) -> List[int]:
        if len(holders) != len(type_ids):
            raise ValueError("holders and type_ids length mismatch")
        return [self.balance_of(h, t) for h, t in zip(holders, type_ids)]

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return self._approvals.get((owner, operator), False)

    def holders(self, type_id: int) -> Dict[str, int]:
        return {h: b for (h, t), b in self._balances.items() if t == type_id and b > 0}

    # ── Mutations ─────────────────────────────────────────────────────

    @staticmethod
    def _require_positive(amount: int) -> None:
        if amount <= 0:
            raise InvalidAmountError(f"Amount must be positive, got {amount}")

    def mint(self, to: str, type_id: int, amount: int) -> None:
        self._require_positive(amount)
        key = (to, type_id)
        self._balances[key] = self._balances.get(key, 0) + amount

    def burn(self, holder: str, type_id: int, amount: int) -> None:
        self._require_positive(amount)
        bal = self.balance_of(holder, type_id)
        if bal < amount:
            raise InsufficientBalanceError(
                f"{holder} holds {bal} of type {type_id}, cannot burn {amount}"
            )
        self._set(holder, type_id, bal - amount)

    def transfer(self, sender: str, recipient: str, type_id: int, amount: int) -> None:
        self._require_positive(amount)
        bal = self.balance_of(sender, type_id)
        if bal < amount:
            raise InsufficientBalanceError(
                f"{sender} holds {bal} of type {type_id}, cannot transfer {amount}"
            )
        self._set(sender, type_id, bal - amount)
        self._set(recipient, type_id, self.balance_of(recipient, type_id) + amount)

    def batch_transfer(
        self,
        sender: str,
        recipient: str,
        type_ids: Sequence[int],
        amounts: Sequence[int],
    ) -> None:
        """Move several types at once; nothing moves unless every leg can."""
        if len(type_ids) != len(amounts):
            raise ValueError("type_ids and amounts length mismatch")

        needed: Dict[int, int] = {}
        for type_id, amount in zip(type_ids, amounts):
            self._require_positive(amount)
            needed[type_id] = needed.get(type_id, 0) + amount
        for type_id, amount in needed.items():
            bal = self.balance_of(sender, type_id)
            if bal < amount:
                raise InsufficientBalanceError(
                    f"{sender} holds {bal} of type {type_id}, cannot transfer {amount}"
                )

        for type_id, amount in needed.items():
            self._set(sender, type_id, self.balance_of(sender, type_id) - amount)
            self._set(recipient, type_id, self.balance_of(recipient, type_id) + amount)

    def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> None:
        if owner == operator:
            raise ValueError("Cannot set approval status for self")
        if approved:
            self._approvals[(owner, operator)] = True
        else:
            self._approvals.pop((owner, operator), None)

    def _set(self, holder: str, type_id: int, value: int) -> None:
        if value:
            self._balances[(holder, type_id)] = value
        else:
            self._balances.pop((holder, type_id), None)

    # ── Serialization ─────────────────────────────────────────────────

    def snapshot(self) -> Dict[str, Any]:
        return {
            "balances": [
                {"holder": h, "typeId": t, "amount": b}
                for (h, t), b in sorted(self._balances.items())
            ],
            "approvals": [
                {"owner": o, "operator": op} for (o, op) in sorted(self._approvals)
            ],
        }

    def restore(self, data: Dict[str, Any]) -> None:
        """Replace all balances and approvals; malformed rows change nothing."""
        try:
            balances = {
                (row["holder"], int(row["typeId"])): int(row["amount"])
                for row in data.get("balances", [])
                if int(row["amount"]) > 0
            }
            approvals = {
                (row["owner"], row["operator"]): True for row in data.get("approvals", [])
            }
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Malformed ledger snapshot: {e}") from e
        self._balances, self._approvals = balances, approvals

    def __repr__(self) -> str:
        return f"<MultiTokenLedger entries={len(self._balances)}>"
