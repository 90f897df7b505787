"""
Supply Ledger

Tracks, per token type, how many units were ever minted and how many were
burned. ``minted`` and ``burned`` only ever grow; circulating supply is
derived as ``minted - burned``. Burning never frees mint headroom: caps are
checked against ``minted``, not against circulating supply.

Invariants held at every observation point:
  - minted[t] <= max_mint_per_type             for every t
  - sum(minted) <= max_total_supply
  - burned[t] <= minted[t]                     for every t
  - total_supply() == total_minted() - sum(burned)
"""

from dataclasses import dataclass
from typing import Any, Dict, List

from ..constants import U64_MAX
from ..exceptions import (
    GlobalCapExceededError,
    InvalidAmountError,
    InvalidTypeError,
    SupplyArithmeticError,
    TypeCapExceededError,
)
from ..logger import get_logger

logger = get_logger(__name__)


def checked_add(a: int, b: int) -> int:
    """u64 addition; overflow is a precondition violation, never a wrap."""
    if a < 0 or b < 0:
        raise SupplyArithmeticError(f"Negative operand in {a} + {b}")
    result = a + b
    if result > U64_MAX:
        raise SupplyArithmeticError(f"u64 overflow: {a} + {b}")
    return result


def checked_sub(a: int, b: int) -> int:
    """u64 subtraction; underflow is a precondition violation."""
    if b > a:
        raise SupplyArithmeticError(f"u64 underflow: {a} - {b}")
    return a - b


@dataclass
class SupplyCounters:
    """Counters for one token type."""
    minted: int = 0
    burned: int = 0

    @property
    def circulating(self) -> int:
        return checked_sub(self.minted, self.burned)

    def to_dict(self) -> Dict[str, int]:
        return {
            "minted": self.minted,
            "burned": self.burned,
            "circulating": self.circulating,
        }


class SupplyLedger:
    """
    Per-type minted / burned counters with cap enforcement.

    Only the issuance authorizer writes to this object. ``check_*`` methods
    validate without mutating so callers can verify an operation before
    touching any external state.
    """

    def __init__(self, num_types: int, max_total_supply: int, max_mint_per_type: int):
        if num_types < 1:
            raise ValueError("num_types must be >= 1")
        if max_mint_per_type < 1 or max_total_supply < 1:
            raise ValueError("Supply caps must be positive")
        if max_total_supply > U64_MAX or max_mint_per_type > U64_MAX:
            raise ValueError("Supply caps must fit in u64")

        self.num_types = num_types
        self.max_total_supply = max_total_supply
        self.max_mint_per_type = max_mint_per_type
        self._counters: List[SupplyCounters] = [SupplyCounters() for _ in range(num_types)]

    # ── Validation ────────────────────────────────────────────────────

    def validate_type(self, type_id: int) -> int:
        if isinstance(type_id, bool) or not isinstance(type_id, int):
            raise InvalidTypeError(f"Token type must be an integer, got {type_id!r}")
        if not 0 <= type_id < self.num_types:
            raise InvalidTypeError(
                f"Token type {type_id} outside [0, {self.num_types})"
            )
        return type_id

    @staticmethod
    def validate_amount(amount: int) -> int:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise InvalidAmountError(f"Amount must be an integer, got {amount!r}")
        if amount <= 0:
            raise InvalidAmountError(f"Amount must be positive, got {amount}")
        if amount > U64_MAX:
            raise SupplyArithmeticError(f"Amount {amount} does not fit in u64")
        return amount

    # ── Reads ─────────────────────────────────────────────────────────

    def counters(self, type_id: int) -> SupplyCounters:
        c = self._counters[self.validate_type(type_id)]
        return SupplyCounters(minted=c.minted, burned=c.burned)

    def minted_by_type(self, type_id: int) -> int:
        return self._counters[self.validate_type(type_id)].minted

    def burned_by_type(self, type_id: int) -> int:
        return self._counters[self.validate_type(type_id)].burned

    def circulating_by_type(self, type_id: int) -> int:
        return self._counters[self.validate_type(type_id)].circulating

    def remaining_by_type(self, type_id: int) -> int:
        """Units of *type_id* that can still be minted, honouring both caps."""
        type_left = self.max_mint_per_type - self.minted_by_type(type_id)
        global_left = self.max_total_supply - self.total_minted()
        return max(0, min(type_left, global_left))

    def total_minted(self) -> int:
        total = 0
        for c in self._counters:
            total = checked_add(total, c.minted)
        return total

    def total_burned(self) -> int:
        total = 0
        for c in self._counters:
            total = checked_add(total, c.burned)
        return total

    def total_supply(self) -> int:
        total = 0
        for c in self._counters:
            total = checked_add(total, c.circulating)
        return total

    # ── Checks (no mutation) ──────────────────────────────────────────

    def check_mint(self, type_id: int, amount: int) -> None:
        """Raise if minting *amount* of *type_id* would break a cap."""
        self.validate_type(type_id)
        self.validate_amount(amount)

        new_total = checked_add(self.total_minted(), amount)
        if new_total > self.max_total_supply:
            raise GlobalCapExceededError(
                f"Minting {amount} would bring total minted to {new_total} "
                f"(cap {self.max_total_supply})"
            )

        new_type_total = checked_add(self._counters[type_id].minted, amount)
        if new_type_total > self.max_mint_per_type:
            raise TypeCapExceededError(
                f"Minting {amount} of type {type_id} would bring it to "
                f"{new_type_total} (cap {self.max_mint_per_type})"
            )

    def check_burn(self, type_id: int, amount: int) -> None:
        """Raise if recording a burn would overflow or exceed minted."""
        self.validate_type(type_id)
        self.validate_amount(amount)
        c = self._counters[type_id]
        new_burned = checked_add(c.burned, amount)
        if new_burned > c.minted:
            raise SupplyArithmeticError(
                f"Burning {amount} of type {type_id} would exceed minted count {c.minted}"
            )

    # ── Mutations ─────────────────────────────────────────────────────

    def record_mint(self, type_id: int, amount: int) -> SupplyCounters:
        self.check_mint(type_id, amount)
        c = self._counters[type_id]
        c.minted = c.minted + amount
        logger.debug(f"Supply: minted type={type_id} amount={amount} (now {c.minted})")
        return self.counters(type_id)

    def record_burn(self, type_id: int, amount: int) -> SupplyCounters:
        self.check_burn(type_id, amount)
        c = self._counters[type_id]
        c.burned = c.burned + amount
        logger.debug(f"Supply: burned type={type_id} amount={amount} (now {c.burned})")
        return self.counters(type_id)

    # ── Serialization ─────────────────────────────────────────────────

    def snapshot(self) -> List[Dict[str, int]]:
        return [{"minted": c.minted, "burned": c.burned} for c in self._counters]

    def restore(self, rows: List[Dict[str, int]]) -> None:
        """
        Load counters from a snapshot. The rows are validated against the
        caps and invariants before any counter is replaced.
        """
        if len(rows) != self.num_types:
            raise ValueError(
                f"Snapshot has {len(rows)} types, collection has {self.num_types}"
            )
        restored = [SupplyCounters(int(r["minted"]), int(r["burned"])) for r in rows]
        total = 0
        for type_id, c in enumerate(restored):
            if c.minted < 0 or c.burned < 0 or c.burned > c.minted:
                raise SupplyArithmeticError(f"Inconsistent counters for type {type_id}: {c}")
            if c.minted > self.max_mint_per_type:
                raise TypeCapExceededError(f"Snapshot type {type_id} minted {c.minted} exceeds cap")
            total = checked_add(total, c.minted)
        if total > self.max_total_supply:
            raise GlobalCapExceededError(f"Snapshot total minted {total} exceeds cap")
        self._counters = restored

    def to_dict(self) -> Dict[str, Any]:
        return {
            "numTypes": self.num_types,
            "maxTotalSupply": self.max_total_supply,
            "maxMintPerType": self.max_mint_per_type,
            "totalMinted": self.total_minted(),
            "totalBurned": self.total_burned(),
            "totalSupply": self.total_supply(),
            "types": [c.to_dict() for c in self._counters],
        }

    def __repr__(self) -> str:
        return (
            f"<SupplyLedger minted={self.total_minted()}/{self.max_total_supply} "
            f"supply={self.total_supply()}>"
        )
