"""
Royalty configuration (EIP-2981 style).

Marketplaces read ``royalty_info(type_id, sale_price)`` to learn who gets
paid on secondary sales and how much. A single receiver and rate apply to
every token type.
"""

from decimal import Decimal, ROUND_DOWN
from typing import Any, Dict, Tuple

from eth_utils import is_address

from ..addresses import is_zero_address
from ..constants import ROYALTY_DENOMINATOR
from ..exceptions import InvalidRoyaltyError
from ..logger import get_logger
from .events import EventLog, RoyaltyChanged
from .gates import require_admin

logger = get_logger(__name__)


def validate_royalty(receiver: str, basis_points: int) -> None:
    """Require a non-zero receiver and 0 < basis_points < 10000."""
    if isinstance(basis_points, bool) or not isinstance(basis_points, int):
        raise InvalidRoyaltyError(f"Basis points must be an integer, got {basis_points!r}")
    if basis_points <= 0 or basis_points >= ROYALTY_DENOMINATOR:
        raise InvalidRoyaltyError(
            f"Royalty {basis_points} bps outside (0, {ROYALTY_DENOMINATOR})"
        )
    if not isinstance(receiver, str) or not is_address(receiver):
        raise InvalidRoyaltyError(f"Invalid royalty receiver: {receiver!r}")
    if is_zero_address(receiver):
        raise InvalidRoyaltyError("Royalty receiver cannot be the zero address")


class RoyaltyConfig:
    """Receiver + basis points, replaced atomically by the administrator."""

    def __init__(self, admin, events: EventLog, receiver: str, basis_points: int):
        validate_royalty(receiver, basis_points)
        self._admin = admin
        self._events = events
        self._receiver = receiver
        self._basis_points = basis_points

    @property
    def receiver(self) -> str:
        return self._receiver

    @property
    def basis_points(self) -> int:
        return self._basis_points

    def set_royalty(self, caller: str, receiver: str, basis_points: int) -> None:
        require_admin(self._admin, caller, "set the royalty")
        validate_royalty(receiver, basis_points)
        self._receiver, self._basis_points = receiver, basis_points
        self._events.emit(RoyaltyChanged(receiver=receiver, basis_points=basis_points))
        logger.info(f"Royalty set to {basis_points} bps → {receiver}")

    def restore(self, receiver: str, basis_points: int) -> None:
        validate_royalty(receiver, basis_points)
        self._receiver, self._basis_points = receiver, basis_points

    def royalty_info(self, sale_price: Decimal) -> Tuple[str, Decimal]:
        """
        Args:
            sale_price: Secondary sale price (any unit)

        Returns:
            (receiver, royalty amount), amount rounded down to the
            precision of *sale_price*.
        """
        price = Decimal(sale_price)
        if price < 0:
            raise ValueError("Sale price cannot be negative")
        amount = price * self._basis_points / ROYALTY_DENOMINATOR
        exponent = price.as_tuple().exponent
        if isinstance(exponent, int) and exponent < 0:
            amount = amount.quantize(Decimal(1).scaleb(exponent), rounding=ROUND_DOWN)
        else:
            amount = amount.to_integral_value(rounding=ROUND_DOWN)
        return self._receiver, amount

    def to_dict(self) -> Dict[str, Any]:
        return {"receiver": self._receiver, "basisPoints": self._basis_points}
