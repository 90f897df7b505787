"""
Issuance Authorizer

Orchestrates the three entry points that create or destroy units:

  purchase(type_id, payer, payment)       public, exactly one unit per call
  mint(caller, type_id, recipient, amount) administrator, any amount
  burn(caller, type_id, amount)            holder burns own units

Each call validates every gate and cap against current state first, then
commits to both the external ledger and the supply counters. If anything
fails after the ledger call, the ledger effect is reversed and the
counters restored before the error propagates, so no call ever leaves a
partial mint or burn behind.

Purchase is deliberately fixed at one unit per call while mint takes an
arbitrary amount; the two entry points are not unified.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict

from ..addresses import normalize_address, require_address
from ..constants import ZERO_ADDRESS
from ..exceptions import InsufficientBalanceError, PaymentMismatchError
from ..logger import get_logger
from .events import EventLog, TransferSingle
from .gates import PauseGate, ReentrancyGuard, SaleGate, require_admin
from .supply import SupplyLedger

logger = get_logger(__name__)

# Units issued by one purchase call
PURCHASE_UNIT = 1


class IssuanceAuthorizer:
    """
    Sole writer of the supply counters.

    Args:
        supply: SupplyLedger holding per-type counters
        ledger: TokenLedger collaborator (mint / burn / balance_of)
        admin: AdminAuthority collaborator (is_authorized)
        pause_gate: PauseGate
        sale_gate: SaleGate
        events: EventLog receiving TransferSingle records
        unit_price: Exact payment required by purchase()
        vault: PaymentSink receiving purchase proceeds (optional)
        guard: ReentrancyGuard shared with withdrawal
    """

    def __init__(
        self,
        supply: SupplyLedger,
        ledger,
        admin,
        pause_gate: PauseGate,
        sale_gate: SaleGate,
        events: EventLog,
        unit_price: Decimal,
        vault=None,
        guard: ReentrancyGuard = None,
    ):
        if Decimal(unit_price) < 0:
            raise ValueError("Unit price cannot be negative")
        self._supply = supply
        self._ledger = ledger
        self._admin = admin
        self._pause = pause_gate
        self._sale = sale_gate
        self._events = events
        self._unit_price = Decimal(unit_price)
        self._vault = vault
        self._guard = guard or ReentrancyGuard()

    @property
    def unit_price(self) -> Decimal:
        return self._unit_price

    # ── Entry points ──────────────────────────────────────────────────

    def purchase(self, type_id: int, payer: str, payment: Decimal) -> TransferSingle:
        """
        Buy one unit of *type_id* for *payer* at exactly the unit price.

        Check order: paused → sale open → payment → type → caps.
        """
        self._guard.require_not_entered()
        self._pause.require_not_paused()
        self._sale.require_sale_open()

        try:
            # Floats go through their shortest repr, so 0.05 reads as 0.05
            paid = Decimal(str(payment)) if isinstance(payment, float) else Decimal(payment)
        except (InvalidOperation, TypeError, ValueError):
            raise PaymentMismatchError(f"Unreadable payment {payment!r}")
        if not paid.is_finite():
            raise PaymentMismatchError(f"Unreadable payment {payment!r}")
        if paid != self._unit_price:
            raise PaymentMismatchError(
                f"Payment {paid} does not equal unit price {self._unit_price}"
            )

        self._supply.validate_type(type_id)
        payer = require_address(payer, "payer")
        self._supply.check_mint(type_id, PURCHASE_UNIT)

        event = self._commit_mint(payer, payer, type_id, PURCHASE_UNIT, payment=paid)
        logger.info(f"Purchase: {payer} bought type={type_id} payment={paid}")
        return event

    def mint(self, caller: str, type_id: int, recipient: str, amount: int) -> TransferSingle:
        """
        Administrator mint of *amount* units to *recipient*. Ignores the
        sale gate and takes no payment; caps still apply.
        """
        require_admin(self._admin, caller, "mint")
        self._guard.require_not_entered()
        self._pause.require_not_paused()
        self._supply.validate_type(type_id)
        self._supply.validate_amount(amount)
        recipient = require_address(recipient, "recipient")
        self._supply.check_mint(type_id, amount)

        event = self._commit_mint(caller, recipient, type_id, amount)
        logger.info(f"Mint: type={type_id} amount={amount} → {recipient}")
        return event

    def burn(self, caller: str, type_id: int, amount: int) -> TransferSingle:
        """
        Destroy *amount* of the caller's own units. Burned units never
        return mint headroom.
        """
        self._guard.require_not_entered()
        self._pause.require_not_paused()
        self._supply.validate_type(type_id)
        self._supply.validate_amount(amount)

        caller = normalize_address(caller)
        balance = self._ledger.balance_of(caller, type_id)
        if balance < amount:
            raise InsufficientBalanceError(
                f"{caller} holds {balance} of type {type_id}, cannot burn {amount}"
            )
        self._supply.check_burn(type_id, amount)

        before = self._supply.snapshot()
        self._ledger.burn(caller, type_id, amount)
        try:
            self._supply.record_burn(type_id, amount)
        except Exception:
            self._supply.restore(before)
            self._ledger.mint(caller, type_id, amount)
            logger.error(f"Burn of type={type_id} rolled back for {caller}")
            raise

        event = self._events.emit(TransferSingle(
            operator=caller,
            sender=caller,
            recipient=ZERO_ADDRESS,
            type_id=type_id,
            value=amount,
        ))
        logger.info(f"Burn: {caller} burned type={type_id} amount={amount}")
        return event

    # ── Commit helpers ────────────────────────────────────────────────

    def _commit_mint(
        self,
        operator: str,
        recipient: str,
        type_id: int,
        amount: int,
        payment: Decimal = None,
    ) -> TransferSingle:
        before = self._supply.snapshot()
        self._ledger.mint(recipient, type_id, amount)
        try:
            self._supply.record_mint(type_id, amount)
            if payment is not None and self._vault is not None:
                self._vault.deposit(recipient, payment)
        except Exception:
            self._supply.restore(before)
            self._ledger.burn(recipient, type_id, amount)
            logger.error(f"Mint of type={type_id} rolled back for {recipient}")
            raise

        return self._events.emit(TransferSingle(
            operator=operator,
            sender=ZERO_ADDRESS,
            recipient=recipient,
            type_id=type_id,
            value=amount,
        ))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unitPrice": str(self._unit_price),
            "purchaseUnit": PURCHASE_UNIT,
            "paused": self._pause.is_paused(),
            "publicSaleOpen": self._sale.is_public_sale_open(),
        }
