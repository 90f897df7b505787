"""
Typed Token Collection

The deployable unit: a fixed-supply collection of typed tokens. Wires the
supply ledger, gates, issuance authorizer, royalty and metadata together
with the external collaborators, and carries the transfer-family and
administrator entry points.

Transfer-family calls (transfers, batch transfers, approvals) never touch
the supply counters. They pass the pause gate, the release gate (transfers
only) and the operator allow-list before reaching the token ledger.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..addresses import normalize_address, require_address
from ..constants import (
    DEFAULT_COLLECTION_NAME,
    DEFAULT_COLLECTION_SYMBOL,
    DEFAULT_CONTRACT_SUFFIX,
    DEFAULT_MAX_MINT_PER_TYPE,
    DEFAULT_MAX_TOTAL_SUPPLY,
    DEFAULT_NUM_TYPES,
    DEFAULT_ROYALTY_BASIS_POINTS,
    DEFAULT_UNIT_PRICE,
    RELEASE_TIMESTAMP_CEILING,
)
from ..exceptions import (
    InsufficientBalanceError,
    OperatorNotAllowedError,
    UnauthorizedError,
)
from ..ledger import MultiTokenLedger, OperatorAllowList, OwnerAuthority, PaymentVault
from ..logger import get_logger
from .authorizer import IssuanceAuthorizer
from .events import ApprovalForAll, EventLog, TransferBatch, TransferSingle, Withdrawal
from .gates import (
    PauseGate,
    ReentrancyGuard,
    ReleaseGate,
    ReleaseState,
    SaleGate,
    SystemClock,
    require_admin,
    validate_release_timestamp,
)
from .metadata import MetadataAddressing
from .royalty import RoyaltyConfig, validate_royalty
from .supply import SupplyLedger

logger = get_logger(__name__)


class TypedTokenCollection:
    """
    Fixed-supply multi-type token collection.

    Issuance:
        - purchase(type_id, payer, payment)          one unit, sale must be open
        - mint(caller, type_id, recipient, amount)    administrator only
        - burn(caller, type_id, amount)               own units only

    Transfers:
        - safe_transfer_from / safe_batch_transfer_from
        - set_approval_for_all

    Administration:
        - pause / unpause, set_public_sale_open, set_release_timestamp,
          set_royalty, set_base_uri, withdraw

    Collaborators default to the in-memory implementations from
    ``qmint.ledger``; any object satisfying the protocols in
    ``qmint.collection.interfaces`` can be injected instead.
    """

    def __init__(
        self,
        admin,
        *,
        name: str = DEFAULT_COLLECTION_NAME,
        symbol: str = DEFAULT_COLLECTION_SYMBOL,
        num_types: int = DEFAULT_NUM_TYPES,
        max_total_supply: int = DEFAULT_MAX_TOTAL_SUPPLY,
        max_mint_per_type: int = DEFAULT_MAX_MINT_PER_TYPE,
        unit_price: Decimal = DEFAULT_UNIT_PRICE,
        release_timestamp: int = RELEASE_TIMESTAMP_CEILING,
        royalty_receiver: Optional[str] = None,
        royalty_basis_points: int = DEFAULT_ROYALTY_BASIS_POINTS,
        base_uri: str = "",
        type_suffixes: Optional[Sequence[str]] = None,
        contract_suffix: str = DEFAULT_CONTRACT_SUFFIX,
        ledger=None,
        allowlist=None,
        clock=None,
        vault=None,
    ):
        """
        Args:
            admin: AdminAuthority (e.g. OwnerAuthority)
            name: Human-readable collection name
            symbol: Short ticker
            num_types: Number of distinct token types N; types are [0, N)
            max_total_supply: Cap on units ever minted across all types
            max_mint_per_type: Cap on units ever minted of one type
            unit_price: Exact payment for one purchased unit
            release_timestamp: Transfers refused before this unix time
            royalty_receiver: Defaults to ``admin.owner`` when available
            royalty_basis_points: Secondary-sale royalty, 0 < bps < 10000
            base_uri: Metadata base path
            type_suffixes: Per-type metadata suffixes (default "<type>.json")
            contract_suffix: Collection-level metadata suffix
            ledger: TokenLedger (default MultiTokenLedger)
            allowlist: OperatorAllowList (default empty, enabled)
            clock: Clock (default SystemClock)
            vault: PaymentSink (default PaymentVault)
        """
        if not name:
            raise ValueError("Collection name cannot be empty")
        if not symbol:
            raise ValueError("Collection symbol cannot be empty")
        if royalty_receiver is None:
            royalty_receiver = getattr(admin, "owner", None)

        self.name = name
        self.symbol = symbol
        self.admin = admin
        self.ledger = ledger if ledger is not None else MultiTokenLedger()
        self.allowlist = allowlist if allowlist is not None else OperatorAllowList()
        self.clock = clock if clock is not None else SystemClock()
        self.vault = vault if vault is not None else PaymentVault()
        self.events = EventLog()
        self._guard = ReentrancyGuard()

        self.supply = SupplyLedger(num_types, max_total_supply, max_mint_per_type)
        self.pause_gate = PauseGate(admin, self.events)
        self.sale_gate = SaleGate(admin, self.events)
        self.release_gate = ReleaseGate(admin, self.events, release_timestamp, clock=self.clock)
        self.royalty = RoyaltyConfig(admin, self.events, royalty_receiver, royalty_basis_points)
        self.metadata = MetadataAddressing(
            admin,
            self.events,
            self.supply,
            base_uri=base_uri,
            type_suffixes=type_suffixes,
            contract_suffix=contract_suffix,
        )
        self.authorizer = IssuanceAuthorizer(
            self.supply,
            self.ledger,
            admin,
            self.pause_gate,
            self.sale_gate,
            self.events,
            unit_price,
            vault=self.vault,
            guard=self._guard,
        )

        logger.info(
            f"Collection deployed: {symbol} ({name}), types={num_types}, "
            f"cap={max_total_supply}, per-type cap={max_mint_per_type}"
        )

    @classmethod
    def from_settings(cls, settings, *, ledger=None, allowlist=None, clock=None, vault=None, admin=None):
        """Build a collection from validated ``CollectionSettings``."""
        settings.validate()
        c = settings.collection
        if allowlist is None:
            allowlist = OperatorAllowList(settings.operators.allowed, enabled=settings.operators.enabled)
        return cls(
            admin if admin is not None else OwnerAuthority(settings.admin.owner),
            name=c.name,
            symbol=c.symbol,
            num_types=c.num_types,
            max_total_supply=c.max_total_supply,
            max_mint_per_type=c.max_mint_per_type,
            unit_price=c.unit_price,
            release_timestamp=c.release_timestamp,
            royalty_receiver=settings.royalty_receiver,
            royalty_basis_points=settings.royalty.basis_points,
            base_uri=settings.metadata.base_uri,
            type_suffixes=settings.metadata.type_suffixes or None,
            contract_suffix=settings.metadata.contract_suffix,
            ledger=ledger,
            allowlist=allowlist,
            clock=clock,
            vault=vault,
        )

    # ── Issuance ──────────────────────────────────────────────────────

    def purchase(self, type_id: int, payer: str, payment: Decimal) -> TransferSingle:
        return self.authorizer.purchase(type_id, payer, payment)

    def mint(self, caller: str, type_id: int, recipient: str, amount: int) -> TransferSingle:
        return self.authorizer.mint(caller, type_id, recipient, amount)

    def burn(self, caller: str, type_id: int, amount: int) -> TransferSingle:
        return self.authorizer.burn(caller, type_id, amount)

    # ── Transfer family ───────────────────────────────────────────────

    def _require_operator(self, operator: str, owner: str) -> None:
        """Third-party operators must be allow-listed and approved by *owner*."""
        if operator == owner:
            return
        if not self.allowlist.is_operator_allowed(operator):
            raise OperatorNotAllowedError(f"Operator {operator} is not allowed")
        if not self.ledger.is_approved_for_all(owner, operator):
            raise UnauthorizedError(f"{operator} is neither owner nor approved for {owner}")

    def safe_transfer_from(
        self,
        operator: str,
        sender: str,
        recipient: str,
        type_id: int,
        amount: int,
    ) -> TransferSingle:
        self._guard.require_not_entered()
        self.pause_gate.require_not_paused()
        self.release_gate.require_released()
        operator, sender = normalize_address(operator), normalize_address(sender)
        self._require_operator(operator, sender)
        self.supply.validate_type(type_id)
        self.supply.validate_amount(amount)
        recipient = require_address(recipient, "recipient")

        balance = self.ledger.balance_of(sender, type_id)
        if balance < amount:
            raise InsufficientBalanceError(
                f"{sender} holds {balance} of type {type_id}, cannot transfer {amount}"
            )

        self.ledger.transfer(sender, recipient, type_id, amount)
        event = self.events.emit(TransferSingle(
            operator=operator,
            sender=sender,
            recipient=recipient,
            type_id=type_id,
            value=amount,
        ))
        logger.debug(f"Transfer: {sender} → {recipient} type={type_id} amount={amount}")
        return event

    def safe_batch_transfer_from(
        self,
        operator: str,
        sender: str,
        recipient: str,
        type_ids: Sequence[int],
        amounts: Sequence[int],
    ) -> TransferBatch:
        self._guard.require_not_entered()
        self.pause_gate.require_not_paused()
        self.release_gate.require_released()
        operator, sender = normalize_address(operator), normalize_address(sender)
        self._require_operator(operator, sender)
        if len(type_ids) != len(amounts):
            raise ValueError("type_ids and amounts length mismatch")
        if not type_ids:
            raise ValueError("Batch transfer needs at least one entry")

        needed: Dict[int, int] = {}
        for type_id, amount in zip(type_ids, amounts):
            self.supply.validate_type(type_id)
            self.supply.validate_amount(amount)
            needed[type_id] = needed.get(type_id, 0) + amount
        recipient = require_address(recipient, "recipient")
        for type_id, amount in needed.items():
            balance = self.ledger.balance_of(sender, type_id)
            if balance < amount:
                raise InsufficientBalanceError(
                    f"{sender} holds {balance} of type {type_id}, cannot transfer {amount}"
                )

        self.ledger.batch_transfer(sender, recipient, list(type_ids), list(amounts))
        event = self.events.emit(TransferBatch(
            operator=operator,
            sender=sender,
            recipient=recipient,
            type_ids=tuple(type_ids),
            values=tuple(amounts),
        ))
        logger.debug(f"Batch transfer: {sender} → {recipient} types={list(type_ids)}")
        return event

    def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> ApprovalForAll:
        """
        Grant or revoke *operator* over all of *owner*'s tokens. Granting
        requires the operator to be allow-listed; revoking never does.
        """
        self._guard.require_not_entered()
        self.pause_gate.require_not_paused()
        owner, operator = normalize_address(owner), normalize_address(operator)
        if approved and not self.allowlist.is_operator_allowed(operator):
            raise OperatorNotAllowedError(f"Operator {operator} is not allowed")
        self.ledger.set_approval_for_all(owner, operator, approved)
        event = self.events.emit(ApprovalForAll(owner=owner, operator=operator, approved=approved))
        logger.debug(f"Approval: {owner} → {operator} approved={approved}")
        return event

    # ── Administration ────────────────────────────────────────────────

    def pause(self, caller: str) -> bool:
        self._guard.require_not_entered()
        return self.pause_gate.set_paused(caller, True)

    def unpause(self, caller: str) -> bool:
        self._guard.require_not_entered()
        return self.pause_gate.set_paused(caller, False)

    def set_public_sale_open(self, caller: str, is_open: bool) -> None:
        self._guard.require_not_entered()
        self.sale_gate.set_public_sale_open(caller, is_open)

    def set_release_timestamp(self, caller: str, timestamp: int) -> None:
        self._guard.require_not_entered()
        self.release_gate.set_release_timestamp(caller, timestamp)

    def set_royalty(self, caller: str, receiver: str, basis_points: int) -> None:
        self._guard.require_not_entered()
        self.royalty.set_royalty(caller, receiver, basis_points)

    def set_base_uri(self, caller: str, new_uri: str) -> None:
        self._guard.require_not_entered()
        self.metadata.set_base_uri(caller, new_uri)

    def withdraw(
        self,
        caller: str,
        to: Optional[str] = None,
        payout_fn: Optional[Callable[[str, Decimal], None]] = None,
    ) -> Decimal:
        """
        Pay all sale proceeds to *to* (default: the caller). Every mutating
        entry point is refused while *payout_fn* runs.
        """
        require_admin(self.admin, caller, "withdraw")
        recipient = require_address(to or caller, "withdrawal recipient")
        with self._guard.hold():
            amount = self.vault.withdraw(recipient, payout_fn)
        self.events.emit(Withdrawal(recipient=recipient, amount=amount))
        logger.info(f"Withdrawal: payment={amount} → {recipient}")
        return amount

    # ── Reads ─────────────────────────────────────────────────────────

    @property
    def num_types(self) -> int:
        return self.supply.num_types

    @property
    def unit_price(self) -> Decimal:
        return self.authorizer.unit_price

    def balance_of(self, holder: str, type_id: int) -> int:
        self.supply.validate_type(type_id)
        return self.ledger.balance_of(normalize_address(holder), type_id)

    def balance_of_batch(self, holders: Sequence[str], type_ids: Sequence[int]) -> List[int]:
        if len(holders) != len(type_ids):
            raise ValueError("holders and type_ids length mismatch")
        return [self.balance_of(h, t) for h, t in zip(holders, type_ids)]

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return self.ledger.is_approved_for_all(normalize_address(owner), normalize_address(operator))

    def is_paused(self) -> bool:
        return self.pause_gate.is_paused()

    def is_public_sale_open(self) -> bool:
        return self.sale_gate.is_public_sale_open()

    @property
    def release_timestamp(self) -> int:
        return self.release_gate.release_timestamp

    def release_state(self) -> ReleaseState:
        return self.release_gate.state()

    def total_minted(self) -> int:
        return self.supply.total_minted()

    def total_supply(self, type_id: Optional[int] = None) -> int:
        """Circulating supply, collection-wide or for one type."""
        if type_id is None:
            return self.supply.total_supply()
        return self.supply.circulating_by_type(type_id)

    def minted_by_type(self, type_id: int) -> int:
        return self.supply.minted_by_type(type_id)

    def burned_by_type(self, type_id: int) -> int:
        return self.supply.burned_by_type(type_id)

    def exists(self, type_id: int) -> bool:
        return self.supply.circulating_by_type(type_id) > 0

    def uri(self, type_id: int) -> str:
        return self.metadata.uri(type_id)

    def contract_uri(self) -> str:
        return self.metadata.contract_uri()

    def royalty_info(self, type_id: int, sale_price: Decimal) -> Tuple[str, Decimal]:
        self.supply.validate_type(type_id)
        return self.royalty.royalty_info(sale_price)

    # ── Persistence ───────────────────────────────────────────────────

    def snapshot(self) -> Dict[str, Any]:
        """Everything that must survive between calls."""
        state: Dict[str, Any] = {
            "supply": self.supply.snapshot(),
            "paused": self.pause_gate.is_paused(),
            "publicSaleOpen": self.sale_gate.is_public_sale_open(),
            "releaseTimestamp": self.release_gate.release_timestamp,
            "royaltyReceiver": self.royalty.receiver,
            "royaltyBasisPoints": self.royalty.basis_points,
            "baseUri": self.metadata.base_uri,
        }
        if hasattr(self.ledger, "snapshot"):
            state["ledger"] = self.ledger.snapshot()
        if isinstance(self.vault, PaymentVault):
            state["vault"] = {
                "balance": str(self.vault.balance),
                "totalReceived": str(self.vault.total_received),
            }
        return state

    def restore(self, state: Dict[str, Any]) -> None:
        """
        Load a snapshot produced by ``snapshot()``. Everything is validated
        before anything changes; a snapshot that fails validation leaves
        the collection as it was.
        """
        rows = state["supply"]
        release_ts = validate_release_timestamp(
            state.get("releaseTimestamp", self.release_gate.release_timestamp)
        )
        receiver = state.get("royaltyReceiver", self.royalty.receiver)
        basis_points = state.get("royaltyBasisPoints", self.royalty.basis_points)
        validate_royalty(receiver, basis_points)

        vault_state = None
        if "vault" in state and isinstance(self.vault, PaymentVault):
            try:
                vault_state = (
                    Decimal(state["vault"]["balance"]),
                    Decimal(state["vault"]["totalReceived"]),
                )
            except (InvalidOperation, KeyError, TypeError) as e:
                raise ValueError(f"Unreadable vault state: {state['vault']!r}") from e

        ledger_before = None
        if "ledger" in state and hasattr(self.ledger, "snapshot") and hasattr(self.ledger, "restore"):
            ledger_before = self.ledger.snapshot()
            self.ledger.restore(state["ledger"])
        try:
            self.supply.restore(rows)
        except Exception:
            if ledger_before is not None:
                self.ledger.restore(ledger_before)
            raise

        self.pause_gate.restore(state.get("paused", False))
        self.sale_gate.restore(state.get("publicSaleOpen", False))
        self.release_gate.restore(release_ts)
        self.royalty.restore(receiver, basis_points)
        self.metadata.restore(state.get("baseUri", self.metadata.base_uri))
        if vault_state is not None:
            self.vault.restore(*vault_state)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "unitPrice": str(self.unit_price),
            "paused": self.is_paused(),
            "publicSaleOpen": self.is_public_sale_open(),
            "release": self.release_gate.to_dict(),
            "royalty": self.royalty.to_dict(),
            "metadata": self.metadata.to_dict(),
            "supply": self.supply.to_dict(),
        }

    def __repr__(self) -> str:
        return (
            f"<TypedTokenCollection {self.symbol} minted={self.total_minted()} "
            f"supply={self.total_supply()}>"
        )
