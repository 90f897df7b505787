"""
qMint Typed Token Collection

Provides:
  - TypedTokenCollection : deployable collection (issuance, transfers, admin)
  - IssuanceAuthorizer   : purchase / mint / burn orchestration
  - SupplyLedger         : per-type minted / burned counters and caps
  - PauseGate, SaleGate, ReleaseGate, ReentrancyGuard : entry-point guards
  - RoyaltyConfig        : secondary-sale royalty
  - MetadataAddressing   : uri() / contract_uri()
"""

from .authorizer import PURCHASE_UNIT, IssuanceAuthorizer
from .events import (
    ApprovalForAll,
    EventLog,
    Paused,
    ReleaseTimestampChanged,
    RoyaltyChanged,
    SaleStateChanged,
    TransferBatch,
    TransferSingle,
    Unpaused,
    URIChanged,
    Withdrawal,
)
from .gates import (
    FixedClock,
    PauseGate,
    ReentrancyGuard,
    ReleaseGate,
    ReleaseState,
    SaleGate,
    SystemClock,
)
from .interfaces import AdminAuthority, Clock, OperatorAllowList, PaymentSink, TokenLedger
from .metadata import MetadataAddressing
from .royalty import RoyaltyConfig
from .supply import SupplyCounters, SupplyLedger
from .token import TypedTokenCollection

__all__ = [
    # Collection
    "TypedTokenCollection",
    "IssuanceAuthorizer",
    "PURCHASE_UNIT",
    "SupplyLedger",
    "SupplyCounters",
    # Gates
    "PauseGate",
    "SaleGate",
    "ReleaseGate",
    "ReleaseState",
    "ReentrancyGuard",
    "SystemClock",
    "FixedClock",
    # Config
    "RoyaltyConfig",
    "MetadataAddressing",
    # Collaborator interfaces
    "TokenLedger",
    "OperatorAllowList",
    "AdminAuthority",
    "Clock",
    "PaymentSink",
    # Events
    "EventLog",
    "TransferSingle",
    "TransferBatch",
    "ApprovalForAll",
    "URIChanged",
    "ReleaseTimestampChanged",
    "SaleStateChanged",
    "Paused",
    "Unpaused",
    "RoyaltyChanged",
    "Withdrawal",
]
