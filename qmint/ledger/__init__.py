"""
Reference collaborators for the issuance core.

Provides:
  - MultiTokenLedger   : per-(holder, type) balances and operator approvals
  - OperatorAllowList  : registry of third-party operators
  - OwnerAuthority     : single-owner administrator predicate
  - PaymentVault       : custody of public-sale proceeds
"""

from .access import OwnerAuthority
from .allowlist import OperatorAllowList
from .multitoken import MultiTokenLedger
from .vault import PaymentVault

__all__ = [
    "MultiTokenLedger",
    "OperatorAllowList",
    "OwnerAuthority",
    "PaymentVault",
]
