"""
qMint Exceptions

Custom exception classes for collection issuance and lifecycle operations.
Every precondition failure raises one of these before any state is touched.
"""


class QMintException(Exception):
    """Base exception for qMint."""
    pass


class ConfigurationError(QMintException):
    """Configuration error."""
    pass


class StorageError(QMintException):
    """Persistent store error."""
    pass


# ── Collection operations ─────────────────────────────────────────────

class CollectionError(QMintException):
    """Base exception for collection operations."""
    pass


class PausedError(CollectionError):
    """Mutation attempted while the collection is paused."""
    pass


class SaleClosedError(CollectionError):
    """Purchase attempted while the public sale is closed."""
    pass


class InvalidTypeError(CollectionError):
    """Token type outside [0, num_types)."""
    pass


class InvalidAmountError(CollectionError):
    """Amount is not a positive integer."""
    pass


class InvalidAddressError(CollectionError):
    """Address is malformed or the zero address."""
    pass


class PaymentMismatchError(CollectionError):
    """Payment differs from the unit price."""
    pass


class CapExceededError(CollectionError):
    """A supply cap would be exceeded."""
    pass


class GlobalCapExceededError(CapExceededError):
    """Minting would exceed the collection-wide supply cap."""
    pass


class TypeCapExceededError(CapExceededError):
    """Minting would exceed the per-type supply cap."""
    pass


class InsufficientBalanceError(CollectionError):
    """Holder balance is lower than the requested amount."""
    pass


class UnauthorizedError(CollectionError):
    """Caller is not the administrator (or not an approved operator)."""
    pass


class InvalidTimestampError(CollectionError):
    """Release timestamp is negative or beyond the hard ceiling."""
    pass


class InvalidRoyaltyError(CollectionError):
    """Royalty basis points out of range or receiver invalid."""
    pass


class TransferLockedError(CollectionError):
    """Transfer attempted before the release timestamp."""
    pass


class OperatorNotAllowedError(CollectionError):
    """Operator is not on the operator allow-list."""
    pass


class ReentrancyError(CollectionError):
    """Mutating call re-entered during an external value transfer."""
    pass


class SupplyArithmeticError(CollectionError):
    """Counter arithmetic overflowed or underflowed."""
    pass
