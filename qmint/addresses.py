"""
Address helpers.

Accounts are Ethereum-style 20-byte hex addresses. Lower-case and valid
EIP-55 checksummed forms are accepted and normalized to lower case, so one
account always maps to one set of holdings whatever casing the caller
uses. The zero address is reserved as the mint source / burn sink and may
never hold or receive tokens.
"""

from eth_utils import is_address, to_normalized_address

from .constants import ZERO_ADDRESS
from .exceptions import InvalidAddressError


def normalize_address(address: str) -> str:
    """Lower-case form of a valid address; anything else is returned as is."""
    if isinstance(address, str) and is_address(address):
        return to_normalized_address(address)
    return address


def is_zero_address(address: str) -> bool:
    return normalize_address(address) == ZERO_ADDRESS


def require_address(address: str, role: str = "address") -> str:
    """Return the normalized form of *address* if it is a usable non-zero account."""
    if not isinstance(address, str) or not is_address(address):
        raise InvalidAddressError(f"Invalid {role}: {address!r}")
    normalized = to_normalized_address(address)
    if normalized == ZERO_ADDRESS:
        raise InvalidAddressError(f"{role} cannot be the zero address")
    return normalized
