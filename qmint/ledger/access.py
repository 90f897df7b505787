"""
Single-owner administrator authority.
"""

from typing import Optional

from ..addresses import require_address
from ..exceptions import UnauthorizedError
from ..logger import get_logger

logger = get_logger(__name__)


class OwnerAuthority:
    """
    The collection administrator. ``is_authorized`` is the predicate handed
    to every administrator-only setter.
    """

    def __init__(self, owner: str):
        self._owner: Optional[str] = require_address(owner, "owner")

    @property
    def owner(self) -> Optional[str]:
        return self._owner

    def is_authorized(self, caller: str) -> bool:
        if self._owner is None or not isinstance(caller, str):
            return False
        return caller.lower() == self._owner.lower()

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        if not self.is_authorized(caller):
            raise UnauthorizedError(f"{caller} is not the owner")
        new_owner = require_address(new_owner, "new owner")
        previous, self._owner = self._owner, new_owner
        logger.warning(f"Ownership transferred: {previous} → {new_owner}")

    def renounce_ownership(self, caller: str) -> None:
        """Leave the collection without an administrator. Irreversible."""
        if not self.is_authorized(caller):
            raise UnauthorizedError(f"{caller} is not the owner")
        previous, self._owner = self._owner, None
        logger.warning(f"Ownership renounced by {previous}")
