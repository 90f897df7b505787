"""
Metadata addressing.

``uri(type_id)`` and ``contract_uri()`` join a mutable base path with a
fixed per-type suffix. The suffixes are chosen at deployment and never
change; only the base path can be replaced by the administrator.
"""

from typing import Any, Dict, List, Optional, Sequence

from ..constants import DEFAULT_CONTRACT_SUFFIX, DEFAULT_TYPE_SUFFIX_FORMAT
from ..logger import get_logger
from .events import EventLog, URIChanged
from .gates import require_admin

logger = get_logger(__name__)


def default_type_suffixes(num_types: int) -> List[str]:
    return [DEFAULT_TYPE_SUFFIX_FORMAT.format(type_id=t) for t in range(num_types)]


class MetadataAddressing:

    def __init__(
        self,
        admin,
        events: EventLog,
        supply,
        base_uri: str = "",
        type_suffixes: Optional[Sequence[str]] = None,
        contract_suffix: str = DEFAULT_CONTRACT_SUFFIX,
    ):
        suffixes = list(type_suffixes) if type_suffixes is not None else default_type_suffixes(supply.num_types)
        if len(suffixes) != supply.num_types:
            raise ValueError(
                f"Expected {supply.num_types} type suffixes, got {len(suffixes)}"
            )
        self._admin = admin
        self._events = events
        self._supply = supply
        self._base_uri = base_uri
        self._suffixes = tuple(suffixes)
        self._contract_suffix = contract_suffix

    @property
    def base_uri(self) -> str:
        return self._base_uri

    def uri(self, type_id: int) -> str:
        self._supply.validate_type(type_id)
        return self._base_uri + self._suffixes[type_id]

    def contract_uri(self) -> str:
        return self._base_uri + self._contract_suffix

    def set_base_uri(self, caller: str, new_uri: str) -> None:
        require_admin(self._admin, caller, "set the base URI")
        if not isinstance(new_uri, str):
            raise TypeError("Base URI must be a string")
        self._base_uri = new_uri
        self._events.emit(URIChanged(uri=new_uri))
        logger.info(f"Base URI changed to {new_uri!r}")

    def restore(self, base_uri: str) -> None:
        self._base_uri = str(base_uri)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "baseUri": self._base_uri,
            "contractUri": self.contract_uri(),
            "typeSuffixes": list(self._suffixes),
        }
