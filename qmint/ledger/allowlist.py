"""
Operator allow-list.

Marketplaces and other third-party operators must be registered before
they may move tokens on a holder's behalf or be granted approval. The
list can be switched off entirely, in which case every operator passes.
"""

from typing import Iterable, List, Optional, Set

from ..logger import get_logger

logger = get_logger(__name__)


class OperatorAllowList:

    def __init__(self, operators: Optional[Iterable[str]] = None, enabled: bool = True):
        self._operators: Set[str] = {op.lower() for op in operators or ()}
        self.enabled = enabled

    def is_operator_allowed(self, operator: str) -> bool:
        if not self.enabled:
            return True
        return operator.lower() in self._operators

    def allow(self, operator: str) -> None:
        self._operators.add(operator.lower())
        logger.info(f"Operator allowed: {operator}")

    def deny(self, operator: str) -> None:
        self._operators.discard(operator.lower())
        logger.info(f"Operator removed from allow-list: {operator}")

    @property
    def operators(self) -> List[str]:
        return sorted(self._operators)

    def __len__(self) -> int:
        return len(self._operators)
