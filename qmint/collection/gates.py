"""
Issuance gates.

Three independent predicates, each with an administrator-only setter:

  - PauseGate    : emergency stop for every mutating entry point
  - SaleGate     : whether the public purchase entry point is open
  - ReleaseGate  : transfers refused until clock.now() >= release_timestamp

plus a ReentrancyGuard held while proceeds are paid out.

Entry points call the ``require_*`` helpers explicitly at the top of each
operation; the gates are composed by plain AND, never by decorators.
"""

import time
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, Iterator

from ..constants import RELEASE_TIMESTAMP_CEILING
from ..exceptions import (
    InvalidTimestampError,
    PausedError,
    ReentrancyError,
    SaleClosedError,
    TransferLockedError,
    UnauthorizedError,
)
from ..logger import get_logger
from .events import EventLog, Paused, ReleaseTimestampChanged, SaleStateChanged, Unpaused

logger = get_logger(__name__)


def require_admin(admin, caller: str, action: str) -> None:
    """Raise UnauthorizedError unless *admin* authorizes *caller*."""
    if not admin.is_authorized(caller):
        logger.warning(f"Rejected {action}: {caller} is not the administrator")
        raise UnauthorizedError(f"{caller} is not authorized to {action}")


class SystemClock:
    """Wall-clock time source in whole unix seconds."""

    def now(self) -> int:
        return int(time.time())


class FixedClock:
    """Manually driven clock for simulations and tests."""

    def __init__(self, now: int = 0):
        self._now = now

    def now(self) -> int:
        return self._now

    def set(self, now: int) -> None:
        self._now = now

    def advance(self, seconds: int) -> int:
        self._now += seconds
        return self._now


# ══════════════════════════════════════════════════════════════════════
#  PAUSE
# ══════════════════════════════════════════════════════════════════════

class PauseGate:
    """Process-wide emergency stop. Starts unpaused."""

    def __init__(self, admin, events: EventLog, paused: bool = False):
        self._admin = admin
        self._events = events
        self._paused = paused

    def is_paused(self) -> bool:
        return self._paused

    def require_not_paused(self) -> None:
        if self._paused:
            raise PausedError("Collection is PAUSED")

    def set_paused(self, caller: str, paused: bool) -> bool:
        """Flip the flag; emits Paused/Unpaused only when it changes."""
        require_admin(self._admin, caller, "pause" if paused else "unpause")
        if paused == self._paused:
            return False
        self._paused = paused
        if paused:
            self._events.emit(Paused(account=caller))
            logger.warning(f"Collection PAUSED by {caller}")
        else:
            self._events.emit(Unpaused(account=caller))
            logger.info(f"Collection UNPAUSED by {caller}")
        return True

    def restore(self, paused: bool) -> None:
        """Load persisted state; not an administrator action."""
        self._paused = bool(paused)


# ══════════════════════════════════════════════════════════════════════
#  PUBLIC SALE
# ══════════════════════════════════════════════════════════════════════

class SaleGate:
    """Controls the public purchase entry point. Starts closed."""

    def __init__(self, admin, events: EventLog, is_open: bool = False):
        self._admin = admin
        self._events = events
        self._open = is_open

    def is_public_sale_open(self) -> bool:
        return self._open

    def require_sale_open(self) -> None:
        if not self._open:
            raise SaleClosedError("Public sale is CLOSED")

    def set_public_sale_open(self, caller: str, is_open: bool) -> None:
        require_admin(self._admin, caller, "toggle the public sale")
        self._open = is_open
        self._events.emit(SaleStateChanged(is_open=is_open))
        logger.info(f"Public sale {'OPEN' if is_open else 'CLOSED'} (by {caller})")

    def restore(self, is_open: bool) -> None:
        self._open = bool(is_open)


# ══════════════════════════════════════════════════════════════════════
#  RELEASE (LOCKUP)
# ══════════════════════════════════════════════════════════════════════

class ReleaseState(str, Enum):
    """Derived from the clock on every read; never stored."""
    LOCKED = "locked"
    UNLOCKED = "unlocked"


def validate_release_timestamp(timestamp: int, ceiling: int = RELEASE_TIMESTAMP_CEILING) -> int:
    if isinstance(timestamp, bool) or not isinstance(timestamp, int):
        raise InvalidTimestampError(f"Release timestamp must be an integer, got {timestamp!r}")
    if timestamp < 0:
        raise InvalidTimestampError(f"Release timestamp {timestamp} is negative")
    if timestamp > ceiling:
        raise InvalidTimestampError(
            f"Release timestamp {timestamp} exceeds ceiling {ceiling}"
        )
    return timestamp


class ReleaseGate:
    """
    Trading lockup window. Transfer-family operations are refused while
    ``clock.now() < release_timestamp``; the boundary itself is unlocked.

    The administrator may move the threshold (earlier or later) at any
    time, up to ``RELEASE_TIMESTAMP_CEILING``. The ceiling is a module
    constant and cannot be changed through this object.
    """

    def __init__(self, admin, events: EventLog, release_timestamp: int, clock=None):
        self._admin = admin
        self._events = events
        self._clock = clock or SystemClock()
        self._release_timestamp = validate_release_timestamp(release_timestamp)

    @property
    def release_timestamp(self) -> int:
        return self._release_timestamp

    @property
    def ceiling(self) -> int:
        return RELEASE_TIMESTAMP_CEILING

    def now(self) -> int:
        return self._clock.now()

    def is_released(self) -> bool:
        return self._clock.now() >= self._release_timestamp

    def state(self) -> ReleaseState:
        return ReleaseState.UNLOCKED if self.is_released() else ReleaseState.LOCKED

    def seconds_until_release(self) -> int:
        return max(0, self._release_timestamp - self._clock.now())

    def require_released(self) -> None:
        now = self._clock.now()
        if now < self._release_timestamp:
            raise TransferLockedError(
                f"Transfers LOCKED until {self._release_timestamp} (now {now})"
            )

    def set_release_timestamp(self, caller: str, timestamp: int) -> None:
        require_admin(self._admin, caller, "set the release timestamp")
        validate_release_timestamp(timestamp)
        self._release_timestamp = timestamp
        self._events.emit(ReleaseTimestampChanged(release_timestamp=timestamp))
        logger.info(f"Release timestamp set to {timestamp} by {caller}")

    def restore(self, timestamp: int) -> None:
        self._release_timestamp = validate_release_timestamp(timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "releaseTimestamp": self._release_timestamp,
            "ceiling": RELEASE_TIMESTAMP_CEILING,
            "state": self.state().value,
        }


# ══════════════════════════════════════════════════════════════════════
#  REENTRANCY
# ══════════════════════════════════════════════════════════════════════

class ReentrancyGuard:
    """
    Marks the span of an external value transfer (withdrawal payout).
    While it is held, every mutating entry point refuses to run.
    """

    def __init__(self):
        self._entered = False

    @property
    def entered(self) -> bool:
        return self._entered

    def require_not_entered(self) -> None:
        if self._entered:
            raise ReentrancyError("Re-entrant call during an external value transfer")

    @contextmanager
    def hold(self) -> Iterator[None]:
        self.require_not_entered()
        self._entered = True
        try:
            yield
        finally:
            self._entered = False
