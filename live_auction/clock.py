"""Authoritative server clock.

Every deadline comparison in the package reads time through a :class:`Clock`.
Clients only ever receive the clock's value to compute a display offset; no
client-supplied timestamp is used for a decision.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """Source of server time in epoch milliseconds."""

    def now(self) -> int: ...


class SystemClock:
    """Wall clock that never goes backwards.

    ``time.time()`` may step back when the host clock is adjusted. The last
    value handed out is remembered so readers always see a non-decreasing
    sequence.
    """

    def __init__(self) -> None:
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        current = int(time.time() * 1000)
        with self._lock:
            if current < self._last:
                current = self._last
            self._last = current
        return current


@dataclass(frozen=True, slots=True)
class ServerTime:
    """A single reading of the server clock in both wire formats."""

    timestamp: int

    @property
    def iso(self) -> str:
        moment = datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc)
        return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def server_time(clock: Clock) -> ServerTime:
    """Read ``clock`` once for broadcasting to clients."""

    return ServerTime(timestamp=clock.now())
