"""
Identity counters for vertices and graphs.

Identities are unique within a run: counters only move forward and can
be shared by threads. Counters are injected where identities are minted
(library, graph factory); the module-level instances are the defaults.
"""

from __future__ import annotations
import threading


class IdentityCounter:
    """
    Atomic, monotonically increasing integer generator.

    Example:
        counter = IdentityCounter(start=1)
        counter.next_id()   # 1
        counter.next_id()   # 2
        counter.reset(10)
        counter.next_id()   # 10
    """

    def __init__(self, start: int = 1):
        self._next = int(start)
        self._lock = threading.Lock()

    def next_id(self) -> int:
        """Issue the next identity."""
        with self._lock:
            value = self._next
            self._next += 1
            return value

    def peek(self) -> int:
        """Value the next call to next_id() would return."""
        with self._lock:
            return self._next

    def reset(self, value: int) -> None:
        """
        Move the counter forward so the next identity issued is `value`.

        Raises:
            ValueError: if `value` would reissue an identity
        """
        with self._lock:
            if value < self._next:
                raise ValueError(
                    f"Cannot reset counter to {value}: next identity is already {self._next}"
                )
            self._next = int(value)

    def ensure_above(self, value: int) -> None:
        """Advance, if needed, so that every future identity is > value."""
        with self._lock:
            if self._next <= value:
                self._next = int(value) + 1

    def __repr__(self) -> str:
        return f"IdentityCounter(next={self._next})"


VERTEX_COUNTER = IdentityCounter()
GRAPH_COUNTER = IdentityCounter()
