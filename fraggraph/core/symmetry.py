"""
Symmetric sets.

A SymmetricSet groups items treated as interchangeable when an edit is
propagated: AP indices within one vertex, or vertex ids within one graph.
"""

from __future__ import annotations
from typing import Iterable, Iterator, List, Optional


class SymmetricSet:
    """Ordered, duplicate-free collection of integers."""

    def __init__(self, items: Optional[Iterable[int]] = None):
        self._items: List[int] = []
        for item in items or ():
            self.add(item)

    def add(self, item: int) -> bool:
        """Add `item` unless already present. Returns True if added."""
        item = int(item)
        if item in self._items:
            return False
        self._items.append(item)
        return True

    def add_all(self, items: Iterable[int]) -> None:
        for item in items:
            self.add(item)

    def remove(self, item: int) -> bool:
        if item in self._items:
            self._items.remove(item)
            return True
        return False

    def get(self, i: int) -> int:
        return self._items[i]

    def first(self) -> int:
        return self._items[0]

    def to_list(self) -> List[int]:
        return list(self._items)

    def copy(self) -> "SymmetricSet":
        return SymmetricSet(self._items)

    def __contains__(self, item) -> bool:
        return item in self._items

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other) -> bool:
        if not isinstance(other, SymmetricSet):
            return NotImplemented
        return sorted(self._items) == sorted(other._items)

    def __repr__(self) -> str:
        return f"SymmetricSet({self._items})"
