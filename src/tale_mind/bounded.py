"""Fixed-capacity ordered set. When full, the oldest entry is evicted."""

from __future__ import annotations

from typing import Callable, Iterable, Iterator


def _identity(value: str) -> str:
    return value


class BoundedSet:
    """Insertion-ordered set of strings with a hard capacity.

    ``key`` decides uniqueness (e.g. ``str.lower`` for case-insensitive names)
    while the first spelling added is the one kept.
    """

    def __init__(self, capacity: int, items: Iterable[str] = (),
                 key: Callable[[str], str] = _identity) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._key = key
        self._items: dict[str, str] = {}
        for item in items:
            self.add(item)

    def add(self, item: str) -> bool:
        """Add an item. Returns False if it was already present."""
        k = self._key(item)
        if k in self._items:
            return False
        if len(self._items) >= self.capacity:
            oldest = next(iter(self._items))
            del self._items[oldest]
        self._items[k] = item
        return True

    def update(self, items: Iterable[str]) -> None:
        for item in items:
            self.add(item)

    def discard(self, item: str) -> None:
        self._items.pop(self._key(item), None)

    def as_set(self) -> set[str]:
        return set(self._items.values())

    def __contains__(self, item: object) -> bool:
        return isinstance(item, str) and self._key(item) in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, BoundedSet):
            return list(self) == list(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"BoundedSet({list(self)!r}, capacity={self.capacity})"
