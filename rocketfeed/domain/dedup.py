"""Bounded recency window of emitted message ids."""

from typing import List, Tuple

DEFAULT_CAPACITY = 50


class DedupWindow:
    """Remembers recently emitted message ids.

    Eviction is batched: once an append pushes the length past the bound,
    only the most recent ``capacity // 2`` ids are kept. Lookups are a
    linear scan, which is fine at the default bound.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 2:
            raise ValueError(f"Dedup window capacity must be at least 2 (got {capacity})")
        self.capacity = capacity
        self._ids: List[str] = []

    def contains(self, message_id: str) -> bool:
        for seen in self._ids:
            if seen == message_id:
                return True
        return False

    def record(self, message_id: str):
        self._ids.append(message_id)
        if len(self._ids) > self.capacity:
            self._ids = self._ids[-(self.capacity // 2):]

    def snapshot(self) -> Tuple[str, ...]:
        return tuple(self._ids)

    def __contains__(self, message_id: str) -> bool:
        return self.contains(message_id)

    def __len__(self) -> int:
        return len(self._ids)
