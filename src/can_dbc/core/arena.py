"""
Generational arena with typed, stable keys.

Entities are stored in slots; a key names a slot index plus the slot's
generation at insert time. Removing an entity bumps the slot's generation,
so every key handed out for it stops resolving immediately even when the
slot is later reused for a different entity.
"""

from dataclasses import dataclass
from typing import Generic, Iterator, Optional, TypeVar


@dataclass(frozen=True, slots=True)
class Key:
    """Opaque handle into an Arena."""

    index: int
    generation: int

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.index}v{self.generation})"


class NodeKey(Key):
    __slots__ = ()


class MessageKey(Key):
    __slots__ = ()


class SignalKey(Key):
    __slots__ = ()


K = TypeVar("K", bound=Key)
V = TypeVar("V")


class Arena(Generic[K, V]):
    """Slot storage keyed by generation-checked keys of one key type."""

    def __init__(self, key_type: type[K]):
        self._key_type = key_type
        self._values: list[Optional[V]] = []
        self._generations: list[int] = []
        self._free: list[int] = []
        self._len = 0

    def insert(self, value: V) -> K:
        """Store a value and return its new key."""
        if self._free:
            index = self._free.pop()
            self._values[index] = value
        else:
            index = len(self._values)
            self._values.append(value)
            self._generations.append(0)
        self._len += 1
        return self._key_type(index, self._generations[index])

    def get(self, key: Optional[K]) -> Optional[V]:
        """Resolve a key; None for stale, foreign or missing keys."""
        if not isinstance(key, self._key_type):
            return None
        if key.index >= len(self._values) or self._generations[key.index] != key.generation:
            return None
        return self._values[key.index]

    def remove(self, key: K) -> Optional[V]:
        """Remove and return the value, invalidating every copy of the key."""
        value = self.get(key)
        if value is None:
            return None
        self._values[key.index] = None
        self._generations[key.index] += 1
        self._free.append(key.index)
        self._len -= 1
        return value

    def items(self) -> Iterator[tuple[K, V]]:
        """Yield (key, value) pairs in slot order."""
        for index, value in enumerate(self._values):
            if value is not None:
                yield self._key_type(index, self._generations[index]), value

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None  # type: ignore[arg-type]

    def __len__(self) -> int:
        return self._len
