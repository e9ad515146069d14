"""Social Hub – Key/value store interface.

All hub state lives behind this interface. The in-memory implementation is
process-local and ephemeral; a persistent backend only has to implement the
same five operations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Iterator, TypeVar

V = TypeVar("V")


class KeyValueStore(ABC, Generic[V]):
    """Minimal get/set/delete/iterate contract."""

    @abstractmethod
    def get(self, key: str) -> V | None: ...

    @abstractmethod
    def set(self, key: str, value: V) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> bool: ...

    @abstractmethod
    def items(self) -> Iterator[tuple[str, V]]:
        """Iterate entries in insertion order."""

    @abstractmethod
    def __len__(self) -> int: ...

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def clear(self) -> None:
        for key, _ in self.items():
            self.delete(key)


class InMemoryStore(KeyValueStore[V]):
    """Dict-backed store. Overwriting a key keeps its original position."""

    def __init__(self) -> None:
        self._data: dict[str, V] = {}

    def get(self, key: str) -> V | None:
        return self._data.get(key)

    def set(self, key: str, value: V) -> None:
        self._data[key] = value

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def items(self) -> Iterator[tuple[str, V]]:
        # Snapshot so handlers may write while a scan is suspended.
        return iter(list(self._data.items()))

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)
