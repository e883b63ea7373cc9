"""Key-value store contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class KeyValueStore(ABC):
    """String keys mapping to JSON values.

    Writes to a single key are visible to the next read of that key. Nothing
    is promised about ordering across keys.
    """

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the value stored at ``key`` or ``None``."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Insert or overwrite ``key``."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``. Deleting a missing key is a no-op."""

    @abstractmethod
    async def get_by_prefix(self, prefix: str) -> list[Any]:
        """Return the values of every key starting with ``prefix``, in no particular order."""
