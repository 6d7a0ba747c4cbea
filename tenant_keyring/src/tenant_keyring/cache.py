"""Decrypted data-key caches keyed by EDK string."""
from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Optional, Protocol, runtime_checkable

from .keys import SymmetricKey


@runtime_checkable
class DataKeyCache(Protocol):
    def has(self, key: str) -> bool:
        ...

    def get(self, key: str) -> Optional[SymmetricKey]:
        ...

    def set(self, key: str, value: SymmetricKey) -> None:
        ...


class MemoryDataKeyCache:
    """Process-local cache with optional least-recently-used eviction.

    The lock guards the internal dictionary only. Two callers missing on the
    same EDK will both reach the KMS; the later write simply replaces the
    earlier one with an identical key.
    """

    def __init__(self, max_entries: Optional[int] = None) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._entries: "OrderedDict[str, SymmetricKey]" = OrderedDict()
        self._lock = threading.Lock()

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: str) -> Optional[SymmetricKey]:
        with self._lock:
            value = self._entries.get(key)
            if value is not None:
                self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: SymmetricKey) -> None:
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            if self._max_entries is not None:
                while len(self._entries) > self._max_entries:
                    self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["DataKeyCache", "MemoryDataKeyCache"]
