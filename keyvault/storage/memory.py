"""
Thread-safe in-memory secure store.

Security model:
- Values are held as mutable `bytearray` objects so they can be zero-filled
  when removed, replaced or when the storage is destroyed.
- Nothing is written to disk; the store lives as long as the process.
- All operations are guarded by a reentrant lock, so one instance can be shared
  between event loops running in different threads.

Usage:
    store = InMemorySecureStore()
    await store.set("PRIVATE_ETH_KEY#0x...", record_json)
    raw = await store.get("PRIVATE_ETH_KEY#0x...")
    await store.destroy_storage()  # zero-fills everything
"""

from __future__ import annotations

import threading
from typing import Dict, Optional

from .base import SecureStore


class InMemorySecureStore(SecureStore):
    """
    SecureStore backed by a dict of zero-fillable buffers.

    Memory Security:
        - Uses `bytearray` instead of `str` to allow in-place zeroing.
        - `remove()`, `set()` over an existing key and `destroy_storage()`
          zero-fill before dropping the buffer.

    Limitations:
        - Values handed back to callers are immutable `str` objects and cannot
          be wiped; the vault only keeps them for the duration of one call.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, bytearray] = {}
        self._lock = threading.RLock()
        for key, value in (initial or {}).items():
            self._items[key] = bytearray(value.encode("utf-8"))

    async def get(self, key: str) -> Optional[str]:
        with self._lock:
            buf = self._items.get(key)
            return buf.decode("utf-8") if buf is not None else None

    async def set(self, key: str, value: str) -> None:
        if not key:
            raise ValueError("Storage key cannot be empty.")
        if not isinstance(value, str):
            raise TypeError(f"Value must be str; got {type(value).__name__}")

        data = bytearray(value.encode("utf-8"))
        with self._lock:
            previous = self._items.get(key)
            if previous is not None:
                self._zero_fill(previous)
            self._items[key] = data

    async def remove(self, key: str) -> None:
        with self._lock:
            buf = self._items.pop(key, None)
            if buf is not None:
                self._zero_fill(buf)

    async def has(self, key: str) -> bool:
        with self._lock:
            return key in self._items

    async def fetch_items(self) -> Dict[str, str]:
        with self._lock:
            return {key: buf.decode("utf-8") for key, buf in self._items.items()}

    async def destroy_storage(self) -> None:
        with self._lock:
            for buf in self._items.values():
                self._zero_fill(buf)
            self._items.clear()

    @staticmethod
    def _zero_fill(buf: bytearray) -> None:
        # Best effort: copies made by the runtime are out of reach.
        for i in range(len(buf)):
            buf[i] = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __repr__(self) -> str:
        with self._lock:
            return f"<InMemorySecureStore keys={list(self._items.keys())}>"
