from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Optional


class SecureStore(ABC):
    """Async key-value persistence for at-rest key records.

    Keys and values are opaque strings. Each `set` replaces the whole value.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def remove(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def has(self, key: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def fetch_items(self) -> Dict[str, str]:
        """Return a snapshot of every stored key and value."""
        raise NotImplementedError

    @abstractmethod
    async def destroy_storage(self) -> None:
        raise NotImplementedError
