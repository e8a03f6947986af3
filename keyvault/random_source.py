import os
from abc import ABC, abstractmethod

from .errors import RandomSourceError


class RandomKeySource(ABC):
    """Supplies cryptographically secure random bytes."""

    @abstractmethod
    async def random_bytes(self, size: int) -> bytes:
        raise NotImplementedError


class SystemRandomSource(RandomKeySource):
    """Random bytes from the operating system CSPRNG."""

    async def random_bytes(self, size: int) -> bytes:
        if size <= 0:
            raise ValueError("size must be a positive number of bytes")
        try:
            return os.urandom(size)
        except (NotImplementedError, OSError) as exc:
            raise RandomSourceError(f"Operating system could not supply {size} random bytes") from exc
