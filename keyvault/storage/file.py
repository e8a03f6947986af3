"""
JSON file backed secure store.

The whole store is one JSON object on disk. Every mutation rewrites the file
through a temporary file and `os.replace`, so readers never observe a partially
written record. The file is created with owner-only permissions. Disk access
runs in the default executor.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional, Union

from .base import SecureStore

logger = logging.getLogger(__name__)

_FILE_MODE = 0o600


class FileSecureStore(SecureStore):
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.RLock()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Secure store file {self.path} does not contain a JSON object")
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, items: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(items, f, indent=2, sort_keys=True)
            os.chmod(tmp_name, _FILE_MODE)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def _locked(self, func, *args):
        with self._lock:
            return func(*args)

    async def _run(self, func, *args):
        # File I/O blocks; run it in the default executor under the store lock.
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(self._locked, func, *args))

    def _set_items(self, key: str, value: str) -> None:
        items = self._read()
        items[key] = value
        self._write(items)

    def _remove_item(self, key: str) -> None:
        items = self._read()
        if items.pop(key, None) is not None:
            self._write(items)

    def _unlink(self) -> None:
        if self.path.exists():
            self.path.unlink()
            logger.info("Destroyed secure store file %s", self.path)

    async def get(self, key: str) -> Optional[str]:
        items = await self._run(self._read)
        return items.get(key)

    async def set(self, key: str, value: str) -> None:
        if not key:
            raise ValueError("Storage key cannot be empty.")
        if not isinstance(value, str):
            raise TypeError(f"Value must be str; got {type(value).__name__}")
        await self._run(self._set_items, key, value)

    async def remove(self, key: str) -> None:
        await self._run(self._remove_item, key)

    async def has(self, key: str) -> bool:
        return key in await self._run(self._read)

    async def fetch_items(self) -> Dict[str, str]:
        return await self._run(self._read)

    async def destroy_storage(self) -> None:
        await self._run(self._unlink)

    def __repr__(self) -> str:
        return f"<FileSecureStore path={str(self.path)!r}>"
