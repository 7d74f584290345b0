# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/repin_library/order_store.py

import os
import json
import copy
import asyncio
import logging
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Union

import aiofiles

from .error_handler import StoreError

lib_logger = logging.getLogger("repin_library")


class OrderStoreInterface(ABC):
    """
    Durable key-value store holding the desired pin set and the config flag.

    Only get/set primitives are offered: no transactions, no locking. Other
    process instances may write the same keys at any time, so callers must
    read fresh before every structural write (see PinBook).
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Returns the stored value, or None when the key is absent."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        pass


class MemoryOrderStore(OrderStoreInterface):
    """Process-local store. Values are deep-copied in and out."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})

    async def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)


class JsonFileOrderStore(OrderStoreInterface):
    """
    Store backed by a single JSON object on disk.

    The file is re-read on every get so writes made by another process are
    picked up. Writes go to a temporary file in the same directory and are
    moved into place, so a crash never leaves a half-written file behind.
    """

    def __init__(self, file_path: Union[str, Path]):
        self.file_path = Path(file_path)
        self._io_lock = asyncio.Lock()

    async def _read_all(self) -> Dict[str, Any]:
        if not self.file_path.exists():
            return {}

        try:
            async with aiofiles.open(self.file_path, "r", encoding="utf-8") as f:
                content = await f.read()
        except FileNotFoundError:
            # File deleted between exists check and open
            return {}
        except UnicodeDecodeError as e:
            lib_logger.warning(
                f"Store file {self.file_path} is not valid UTF-8: {e}. Treating as empty."
            )
            return {}
        except (OSError, PermissionError) as e:
            raise StoreError(
                f"Cannot read store file {self.file_path}: {e}", cause=e
            ) from e

        if not content.strip():
            return {}
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            lib_logger.warning(
                f"Corrupted store file {self.file_path}: {e}. Treating as empty."
            )
            return {}
        if not isinstance(data, dict):
            lib_logger.warning(
                f"Store file {self.file_path} does not hold an object. Treating as empty."
            )
            return {}
        return data

    async def get(self, key: str) -> Optional[Any]:
        async with self._io_lock:
            data = await self._read_all()
        return data.get(key)

    async def set(self, key: str, value: Any) -> None:
        async with self._io_lock:
            data = await self._read_all()
            data[key] = value
            await self._write_all(data)

    async def _write_all(self, data: Dict[str, Any]) -> None:
        tmp_path: Optional[str] = None
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.file_path.name}.", dir=str(self.file_path.parent)
            )
            os.close(fd)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(data, indent=2, sort_keys=True))
            os.replace(tmp_path, self.file_path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass
            raise StoreError(
                f"Cannot write store file {self.file_path}: {e}", cause=e
            ) from e
