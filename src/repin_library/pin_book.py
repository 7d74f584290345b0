# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Tuple

from .config import (
    STORED_TABS_KEY,
    AUTO_TRACK_PINNED_KEY,
    DEFAULT_AUTO_TRACK_PINNED,
)
from .desired_set import (
    DesiredSet,
    coerce_desired_set,
    normalize_ranks,
    remove_url,
    sorted_urls,
)
from .error_handler import StoreError
from .order_store import OrderStoreInterface

lib_logger = logging.getLogger("repin_library")

Mutation = Callable[[DesiredSet], Optional[DesiredSet]]


class PinBook:
    """
    Serialized access to the desired pin set in the order store.

    Every structural change runs through ``mutate``, which holds a single
    lock across the fresh read, the transformation and the write. The lock
    wakes waiters in FIFO order, so concurrent handlers queue up instead of
    overwriting each other's read-modify-write cycles.

    Plain reads do not take the lock; they may observe the state before a
    queued mutation lands.
    """

    def __init__(self, store: OrderStoreInterface):
        self.store = store
        self._write_lock = asyncio.Lock()

    async def read(self) -> DesiredSet:
        try:
            raw = await self.store.get(STORED_TABS_KEY)
        except StoreError as e:
            lib_logger.warning(f"Could not read desired pin set: {e}. Using empty set.")
            return {}
        return coerce_desired_set(raw)

    async def ordered(self) -> List[Tuple[str, int]]:
        desired = normalize_ranks(await self.read())
        return [(url, desired[url]) for url in sorted_urls(desired)]

    async def mutate(self, fn: Mutation) -> Optional[DesiredSet]:
        """
        Apply ``fn`` to a fresh copy of the desired set and persist the result.

        ``fn`` returns the new set, or None to leave the store untouched.
        Returns the persisted set, or None when nothing was written (either
        ``fn`` declined or the write failed).
        """
        async with self._write_lock:
            current = await self.read()
            updated = fn(dict(current))
            if updated is None:
                return None
            updated = normalize_ranks(updated)
            if updated == current:
                return updated
            try:
                await self.store.set(STORED_TABS_KEY, updated)
            except StoreError as e:
                lib_logger.warning(f"Could not persist desired pin set: {e}")
                return None
            lib_logger.debug(f"Persisted desired pin set ({len(updated)} URLs)")
            return updated

    async def remove(self, url: str) -> bool:
        """Delete ``url`` and re-rank. Returns True when it was present."""
        removed = False

        def _drop(desired: DesiredSet) -> Optional[DesiredSet]:
            nonlocal removed
            if url not in desired:
                return None
            removed = True
            return remove_url(desired, url)

        result = await self.mutate(_drop)
        return removed and result is not None

    async def ensure_initialized(self) -> None:
        """Writes an empty set when the store has never held one."""
        async with self._write_lock:
            try:
                raw = await self.store.get(STORED_TABS_KEY)
                if raw is None:
                    await self.store.set(STORED_TABS_KEY, {})
                    lib_logger.info("Initialized empty desired pin set")
            except StoreError as e:
                lib_logger.warning(f"Could not initialize desired pin set: {e}")

    async def auto_track_enabled(self) -> bool:
        try:
            value = await self.store.get(AUTO_TRACK_PINNED_KEY)
        except StoreError as e:
            lib_logger.warning(f"Could not read auto-track flag: {e}")
            return DEFAULT_AUTO_TRACK_PINNED
        if isinstance(value, bool):
            return value
        return DEFAULT_AUTO_TRACK_PINNED

    async def set_auto_track(self, enabled: bool) -> bool:
        try:
            await self.store.set(AUTO_TRACK_PINNED_KEY, bool(enabled))
        except StoreError as e:
            lib_logger.warning(f"Could not persist auto-track flag: {e}")
            return False
        lib_logger.info(f"Auto-track pinned set to {bool(enabled)}")
        return True
