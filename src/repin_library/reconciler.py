# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/repin_library/reconciler.py

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from .config import (
    CLOSE_AND_REMOVE_MESSAGE_TYPE,
    CLOSE_ONCE_MESSAGE_TYPE,
    LOAD_COMPLETE_STATUS,
    MANAGED_WINDOW_KIND,
    NOTICE_MESSAGE_TYPE,
    PROTECTED_BADGE_TEXT,
)
from .desired_set import DesiredSet, append_url, merge_window_order, rank_of
from .error_handler import RuntimeCommandError
from .events import (
    ContentRequest,
    EntityMoved,
    EntityRemoved,
    EntityReplaced,
    EntityUpdated,
    RuntimeEvent,
    WindowCreated,
)
from .notices import NotificationQueue, can_deliver_notice
from .order_store import OrderStoreInterface
from .overrides import OverrideLedger
from .pin_book import PinBook
from .projector import ProjectionReport, WindowProjector
from .protection import ProtectionRegistry
from .runtime_interface import RuntimeInterface, effective_url

lib_logger = logging.getLogger("repin_library")


class EventReconciler:
    """
    Event-driven control loop keeping managed entities pinned and alive.

    Owns the process-scoped state (protection registry, override ledger,
    notice queue) and reacts to runtime lifecycle signals:

    - window appears: project the desired set onto it
    - entity removed: recreate it unless overridden or untracked
    - entity replaced: carry protection to the new id
    - load complete: deliver a pending auto-restore notice
    - pin-state change / manual reorder: sync the desired set (auto-track)
    - content-origin close requests: close once, or close and forget

    ``dispatch`` runs each event as its own task. Handlers touching the same
    window's pinned row take that window's lock; every desired-set write
    goes through PinBook's serialized queue. Lock order is window lock
    first, then PinBook.
    """

    def __init__(self, runtime: RuntimeInterface, store: OrderStoreInterface):
        self.runtime = runtime
        self.pin_book = PinBook(store)
        self.registry = ProtectionRegistry(indicator=self._update_badge)
        self.overrides = OverrideLedger()
        self.notices = NotificationQueue()
        self.projector = WindowProjector(runtime, self.pin_book, self.registry)
        self._window_locks: Dict[int, asyncio.Lock] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._started = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        if self._started:
            return
        await self.pin_book.ensure_initialized()
        self._started = True
        lib_logger.info("Event reconciler started.")

    async def stop(self) -> None:
        await self.drain()
        self.registry.clear()
        self.overrides.clear()
        self.notices.clear()
        self._window_locks.clear()
        self._started = False
        lib_logger.info("Event reconciler stopped.")

    async def drain(self) -> None:
        """Wait until every dispatched handler (and any it spawned) finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def dispatch(self, event: RuntimeEvent) -> asyncio.Task:
        """Schedule the handler for ``event`` and return its task."""
        return self._spawn(self.handle(event), name=type(event).__name__)

    async def handle(self, event: RuntimeEvent) -> None:
        if isinstance(event, WindowCreated):
            await self.on_window_created(event.window_id, event.kind)
        elif isinstance(event, EntityRemoved):
            await self.on_entity_removed(
                event.entity_id, event.window_id, event.window_closing
            )
        elif isinstance(event, EntityReplaced):
            await self.on_entity_replaced(event.added_id, event.removed_id)
        elif isinstance(event, EntityUpdated):
            await self.on_entity_updated(event.entity_id, event.changes, event.url)
        elif isinstance(event, EntityMoved):
            await self.on_entity_moved(event.entity_id, event.window_id)
        elif isinstance(event, ContentRequest):
            await self.on_content_request(event.entity_id, event.type)
        else:
            lib_logger.debug(f"Ignoring unsupported event {event!r}")

    def snapshot(self) -> Dict[str, Any]:
        return {
            "started": self._started,
            "protected": {
                str(entity_id): url for entity_id, url in self.registry.snapshot().items()
            },
            "overrides": self.overrides.snapshot(),
            "pending_notices": {
                str(entity_id): url for entity_id, url in self.notices.snapshot().items()
            },
            "in_flight": len(self._tasks),
        }

    # =========================================================================
    # PROJECTION
    # =========================================================================

    async def on_window_created(
        self, window_id: int, kind: str = MANAGED_WINDOW_KIND
    ) -> Optional[ProjectionReport]:
        if kind != MANAGED_WINDOW_KIND:
            lib_logger.debug(f"Ignoring window {window_id} of kind '{kind}'")
            return None
        async with self._window_lock(window_id):
            return await self.projector.project(window_id)

    async def apply_now(self) -> Optional[ProjectionReport]:
        """Explicit trigger: project onto the last-focused managed window."""
        try:
            window = await self.runtime.get_last_focused_window(MANAGED_WINDOW_KIND)
        except RuntimeCommandError as e:
            lib_logger.error(f"Failed to apply stored pinned entities: {e}")
            return None

        async with self._window_lock(window.id):
            return await self.projector.project(window.id, force_unpin_when_empty=False)

    # =========================================================================
    # REMOVAL & REPLACEMENT
    # =========================================================================

    async def on_entity_removed(
        self, entity_id: int, window_id: int, window_closing: bool = False
    ) -> Optional[int]:
        """
        Recreate a protected entity that disappeared without authorization.

        Returns the id of the recreated entity, or None when nothing was
        recreated.
        """
        self.projector.consume_expected_unpin(entity_id)
        self.notices.pop(entity_id)

        if window_closing:
            # Never recreate into a dying window; only drop the bookkeeping
            self.overrides.revoke(entity_id)
            self.registry.untag(entity_id)
            self._release_window_lock(window_id)
            return None

        if self.overrides.consume(entity_id):
            self.registry.untag(entity_id)
            lib_logger.info(f"Entity {entity_id} closed with override; not restoring.")
            return None

        origin_url = self.registry.lookup(entity_id)
        if origin_url is None:
            return None

        new_id: Optional[int] = None
        try:
            async with self._window_lock(window_id):
                desired = await self.pin_book.read()
                rank = rank_of(desired, origin_url)
                index = max(0, rank - 1) if rank is not None else 0
                created = await self.runtime.create_entity(
                    window_id, origin_url, pinned=True, active=True, index=index
                )
            new_id = created.id
            self.registry.tag(new_id, origin_url)
            self.notices.enqueue(new_id, origin_url)
            lib_logger.info(
                f"Restored protected entity {entity_id} as {new_id} for {origin_url} at {index}"
            )
        except RuntimeCommandError as e:
            lib_logger.warning(f"Auto recreate failed for {origin_url}: {e}")
        finally:
            if new_id != entity_id:
                self.registry.untag(entity_id)
        return new_id

    async def on_entity_replaced(self, added_id: int, removed_id: int) -> None:
        origin_url = self.registry.transfer(removed_id, added_id)
        if origin_url is None:
            return
        self.notices.transfer(removed_id, added_id)
        lib_logger.info(
            f"Carried protection for {origin_url} from {removed_id} to {added_id}"
        )

    # =========================================================================
    # UPDATES: LOAD COMPLETION & PIN STATE
    # =========================================================================

    async def on_entity_updated(
        self, entity_id: int, changes: Dict[str, Any], url: Optional[str] = None
    ) -> None:
        if changes.get("status") == LOAD_COMPLETE_STATUS:
            await self.on_load_complete(entity_id, url)
        if "pinned" in changes:
            await self.on_pin_changed(entity_id, bool(changes["pinned"]), url)

    async def on_load_complete(self, entity_id: int, url: Optional[str]) -> bool:
        """Deliver the queued auto-restore notice, if any. Returns True if sent."""
        origin_url = self.notices.pop(entity_id)
        if origin_url is None:
            return False

        if not can_deliver_notice(url or origin_url):
            lib_logger.debug(f"Dropping notice for entity {entity_id}: {url!r}")
            return False

        try:
            await self.runtime.send_message(
                entity_id, {"type": NOTICE_MESSAGE_TYPE, "originUrl": origin_url}
            )
        except RuntimeCommandError as e:
            # The receiving page may not be listening yet
            lib_logger.debug(f"Notice delivery to entity {entity_id} failed: {e}")
            return False
        return True

    async def on_pin_changed(
        self, entity_id: int, pinned: bool, url: Optional[str]
    ) -> None:
        if not pinned and self.projector.consume_expected_unpin(entity_id):
            self.registry.untag(entity_id)
            return

        auto_track = await self.pin_book.auto_track_enabled()

        if not pinned:
            if auto_track and url:
                if await self.pin_book.remove(url):
                    lib_logger.info(f"Entity {entity_id} unpinned; forgot {url}")
            self.registry.untag(entity_id)
            return

        if not auto_track or not url:
            return

        tracked = await self.pin_book.mutate(lambda desired: _append_if_missing(desired, url))
        if tracked is not None and url in tracked:
            self.registry.tag(entity_id, url)
            lib_logger.info(f"Entity {entity_id} pinned; tracking {url}")

    # =========================================================================
    # MANUAL REORDER
    # =========================================================================

    async def on_entity_moved(self, entity_id: int, window_id: int) -> Optional[DesiredSet]:
        if not await self.pin_book.auto_track_enabled():
            return None

        try:
            entity = await self.runtime.get_entity(entity_id)
        except RuntimeCommandError as e:
            lib_logger.debug(f"Moved entity {entity_id} is gone: {e}")
            return None
        if not entity.pinned:
            return None

        async with self._window_lock(window_id):
            try:
                row = await self.runtime.query_entities(window_id, pinned=True)
            except RuntimeCommandError as e:
                lib_logger.warning(f"Could not read pinned row of window {window_id}: {e}")
                return None

            window_urls: List[str] = [
                url
                for url in (effective_url(e) for e in sorted(row, key=lambda e: e.index))
                if url
            ]
            result = await self.pin_book.mutate(
                lambda desired: merge_window_order(desired, window_urls)
            )
        if result is not None:
            lib_logger.info(f"Synced pinned order from window {window_id}")
        return result

    # =========================================================================
    # INBOUND COMMANDS
    # =========================================================================

    async def on_content_request(self, entity_id: int, request_type: str) -> None:
        if request_type == CLOSE_ONCE_MESSAGE_TYPE:
            await self.close_once(entity_id)
        elif request_type == CLOSE_AND_REMOVE_MESSAGE_TYPE:
            await self.close_and_remove(entity_id)
        else:
            lib_logger.debug(f"Ignoring content request '{request_type}' from {entity_id}")

    def allow_close_once(self, entity_id: int) -> None:
        self.overrides.grant_once(entity_id)
        self.registry.untag(entity_id)

    async def close_once(self, entity_id: int) -> bool:
        origin_url = self.registry.lookup(entity_id)
        self.allow_close_once(entity_id)
        return await self._remove_with_override(entity_id, restore_origin=origin_url)

    async def close_and_remove(self, entity_id: int) -> bool:
        origin_url = self.registry.lookup(entity_id)
        self.allow_close_once(entity_id)
        removed = await self._remove_with_override(entity_id)
        if origin_url:
            if await self.pin_book.remove(origin_url):
                lib_logger.info(f"Removed {origin_url} from the desired pin set")
        return removed

    async def reset_to_origin(self, entity_id: int) -> bool:
        origin_url = self.registry.lookup(entity_id)
        if origin_url is None:
            return False
        try:
            await self.runtime.navigate(entity_id, origin_url)
        except RuntimeCommandError as e:
            lib_logger.debug(f"Reset of entity {entity_id} to {origin_url} failed: {e}")
            return False
        return True

    async def remove_pin(self, url: str) -> bool:
        return await self.pin_book.remove(url)

    async def list_pins(self) -> List[Dict[str, Any]]:
        return [{"url": url, "rank": rank} for url, rank in await self.pin_book.ordered()]

    async def auto_track_enabled(self) -> bool:
        return await self.pin_book.auto_track_enabled()

    async def set_auto_track(self, enabled: bool) -> bool:
        return await self.pin_book.set_auto_track(enabled)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    async def _remove_with_override(
        self, entity_id: int, restore_origin: Optional[str] = None
    ) -> bool:
        try:
            await self.runtime.remove_entities([entity_id])
        except RuntimeCommandError as e:
            self.overrides.revoke(entity_id)
            if restore_origin:
                # Still open, so keep it protected
                self.registry.tag(entity_id, restore_origin)
            lib_logger.warning(f"Could not close entity {entity_id}: {e}")
            return False
        return True

    def _window_lock(self, window_id: int) -> asyncio.Lock:
        lock = self._window_locks.get(window_id)
        if lock is None:
            lock = asyncio.Lock()
            self._window_locks[window_id] = lock
        return lock

    def _release_window_lock(self, window_id: int) -> None:
        lock = self._window_locks.get(window_id)
        if lock is not None and not lock.locked():
            del self._window_locks[window_id]

    def _spawn(self, coro, name: Optional[str] = None) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._task_finished)
        return task

    def _task_finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            lib_logger.error(
                f"Handler {task.get_name()} failed: {error}", exc_info=error
            )

    def _update_badge(self, entity_id: int, protected: bool) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # Registry used outside the event loop
            return
        text = PROTECTED_BADGE_TEXT if protected else ""
        self._spawn(self._set_badge(entity_id, text), name="badge")

    async def _set_badge(self, entity_id: int, text: str) -> None:
        try:
            await self.runtime.set_badge(entity_id, text)
        except RuntimeCommandError as e:
            lib_logger.debug(f"Badge update for entity {entity_id} failed: {e}")


def _append_if_missing(desired: DesiredSet, url: str) -> DesiredSet:
    if url in desired:
        return desired
    return append_url(desired, url)
