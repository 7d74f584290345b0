# SPDX-License-Identifier: MIT

from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from repin_library.error_handler import EntityGoneError, RuntimeCommandError
from repin_library.runtime_interface import LiveEntity, RuntimeInterface, SessionWindow


class FakeRuntime(RuntimeInterface):
    """
    In-memory runtime with browser-like window rows.

    Pinned entities always sit before unpinned ones. Every command is
    recorded in ``commands`` as a tuple so tests can assert on exactly what
    the engine asked for.
    """

    def __init__(self, next_id: int = 100):
        self.windows: Dict[int, List[LiveEntity]] = {}
        self.commands: List[Tuple[Any, ...]] = []
        self.messages: List[Tuple[int, Dict[str, Any]]] = []
        self.badges: Dict[int, str] = {}
        self.focused_window: Optional[int] = None
        self.failing: Set[Tuple[str, Any]] = set()
        self._next_id = next_id

    # --- test helpers -----------------------------------------------------

    def add_window(self, window_id: int, entities: Sequence[Tuple[str, bool]] = ()) -> List[int]:
        """Open a window holding ``(url, pinned)`` entities; returns their ids."""
        self.windows[window_id] = []
        if self.focused_window is None:
            self.focused_window = window_id
        ids = []
        for url, pinned in entities:
            entity = LiveEntity(
                id=self._allocate(),
                window_id=window_id,
                index=len(self.windows[window_id]),
                url=url,
                pinned=pinned,
                status="complete",
            )
            self.windows[window_id].append(entity)
            ids.append(entity.id)
        self._reindex(window_id)
        return ids

    def fail(self, op: str, key: Any) -> None:
        self.failing.add((op, key))

    def row(self, window_id: int) -> List[Tuple[str, bool]]:
        return [(e.url, e.pinned) for e in self.windows[window_id]]

    def pinned_urls(self, window_id: int) -> List[str]:
        return [e.url for e in self.windows[window_id] if e.pinned]

    def drop(self, entity_id: int) -> LiveEntity:
        """Remove an entity behind the engine's back (crash, manual close)."""
        entity = self._find(entity_id)
        self.windows[entity.window_id].remove(entity)
        self._reindex(entity.window_id)
        return entity

    def mutating_commands(self) -> List[Tuple[Any, ...]]:
        return [c for c in self.commands if c[0] in {"create", "move", "set_pinned", "remove"}]

    # --- RuntimeInterface -------------------------------------------------

    async def create_entity(self, window_id, url, pinned, active, index):
        self.commands.append(("create", window_id, url, pinned, active, index))
        if ("create", url) in self.failing:
            raise RuntimeCommandError(f"create failed for {url}")
        if window_id not in self.windows:
            raise EntityGoneError(f"window {window_id} is gone")
        entity = LiveEntity(
            id=self._allocate(),
            window_id=window_id,
            index=index,
            url=None,
            pending_url=url,
            pinned=pinned,
            status="loading",
        )
        row = self.windows[window_id]
        row.insert(min(index, len(row)), entity)
        self._reindex(window_id)
        return LiveEntity(**vars(entity))

    async def move_entity(self, entity_id, index):
        self.commands.append(("move", entity_id, index))
        self._check("move", entity_id)
        entity = self._find(entity_id)
        row = self.windows[entity.window_id]
        row.remove(entity)
        row.insert(min(index, len(row)), entity)
        self._reindex(entity.window_id)

    async def set_pinned(self, entity_id, pinned):
        self.commands.append(("set_pinned", entity_id, pinned))
        self._check("set_pinned", entity_id)
        entity = self._find(entity_id)
        entity.pinned = pinned
        self._reindex(entity.window_id)

    async def remove_entities(self, entity_ids):
        self.commands.append(("remove", tuple(entity_ids)))
        for entity_id in entity_ids:
            self._check("remove", entity_id)
            self.drop(entity_id)

    async def query_entities(self, window_id, pinned=None):
        self.commands.append(("query", window_id, pinned))
        if ("query", window_id) in self.failing:
            raise RuntimeCommandError(f"query failed for window {window_id}")
        if window_id not in self.windows:
            raise EntityGoneError(f"window {window_id} is gone")
        rows = [LiveEntity(**vars(e)) for e in self.windows[window_id]]
        if pinned is not None:
            rows = [e for e in rows if e.pinned == pinned]
        return rows

    async def get_entity(self, entity_id):
        return LiveEntity(**vars(self._find(entity_id)))

    async def get_last_focused_window(self, kind="normal"):
        if self.focused_window is None:
            raise RuntimeCommandError("no focused window")
        return SessionWindow(id=self.focused_window, kind=kind, focused=True)

    async def navigate(self, entity_id, url):
        self.commands.append(("navigate", entity_id, url))
        self._check("navigate", entity_id)
        entity = self._find(entity_id)
        entity.pending_url = url
        entity.status = "loading"

    async def send_message(self, entity_id, payload):
        self._check("message", entity_id)
        self.messages.append((entity_id, dict(payload)))

    async def set_badge(self, entity_id, text):
        self._check("badge", entity_id)
        self.badges[entity_id] = text

    # --- internals --------------------------------------------------------

    def _allocate(self) -> int:
        self._next_id += 1
        return self._next_id

    def _check(self, op: str, entity_id: int) -> None:
        if (op, entity_id) in self.failing:
            raise RuntimeCommandError(f"{op} failed for {entity_id}", entity_id)

    def _find(self, entity_id: int) -> LiveEntity:
        for row in self.windows.values():
            for entity in row:
                if entity.id == entity_id:
                    return entity
        raise EntityGoneError(f"entity {entity_id} is gone", entity_id)

    def _reindex(self, window_id: int) -> None:
        row = self.windows[window_id]
        # Stable partition: pinned entities first
        row[:] = [e for e in row if e.pinned] + [e for e in row if not e.pinned]
        for index, entity in enumerate(row):
            entity.index = index
