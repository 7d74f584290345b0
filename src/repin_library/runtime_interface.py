# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .config import MANAGED_WINDOW_KIND


@dataclass
class LiveEntity:
    """
    Snapshot of one runtime entity inside a session window.

    Attributes:
        id: Ephemeral id, valid until the runtime recreates or replaces it.
        window_id: Owning session window.
        index: Position within the window (0-based).
        url: Committed address, if any.
        pending_url: Provisional address while a navigation is still loading.
        pinned: Whether the entity sits in the pinned row.
        status: Load status as reported by the runtime ("loading", "complete").
    """

    id: int
    window_id: int
    index: int
    url: Optional[str] = None
    pending_url: Optional[str] = None
    pinned: bool = False
    status: Optional[str] = None


@dataclass
class SessionWindow:
    id: int
    kind: str = MANAGED_WINDOW_KIND
    focused: bool = False


def effective_url(entity: LiveEntity) -> Optional[str]:
    """The address an entity is heading to: provisional first, then committed."""
    return entity.pending_url or entity.url or None


class RuntimeInterface(ABC):
    """
    Commands the engine issues against the live runtime.

    Implementations raise RuntimeCommandError (or EntityGoneError when the
    target no longer exists) instead of leaking transport exceptions.
    """

    @abstractmethod
    async def create_entity(
        self,
        window_id: int,
        url: str,
        pinned: bool,
        active: bool,
        index: int,
    ) -> LiveEntity:
        pass

    @abstractmethod
    async def move_entity(self, entity_id: int, index: int) -> None:
        pass

    @abstractmethod
    async def set_pinned(self, entity_id: int, pinned: bool) -> None:
        pass

    @abstractmethod
    async def remove_entities(self, entity_ids: Sequence[int]) -> None:
        pass

    @abstractmethod
    async def query_entities(
        self, window_id: int, pinned: Optional[bool] = None
    ) -> List[LiveEntity]:
        """Entities of one window, ordered by position."""
        pass

    @abstractmethod
    async def get_entity(self, entity_id: int) -> LiveEntity:
        pass

    @abstractmethod
    async def get_last_focused_window(
        self, kind: str = MANAGED_WINDOW_KIND
    ) -> SessionWindow:
        pass

    @abstractmethod
    async def navigate(self, entity_id: int, url: str) -> None:
        pass

    @abstractmethod
    async def send_message(self, entity_id: int, payload: Dict[str, Any]) -> None:
        pass

    async def set_badge(self, entity_id: int, text: str) -> None:
        """Optional outward indicator. Runtimes without one ignore it."""
        return None
