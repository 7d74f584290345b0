# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

lib_logger = logging.getLogger("repin_library")

# Called with (entity_id, protected) whenever protection starts or stops
Indicator = Callable[[int, bool], None]


class ProtectionRegistry:
    """
    Which live entities are under management, and the URL each came from.

    An entry exists exactly while the engine would recreate the entity if it
    disappeared without an override. The map is process-local and mutated
    synchronously; callers never hold it across an await.
    """

    def __init__(self, indicator: Optional[Indicator] = None):
        self._origins: Dict[int, str] = {}
        self._indicator = indicator

    def tag(self, entity_id: int, origin_url: str) -> None:
        previous = self._origins.get(entity_id)
        if previous == origin_url:
            return
        self._origins[entity_id] = origin_url
        lib_logger.info(f"Tagged entity {entity_id} as protected for {origin_url}")
        if previous is None:
            self._notify(entity_id, True)

    def untag(self, entity_id: int) -> None:
        if self._origins.pop(entity_id, None) is None:
            return
        lib_logger.debug(f"Untagged entity {entity_id}")
        self._notify(entity_id, False)

    def lookup(self, entity_id: int) -> Optional[str]:
        return self._origins.get(entity_id)

    def transfer(self, old_id: int, new_id: int) -> Optional[str]:
        """Move protection from ``old_id`` to ``new_id``. Returns the origin moved."""
        origin = self._origins.get(old_id)
        if origin is None:
            return None
        self.tag(new_id, origin)
        if new_id != old_id:
            self.untag(old_id)
        return origin

    def clear(self) -> None:
        self._origins.clear()

    def snapshot(self) -> Dict[int, str]:
        return dict(self._origins)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._origins

    def __len__(self) -> int:
        return len(self._origins)

    def _notify(self, entity_id: int, protected: bool) -> None:
        if self._indicator is None:
            return
        try:
            self._indicator(entity_id, protected)
        except Exception as e:
            lib_logger.debug(f"Indicator update failed for entity {entity_id}: {e}")
