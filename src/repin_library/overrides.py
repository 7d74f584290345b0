# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

from __future__ import annotations

import logging
from typing import List, Set

lib_logger = logging.getLogger("repin_library")


class OverrideLedger:
    """
    One-shot exemptions from auto-restore.

    A grant covers exactly the next disappearance of that entity. It is
    consumed by the removal handler, so a second disappearance of the same
    id is treated as unauthorized again. Never persisted.
    """

    def __init__(self) -> None:
        self._granted: Set[int] = set()

    def grant_once(self, entity_id: int) -> None:
        self._granted.add(entity_id)
        lib_logger.debug(f"Granted one-shot close override for entity {entity_id}")

    def consume(self, entity_id: int) -> bool:
        if entity_id not in self._granted:
            return False
        self._granted.discard(entity_id)
        return True

    def revoke(self, entity_id: int) -> None:
        self._granted.discard(entity_id)

    def clear(self) -> None:
        self._granted.clear()

    def snapshot(self) -> List[int]:
        return sorted(self._granted)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._granted
