# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

from __future__ import annotations

from typing import Dict, Optional

from .config import NOTICE_DELIVERABLE_PREFIXES


def can_deliver_notice(url: Optional[str]) -> bool:
    """Notices only go to normal web or file pages, never privileged ones."""
    if not url:
        return False
    return url.lower().startswith(NOTICE_DELIVERABLE_PREFIXES)


class NotificationQueue:
    """
    Pending "this entity was auto-restored" notices.

    Keyed by the recreated entity's id. An entry is removed the first time
    that entity reports a completed load, whether or not the notice could be
    delivered, so each recreation produces at most one notice.
    """

    def __init__(self) -> None:
        self._pending: Dict[int, str] = {}

    def enqueue(self, entity_id: int, origin_url: str) -> None:
        self._pending[entity_id] = origin_url

    def pop(self, entity_id: int) -> Optional[str]:
        return self._pending.pop(entity_id, None)

    def transfer(self, old_id: int, new_id: int) -> bool:
        origin = self._pending.pop(old_id, None)
        if origin is None:
            return False
        self._pending[new_id] = origin
        return True

    def clear(self) -> None:
        self._pending.clear()

    def snapshot(self) -> Dict[int, str]:
        return dict(self._pending)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._pending
