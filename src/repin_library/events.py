# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Runtime lifecycle signals consumed by the EventReconciler.

Each event class mirrors one push notification of the runtime event feed.
``event_from_payload`` turns the JSON form used on the wire
(``{"kind": "entity_removed", ...}``) into the matching dataclass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

from .config import MANAGED_WINDOW_KIND


@dataclass(frozen=True)
class WindowCreated:
    window_id: int
    kind: str = MANAGED_WINDOW_KIND


@dataclass(frozen=True)
class EntityRemoved:
    entity_id: int
    window_id: int
    window_closing: bool = False


@dataclass(frozen=True)
class EntityReplaced:
    added_id: int
    removed_id: int


@dataclass(frozen=True)
class EntityUpdated:
    """
    A subset of an entity's fields changed.

    ``changes`` holds only the fields that changed ("status", "pinned",
    "url"); ``url`` is the entity's address after the change.
    """

    entity_id: int
    changes: Dict[str, Any] = field(default_factory=dict)
    url: Optional[str] = None
    window_id: Optional[int] = None


@dataclass(frozen=True)
class EntityMoved:
    entity_id: int
    window_id: int
    from_index: Optional[int] = None
    to_index: Optional[int] = None


@dataclass(frozen=True)
class ContentRequest:
    """A close request sent from inside the entity's own page."""

    entity_id: int
    type: str


RuntimeEvent = Union[
    WindowCreated, EntityRemoved, EntityReplaced, EntityUpdated, EntityMoved, ContentRequest
]


class UnknownEventError(ValueError):
    pass


def _int(payload: Mapping[str, Any], key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise UnknownEventError(f"Event field '{key}' must be an integer, got {value!r}")
    return value


def _optional_int(payload: Mapping[str, Any], key: str) -> Optional[int]:
    if payload.get(key) is None:
        return None
    return _int(payload, key)


def event_from_payload(payload: Mapping[str, Any]) -> RuntimeEvent:
    kind = str(payload.get("kind") or "").strip().lower()

    if kind == "window_created":
        return WindowCreated(
            window_id=_int(payload, "window_id"),
            kind=str(payload.get("window_kind") or MANAGED_WINDOW_KIND),
        )
    if kind == "entity_removed":
        return EntityRemoved(
            entity_id=_int(payload, "entity_id"),
            window_id=_int(payload, "window_id"),
            window_closing=bool(payload.get("window_closing", False)),
        )
    if kind == "entity_replaced":
        return EntityReplaced(
            added_id=_int(payload, "added_id"),
            removed_id=_int(payload, "removed_id"),
        )
    if kind == "entity_updated":
        changes = payload.get("changes")
        if not isinstance(changes, Mapping):
            raise UnknownEventError("Event field 'changes' must be an object")
        url = payload.get("url")
        return EntityUpdated(
            entity_id=_int(payload, "entity_id"),
            changes=dict(changes),
            url=str(url) if url else None,
            window_id=_optional_int(payload, "window_id"),
        )
    if kind == "entity_moved":
        return EntityMoved(
            entity_id=_int(payload, "entity_id"),
            window_id=_int(payload, "window_id"),
            from_index=_optional_int(payload, "from_index"),
            to_index=_optional_int(payload, "to_index"),
        )
    if kind == "content_request":
        return ContentRequest(
            entity_id=_int(payload, "entity_id"),
            type=str(payload.get("type") or ""),
        )
    raise UnknownEventError(f"Unknown event kind: {kind or '<missing>'}")
