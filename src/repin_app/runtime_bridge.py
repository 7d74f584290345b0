# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from repin_library.config import MANAGED_WINDOW_KIND
from repin_library.error_handler import EntityGoneError, RuntimeCommandError
from repin_library.runtime_interface import LiveEntity, RuntimeInterface, SessionWindow

lib_logger = logging.getLogger("repin_app.runtime_bridge")


def entity_from_wire(data: Mapping[str, Any]) -> LiveEntity:
    """Bridge entities use the browser's camelCase tab fields."""
    try:
        return LiveEntity(
            id=int(data["id"]),
            window_id=int(data["windowId"]),
            index=int(data.get("index", 0)),
            url=data.get("url") or None,
            pending_url=data.get("pendingUrl") or None,
            pinned=bool(data.get("pinned", False)),
            status=data.get("status"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise RuntimeCommandError(f"Malformed entity from bridge: {data!r}") from e


class HttpRuntimeBridge(RuntimeInterface):
    """
    RuntimeInterface over the HTTP bridge exposed by the browser-side agent.

    Every transport or status failure is converted into RuntimeCommandError;
    a 404 becomes EntityGoneError so callers can treat it as a vanished
    entity rather than a broken bridge.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self.http_client = client or httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout
        )

    async def close(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        entity_id: Optional[int] = None,
        **kwargs: Any,
    ) -> Any:
        try:
            response = await self.http_client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error_msg = f"HTTP {e.response.status_code}"
            body = e.response.text
            if body:
                error_msg = f"{error_msg}: {body[:200]}"
            if e.response.status_code == 404:
                raise EntityGoneError(
                    f"{method} {path} target is gone ({error_msg})", entity_id
                ) from e
            raise RuntimeCommandError(f"{method} {path} failed ({error_msg})", entity_id) from e
        except httpx.RequestError as e:
            raise RuntimeCommandError(
                f"{method} {path} could not reach bridge: {e}", entity_id
            ) from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RuntimeCommandError(f"{method} {path} returned invalid JSON", entity_id) from e

    async def create_entity(
        self,
        window_id: int,
        url: str,
        pinned: bool,
        active: bool,
        index: int,
    ) -> LiveEntity:
        data = await self._request(
            "POST",
            "/tabs",
            json={
                "windowId": window_id,
                "url": url,
                "pinned": pinned,
                "active": active,
                "index": index,
            },
        )
        if not isinstance(data, Mapping):
            raise RuntimeCommandError(f"Bridge returned no entity for created {url}")
        return entity_from_wire(data)

    async def move_entity(self, entity_id: int, index: int) -> None:
        await self._request(
            "POST", f"/tabs/{entity_id}/move", entity_id, json={"index": index}
        )

    async def set_pinned(self, entity_id: int, pinned: bool) -> None:
        await self._request(
            "PATCH", f"/tabs/{entity_id}", entity_id, json={"pinned": pinned}
        )

    async def remove_entities(self, entity_ids: Sequence[int]) -> None:
        ids = list(entity_ids)
        if not ids:
            return
        await self._request(
            "POST",
            "/tabs/remove",
            ids[0] if len(ids) == 1 else None,
            json={"tabIds": ids},
        )

    async def query_entities(
        self, window_id: int, pinned: Optional[bool] = None
    ) -> List[LiveEntity]:
        params: Dict[str, Any] = {"windowId": window_id}
        if pinned is not None:
            params["pinned"] = "true" if pinned else "false"
        data = await self._request("GET", "/tabs", params=params)
        if not isinstance(data, list):
            raise RuntimeCommandError(f"Bridge returned no entity list for window {window_id}")
        entities = [entity_from_wire(row) for row in data if isinstance(row, Mapping)]
        entities.sort(key=lambda entity: entity.index)
        return entities

    async def get_entity(self, entity_id: int) -> LiveEntity:
        data = await self._request("GET", f"/tabs/{entity_id}", entity_id)
        if not isinstance(data, Mapping):
            raise EntityGoneError(f"Bridge returned no entity {entity_id}", entity_id)
        return entity_from_wire(data)

    async def get_last_focused_window(
        self, kind: str = MANAGED_WINDOW_KIND
    ) -> SessionWindow:
        data = await self._request(
            "GET", "/windows/last-focused", params={"windowType": kind}
        )
        if not isinstance(data, Mapping) or "id" not in data:
            raise RuntimeCommandError("Bridge returned no focused window")
        return SessionWindow(
            id=int(data["id"]),
            kind=str(data.get("type") or kind),
            focused=bool(data.get("focused", True)),
        )

    async def navigate(self, entity_id: int, url: str) -> None:
        await self._request("PATCH", f"/tabs/{entity_id}", entity_id, json={"url": url})

    async def send_message(self, entity_id: int, payload: Dict[str, Any]) -> None:
        await self._request(
            "POST", f"/tabs/{entity_id}/message", entity_id, json=payload
        )

    async def set_badge(self, entity_id: int, text: str) -> None:
        await self._request(
            "POST", f"/tabs/{entity_id}/badge", entity_id, json={"text": text}
        )
