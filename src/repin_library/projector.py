# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

# src/repin_library/projector.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from .config import PRIVILEGED_URL_PREFIXES
from .desired_set import sorted_urls
from .error_handler import RuntimeCommandError
from .pin_book import PinBook
from .protection import ProtectionRegistry
from .runtime_interface import LiveEntity, RuntimeInterface, effective_url

lib_logger = logging.getLogger("repin_library")


def is_privileged_url(url: Optional[str]) -> bool:
    if not url:
        return False
    return url.lower().startswith(PRIVILEGED_URL_PREFIXES)


@dataclass
class ProjectionReport:
    """What one projection pass did to a window."""

    window_id: int
    created: List[int] = field(default_factory=list)
    moved: List[int] = field(default_factory=list)
    unpinned: List[int] = field(default_factory=list)
    kept: List[int] = field(default_factory=list)
    skipped_urls: List[str] = field(default_factory=list)
    failed_urls: List[str] = field(default_factory=list)
    noop: bool = False

    @property
    def command_count(self) -> int:
        return len(self.created) + len(self.moved) + len(self.unpinned)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "window_id": self.window_id,
            "created": list(self.created),
            "moved": list(self.moved),
            "unpinned": list(self.unpinned),
            "kept": list(self.kept),
            "skipped_urls": list(self.skipped_urls),
            "failed_urls": list(self.failed_urls),
            "noop": self.noop,
        }


class WindowProjector:
    """
    Converges one window's pinned row onto the desired pin set.

    After a pass the pinned row holds exactly one entity per desired URL
    (privileged URLs excepted), in rank order, at the front of the window.
    Existing entities are reused and moved rather than recreated. Pinned
    entities that are not wanted are unpinned, never closed, since they may
    hold user data.

    A failed command for one entity is logged and skipped; the pass always
    runs to the end.
    """

    def __init__(
        self,
        runtime: RuntimeInterface,
        pin_book: PinBook,
        registry: ProtectionRegistry,
    ):
        self.runtime = runtime
        self.pin_book = pin_book
        self.registry = registry
        # Entities this projector unpinned whose pin-state echo is still due
        self._expected_unpins: Set[int] = set()

    def consume_expected_unpin(self, entity_id: int) -> bool:
        if entity_id not in self._expected_unpins:
            return False
        self._expected_unpins.discard(entity_id)
        return True

    async def project(
        self, window_id: int, force_unpin_when_empty: bool = True
    ) -> ProjectionReport:
        """
        Args:
            window_id: Target session window.
            force_unpin_when_empty: With an empty desired set, unpin every
                pinned entity (True) or leave the window untouched and
                report a no-op (False).
        """
        report = ProjectionReport(window_id=window_id)

        try:
            entities = await self.runtime.query_entities(window_id)
        except RuntimeCommandError as e:
            lib_logger.warning(f"Projection of window {window_id} aborted: {e}")
            return report

        row = [entity.id for entity in sorted(entities, key=lambda e: e.index)]
        pinned = [entity for entity in entities if entity.pinned]
        desired = await self.pin_book.read()
        urls = sorted_urls(desired)

        if not urls:
            if not force_unpin_when_empty:
                lib_logger.info(
                    f"No stored pinned entities; window {window_id} left untouched."
                )
                report.noop = True
                return report
            for entity in pinned:
                await self._unpin(entity, report)
            lib_logger.warning(
                f"No stored pinned entities to apply; unpinned {len(report.unpinned)} "
                f"in window {window_id}."
            )
            return report

        claimed: Set[int] = set()
        position = 0
        for url in urls:
            if is_privileged_url(url):
                lib_logger.warning(f"Skipping internal stored URL: {url}")
                report.skipped_urls.append(url)
                continue

            match = next(
                (
                    entity
                    for entity in pinned
                    if entity.id not in claimed and effective_url(entity) == url
                ),
                None,
            )
            if match is not None:
                claimed.add(match.id)
                if await self._place_existing(match, position, row, report):
                    self.registry.tag(match.id, url)
                    position += 1
                continue

            try:
                created = await self.runtime.create_entity(
                    window_id, url, pinned=True, active=False, index=position
                )
            except RuntimeCommandError as e:
                lib_logger.warning(f"Could not create pinned entity for {url}: {e}")
                report.failed_urls.append(url)
                continue

            lib_logger.info(
                f"Created managed pinned entity {created.id} for {url} at {position}"
            )
            row.insert(min(position, len(row)), created.id)
            self.registry.tag(created.id, url)
            report.created.append(created.id)
            position += 1

        wanted = set(urls)
        for entity in pinned:
            if entity.id in claimed:
                continue
            url = effective_url(entity)
            if not url:
                continue
            if url in wanted and is_privileged_url(url):
                # Stored but never relaunched: leave it where the runtime put it
                continue
            if url in wanted:
                lib_logger.info(f"Unpinning duplicate pinned entity {entity.id} ({url})")
            else:
                lib_logger.info(f"Unpinning non-stored pinned entity {entity.id} ({url})")
            await self._unpin(entity, report)

        lib_logger.info(
            f"Finished projecting onto window {window_id}: "
            f"{len(report.created)} created, {len(report.moved)} moved, "
            f"{len(report.unpinned)} unpinned, {len(report.kept)} kept"
        )
        return report

    async def _place_existing(
        self,
        entity: LiveEntity,
        position: int,
        row: List[int],
        report: ProjectionReport,
    ) -> bool:
        if entity.id in row and row.index(entity.id) == position:
            report.kept.append(entity.id)
            return True

        try:
            await self.runtime.move_entity(entity.id, position)
        except RuntimeCommandError as e:
            lib_logger.warning(f"Could not move entity {entity.id} to {position}: {e}")
            report.failed_urls.append(effective_url(entity) or "")
            return False

        if entity.id in row:
            row.remove(entity.id)
        row.insert(min(position, len(row)), entity.id)
        report.moved.append(entity.id)
        return True

    async def _unpin(self, entity: LiveEntity, report: ProjectionReport) -> None:
        self._expected_unpins.add(entity.id)
        try:
            await self.runtime.set_pinned(entity.id, False)
        except RuntimeCommandError as e:
            self._expected_unpins.discard(entity.id)
            lib_logger.warning(f"Could not unpin entity {entity.id}: {e}")
            return
        self.registry.untag(entity.id)
        report.unpinned.append(entity.id)
