# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

from typing import Any, Optional


class RuntimeCommandError(Exception):
    """A create/move/pin/remove/query call against the runtime did not happen."""

    def __init__(self, message: str, entity_id: Optional[int] = None):
        super().__init__(message)
        self.entity_id = entity_id


class EntityGoneError(RuntimeCommandError):
    """The target entity or window disappeared between observation and command."""


class StoreError(Exception):
    """The persisted order store could not be read or written."""

    def __init__(self, message: str, key: Optional[str] = None, cause: Any = None):
        super().__init__(message)
        self.key = key
        self.cause = cause
