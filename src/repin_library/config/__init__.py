# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

from .defaults import (
    STORED_TABS_KEY,
    AUTO_TRACK_PINNED_KEY,
    DEFAULT_AUTO_TRACK_PINNED,
    MANAGED_WINDOW_KIND,
    PRIVILEGED_URL_PREFIXES,
    NOTICE_MESSAGE_TYPE,
    NOTICE_DELIVERABLE_PREFIXES,
    LOAD_COMPLETE_STATUS,
    PROTECTED_BADGE_TEXT,
    CLOSE_ONCE_MESSAGE_TYPE,
    CLOSE_AND_REMOVE_MESSAGE_TYPE,
)

__all__ = [
    "STORED_TABS_KEY",
    "AUTO_TRACK_PINNED_KEY",
    "DEFAULT_AUTO_TRACK_PINNED",
    "MANAGED_WINDOW_KIND",
    "PRIVILEGED_URL_PREFIXES",
    "NOTICE_MESSAGE_TYPE",
    "NOTICE_DELIVERABLE_PREFIXES",
    "LOAD_COMPLETE_STATUS",
    "PROTECTED_BADGE_TEXT",
    "CLOSE_ONCE_MESSAGE_TYPE",
    "CLOSE_AND_REMOVE_MESSAGE_TYPE",
]
