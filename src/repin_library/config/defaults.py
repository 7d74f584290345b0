# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Centralized defaults for the repin library.

This file contains the fixed names and tunables used by:
- The persisted order store (storage keys, config flag)
- Window projection (privileged schemes, managed window kind)
- Auto-restore notices and the protection badge

Environment variables can override the runtime-facing values in repin_app.
"""

from typing import Tuple

# =============================================================================
# STORAGE KEYS
# =============================================================================

# Key holding the desired pin set: {url: rank}
STORED_TABS_KEY: str = "storedTabs"

# Key holding the auto-track flag
# When true, manual pin/unpin and drag-reorder rewrite the desired set
AUTO_TRACK_PINNED_KEY: str = "autoTrackPinned"

DEFAULT_AUTO_TRACK_PINNED: bool = False

# =============================================================================
# PROJECTION DEFAULTS
# =============================================================================

# Only windows of this kind are projected when they appear
MANAGED_WINDOW_KIND: str = "normal"

# Internal runtime pages that are never recreated (matched case-insensitively)
PRIVILEGED_URL_PREFIXES: Tuple[str, ...] = (
    "chrome://",
    "chrome-untrusted://",
    "chrome-extension://",
)

# =============================================================================
# NOTICE & INDICATOR DEFAULTS
# =============================================================================

# Message type delivered to a recreated entity once it finishes loading
NOTICE_MESSAGE_TYPE: str = "repin-managed-entity-reopened"

# Only entities whose resolved address starts with one of these get a notice
NOTICE_DELIVERABLE_PREFIXES: Tuple[str, ...] = ("http://", "https://", "file://")

# Load status reported by the runtime when an entity finished loading
LOAD_COMPLETE_STATUS: str = "complete"

# Badge text shown on protected entities (empty string clears it)
PROTECTED_BADGE_TEXT: str = "PIN"

# =============================================================================
# CONTENT-ORIGIN REQUESTS
# =============================================================================

CLOSE_ONCE_MESSAGE_TYPE: str = "repin-close-once"
CLOSE_AND_REMOVE_MESSAGE_TYPE: str = "repin-close-and-remove"
