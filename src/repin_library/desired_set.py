# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Pure helpers over the desired pin set.

The desired set is a plain ``{url: rank}`` dict. Every structural change
(insert, delete, reorder) goes through ``normalize_ranks`` so the ranks
stay exactly ``1..N``.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Optional, Tuple

DesiredSet = Dict[str, int]


def coerce_desired_set(raw: Any) -> DesiredSet:
    """
    Turn whatever the store returned into a usable desired set.

    Absent or malformed payloads become an empty set. Entries with a blank
    URL or a rank that is not a finite number >= 1 are dropped. The rest are
    re-ranked densely by their stored value, so callers only see 1..N.
    """
    if not isinstance(raw, dict):
        return {}

    kept: List[Tuple[str, float]] = []
    for url, rank in raw.items():
        if not isinstance(url, str) or not url.strip():
            continue
        # bool is an int subclass
        if isinstance(rank, bool) or not isinstance(rank, (int, float)):
            continue
        if not math.isfinite(rank) or rank < 1:
            continue
        kept.append((url, rank))
    kept.sort(key=lambda row: row[1])
    return ranks_from_order(url for url, _ in kept)


def sorted_urls(desired: DesiredSet) -> List[str]:
    """URLs ascending by rank; ties keep insertion order."""
    return [url for url, _ in sorted(desired.items(), key=lambda row: row[1])]


def ranks_from_order(urls: Iterable[str]) -> DesiredSet:
    result: DesiredSet = {}
    for url in urls:
        if url not in result:
            result[url] = len(result) + 1
    return result


def normalize_ranks(desired: DesiredSet) -> DesiredSet:
    return ranks_from_order(sorted_urls(desired))


def has_dense_ranks(desired: DesiredSet) -> bool:
    return sorted(desired.values()) == list(range(1, len(desired) + 1))


def rank_of(desired: DesiredSet, url: str) -> Optional[int]:
    rank = desired.get(url)
    if isinstance(rank, int) and not isinstance(rank, bool):
        return rank
    return None


def append_url(desired: DesiredSet, url: str) -> DesiredSet:
    """Add ``url`` after the current last rank. No-op if already present."""
    normalized = normalize_ranks(desired)
    if url in normalized:
        return normalized
    normalized[url] = len(normalized) + 1
    return normalized


def remove_url(desired: DesiredSet, url: str) -> DesiredSet:
    return ranks_from_order(u for u in sorted_urls(desired) if u != url)


def merge_window_order(desired: DesiredSet, window_urls: Iterable[str]) -> DesiredSet:
    """
    Build the new desired set after a manual reorder inside one window.

    The window's pinned URLs come first in their on-screen order (first
    occurrence wins). Desired URLs that are absent from this window follow
    in their previous relative order, so nothing is silently dropped.
    """
    ordered: List[str] = []
    seen = set()
    for url in window_urls:
        if not url or url in seen:
            continue
        seen.add(url)
        ordered.append(url)

    ordered.extend(url for url in sorted_urls(desired) if url not in seen)
    return ranks_from_order(ordered)
