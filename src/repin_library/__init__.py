# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

from typing import TYPE_CHECKING

from .reconciler import EventReconciler

# For type checkers (Pylint, mypy), import the store and runtime types statically
# At runtime, they're lazy-loaded via __getattr__
if TYPE_CHECKING:
    from .order_store import OrderStoreInterface, MemoryOrderStore, JsonFileOrderStore
    from .runtime_interface import RuntimeInterface, LiveEntity, SessionWindow
    from .projector import WindowProjector, ProjectionReport
    from . import events

__all__ = [
    "EventReconciler",
    "OrderStoreInterface",
    "MemoryOrderStore",
    "JsonFileOrderStore",
    "RuntimeInterface",
    "LiveEntity",
    "SessionWindow",
    "WindowProjector",
    "ProjectionReport",
    "events",
]

_LAZY_ATTRS = {
    "OrderStoreInterface": ".order_store",
    "MemoryOrderStore": ".order_store",
    "JsonFileOrderStore": ".order_store",
    "RuntimeInterface": ".runtime_interface",
    "LiveEntity": ".runtime_interface",
    "SessionWindow": ".runtime_interface",
    "WindowProjector": ".projector",
    "ProjectionReport": ".projector",
}


def __getattr__(name):
    """Lazy-load store, runtime and projector types to keep package import light."""
    if name in _LAZY_ATTRS:
        import importlib

        module = importlib.import_module(_LAZY_ATTRS[name], __name__)
        return getattr(module, name)
    if name == "events":
        from . import events

        return events
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
