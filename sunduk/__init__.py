"""
Sunduk - Reactive State Containers
==================================

A small reactive state library: a `Store` that holds one observable value with
middlewares, loading and cache-validity tracking, and an `EntityStore` that
keeps a sorted, keyed collection with an active selection on top of it.
"""

# Streams
from .cell import DistinctStream, MappedStream, ReactiveCell, Stream, Subject

# Configuration
from .config import ID, EntityStoreOptions, StoreOptions

# Stores
from .entity_store import EntityState, EntityStore

# Exceptions
from .exceptions import (
    ClosedCellError,
    ClosedStoreError,
    DuplicateIdError,
    DuplicateNameError,
    InvalidConfigError,
    MiddlewareError,
    NotFoundError,
    SundukError,
)
from .middleware import Middleware, MiddlewarePipeline
from .registry import StoreChange, StoreRegistry
from .store import Store, shallow_merge

# Scheduling
from .timer import (
    AsyncioScheduler,
    CacheTimer,
    ManualScheduler,
    Scheduler,
    ThreadingScheduler,
)

__version__ = "0.3.0"

__all__ = [
    # Stores
    "Store",
    "EntityStore",
    "EntityState",
    "shallow_merge",
    # Streams
    "Stream",
    "Subject",
    "ReactiveCell",
    "MappedStream",
    "DistinctStream",
    # Middleware
    "Middleware",
    "MiddlewarePipeline",
    # Registry
    "StoreRegistry",
    "StoreChange",
    # Configuration
    "ID",
    "StoreOptions",
    "EntityStoreOptions",
    # Scheduling
    "Scheduler",
    "ThreadingScheduler",
    "AsyncioScheduler",
    "ManualScheduler",
    "CacheTimer",
    # Exceptions
    "SundukError",
    "ClosedCellError",
    "ClosedStoreError",
    "MiddlewareError",
    "DuplicateIdError",
    "NotFoundError",
    "DuplicateNameError",
    "InvalidConfigError",
]
