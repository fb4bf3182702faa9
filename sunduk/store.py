"""
Sunduk Store - Observable State Container
=========================================

A `Store` holds one state value and lets you observe it. Every change goes
through the same steps:

1. `update(partial)` shallow-merges `partial` onto the current state, or
   `set(value)` proposes a full replacement.
2. The proposal runs through the store's middlewares.
3. The result is committed and pushed to every subscriber before the call
   returns.

Alongside the state, a store tracks a **loading** flag and, when created with
a `cache` duration, a **cache validity** flag that turns on with every `set()`
and turns itself off once the duration passes without another `set()`.

Basic Usage
-----------

```python
from sunduk import Store

store = Store({"name": "Richard", "title": "king", "age": 42}, name="item")

store.select().subscribe(print)   # prints the current state right away
store.update(age=43)              # prints the merged state
store.get()["age"]                # 43
store.reset()                     # back to the initial state
```

State Types
-----------

Any value works with `set()` and `reset()`. `update()` needs a state it can
shallow-merge: a mapping, a dataclass instance, or a named tuple. Merging
always produces a new object; committed states are never mutated in place.

Loading and Caching
-------------------

```python
store = Store(initial, name="profile", cache=60_000)

async def load():
    return await api.get_profile()

await store.fetch(load)   # loading is True until load() finishes
store.get_cache()         # True for the next 60 seconds
```

`fetch()` clears the loading flag whether the producer succeeds or fails;
failures propagate to the caller.

Lifecycle
---------

`destroy()` completes the store's streams and removes it from its registry.
Afterwards every mutating call raises `ClosedStoreError`.
"""

import asyncio
import concurrent.futures
import dataclasses
import inspect
import logging
import threading
from typing import (
    Any,
    Awaitable,
    Callable,
    Generic,
    Mapping,
    Optional,
    TypeVar,
    Union,
)

from .cell import ReactiveCell, Stream
from .config import StoreOptions
from .exceptions import ClosedStoreError
from .middleware import Middleware, MiddlewarePipeline
from .timer import CacheTimer

T = TypeVar("T")

Producer = Callable[[], Union[T, Awaitable[T], "concurrent.futures.Future[T]"]]


def shallow_merge(base: Any, changes: Mapping[str, Any]) -> Any:
    """
    Return a new state with `changes` laid over the top level of `base`.

    Mappings merge into a new dict, dataclass instances go through
    `dataclasses.replace`, named tuples through `_replace`.
    """
    if isinstance(base, Mapping):
        return {**base, **changes}
    if dataclasses.is_dataclass(base) and not isinstance(base, type):
        return dataclasses.replace(base, **changes)
    if isinstance(base, tuple) and hasattr(base, "_replace"):
        return base._replace(**changes)
    raise TypeError(
        f"Cannot merge a partial update into state of type {type(base).__name__}"
    )


def _discard(pending: Any) -> None:
    """Drop an awaitable that will never be awaited."""
    if inspect.iscoroutine(pending):
        if inspect.getcoroutinestate(pending) == inspect.CORO_CREATED:
            pending.close()
    elif isinstance(pending, (asyncio.Future, concurrent.futures.Future)):
        pending.cancel()


class Store(Generic[T]):
    """
    Observable value with middleware, loading and cache bookkeeping.

    Mutations, and the cache expiry callback, are serialized per store by an
    internal re-entrant lock. Subscribers are notified on the thread that
    performed the mutation.
    """

    def __init__(
        self,
        initial_value: T,
        options: Optional[Union[StoreOptions, Mapping[str, Any]]] = None,
        *,
        registry: Optional[Any] = None,
        **option_kwargs: Any,
    ):
        self._options = StoreOptions.coerce(options, **option_kwargs)
        self._initial_value = initial_value
        self._lock = threading.RLock()
        self._destroyed = False

        name = self._options.name
        self._value: ReactiveCell[T] = ReactiveCell(initial_value, key=f"{name}.value")
        self._loading: ReactiveCell[bool] = ReactiveCell(False, key=f"{name}.loading")
        self._cache_valid: ReactiveCell[bool] = ReactiveCell(
            False, key=f"{name}.cache"
        )
        self._middlewares: MiddlewarePipeline[T] = MiddlewarePipeline()
        self._timer = CacheTimer(self._options.scheduler, lock=self._lock)
        self._cache_started_at: Optional[float] = None

        self._registry = registry
        if registry is not None:
            registry.register(name, self)

    # ========================================================================
    # PROPERTIES
    # ========================================================================

    @property
    def name(self) -> str:
        return self._options.name

    @property
    def options(self) -> StoreOptions:
        return self._options

    @property
    def initial_value(self) -> T:
        return self._initial_value

    @property
    def value(self) -> T:
        return self._value.get()

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def cache_started_at(self) -> Optional[float]:
        """Scheduler time of the last cache arm, or None if never armed."""
        return self._cache_started_at

    # ========================================================================
    # STATE
    # ========================================================================

    def get(self) -> T:
        return self._value.get()

    def select(self) -> Stream[T]:
        return self._value.as_stream()

    def update(
        self, partial: Optional[Mapping[str, Any]] = None, **changes: Any
    ) -> None:
        """Shallow-merge `partial` (and keyword changes) into the state and commit it."""
        merged_changes = {**(partial or {}), **changes}
        with self._lock:
            self._ensure_open("update")
            old_value = self._value.get()
            proposed = shallow_merge(old_value, merged_changes)
            self._commit(self._middlewares.apply(old_value, proposed))

    def set(self, value: T) -> None:
        """Replace the state, clear loading, and restart the cache window."""
        with self._lock:
            self._ensure_open("set")
            old_value = self._value.get()
            self._commit(self._middlewares.apply(old_value, value))
            self._loading.emit(False)
            if self.has_cache():
                self._start_cache()

    def reset(self) -> None:
        """Commit the initial value without running middlewares."""
        with self._lock:
            self._ensure_open("reset")
            self._commit(self._initial_value)

    def _commit(self, value: T) -> None:
        self._value.emit(value)
        if self._registry is not None:
            self._registry.broadcast(self.name, value)

    # ========================================================================
    # LOADING
    # ========================================================================

    def set_loading(self, loading: bool) -> None:
        with self._lock:
            self._ensure_open("set_loading")
            self._loading.emit(bool(loading))

    def get_loading(self) -> bool:
        return self._loading.get()

    def select_loading(self) -> Stream[bool]:
        return self._loading.as_stream()

    def _clear_loading(self) -> None:
        with self._lock:
            if not self._destroyed:
                self._loading.emit(False)

    def fetch(self, producer: Producer[T]) -> Any:
        """
        Load a new state from `producer` with the loading flag raised meanwhile.

        If the producer returns an awaitable or a `concurrent.futures.Future`,
        the result is an `asyncio.Task` that resolves to the committed value
        once `set()` has run; this needs a running event loop. A plain return
        value is committed immediately and returned.
        """
        return self._fetch(producer)

    def _fetch(
        self, producer: Callable[[], Any], convert: Optional[Callable[[Any], T]] = None
    ) -> Any:
        with self._lock:
            self._ensure_open("fetch")
            self._loading.emit(True)

        try:
            result = producer()
        except Exception:
            self._clear_loading()
            raise

        if not (
            inspect.isawaitable(result) or isinstance(result, concurrent.futures.Future)
        ):
            try:
                value = convert(result) if convert is not None else result
                self.set(value)
            except Exception:
                self._clear_loading()
                raise
            return value

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._clear_loading()
            _discard(result)
            raise

        if isinstance(result, concurrent.futures.Future):
            result = asyncio.wrap_future(result, loop=loop)
        task = loop.create_task(self._settle(result, convert))
        task.add_done_callback(lambda done: self._fetch_done(done, result))
        return task

    async def _settle(
        self, pending: Awaitable[Any], convert: Optional[Callable[[Any], T]]
    ) -> T:
        try:
            value = await pending
            if convert is not None:
                value = convert(value)
            self.set(value)
        except BaseException:
            self._clear_loading()
            raise
        return value

    def _fetch_done(self, task: "asyncio.Task[T]", pending: Any) -> None:
        # A task cancelled before its first step never enters _settle
        if task.cancelled():
            self._clear_loading()
            _discard(pending)

    # ========================================================================
    # CACHE
    # ========================================================================

    def has_cache(self) -> bool:
        return self._options.cache_enabled

    def get_cache(self) -> bool:
        return self._cache_valid.get()

    def select_cache(self) -> Stream[bool]:
        return self._cache_valid.as_stream()

    def invalidate_cache(self) -> None:
        """Mark cached data stale now and stop the pending expiry."""
        with self._lock:
            self._ensure_open("invalidate_cache")
            self._timer.disarm()
            if self._cache_valid.get():
                self._cache_valid.emit(False)

    def _start_cache(self) -> None:
        self._cache_started_at = self._timer.scheduler.now()
        self._cache_valid.emit(True)
        self._timer.arm(self._options.cache, self._expire_cache)

    def _expire_cache(self) -> None:
        if self._destroyed:
            return
        logging.debug(f"Cache of store '{self.name}' expired")
        self._cache_valid.emit(False)

    # ========================================================================
    # MIDDLEWARE
    # ========================================================================

    def add_middleware(self, middleware: Middleware[T]) -> Middleware[T]:
        with self._lock:
            self._ensure_open("add_middleware")
            return self._middlewares.add(middleware)

    def clear_middlewares(self) -> None:
        with self._lock:
            self._ensure_open("clear_middlewares")
            self._middlewares.clear()

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def destroy(self) -> None:
        """Complete every stream and leave the registry. Cannot be undone."""
        with self._lock:
            self._ensure_open("destroy")
            self._destroyed = True
            self._timer.disarm()
            self._value.complete()
            self._loading.complete()
            self._cache_valid.complete()
            if self._registry is not None:
                self._registry.unregister(self.name)
        logging.debug(f"Destroyed store '{self.name}'")

    def _ensure_open(self, operation: str) -> None:
        if self._destroyed:
            raise ClosedStoreError(self.name, operation)

    def __repr__(self) -> str:
        return f"Store({self.name!r}, {self._value.get()!r})"


__all__ = ["Store", "shallow_merge"]
