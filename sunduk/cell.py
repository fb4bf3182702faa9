"""
Sunduk Cell - Replay-Latest Reactive Values
===========================================

This module provides the stream primitives every store is built from.

**Subject**: A hot, multicast stream. Values emitted on it are delivered
synchronously to every current observer, in subscription order, before
`emit()` returns. Late subscribers only see values emitted after they joined.

**ReactiveCell**: A Subject that also holds a current value. A new observer
immediately receives the current value, then every later one. This is what a
store keeps its state, loading flag and cache-validity flag in.

**Stream**: The read-only face of both. Streams can be projected with
`then()` (or `>>`) and de-duplicated with `distinct()`. Derived streams are
wired per subscriber, so each observer gets its own projection state.

```python
from sunduk.cell import ReactiveCell

count = ReactiveCell(0, key="count")
unsubscribe = count.subscribe(print)   # prints 0
count.emit(1)                          # prints 1

doubled = count >> (lambda n: n * 2)
doubled.subscribe(print)               # prints 2
unsubscribe()
```

Subscriptions return an unsubscribe callable. Calling it stops delivery
immediately, even while a notification round is in progress.
"""

import operator
import threading
from typing import Any, Callable, Generic, List, Optional, Tuple, TypeVar

from .exceptions import ClosedCellError

T = TypeVar("T")
U = TypeVar("U")

Observer = Callable[[T], None]
Unsubscribe = Callable[[], None]


def _identity(value: Any) -> Any:
    return value


class _Subscription:
    """One observer registration."""

    __slots__ = ("on_next", "on_complete", "active")

    def __init__(
        self, on_next: Callable[[Any], None], on_complete: Optional[Callable[[], None]]
    ):
        self.on_next = on_next
        self.on_complete = on_complete
        self.active = True


class Stream(Generic[T]):
    """
    Read-only subscribable sequence of values.

    Subclasses implement `subscribe()`; streams backed by a current value
    also implement `get()`.
    """

    def subscribe(
        self,
        on_next: Observer[T],
        on_complete: Optional[Callable[[], None]] = None,
    ) -> Unsubscribe:
        raise NotImplementedError

    def get(self) -> T:
        raise TypeError(f"{type(self).__name__} has no current value")

    @property
    def value(self) -> T:
        return self.get()

    def then(self, func: Callable[[T], U]) -> "Stream[U]":
        """Derive a stream that applies `func` to every value."""
        return MappedStream(self, func)

    def __rshift__(self, func: Callable[[T], U]) -> "Stream[U]":
        return self.then(func)

    def distinct(
        self, comparer: Optional[Callable[[Any, Any], bool]] = None
    ) -> "Stream[T]":
        """
        Derive a stream that drops consecutive duplicates.

        Values are compared by identity unless `comparer(previous, current)`
        is given.
        """
        return DistinctStream(self, comparer)


class MappedStream(Stream[U]):
    """Projection of a source stream through a function."""

    def __init__(self, source: Stream[Any], func: Callable[[Any], U]):
        self._source = source
        self._func = func

    def get(self) -> U:
        return self._func(self._source.get())

    def subscribe(
        self,
        on_next: Observer[U],
        on_complete: Optional[Callable[[], None]] = None,
    ) -> Unsubscribe:
        func = self._func
        return self._source.subscribe(lambda value: on_next(func(value)), on_complete)

    def __repr__(self) -> str:
        return f"MappedStream({self._source!r})"


class DistinctStream(Stream[T]):
    """Source stream with consecutive duplicate values suppressed."""

    _UNSET = object()

    def __init__(
        self,
        source: Stream[T],
        comparer: Optional[Callable[[Any, Any], bool]] = None,
    ):
        self._source = source
        self._comparer = comparer or operator.is_

    def get(self) -> T:
        return self._source.get()

    def subscribe(
        self,
        on_next: Observer[T],
        on_complete: Optional[Callable[[], None]] = None,
    ) -> Unsubscribe:
        comparer = self._comparer
        last: Any = self._UNSET

        def forward(value: T) -> None:
            nonlocal last
            if last is not self._UNSET and comparer(last, value):
                return
            last = value
            on_next(value)

        return self._source.subscribe(forward, on_complete)

    def __repr__(self) -> str:
        return f"DistinctStream({self._source!r})"


class Subject(Stream[T]):
    """Hot multicast stream without replay."""

    def __init__(self, key: Optional[str] = None):
        self._key = key or "<unnamed>"
        self._observers: List[_Subscription] = []
        self._lock = threading.RLock()
        self._closed = False

    @property
    def key(self) -> str:
        return self._key

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._observers)

    def subscribe(
        self,
        on_next: Observer[T],
        on_complete: Optional[Callable[[], None]] = None,
    ) -> Unsubscribe:
        with self._lock:
            if self._closed:
                raise ClosedCellError(self._key)
            entry = _Subscription(on_next, on_complete)
            self._observers.append(entry)
        return self._unsubscriber(entry)

    def emit(self, value: T) -> None:
        with self._lock:
            if self._closed:
                raise ClosedCellError(self._key)
            observers = self._snapshot()
        self._dispatch(observers, value)

    def complete(self) -> None:
        """Notify observers that no more values will arrive, then release them."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            observers = self._snapshot()
            self._observers.clear()

        for entry in observers:
            if not entry.active:
                continue
            entry.active = False
            if entry.on_complete is not None:
                entry.on_complete()

    def as_stream(self) -> Stream[T]:
        """Read-only view; callers holding it cannot emit or complete."""
        return MappedStream(self, _identity)

    def _snapshot(self) -> Tuple[_Subscription, ...]:
        return tuple(self._observers)

    @staticmethod
    def _dispatch(observers: Tuple[_Subscription, ...], value: Any) -> None:
        for entry in observers:
            # Unsubscribed mid-round
            if entry.active:
                entry.on_next(value)

    def _unsubscriber(self, entry: _Subscription) -> Unsubscribe:
        def unsubscribe() -> None:
            with self._lock:
                entry.active = False
                if entry in self._observers:
                    self._observers.remove(entry)

        return unsubscribe

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._key!r})"


class ReactiveCell(Subject[T]):
    """
    Subject holding a current value, replayed to every new subscriber.

    `get()` never blocks. `emit()` replaces the value and notifies observers
    synchronously. After `complete()`, `get()` still returns the last value
    but `subscribe()` and `emit()` raise `ClosedCellError`.
    """

    def __init__(self, initial_value: T, key: Optional[str] = None):
        super().__init__(key)
        self._value = initial_value

    def get(self) -> T:
        return self._value

    def subscribe(
        self,
        on_next: Observer[T],
        on_complete: Optional[Callable[[], None]] = None,
    ) -> Unsubscribe:
        with self._lock:
            if self._closed:
                raise ClosedCellError(self._key)
            entry = _Subscription(on_next, on_complete)
            self._observers.append(entry)
            current = self._value
        unsubscribe = self._unsubscriber(entry)
        try:
            on_next(current)
        except Exception:
            unsubscribe()
            raise
        return unsubscribe

    def emit(self, value: T) -> None:
        with self._lock:
            if self._closed:
                raise ClosedCellError(self._key)
            self._value = value
            observers = self._snapshot()
        self._dispatch(observers, value)

    def __repr__(self) -> str:
        return f"ReactiveCell({self._key!r}, {self._value!r})"


__all__ = [
    "Stream",
    "MappedStream",
    "DistinctStream",
    "Subject",
    "ReactiveCell",
    "Observer",
    "Unsubscribe",
]
