"""
Sunduk Middleware - Ordered Update Transforms
=============================================

A middleware is a plain function `(old_state, new_state) -> state` that sees
every proposed state transition before a store commits it. It may:

- return `new_state` to let the update through,
- return `old_state` to veto it,
- return anything derived from the two.

Middlewares run in registration order. `old_state` stays fixed for the whole
run; only the proposed side threads from one middleware into the next. A run
is all-or-nothing: if any middleware raises, nothing is committed and the
store raises `MiddlewareError`.

```python
def clamp_count(old, new):
    return {**new, "count": max(0, new["count"])}

store.add_middleware(clamp_count)
```
"""

import logging
import threading
from typing import Callable, Generic, Iterator, List, TypeVar

from .exceptions import MiddlewareError

T = TypeVar("T")

Middleware = Callable[[T, T], T]


def _describe(middleware: Callable) -> str:
    return getattr(middleware, "__qualname__", None) or repr(middleware)


class MiddlewarePipeline(Generic[T]):
    """Append-only, clearable list of middlewares folded left to right."""

    def __init__(self) -> None:
        self._middlewares: List[Middleware[T]] = []
        self._lock = threading.RLock()

    def add(self, middleware: Middleware[T]) -> Middleware[T]:
        if not callable(middleware):
            raise TypeError(f"Middleware must be callable, got {middleware!r}")
        with self._lock:
            self._middlewares.append(middleware)
        return middleware

    def clear(self) -> None:
        with self._lock:
            self._middlewares = []

    def apply(self, old_value: T, proposed_value: T) -> T:
        """Run `proposed_value` through every middleware and return the outcome."""
        with self._lock:
            middlewares = tuple(self._middlewares)

        result = proposed_value
        for index, middleware in enumerate(middlewares):
            try:
                outcome = middleware(old_value, result)
            except Exception as exc:
                logging.error(
                    f"Middleware #{index} ({_describe(middleware)}) failed: {exc}"
                )
                raise MiddlewareError(
                    f"Middleware #{index} ({_describe(middleware)}) raised "
                    f"{type(exc).__name__}: {exc}",
                    index=index,
                    middleware=middleware,
                ) from exc

            # A forgotten `return` shows up as None
            if outcome is None and result is not None:
                raise MiddlewareError(
                    f"Middleware #{index} ({_describe(middleware)}) returned None",
                    index=index,
                    middleware=middleware,
                )
            result = outcome
        return result

    def __len__(self) -> int:
        return len(self._middlewares)

    def __iter__(self) -> Iterator[Middleware[T]]:
        with self._lock:
            return iter(tuple(self._middlewares))

    def __repr__(self) -> str:
        names = ", ".join(_describe(m) for m in self._middlewares)
        return f"MiddlewarePipeline([{names}])"


__all__ = ["Middleware", "MiddlewarePipeline"]
