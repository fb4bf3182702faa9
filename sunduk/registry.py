"""
Sunduk Registry - Store Directory and Change Broadcast
======================================================

A `StoreRegistry` maps store names to store instances and rebroadcasts every
committed value on a single `changes` stream, so tooling can watch an entire
application without touching individual stores.

The registry is a plain object. Create one at the composition root, pass it
to stores via `registry=`, and close it at shutdown:

```python
with StoreRegistry() as registry:
    user = Store({"name": ""}, name="user", registry=registry)
    registry.changes.subscribe(lambda change: print(change.name, change.value))
    user.update(name="Ann")   # prints: user {'name': 'Ann'}
```

Nothing the registry does feeds back into store state. In production mode the
broadcast is switched off entirely.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List

from .cell import Stream, Subject
from .exceptions import DuplicateNameError


@dataclass(frozen=True)
class StoreChange:
    """One committed value, as seen by registry observers."""

    name: str
    value: Any
    timestamp: float = field(default_factory=time.time)


class StoreRegistry:
    """Directory of named stores plus a broadcast of their commits."""

    def __init__(self, prod: bool = False):
        self._stores: Dict[str, Any] = {}
        self._changes: Subject[StoreChange] = Subject(key="registry.changes")
        self._lock = threading.RLock()
        self._prod = prod

    @property
    def prod(self) -> bool:
        return self._prod

    @property
    def changes(self) -> Stream[StoreChange]:
        return self._changes.as_stream()

    @property
    def closed(self) -> bool:
        return self._changes.closed

    def enable_prod_mode(self) -> None:
        """Stop broadcasting changes; registration keeps working."""
        self._prod = True

    def register(self, name: str, store: Any) -> None:
        with self._lock:
            if name in self._stores:
                raise DuplicateNameError(name)
            self._stores[name] = store
        logging.debug(f"Registered store '{name}'")

    def unregister(self, name: str) -> None:
        """Forget `name`. Unknown names are ignored."""
        with self._lock:
            removed = self._stores.pop(name, None)
        if removed is not None:
            logging.debug(f"Unregistered store '{name}'")

    def broadcast(self, name: str, value: Any) -> None:
        if self._prod or self._changes.closed:
            return
        self._changes.emit(StoreChange(name, value))

    def get(self, name: str, default: Any = None) -> Any:
        with self._lock:
            return self._stores.get(name, default)

    def names(self) -> List[str]:
        with self._lock:
            return list(self._stores)

    def snapshot(self) -> Dict[str, Any]:
        """Current value of every registered store, by name."""
        with self._lock:
            stores = list(self._stores.items())
        return {name: store.get() for name, store in stores}

    def close(self) -> None:
        """Complete the change stream and forget all stores."""
        self._changes.complete()
        with self._lock:
            self._stores.clear()

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._stores

    def __len__(self) -> int:
        with self._lock:
            return len(self._stores)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __enter__(self) -> "StoreRegistry":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"StoreRegistry({self.names()!r}, prod={self._prod})"


__all__ = ["StoreChange", "StoreRegistry"]
