"""
Sunduk EntityStore - Keyed Collections with an Active Selection
===============================================================

An `EntityStore` manages an ordered collection of records that each carry a
unique id, plus an optional "active" id pointing at one of them. It is built
on a private `Store[EntityState]`, so it inherits the same update pipeline,
middlewares, loading flag and cache tracking.

```python
from sunduk import EntityStore

todos = EntityStore(name="todos", id_key="id")
todos.set_entities([{"id": 3, "title": "c"}, {"id": 1, "title": "a"}])
[t["id"] for t in todos.get_all()]        # [1, 3]

todos.select_entity(1).subscribe(print)   # prints {'id': 1, 'title': 'a'}
todos.update_entity(3, title="C")         # entity 1 unchanged: nothing printed
todos.update_entity(1, done=True)         # prints the merged entity 1

todos.set_active_id(3)
todos.get_active()                        # {'id': 3, 'title': 'C'}
```

Identity
--------

Ids are read either by field name (`id_key`, item access for mappings and
attribute access for other records) or by an accessor (`id_of`). An id must be
a `str` or an `int`; anything else raises `InvalidConfigError`.

Ordering
--------

The collection is always sorted by id. Ids that read as numbers (`7`, `"7"`,
`"2.5"`) sort by numeric value and come first; any other ids follow in
string order.

Removing the active entity does not clear `active_id`. `get_active()` then
returns `None` until a new active id is set.
"""

import logging
import math
from dataclasses import dataclass
from typing import (
    Any,
    Awaitable,
    Callable,
    Generic,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    Union,
)

from .cell import Stream
from .config import ID, EntityStoreOptions
from .exceptions import DuplicateIdError, InvalidConfigError, NotFoundError
from .middleware import Middleware
from .registry import StoreRegistry
from .store import Store, shallow_merge

E = TypeVar("E")


@dataclass(frozen=True)
class EntityState(Generic[E]):
    entities: Tuple[E, ...] = ()
    active_id: Optional[ID] = None


def is_valid_id(entity_id: Any) -> bool:
    return isinstance(entity_id, (str, int)) and not isinstance(entity_id, bool)


def sort_key(entity_id: ID) -> Tuple[int, Union[float, str]]:
    """Numeric ids first by value, then other ids by their string form."""
    try:
        number = float(entity_id)
    except (TypeError, ValueError, OverflowError):
        return (1, str(entity_id))
    if math.isnan(number):
        return (1, str(entity_id))
    return (0, number)


class EntityStore(Generic[E]):
    """Sorted, uniquely keyed collection of entities with an active selection."""

    def __init__(
        self,
        options: Optional[Union[EntityStoreOptions, Mapping[str, Any]]] = None,
        *,
        registry: Optional[StoreRegistry] = None,
        **option_kwargs: Any,
    ):
        self._options = EntityStoreOptions.coerce(options, **option_kwargs)
        self._read_id = self._options.id_accessor()
        self._store: Store[EntityState[E]] = Store(
            EntityState(),
            self._options,
            registry=registry,
        )

    # ========================================================================
    # IDENTITY
    # ========================================================================

    def id_of(self, entity: E) -> ID:
        """Read and validate the id of `entity`."""
        try:
            entity_id = self._read_id(entity)
        except (KeyError, AttributeError, TypeError, IndexError) as exc:
            raise InvalidConfigError(
                f"Cannot read an id from entity {entity!r}: {exc}"
            ) from exc
        if not is_valid_id(entity_id):
            raise InvalidConfigError(
                f"Entity id must be a str or int, got {entity_id!r} from {entity!r}"
            )
        return entity_id

    def _sorted(self, entities: Iterable[E]) -> Tuple[E, ...]:
        keyed = []
        seen = set()
        for entity in entities:
            entity_id = self.id_of(entity)
            if entity_id in seen:
                raise DuplicateIdError(entity_id)
            seen.add(entity_id)
            keyed.append((sort_key(entity_id), entity))
        keyed.sort(key=lambda pair: pair[0])
        return tuple(entity for _, entity in keyed)

    def _position(self, entities: Sequence[E], entity_id: Optional[ID]) -> int:
        for index, entity in enumerate(entities):
            if self._read_id(entity) == entity_id:
                return index
        return -1

    def _find(self, entities: Sequence[E], entity_id: Optional[ID]) -> Optional[E]:
        if entity_id is None:
            return None
        index = self._position(entities, entity_id)
        return entities[index] if index != -1 else None

    def _index_of(self, entity_id: ID) -> int:
        return self._position(self.get_all(), entity_id)

    # ========================================================================
    # COLLECTION
    # ========================================================================

    def set_entities(self, entities: Iterable[E]) -> None:
        """Replace the collection, sorted by id."""
        self._store.update(entities=self._sorted(entities))

    def get_all(self) -> Tuple[E, ...]:
        return self._store.get().entities

    def select_all(self) -> Stream[Tuple[E, ...]]:
        return self._store.select() >> (lambda state: state.entities)

    def get_entity(self, entity_id: ID) -> Optional[E]:
        return self._find(self.get_all(), entity_id)

    def select_entity(self, entity_id: ID) -> Stream[Optional[E]]:
        """Stream of one entity; silent while other entities change."""
        lookup = self.select_all() >> (
            lambda entities: self._find(entities, entity_id)
        )
        return lookup.distinct()

    def has_entity(self, entity_id: ID) -> bool:
        return self._index_of(entity_id) != -1

    def add_entity(self, entity: E) -> None:
        entity_id = self.id_of(entity)
        if self.has_entity(entity_id):
            raise DuplicateIdError(entity_id)
        self.set_entities([*self.get_all(), entity])

    def remove_entity(self, entity_id: ID) -> None:
        index = self._index_of(entity_id)
        if index == -1:
            raise NotFoundError(entity_id)

        entities: List[E] = list(self.get_all())
        del entities[index]
        if self.get_active_id() == entity_id:
            logging.warning(
                f"Removed active entity {entity_id!r} from store '{self.name}'; "
                f"active id now points at a missing entity"
            )
        self.set_entities(entities)

    def update_entity(
        self,
        entity_id: ID,
        partial: Optional[Mapping[str, Any]] = None,
        **changes: Any,
    ) -> None:
        """Shallow-merge changes into one entity, then re-sort the collection."""
        index = self._index_of(entity_id)
        if index == -1:
            raise NotFoundError(entity_id)

        entities: List[E] = list(self.get_all())
        entities[index] = shallow_merge(entities[index], {**(partial or {}), **changes})
        self.set_entities(entities)

    # ========================================================================
    # ACTIVE SELECTION
    # ========================================================================

    def set_active_id(self, entity_id: Optional[ID]) -> None:
        """Select an entity by id; `None` clears the selection."""
        if entity_id is None:
            self._store.update(active_id=None)
            return
        if not is_valid_id(entity_id):
            raise TypeError(f"Entity id must be a str or int, got {entity_id!r}")
        if not self.has_entity(entity_id):
            raise NotFoundError(entity_id)
        self._store.update(active_id=entity_id)

    def get_active_id(self) -> Optional[ID]:
        return self._store.get().active_id

    def select_active_id(self) -> Stream[Optional[ID]]:
        return self._store.select() >> (lambda state: state.active_id)

    def get_active(self) -> Optional[E]:
        state = self._store.get()
        return self._find(state.entities, state.active_id)

    def select_active(self) -> Stream[Optional[E]]:
        return self._store.select() >> (
            lambda state: self._find(state.entities, state.active_id)
        )

    # ========================================================================
    # STORE SURFACE
    # ========================================================================

    @property
    def name(self) -> str:
        return self._store.name

    @property
    def options(self) -> EntityStoreOptions:
        return self._options

    @property
    def destroyed(self) -> bool:
        return self._store.destroyed

    def get(self) -> EntityState[E]:
        return self._store.get()

    def select(self) -> Stream[EntityState[E]]:
        return self._store.select()

    def reset(self) -> None:
        self._store.reset()

    def destroy(self) -> None:
        self._store.destroy()

    def set_loading(self, loading: bool) -> None:
        self._store.set_loading(loading)

    def get_loading(self) -> bool:
        return self._store.get_loading()

    def select_loading(self) -> Stream[bool]:
        return self._store.select_loading()

    def has_cache(self) -> bool:
        return self._store.has_cache()

    def get_cache(self) -> bool:
        return self._store.get_cache()

    def select_cache(self) -> Stream[bool]:
        return self._store.select_cache()

    def invalidate_cache(self) -> None:
        self._store.invalidate_cache()

    def add_middleware(
        self, middleware: Middleware[EntityState[E]]
    ) -> Middleware[EntityState[E]]:
        return self._store.add_middleware(middleware)

    def clear_middlewares(self) -> None:
        self._store.clear_middlewares()

    def fetch(
        self, producer: Callable[[], Union[Sequence[E], Awaitable[Sequence[E]]]]
    ) -> Any:
        """
        Load the collection from `producer`, like `Store.fetch`.

        The fetched entities are sorted and committed with `Store.set`, which
        clears loading and restarts the cache window. The active id is kept.
        """
        return self._store._fetch(producer, self._state_for)

    def _state_for(self, entities: Iterable[E]) -> EntityState[E]:
        return EntityState(self._sorted(entities), self.get_active_id())

    def __len__(self) -> int:
        return len(self.get_all())

    def __contains__(self, entity_id: object) -> bool:
        return self._index_of(entity_id) != -1

    def __repr__(self) -> str:
        return f"EntityStore({self.name!r}, {len(self)} entities)"


__all__ = ["EntityState", "EntityStore", "sort_key"]
