"""
Sunduk Config - Store Construction Options
==========================================

Options are fixed when a store is created. They can be passed as an options
object or as keyword arguments with the same names:

```python
Store(initial, StoreOptions(name="user", cache=30_000))
Store(initial, name="user", cache=30_000)
```

Fields
------

- `name`: required, non-empty. Registries key stores by it.
- `cache`: cache validity window in milliseconds. `None` or `0` disables
  cache tracking.
- `scheduler`: where cache expiry callbacks run. Defaults to
  `ThreadingScheduler`.

Entity stores additionally need to know how to read an entity's id, either
by field name (`id_key`) or with an accessor function (`id_of`).
"""

from dataclasses import dataclass, fields
from typing import Any, Callable, Mapping, Optional, Type, TypeVar, Union

from .exceptions import InvalidConfigError
from .timer import Scheduler

ID = Union[str, int]

O = TypeVar("O", bound="StoreOptions")


@dataclass(frozen=True)
class StoreOptions:
    name: str
    cache: Optional[int] = None
    scheduler: Optional[Scheduler] = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise InvalidConfigError(
                f"Store name must be a non-empty string, got {self.name!r}"
            )
        if self.cache is not None:
            if (
                isinstance(self.cache, bool)
                or not isinstance(self.cache, int)
                or self.cache < 0
            ):
                raise InvalidConfigError(
                    f"Cache duration must be a non-negative integer of "
                    f"milliseconds, got {self.cache!r}"
                )
        if self.scheduler is not None and not isinstance(self.scheduler, Scheduler):
            raise InvalidConfigError(
                f"Scheduler must be a Scheduler instance, got {self.scheduler!r}"
            )

    @property
    def cache_enabled(self) -> bool:
        return bool(self.cache)

    @classmethod
    def coerce(cls: Type[O], options: Optional[Any] = None, **kwargs: Any) -> O:
        """Build options from an options object, a mapping, or keyword arguments."""
        if options is None:
            return cls._from_mapping(kwargs)
        if kwargs:
            raise InvalidConfigError(
                "Pass either an options object or keyword options, not both"
            )
        if isinstance(options, cls):
            return options
        if isinstance(options, StoreOptions):
            # Upgrade plain store options, e.g. for an entity store
            return cls._from_mapping(
                {f.name: getattr(options, f.name) for f in fields(StoreOptions)}
            )
        if isinstance(options, Mapping):
            return cls._from_mapping(dict(options))
        raise InvalidConfigError(f"Unsupported options value: {options!r}")

    @classmethod
    def _from_mapping(cls: Type[O], values: Mapping[str, Any]) -> O:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise InvalidConfigError(f"Unknown store options: {', '.join(unknown)}")
        if "name" not in values:
            raise InvalidConfigError("Store options require a name")
        return cls(**values)


@dataclass(frozen=True)
class EntityStoreOptions(StoreOptions):
    id_key: Optional[str] = None
    id_of: Optional[Callable[[Any], ID]] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if (self.id_key is None) == (self.id_of is None):
            raise InvalidConfigError(
                "Entity store options need exactly one of id_key or id_of"
            )
        if self.id_key is not None and (
            not isinstance(self.id_key, str) or not self.id_key
        ):
            raise InvalidConfigError(
                f"id_key must be a non-empty string, got {self.id_key!r}"
            )
        if self.id_of is not None and not callable(self.id_of):
            raise InvalidConfigError(f"id_of must be callable, got {self.id_of!r}")

    def id_accessor(self) -> Callable[[Any], Any]:
        """Return the raw id reader; validation of what it returns is up to the caller."""
        if self.id_of is not None:
            return self.id_of

        key = self.id_key

        def read_field(entity: Any) -> Any:
            if isinstance(entity, Mapping):
                return entity[key]
            return getattr(entity, key)

        return read_field


__all__ = ["ID", "StoreOptions", "EntityStoreOptions"]
