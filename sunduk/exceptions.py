"""
Sunduk Exceptions
=================

Every error the library raises derives from `SundukError`. Errors about missing
or duplicated keys also derive from `KeyError`, and configuration errors from
`ValueError`, so callers that only know the builtin families still catch them.
"""

from typing import Any, Optional


class SundukError(Exception):
    """Base class for all Sunduk errors."""

    pass


class ClosedCellError(SundukError):
    """Raised when subscribing to or emitting on a completed cell."""

    def __init__(self, key: str = "<unnamed>"):
        self.key = key
        super().__init__(f"Cell '{key}' is completed")


class ClosedStoreError(SundukError):
    """Raised when a mutating operation is called on a destroyed store."""

    def __init__(self, name: str, operation: Optional[str] = None):
        self.name = name
        self.operation = operation
        detail = f" ({operation})" if operation else ""
        super().__init__(f"Store '{name}' is destroyed{detail}")


class MiddlewareError(SundukError):
    """Raised when a middleware fails or returns an invalid value."""

    def __init__(self, message: str, index: int = -1, middleware: Any = None):
        self.index = index
        self.middleware = middleware
        super().__init__(message)


class DuplicateIdError(SundukError, KeyError):
    """Raised when adding an entity whose id is already present."""

    def __init__(self, id: Any):
        self.id = id
        super().__init__(f"Entity with id {id!r} already exists")

    def __str__(self) -> str:
        return self.args[0]


class NotFoundError(SundukError, KeyError):
    """Raised when an operation targets an entity id that is not present."""

    def __init__(self, id: Any):
        self.id = id
        super().__init__(f"Entity with id {id!r} not found")

    def __str__(self) -> str:
        return self.args[0]


class DuplicateNameError(SundukError, KeyError):
    """Raised when a registry already holds a store under the same name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Duplicate store name: {name!r}")

    def __str__(self) -> str:
        return self.args[0]


class InvalidConfigError(SundukError, ValueError):
    """Raised for malformed store options or unusable entity ids."""

    pass


__all__ = [
    "SundukError",
    "ClosedCellError",
    "ClosedStoreError",
    "MiddlewareError",
    "DuplicateIdError",
    "NotFoundError",
    "DuplicateNameError",
    "InvalidConfigError",
]
