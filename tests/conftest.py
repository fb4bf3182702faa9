"""
Shared pytest fixtures and configuration for Sunduk tests.
"""

import pytest

from sunduk import EntityStore, ManualScheduler, Store, StoreRegistry


@pytest.fixture
def scheduler():
    """Deterministic clock; time moves only on scheduler.advance()."""
    return ManualScheduler()


@pytest.fixture
def registry():
    """Fresh registry, closed after the test."""
    with StoreRegistry() as registry:
        yield registry


@pytest.fixture
def item_state():
    return {"name": "Richard", "title": "king", "age": 42}


@pytest.fixture
def store(item_state, scheduler):
    """Plain store without caching."""
    return Store(item_state, name="item", scheduler=scheduler)


@pytest.fixture
def cached_store(item_state, scheduler):
    """Store with a one second cache window."""
    return Store(item_state, name="cached", cache=1000, scheduler=scheduler)


@pytest.fixture
def people():
    return [
        {"objectId": 3, "name": "Carol", "age": 41},
        {"objectId": 1, "name": "Alice", "age": 30},
        {"objectId": 2, "name": "Bob", "age": 25},
    ]


@pytest.fixture
def entity_store(scheduler):
    """Empty entity store keyed by the objectId field."""
    return EntityStore(name="people", id_key="objectId", scheduler=scheduler)


class Recorder:
    """Callable observer that remembers every value it receives."""

    def __init__(self):
        self.values = []
        self.completed = 0

    def __call__(self, value):
        self.values.append(value)

    def complete(self):
        self.completed += 1

    @property
    def count(self):
        return len(self.values)

    @property
    def last(self):
        return self.values[-1]


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_recorder():
    return Recorder
