#!/usr/bin/env python3
"""
Sunduk TODO Store
=================

A to-do list kept in an `EntityStore`, with an async "server" to load from.

Shows:
- Immutable TodoItem records keyed by `id`
- Loading state while fetching
- Per-item subscriptions that ignore changes to other items
- The active (selected) item

```bash
$ pip install -e . && python examples/todo_store.py
```
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List

from sunduk import AsyncioScheduler, EntityStore, NotFoundError

LOG_LEVEL = logging.INFO


@dataclass(frozen=True)
class TodoItem:
    id: int
    text: str
    completed: bool = False


async def load_from_server() -> List[TodoItem]:
    await asyncio.sleep(0.05)
    return [
        TodoItem(3, "Ship it"),
        TodoItem(1, "Write the plan"),
        TodoItem(2, "Build the thing"),
    ]


class TodoStore:
    """Thin application layer over an EntityStore."""

    def __init__(self):
        self.items: EntityStore[TodoItem] = EntityStore(
            name="todos", id_key="id", cache=60_000, scheduler=AsyncioScheduler()
        )

    async def load(self) -> None:
        await self.items.fetch(load_from_server)

    def add(self, text: str) -> TodoItem:
        next_id = max((item.id for item in self.items.get_all()), default=0) + 1
        item = TodoItem(next_id, text)
        self.items.add_entity(item)
        return item

    def toggle(self, item_id: int) -> None:
        item = self.items.get_entity(item_id)
        if item is None:
            raise NotFoundError(item_id)
        self.items.update_entity(item_id, completed=not item.completed)

    def remaining(self) -> int:
        return sum(1 for item in self.items.get_all() if not item.completed)


async def main() -> None:
    logging.basicConfig(level=LOG_LEVEL)
    todos = TodoStore()

    todos.items.select_loading().subscribe(
        lambda loading: logging.info("loading..." if loading else "idle")
    )
    await todos.load()

    todos.items.select_entity(1).subscribe(
        lambda item: logging.info(f"item 1 is now: {item}")
    )

    todos.toggle(2)  # item 1 subscriber stays quiet
    todos.toggle(1)
    todos.add("Celebrate")

    todos.items.set_active_id(3)
    logging.info(f"active: {todos.items.get_active()}")
    logging.info(f"remaining: {todos.remaining()} of {len(todos.items)}")
    logging.info(f"cache valid: {todos.items.get_cache()}")

    todos.items.destroy()


if __name__ == "__main__":
    asyncio.run(main())
