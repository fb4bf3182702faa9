"""
Sunduk Devtools - Console Inspector
===================================

Renders registry activity to a terminal with `rich`. Attach an inspector to
a registry to log every committed value, or render a table of all stores on
demand:

```python
inspector = ConsoleInspector(registry)
inspector.attach()
user.update(name="Ann")       # prints a panel for the "user" commit
inspector.render_snapshot()   # prints one row per registered store
inspector.detach()
```

The inspector only reads; it never changes store state.
"""

import time
from typing import Any, Callable, Optional

from rich.console import Console
from rich.panel import Panel
from rich.pretty import Pretty
from rich.table import Table, box

from .registry import StoreChange, StoreRegistry


class ConsoleInspector:
    def __init__(self, registry: StoreRegistry, console: Optional[Console] = None):
        self._registry = registry
        self._console = console or Console()
        self._unsubscribe: Optional[Callable[[], None]] = None
        self.changes_seen = 0

    @property
    def console(self) -> Console:
        return self._console

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    def attach(self) -> Callable[[], None]:
        """Start printing changes; returns a callable that stops it."""
        if self._unsubscribe is None:
            self._unsubscribe = self._registry.changes.subscribe(self._on_change)
        return self.detach

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_change(self, change: StoreChange) -> None:
        self.changes_seen += 1
        stamp = time.strftime("%H:%M:%S", time.localtime(change.timestamp))
        self._console.print(
            Panel(
                Pretty(change.value),
                title=f"[bold cyan]{change.name}[/bold cyan]",
                subtitle=f"[dim]{stamp}[/dim]",
                title_align="left",
                expand=False,
            )
        )

    def render_snapshot(self) -> Table:
        """Print a table of every registered store and its current value."""
        table = Table(title="Stores", box=box.ROUNDED, show_lines=True)
        table.add_column("Name", style="bold cyan", no_wrap=True)
        table.add_column("Loading", justify="center")
        table.add_column("Cache", justify="center")
        table.add_column("Value")

        for name in sorted(self._registry.names()):
            store = self._registry.get(name)
            if store is None:
                continue
            table.add_row(
                name,
                _flag(store.get_loading()),
                _cache_flag(store),
                Pretty(store.get()),
            )

        self._console.print(table)
        return table


def _flag(value: bool) -> str:
    return "[yellow]yes[/yellow]" if value else "[dim]no[/dim]"


def _cache_flag(store: Any) -> str:
    if not store.has_cache():
        return "[dim]-[/dim]"
    return "[green]valid[/green]" if store.get_cache() else "[red]stale[/red]"


__all__ = ["ConsoleInspector"]
