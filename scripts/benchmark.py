#!/usr/bin/env python3
"""
Sunduk vs RxPY Performance Comparison

Measures the hot paths of a Sunduk store against the closest RxPY construct,
a `BehaviorSubject`, and renders the results as a rich table.

Benchmark Categories:
- Creation: building stores / subjects
- Emission: committing values with one subscriber attached
- Projection: mapped streams
- Entity Operations: keyed collection updates (Sunduk only)

Usage:
    python scripts/benchmark.py            # default sizes
    python scripts/benchmark.py -n 50000   # operations per benchmark
    python scripts/benchmark.py --no-rx    # skip RxPY

Install the comparison library with: pip install -e .[benchmark]
"""

import argparse
import gc
import sys
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

sys.path.insert(0, ".")

from rich.console import Console
from rich.panel import Panel
from rich.table import Table, box

from sunduk import EntityStore, ManualScheduler, Store

try:
    from reactivex import operators as ops
    from reactivex.subject import BehaviorSubject

    RXPY_AVAILABLE = True
except ImportError:
    RXPY_AVAILABLE = False


@dataclass
class BenchmarkResult:
    name: str
    category: str
    library: str
    operations: int
    seconds: float

    @property
    def ops_per_second(self) -> float:
        return self.operations / self.seconds if self.seconds > 0 else float("inf")


_BENCHMARKS: List[Dict] = []


def benchmark(name: str, category: str, library: str = "sunduk"):
    """Register a function taking `n` and returning the operation count."""

    def decorator(func: Callable[[int], int]) -> Callable[[int], int]:
        _BENCHMARKS.append(
            {"name": name, "category": category, "library": library, "func": func}
        )
        return func

    return decorator


# ============================================================================
# CREATION
# ============================================================================


@benchmark("Create container", "Creation")
def bench_create_sunduk(n):
    for i in range(n):
        Store(i, name=f"s{i}")
    return n


@benchmark("Create container", "Creation", library="rxpy")
def bench_create_rxpy(n):
    for i in range(n):
        BehaviorSubject(i)
    return n


# ============================================================================
# EMISSION
# ============================================================================


@benchmark("Set with subscriber", "Emission")
def bench_set_sunduk(n):
    store = Store(0, name="counter")
    received = []
    store.select().subscribe(received.append)
    for i in range(n):
        store.set(i)
    return len(received) - 1


@benchmark("Set with subscriber", "Emission", library="rxpy")
def bench_set_rxpy(n):
    subject = BehaviorSubject(0)
    received = []
    subject.subscribe(received.append)
    for i in range(n):
        subject.on_next(i)
    return len(received) - 1


@benchmark("Partial update", "Emission")
def bench_update_sunduk(n):
    store = Store({"count": 0, "label": "x"}, name="record")
    for i in range(n):
        store.update(count=i)
    return n


@benchmark("Set through 3 middlewares", "Emission")
def bench_middleware_sunduk(n):
    store = Store(0, name="guarded")
    for _ in range(3):
        store.add_middleware(lambda old, new: new)
    for i in range(n):
        store.set(i)
    return n


@benchmark("Set with cache tracking", "Emission")
def bench_cache_sunduk(n):
    store = Store(0, name="cached", cache=60_000, scheduler=ManualScheduler())
    for i in range(n):
        store.set(i)
    return n


# ============================================================================
# PROJECTION
# ============================================================================


@benchmark("Mapped stream", "Projection")
def bench_map_sunduk(n):
    store = Store(0, name="base")
    received = []
    (store.select() >> (lambda x: x * 2)).subscribe(received.append)
    for i in range(n):
        store.set(i)
    return n


@benchmark("Mapped stream", "Projection", library="rxpy")
def bench_map_rxpy(n):
    subject = BehaviorSubject(0)
    received = []
    subject.pipe(ops.map(lambda x: x * 2)).subscribe(received.append)
    for i in range(n):
        subject.on_next(i)
    return n


@benchmark("Distinct stream", "Projection")
def bench_distinct_sunduk(n):
    store = Store(0, name="base")
    received = []
    (store.select() >> (lambda x: x // 10)).distinct(
        lambda a, b: a == b
    ).subscribe(received.append)
    for i in range(n):
        store.set(i)
    return n


@benchmark("Distinct stream", "Projection", library="rxpy")
def bench_distinct_rxpy(n):
    subject = BehaviorSubject(0)
    received = []
    subject.pipe(
        ops.map(lambda x: x // 10), ops.distinct_until_changed()
    ).subscribe(received.append)
    for i in range(n):
        subject.on_next(i)
    return n


# ============================================================================
# ENTITY OPERATIONS
# ============================================================================


@benchmark("add_entity (100 entities)", "Entity Operations")
def bench_add_entity(n):
    performed = 0
    while performed < n:
        store = EntityStore(name="bench", id_key="id")
        for i in range(min(100, n - performed)):
            store.add_entity({"id": i})
            performed += 1
    return performed


@benchmark("update_entity (100 entities)", "Entity Operations")
def bench_update_entity(n):
    store = EntityStore(name="bench", id_key="id")
    store.set_entities({"id": i, "value": 0} for i in range(100))
    store.select_entity(50).subscribe(lambda entity: None)
    for i in range(n):
        store.update_entity(i % 100, value=i)
    return n


# ============================================================================
# RUNNER
# ============================================================================


def run(n: int, include_rx: bool, console: Console) -> List[BenchmarkResult]:
    results = []
    for entry in _BENCHMARKS:
        if entry["library"] == "rxpy" and not include_rx:
            continue
        gc.collect()
        start = time.perf_counter()
        operations = entry["func"](n)
        elapsed = time.perf_counter() - start
        results.append(
            BenchmarkResult(
                entry["name"], entry["category"], entry["library"], operations, elapsed
            )
        )
        console.print(f"[dim]  {entry['library']:>6}  {entry['name']}[/dim]")
    return results


def render(results: List[BenchmarkResult], console: Console) -> None:
    table = Table(title="Sunduk vs RxPY", box=box.ROUNDED)
    table.add_column("Category", style="cyan")
    table.add_column("Benchmark")
    table.add_column("Sunduk ops/s", justify="right", style="green")
    table.add_column("RxPY ops/s", justify="right", style="magenta")
    table.add_column("Ratio", justify="right")

    by_key: Dict[tuple, Dict[str, BenchmarkResult]] = {}
    for result in results:
        by_key.setdefault((result.category, result.name), {})[result.library] = result

    for (category, name), libraries in by_key.items():
        ours: Optional[BenchmarkResult] = libraries.get("sunduk")
        theirs: Optional[BenchmarkResult] = libraries.get("rxpy")
        ratio = (
            f"{ours.ops_per_second / theirs.ops_per_second:.2f}x"
            if ours and theirs
            else "-"
        )
        table.add_row(
            category,
            name,
            f"{ours.ops_per_second:,.0f}" if ours else "-",
            f"{theirs.ops_per_second:,.0f}" if theirs else "-",
            ratio,
        )

    console.print(table)


def main() -> None:
    parser = argparse.ArgumentParser(description="Benchmark Sunduk stores")
    parser.add_argument("-n", type=int, default=20_000, help="operations per benchmark")
    parser.add_argument("--no-rx", action="store_true", help="skip RxPY benchmarks")
    args = parser.parse_args()

    console = Console()
    if not args.no_rx and not RXPY_AVAILABLE:
        console.print(
            "[red]RxPY not available. Install with: pip install -e .[benchmark] "
            "or pass --no-rx[/red]"
        )
        sys.exit(1)
    console.print(Panel.fit(f"Running benchmarks with n={args.n:,}", style="bold"))
    render(run(args.n, not args.no_rx, console), console)


if __name__ == "__main__":
    main()
