#!/usr/bin/env python3
"""
scopewatch Performance Benchmarks

Measures the cost of the write-handle release path: acquiring and releasing
a handle without a change, with a change, and with a growing number of
subscriptions and callback listeners to fan out to. Results are rendered
with rich.

Usage:
    python scripts/benchmark.py                 # Run all benchmarks
    python scripts/benchmark.py --config        # Show current benchmark configuration
    python scripts/benchmark.py --iterations 5000

Configuration:
    Adjust the constants at the top of the file to change benchmark parameters.
"""

import argparse
import sys
import time
from dataclasses import dataclass
from typing import Callable, List

# Add the project root to the Python path
sys.path.insert(0, ".")

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from scopewatch import Tracker

# Configuration constants - adjust these to change benchmark behavior
ITERATIONS = 20_000  # Handle acquire/release cycles per measurement
FANOUT_SIZES = (1, 10, 100)  # Subscriber counts for the fan-out benchmark
PAYLOAD_SIZE = 100  # Elements in the list payload benchmark


@dataclass
class BenchmarkResult:
    """Timing for one benchmark."""

    name: str
    workload: str
    iterations: int
    seconds: float

    @property
    def operations_per_second(self) -> float:
        return self.iterations / self.seconds if self.seconds > 0 else float("inf")

    @property
    def latency_us(self) -> float:
        return self.seconds / self.iterations * 1e6 if self.iterations else 0.0


def _time(iterations: int, operation: Callable[[int], None]) -> float:
    start = time.perf_counter()
    for i in range(iterations):
        operation(i)
    return time.perf_counter() - start


class ScopewatchBenchmark:
    """Rich-formatted display for scopewatch benchmarking."""

    def __init__(self, iterations: int = ITERATIONS):
        self.console = Console()
        self.iterations = iterations
        self.results: List[BenchmarkResult] = []

    def run_benchmarks(self):
        """Run all benchmarks and display results with rich formatting."""
        start_time = time.time()
        self._display_header()

        self._run_unchanged_release()
        self._run_changed_release()
        self._run_payload_release()
        for size in FANOUT_SIZES:
            self._run_subscription_fanout(size)
            self._run_callback_fanout(size)

        self._display_final_results(start_time)

    def _record(self, name: str, workload: str, seconds: float):
        result = BenchmarkResult(name, workload, self.iterations, seconds)
        self.results.append(result)
        self.console.print(
            f"[green]✓[/green] {name} ({workload}): "
            f"{result.operations_per_second:,.0f} ops/sec"
        )

    def _run_unchanged_release(self):
        tracker = Tracker(0)

        def operation(i):
            with tracker.begin_mutation():
                pass

        self._record("Unchanged release", "int", _time(self.iterations, operation))

    def _run_changed_release(self):
        tracker = Tracker(0)
        changes = tracker.listen()

        def operation(i):
            with tracker.begin_mutation() as handle:
                handle.value = i + 1

        self._record("Changed release", "int", _time(self.iterations, operation))
        changes.drain()

    def _run_payload_release(self):
        tracker = Tracker(list(range(PAYLOAD_SIZE)))
        changes = tracker.listen()

        def operation(i):
            with tracker.begin_mutation() as handle:
                handle[i % PAYLOAD_SIZE] = i

        self._record(
            "Changed release",
            f"list[{PAYLOAD_SIZE}], deepcopy",
            _time(self.iterations, operation),
        )
        changes.drain()

    def _run_subscription_fanout(self, size: int):
        tracker = Tracker(0)
        subscriptions = [tracker.listen() for _ in range(size)]

        def operation(i):
            with tracker.begin_mutation() as handle:
                handle.value = i + 1

        seconds = _time(self.iterations, operation)
        for subscription in subscriptions:
            subscription.drain()
        self._record("Subscription fan-out", f"{size} subscribers", seconds)

    def _run_callback_fanout(self, size: int):
        tracker = Tracker(0)
        for _ in range(size):
            tracker.subscribe(lambda old, new: None)

        def operation(i):
            with tracker.begin_mutation() as handle:
                handle.value = i + 1

        self._record(
            "Callback fan-out", f"{size} callbacks", _time(self.iterations, operation)
        )

    def _display_header(self):
        """Display the benchmark header."""
        header = Panel(
            Align.center("scopewatch Release Path Benchmarks"),
            title="scopewatch",
            border_style="blue",
        )
        self.console.print(header)
        self.console.print()

    def _display_final_results(self, start_time: float):
        """Display final comprehensive results."""
        elapsed = time.time() - start_time

        table = Table(title="Final Benchmark Results")
        table.add_column("Benchmark", style="cyan", no_wrap=True)
        table.add_column("Workload", style="magenta")
        table.add_column("Performance", style="green", justify="right")
        table.add_column("Latency", style="yellow", justify="right")

        for result in self.results:
            table.add_row(
                result.name,
                result.workload,
                f"{result.operations_per_second / 1000:.1f}K ops/sec",
                f"{result.latency_us:.2f}μs",
            )

        self.console.print()
        self.console.print(table)
        self.console.print(f"\n[dim]Completed in {elapsed:.2f}s[/dim]")


def show_config(console: Console):
    table = Table(title="Benchmark Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("ITERATIONS", f"{ITERATIONS:,}")
    table.add_row("FANOUT_SIZES", ", ".join(str(size) for size in FANOUT_SIZES))
    table.add_row("PAYLOAD_SIZE", str(PAYLOAD_SIZE))
    console.print(table)


def main():
    parser = argparse.ArgumentParser(description="scopewatch performance benchmarks")
    parser.add_argument(
        "--config", action="store_true", help="Show benchmark configuration and exit"
    )
    parser.add_argument(
        "--iterations",
        type=int,
        default=ITERATIONS,
        help="Acquire/release cycles per measurement",
    )
    args = parser.parse_args()

    if args.config:
        show_config(Console())
        return

    ScopewatchBenchmark(iterations=args.iterations).run_benchmarks()


if __name__ == "__main__":
    main()
