"""
Benchmark system for the B-tree index.

Measures how the minimum degree affects the tree across:
- Multiple tree sizes
- All operations (insert, search, delete)
- Multiple repetitions for statistical significance

For every (degree, size) pair it records mean/std time per operation,
the height after loading, and how much structural repair (splits,
borrows, merges) each phase needed. Outputs results to CSV for
visualization.

Usage:
    python -m evaluation.benchmark
    python -m evaluation.benchmark --quick  # Quick run with smaller parameters
"""

import argparse
import csv
import os
import random
import statistics
import sys
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import config
from src.common.logger import get_logger, set_level
from src.indexing.btree import BTree
from src.indexing.validation import validate_tree

logger = get_logger(__name__)


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class BenchmarkConfig:
    """Configuration for benchmark runs."""
    # Degrees to compare
    degrees: List[int] = field(default_factory=lambda: list(config.BENCHMARK_DEGREES))

    # Number of keys loaded per run
    sizes: List[int] = field(default_factory=lambda: list(config.BENCHMARK_SIZES))

    # Runs per (degree, size) pair
    repetitions: int = config.BENCHMARK_REPETITIONS

    # Check invariants after each phase (slow for large trees)
    validate: bool = False

    # Random seed for reproducibility
    seed: int = 42

    # Output directory
    output_dir: str = config.RESULTS_DIR


@dataclass
class QuickBenchmarkConfig(BenchmarkConfig):
    """Smaller configuration for quick testing."""
    degrees: List[int] = field(default_factory=lambda: [2, 4, 16])
    sizes: List[int] = field(default_factory=lambda: [500, 2000])
    repetitions: int = 2
    validate: bool = True


# =============================================================================
# Statistics Helper
# =============================================================================

@dataclass
class OperationStats:
    """Timing and structural statistics for one operation type."""
    operation: str
    degree: int
    size: int
    count: int
    mean_us: float
    std_us: float
    height: int
    splits: float
    merges: float
    borrows: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for CSV output."""
        return {
            "operation": self.operation,
            "degree": self.degree,
            "size": self.size,
            "count": self.count,
            "mean_us": round(self.mean_us, 4),
            "std_us": round(self.std_us, 4),
            "height": self.height,
            "splits": round(self.splits, 2),
            "merges": round(self.merges, 2),
            "borrows": round(self.borrows, 2),
        }


@dataclass
class PhaseSample:
    """One timed phase of one repetition."""
    seconds: float
    count: int
    height: int
    splits: int
    merges: int
    borrows: int


def compute_stats(operation: str, degree: int, size: int, samples: List[PhaseSample]) -> OperationStats:
    """Aggregate repetitions of one phase into per-operation statistics."""
    per_op_us = [s.seconds * 1e6 / s.count for s in samples if s.count]
    if not per_op_us:
        return OperationStats(operation, degree, size, 0, 0.0, 0.0, 0, 0.0, 0.0, 0.0)

    return OperationStats(
        operation=operation,
        degree=degree,
        size=size,
        count=sum(s.count for s in samples),
        mean_us=statistics.mean(per_op_us),
        std_us=statistics.stdev(per_op_us) if len(per_op_us) > 1 else 0.0,
        height=max(s.height for s in samples),
        splits=statistics.mean(s.splits for s in samples),
        merges=statistics.mean(s.merges for s in samples),
        borrows=statistics.mean(s.borrows for s in samples),
    )


# =============================================================================
# Benchmark Runner
# =============================================================================

class BenchmarkRunner:
    """Runs benchmark experiments across tree degrees and sizes."""

    def __init__(self, cfg: BenchmarkConfig):
        """Initialize the benchmark runner."""
        self.cfg = cfg
        self.results: List[OperationStats] = []
        self.rng = random.Random(cfg.seed)

    def run_all(self) -> List[OperationStats]:
        """Run all benchmarks and return results."""
        for size in self.cfg.sizes:
            print()
            print("=" * 60)
            print(f"BENCHMARKING WITH {size:,} KEYS")
            print("=" * 60)

            for degree in self.cfg.degrees:
                self._benchmark_degree(degree, size)

        return self.results

    def _benchmark_degree(self, degree: int, size: int) -> None:
        """Run all phases for a single degree, repeated cfg.repetitions times."""
        print()
        print(f"--- degree={degree} ---")

        phases: Dict[str, List[PhaseSample]] = {"insert": [], "search": [], "delete": []}

        for _ in range(self.cfg.repetitions):
            keys = [f"key_{i:07d}" for i in range(size)]
            self.rng.shuffle(keys)
            tree = BTree(degree=degree)

            phases["insert"].append(self._run_phase(tree, keys, lambda k: tree.insert(k, k)))

            self.rng.shuffle(keys)
            phases["search"].append(self._run_phase(tree, keys, tree.search))

            self.rng.shuffle(keys)
            phases["delete"].append(self._run_phase(tree, keys, tree.delete))

            if len(tree) != 0:
                logger.error(f"degree={degree} size={size}: {len(tree)} keys left after deleting all")

        for operation, samples in phases.items():
            stats = compute_stats(operation, degree, size, samples)
            self.results.append(stats)
            print(f"  {operation:<7} mean={stats.mean_us:.2f} us/op  height={stats.height}  "
                  f"splits={stats.splits:.0f} merges={stats.merges:.0f} borrows={stats.borrows:.0f}")

    def _run_phase(self, tree: BTree, keys: List[str], operation) -> PhaseSample:
        """Time one operation over every key and capture structural counters."""
        tree.reset_stats()
        height = tree.height

        start = time.perf_counter()
        for key in keys:
            operation(key)
        elapsed = time.perf_counter() - start

        if self.cfg.validate:
            validate_tree(tree)

        stats = tree.stats
        return PhaseSample(
            seconds=elapsed,
            count=len(keys),
            height=max(height, tree.height),
            splits=stats.splits,
            merges=stats.merges,
            borrows=stats.borrows_left + stats.borrows_right,
        )

    def save_results(self, filename: str = "benchmark_results.csv") -> str:
        """Save results to CSV file."""
        os.makedirs(self.cfg.output_dir, exist_ok=True)
        filepath = os.path.join(self.cfg.output_dir, filename)

        with open(filepath, "w", newline="") as f:
            if self.results:
                writer = csv.DictWriter(f, fieldnames=self.results[0].to_dict().keys())
                writer.writeheader()
                for result in self.results:
                    writer.writerow(result.to_dict())

        print(f"\nResults saved to: {filepath}")
        return filepath


# =============================================================================
# Result Printer
# =============================================================================

def print_summary(results: List[OperationStats]) -> None:
    """Print mean microseconds per operation, one table per operation."""
    print()
    print("=" * 80)
    print("BENCHMARK SUMMARY (mean us/op)")
    print("=" * 80)

    degrees = sorted(set(r.degree for r in results))
    sizes = sorted(set(r.size for r in results))

    for op in ("insert", "search", "delete"):
        print(f"\n{op.upper()}:")
        print("-" * 70)
        print(f"{'Keys':<12}" + "".join(f"{'t=' + str(d):<12}" for d in degrees))
        print("-" * 70)

        for size in sizes:
            row = f"{size:<12,}"
            for degree in degrees:
                match = next((r for r in results
                              if r.operation == op and r.degree == degree and r.size == size), None)
                row += f"{match.mean_us:<12.2f}" if match else f"{'N/A':<12}"
            print(row)


# =============================================================================
# Main
# =============================================================================

def main():
    """Main entry point for benchmark."""
    parser = argparse.ArgumentParser(description="B-tree Benchmark System")
    parser.add_argument("--quick", action="store_true", help="Run quick benchmark with smaller parameters")
    parser.add_argument("--output", type=str, default="benchmark_results.csv", help="Output CSV filename")
    parser.add_argument("--validate", action="store_true", help="Check tree invariants after every phase")
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG logging")
    args = parser.parse_args()

    if args.verbose:
        set_level("DEBUG")

    # Select configuration
    if args.quick:
        print("Running QUICK benchmark (smaller parameters)...")
        cfg = QuickBenchmarkConfig()
    else:
        print("Running FULL benchmark...")
        cfg = BenchmarkConfig()
    if args.validate:
        cfg.validate = True

    print("Configuration:")
    print(f"  Degrees: {cfg.degrees}")
    print(f"  Sizes: {cfg.sizes}")
    print(f"  Repetitions: {cfg.repetitions}")
    print(f"  Validate invariants: {cfg.validate}")
    print(f"  Random seed: {cfg.seed}")

    start_time = time.time()

    runner = BenchmarkRunner(cfg)
    results = runner.run_all()

    elapsed = time.time() - start_time
    print(f"\nBenchmark completed in {elapsed:.1f} seconds")

    runner.save_results(args.output)
    print_summary(results)

    return 0


if __name__ == "__main__":
    sys.exit(main())
