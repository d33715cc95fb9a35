"""
B-Tree Index - Run All

Runs the whole pipeline as subprocesses, stopping at the first failure:

    1. unit tests (pytest)
    2. demo (main.py) at the chosen degree
    3. random workload replay with invariant checks at the chosen degree
    4. degree comparison benchmark
    5. plots from the benchmark CSV

Usage:
    python run_all.py                     # Full run
    python run_all.py --quick             # Quick benchmark, shorter replay
    python run_all.py --degree 4          # Demo and replay at t=4
    python run_all.py --skip-tests --skip-benchmark
"""

import argparse
import os
import subprocess
import sys
import time

import config

QUICK_REPLAY_OPERATIONS = 1000


def run_step(description, command):
    """Run a command from the project root. Returns True on exit code 0."""
    print()
    print("=" * 60)
    print(f"  {description}")
    print("=" * 60)
    print(f"  Command: {' '.join(command)}")
    print()

    result = subprocess.run(command, cwd=config.PROJECT_ROOT)

    if result.returncode != 0:
        print(f"\n  [FAILED] {description} (exit code {result.returncode})")
        return False

    print(f"\n  [OK] {description}")
    return True


def build_steps(args, python=sys.executable):
    """Return the (description, command) pairs selected by the CLI flags."""
    steps = []

    if not args.skip_tests:
        steps.append(("Unit tests", [python, "-m", "pytest", "-q", "tests"]))

    if not args.skip_demo:
        steps.append((
            f"Demo (all B-tree operations, t={args.degree})",
            [python, "main.py", "--degree", str(args.degree)],
        ))

    if not args.skip_replay:
        operations = QUICK_REPLAY_OPERATIONS if args.quick else config.WORKLOAD_NUM_OPERATIONS
        steps.append((
            f"Workload replay ({operations:,} ops, t={args.degree})",
            [
                python, "-m", "src.common.workload",
                "--degree", str(args.degree),
                "--operations", str(operations),
                "--seed", str(args.seed),
            ],
        ))

    if not args.skip_benchmark:
        bench_cmd = [python, "-m", "evaluation.benchmark"]
        if args.quick:
            bench_cmd.append("--quick")
        if args.validate:
            bench_cmd.append("--validate")
        steps.append(("Benchmark (degree comparison)", bench_cmd))

    steps.append(("Generate plots", [python, "-m", "evaluation.visualize"]))
    return steps


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run the B-tree tests, demo, replay, benchmark, and plots.")
    parser.add_argument("--quick", action="store_true", help="Quick benchmark and a shorter replay")
    parser.add_argument("--degree", type=int, default=2, help="Minimum degree t for the demo and the replay")
    parser.add_argument("--seed", type=int, default=config.WORKLOAD_SEED, help="Seed for the workload replay")
    parser.add_argument("--validate", action="store_true", help="Check tree invariants during the benchmark")
    parser.add_argument("--skip-tests", action="store_true", help="Skip the unit tests")
    parser.add_argument("--skip-demo", action="store_true", help="Skip the demo step")
    parser.add_argument("--skip-replay", action="store_true", help="Skip the workload replay")
    parser.add_argument("--skip-benchmark", action="store_true", help="Skip the benchmark step (use existing results)")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    steps = build_steps(args)
    start = time.time()

    print()
    print("########################################################")
    print("#          B-Tree Index - Demo & Evaluation            #")
    print("########################################################")
    print(f"  Mode: {'QUICK' if args.quick else 'FULL'}, degree t={args.degree}")
    print()

    for number, (description, command) in enumerate(steps, start=1):
        if not run_step(f"Step {number}/{len(steps)}: {description}", command):
            return 1

    elapsed = time.time() - start

    print()
    print("=" * 60)
    print(f"  ALL DONE ({len(steps)} steps)")
    print("=" * 60)
    print(f"  Total time: {elapsed:.1f} seconds")
    print()
    print("  Output files:")
    print("    results/benchmark_results.csv  - Raw benchmark data")
    print("    results/scalability_plot.png   - Time per op vs size, per degree")
    print("    results/height_by_degree.png   - Tree height per degree")
    print("    results/rebalancing.png        - Splits, merges and borrows per op")
    print()

    return 0


if __name__ == "__main__":
    sys.exit(main())
