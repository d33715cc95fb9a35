"""
Operation traces for exercising the B-tree.

A workload is a pandas DataFrame with one row per operation:

    step | op     | key  | value
    -----+--------+------+------
       0 | insert | "17" |  0
       1 | search | "42" |  -1
       2 | delete | "17" |  -1

Keys are drawn from a small integer universe and rendered as strings, so
a long trace keeps hitting keys that are already present (overwrites,
deletes of live keys) as well as absent ones. Traces can be saved to and
loaded from CSV so a failing sequence can be replayed exactly.

Usage:
    python -m src.common.workload --degree 2 --operations 5000
    python -m src.common.workload --output trace.csv
    python -m src.common.workload --input results/trace.csv
"""

import argparse
import os
import random
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import pandas as pd

import config
from src.common.logger import get_logger, set_level
from src.indexing.btree import BTree
from src.indexing.validation import validate_tree

logger = get_logger(__name__)

OPERATIONS = ("insert", "search", "delete")
COLUMNS = ["step", "op", "key", "value"]

# Placeholder value for operations that carry none
NO_VALUE = -1


@dataclass
class ReplayResult:
    """
    Outcome of replaying a workload against a tree.

    Attributes:
        operations: Number of operations applied, by type.
        mismatches: Steps where the tree disagreed with the reference model.
        final_size: len(tree) after the last step.
        final_height: tree.height after the last step.
        max_height: Largest height seen during the replay.
    """
    operations: Dict[str, int] = field(default_factory=lambda: {op: 0 for op in OPERATIONS})
    mismatches: int = 0
    final_size: int = 0
    final_height: int = 1
    max_height: int = 1

    @property
    def ok(self) -> bool:
        return self.mismatches == 0

    def to_dict(self) -> Dict[str, Any]:
        """Flatten to a dictionary for printing or CSV output."""
        return {
            **{f"num_{op}": count for op, count in self.operations.items()},
            "mismatches": self.mismatches,
            "final_size": self.final_size,
            "final_height": self.final_height,
            "max_height": self.max_height,
        }


def generate_workload(
    num_operations: int = config.WORKLOAD_NUM_OPERATIONS,
    key_universe: int = config.WORKLOAD_KEY_UNIVERSE,
    mix: Optional[Dict[str, float]] = None,
    seed: Optional[int] = config.WORKLOAD_SEED,
) -> pd.DataFrame:
    """
    Generate a random operation trace.

    Args:
        num_operations: Number of rows to generate.
        key_universe: Keys are str(i) for i in [0, key_universe).
        mix: Relative weight per operation. Defaults to config.WORKLOAD_OPERATION_MIX.
        seed: Random seed for reproducibility. If None, results vary.

    Returns:
        DataFrame with columns step, op, key, value.

    Raises:
        ValueError: If the mix names an unknown operation or has no positive weight.
    """
    mix = mix or config.WORKLOAD_OPERATION_MIX
    unknown = set(mix) - set(OPERATIONS)
    if unknown:
        raise ValueError(f"Unknown operations in mix: {sorted(unknown)}")
    if key_universe < 1:
        raise ValueError(f"key_universe must be >= 1, got {key_universe}")

    ops = [op for op in OPERATIONS if mix.get(op, 0) > 0]
    if not ops:
        raise ValueError("Operation mix has no positive weight")
    weights = [mix[op] for op in ops]

    rng = random.Random(seed)
    chosen_ops = rng.choices(ops, weights=weights, k=num_operations)

    rows = []
    for step, op in enumerate(chosen_ops):
        key = str(rng.randrange(key_universe))
        value = step if op == "insert" else NO_VALUE
        rows.append((step, op, key, value))

    df = pd.DataFrame(rows, columns=COLUMNS)
    logger.debug(f"Generated workload: {num_operations} ops over {key_universe} keys (seed={seed})")
    return df


def save_workload(df: pd.DataFrame, path: str) -> str:
    """Write a workload to CSV and return the path."""
    df.to_csv(path, index=False)
    logger.info(f"Saved workload ({len(df):,} ops) to {path}")
    return path


def load_workload(path: str) -> pd.DataFrame:
    """
    Load a workload from CSV.

    Keys are read back as strings so "007" and "7" stay distinct.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If columns or operation names are invalid.
    """
    df = pd.read_csv(path, dtype={"key": str})

    missing = [col for col in COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"Workload {path} is missing columns: {missing}")

    bad_ops = set(df["op"].unique()) - set(OPERATIONS)
    if bad_ops:
        raise ValueError(f"Workload {path} has unknown operations: {sorted(bad_ops)}")

    logger.info(f"Loaded workload: {len(df):,} ops from {path}")
    return df[COLUMNS].reset_index(drop=True)


def replay_workload(tree: BTree, df: pd.DataFrame, validate: bool = True) -> ReplayResult:
    """
    Apply a workload to a tree while mirroring it in a plain dict.

    After every step the tree's answer for the step's key is compared
    with the dict's. With validate=True the structural invariants are
    also checked after every step, and the first violation propagates
    as an AssertionError.

    Args:
        tree: Tree to mutate. Should use the "overwrite" duplicate policy.
        df: Workload as returned by generate_workload() or load_workload().
        validate: Run validate_tree() after each step.

    Returns:
        ReplayResult with per-op counts, mismatches and final shape.
    """
    model: Dict[str, Any] = {key: value for key, value in tree.items()}
    result = ReplayResult()

    for row in df.itertuples(index=False):
        op, key = row.op, row.key

        if op == "insert":
            tree.insert(key, row.value)
            model[key] = row.value
        elif op == "delete":
            deleted = tree.delete(key)
            if deleted != (key in model):
                result.mismatches += 1
                logger.warning(f"Step {row.step}: delete({key!r}) returned {deleted}")
            model.pop(key, None)

        result.operations[op] += 1

        entry = tree.search(key)
        found = None if entry is None else entry.value
        if found != model.get(key):
            result.mismatches += 1
            logger.warning(
                f"Step {row.step}: after {op}({key!r}) tree has {found!r}, expected {model.get(key)!r}"
            )

        if validate:
            validate_tree(tree)

        result.max_height = max(result.max_height, tree.height)

    if len(tree) != len(model):
        result.mismatches += 1
        logger.warning(f"Final size mismatch: tree has {len(tree)}, expected {len(model)}")

    result.final_size = len(tree)
    result.final_height = tree.height
    return result


# =============================================================================
# Main
# =============================================================================

def main(argv=None):
    """Generate (or load) a workload and replay it against a fresh tree."""
    parser = argparse.ArgumentParser(description="Replay a random operation trace against a B-tree")
    parser.add_argument("--degree", type=int, default=config.BTREE_DEGREE, help="Minimum degree t (>= 2)")
    parser.add_argument("--operations", type=int, default=config.WORKLOAD_NUM_OPERATIONS, help="Number of operations to generate")
    parser.add_argument("--keys", type=int, default=config.WORKLOAD_KEY_UNIVERSE, help="Size of the key universe")
    parser.add_argument("--seed", type=int, default=config.WORKLOAD_SEED, help="Random seed")
    parser.add_argument("--input", type=str, default=None, help="Replay this CSV trace instead of generating one")
    parser.add_argument("--output", type=str, default=None, help="Save the generated trace under results/")
    parser.add_argument("--no-validate", action="store_true", help="Skip invariant checks after each step")
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG logging")
    args = parser.parse_args(argv)

    if args.verbose:
        set_level("DEBUG")

    if args.input:
        df = load_workload(args.input)
    else:
        df = generate_workload(num_operations=args.operations, key_universe=args.keys, seed=args.seed)
        if args.output:
            os.makedirs(config.RESULTS_DIR, exist_ok=True)
            save_workload(df, os.path.join(config.RESULTS_DIR, args.output))

    tree = BTree(degree=args.degree)
    result = replay_workload(tree, df, validate=not args.no_validate)

    print(f"Replayed {len(df):,} operations against {tree!r}")
    for name, value in result.to_dict().items():
        print(f"  {name:<14} {value}")

    if not result.ok:
        print("Replay FAILED: tree disagreed with the reference dict")
        return 1
    print("Replay OK")
    return 0


if __name__ == "__main__":
    sys.exit(main())
