"""
B-Tree Index - Main Demo

Walks through every operation of the B-tree on a small, readable example:
build, insert (with root splits), search, overwrite, delete (with borrows,
merges and root collapse), and a seeded random workload checked against a
reference dict.

For performance numbers, use the benchmark system (evaluation/benchmark.py).

Usage:
    python main.py
    python main.py --degree 3 --verbose
"""

import argparse
import sys

import config
from src.common.logger import get_logger, set_level
from src.common.workload import generate_workload, replay_workload
from src.indexing.btree import BTree, DuplicateKeyError, InvalidConfigurationError, Node
from src.indexing.validation import validate_tree

logger = get_logger(__name__)


def print_header(title: str) -> None:
    """Print a section header."""
    print()
    print("=" * 60)
    print(title)
    print("=" * 60)


def print_tree(node: Node, depth: int = 0) -> None:
    """Print the tree sideways, one node per line, indented by depth."""
    keys = ", ".join(str(entry.key) for entry in node.entries)
    print(f"  {'    ' * depth}[{keys}]")
    for child in node.children:
        print_tree(child, depth + 1)


def print_stats(tree: BTree) -> None:
    stats = tree.stats
    print(f"  splits={stats.splits} merges={stats.merges} "
          f"borrows(left/right)={stats.borrows_left}/{stats.borrows_right} "
          f"root grows/shrinks={stats.root_grows}/{stats.root_shrinks}")


def main():
    """
    Main demo function.

    Demonstrates all B-tree operations on a degree-2 tree by default,
    where every third insert into a node forces a split.
    """
    parser = argparse.ArgumentParser(description="B-tree index demo")
    parser.add_argument("--degree", type=int, default=2, help="Minimum degree t (>= 2)")
    parser.add_argument("--verbose", action="store_true", help="Log structural changes (DEBUG)")
    args = parser.parse_args()

    if args.verbose:
        set_level("DEBUG")

    print_header("B-TREE INDEX - DEMO")

    # =========================================================================
    # 1. Construction
    # =========================================================================
    print_header("1. CONSTRUCTION")

    try:
        BTree(degree=1)
    except InvalidConfigurationError as e:
        print(f"BTree(degree=1) rejected: {e}")

    try:
        tree = BTree(degree=args.degree)
    except InvalidConfigurationError as e:
        logger.error(f"Invalid --degree: {e}")
        return 1
    print(f"Created {tree!r}")
    print(f"Entries per non-root node: {tree.min_entries}..{tree.max_entries}")

    # =========================================================================
    # 2. Insert
    # =========================================================================
    print_header("2. INSERT")

    pairs = [(10, 50), (20, 60), (30, 40), (50, 20)]
    for key, value in pairs:
        tree.insert(key, value)
        print(f"insert({key}, {value}) -> height {tree.height}")
    print_tree(tree.root)

    for key in range(60, 200, 10):
        tree.insert(key, key * 10)
    print(f"\nInserted keys 60..190, {tree!r}")
    print_tree(tree.root)
    print_stats(tree)
    validate_tree(tree)

    # =========================================================================
    # 3. Search
    # =========================================================================
    print_header("3. SEARCH")

    for key in (10, 50, 150, 999):
        entry = tree.search(key)
        status = f"found value={entry.value}" if entry else "not found"
        print(f"  search({key}): {status}")
    print(f"  min={tree.min_entry()} max={tree.max_entry()}")

    # =========================================================================
    # 4. Duplicate Keys
    # =========================================================================
    print_header("4. DUPLICATE KEYS")

    added = tree.insert(10, 555)
    print(f"insert(10, 555) on '{tree.duplicates}' tree: added={added}, "
          f"search(10)={tree.search(10).value}, size={len(tree)}")

    strict = BTree(degree=args.degree, duplicates="reject")
    strict.insert("a", 1)
    try:
        strict.insert("a", 2)
    except DuplicateKeyError as e:
        print(f"insert('a', 2) on 'reject' tree raised DuplicateKeyError({e})")

    # =========================================================================
    # 5. Delete
    # =========================================================================
    print_header("5. DELETE")

    tree.reset_stats()
    for key in (20, 100, 10, 999):
        deleted = tree.delete(key)
        print(f"delete({key}): {'removed' if deleted else 'not found (no-op)'}, height {tree.height}")
    print_tree(tree.root)
    print_stats(tree)
    validate_tree(tree)

    remaining = list(tree.keys())
    for key in remaining:
        tree.delete(key)
    print(f"\nDeleted remaining {len(remaining)} keys: {tree!r}")
    print_stats(tree)

    # =========================================================================
    # 6. Random Workload
    # =========================================================================
    print_header("6. RANDOM WORKLOAD")

    workload = generate_workload(num_operations=2000, seed=config.WORKLOAD_SEED)
    result = replay_workload(BTree(degree=args.degree), workload)
    counts = ", ".join(f"{op}={n}" for op, n in result.operations.items())
    print(f"Replayed {len(workload)} ops ({counts})")
    print(f"  mismatches={result.mismatches}, final size={result.final_size}, "
          f"height={result.final_height} (max {result.max_height})")

    # =========================================================================
    # 7. Summary
    # =========================================================================
    print_header("7. SUMMARY")

    if result.ok:
        print("All operations completed successfully!")
    else:
        print("Workload replay found mismatches, see warnings above.")
    print()
    print("For performance numbers, run:")
    print("  python -m evaluation.benchmark")

    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
