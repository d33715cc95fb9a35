"""
Structural invariant checks for the B-tree.

A violated invariant is a bug in the tree, not a runtime condition, so
every failed check raises AssertionError with a descriptive message.
The checks are explicit raises rather than assert statements and keep
working under ``python -O``.

Usage:
    from src.indexing.validation import validate_tree

    validate_tree(tree)  # raises AssertionError on the first violation
"""

from typing import Any, List, Optional

from src.indexing.btree import BTree, Node


def _require(condition: Any, message: str) -> None:
    if not condition:
        raise AssertionError(message)


def validate_tree(tree: BTree) -> None:
    """
    Verify all B-tree structural invariants hold.
    Raises AssertionError with a descriptive message if any invariant is violated.
    """
    root = tree.root

    # 1. A non-leaf root must hold at least one entry between operations.
    _require(root.is_leaf or root.entries, "Internal root has no entries")

    # 2. All leaves must be at the same depth.
    leaf_depths: List[int] = []
    _collect_leaf_depths(root, 1, leaf_depths)
    _require(
        len(set(leaf_depths)) == 1,
        f"Leaves at different depths: {sorted(set(leaf_depths))}",
    )
    _require(
        leaf_depths[0] == tree.height,
        f"Height mismatch: tree.height={tree.height}, leaf depth={leaf_depths[0]}",
    )

    # 3. Occupancy, child counts, ordering and separator bounds, per node.
    count = _check_subtree(root, tree.degree, None, None, is_root=True)

    # 4. Size matches actual number of entries.
    _require(
        count == len(tree),
        f"Size mismatch: len(tree)={len(tree)}, actual entry count={count}",
    )


def _collect_leaf_depths(node: Node, depth: int, depths: List[int]) -> None:
    if node.is_leaf:
        depths.append(depth)
        return
    for child in node.children:
        _collect_leaf_depths(child, depth + 1, depths)


def _check_subtree(
    node: Node,
    degree: int,
    lower: Optional[Any],
    upper: Optional[Any],
    is_root: bool,
) -> int:
    """Check node and its descendants; returns the number of entries found."""
    keys = [entry.key for entry in node.entries]
    num_keys = len(keys)

    _require(
        num_keys <= 2 * degree - 1,
        f"Node overflow: {num_keys} entries, max is {2 * degree - 1}",
    )
    if not is_root:
        _require(
            num_keys >= degree - 1,
            f"Node underflow: {num_keys} entries, min is {degree - 1}",
        )

    for i in range(num_keys - 1):
        _require(keys[i] < keys[i + 1], f"Keys not strictly increasing: {keys}")

    for k in keys:
        _require(lower is None or lower < k, f"Key {k!r} not > separator {lower!r}")
        _require(upper is None or k < upper, f"Key {k!r} not < separator {upper!r}")

    if node.is_leaf:
        return num_keys

    _require(
        len(node.children) == num_keys + 1,
        f"Internal node has {num_keys} entries but {len(node.children)} children",
    )

    # Child i lies between keys[i-1] and keys[i]; the last child is bounded by upper.
    total = num_keys
    for i, child in enumerate(node.children):
        child_lower = keys[i - 1] if i > 0 else lower
        child_upper = keys[i] if i < num_keys else upper
        total += _check_subtree(child, degree, child_lower, child_upper, is_root=False)

    return total
