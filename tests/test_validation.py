"""
Tests for the structural invariant checker.

Valid trees of several heights must pass; hand-corrupted trees must be
rejected with an AssertionError naming the broken invariant, including
when Python runs with assertions stripped (-O).
"""

import os
import subprocess
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import config
from src.indexing.btree import BTree, Entry, Node
from src.indexing.validation import validate_tree


def build_tree(degree: int, num_keys: int) -> BTree:
    tree = BTree(degree=degree)
    for key in range(num_keys):
        tree.insert(key, key)
    return tree


def expect_violation(tree: BTree, fragment: str) -> None:
    try:
        validate_tree(tree)
        assert False, "Should have raised AssertionError"
    except AssertionError as e:
        assert fragment in str(e), f"Unexpected message: {e}"


def rightmost_leaf(node: Node) -> Node:
    while not node.is_leaf:
        node = node.children[-1]
    return node


def leftmost_leaf(node: Node) -> Node:
    while not node.is_leaf:
        node = node.children[0]
    return node


# =========================================================================
# Tests: Valid Trees
# =========================================================================

def test_valid_empty_and_single_leaf():
    validate_tree(BTree(degree=2))
    validate_tree(build_tree(degree=2, num_keys=3))


def test_valid_multi_level_trees():
    for degree in (2, 3, 4, 6, 9):
        tree = build_tree(degree=degree, num_keys=500)
        assert tree.height >= 3, f"degree={degree}: height {tree.height}"
        validate_tree(tree)


def test_valid_after_deleting_half():
    tree = build_tree(degree=2, num_keys=300)
    for key in range(0, 300, 2):
        tree.delete(key)
        validate_tree(tree)
    assert tree.height >= 3


# =========================================================================
# Tests: Corrupted Trees
# =========================================================================

def test_rejects_unordered_entries():
    tree = build_tree(degree=2, num_keys=2)
    tree.root.entries.reverse()
    expect_violation(tree, "not strictly increasing")


def test_rejects_last_child_key_above_parent_bound():
    # The rightmost leaf under root.children[0] is bounded by root's first key.
    tree = build_tree(degree=2, num_keys=200)
    assert tree.height >= 3
    separator = tree.root.entries[0].key
    leaf = rightmost_leaf(tree.root.children[0])
    leaf.entries[-1] = Entry(separator, "moved")
    expect_violation(tree, "not < separator")


def test_rejects_first_child_key_below_parent_bound():
    tree = build_tree(degree=2, num_keys=200)
    separator = tree.root.entries[0].key
    leaf = leftmost_leaf(tree.root.children[1])
    leaf.entries[0] = Entry(separator, "moved")
    expect_violation(tree, "not > separator")


def test_rejects_overflow():
    tree = build_tree(degree=2, num_keys=3)
    tree.root.entries.append(Entry(10, 10))
    expect_violation(tree, "overflow")


def test_rejects_underflow():
    tree = build_tree(degree=3, num_keys=30)
    leaf = leftmost_leaf(tree.root)
    del leaf.entries[1:]
    expect_violation(tree, "underflow")


def test_rejects_uneven_leaf_depths():
    tree = build_tree(degree=2, num_keys=10)
    leaf = leftmost_leaf(tree.root)
    leaf.children = [Node() for _ in range(len(leaf.entries) + 1)]
    expect_violation(tree, "different depths")


def test_rejects_missing_child():
    tree = build_tree(degree=2, num_keys=10)
    tree.root.children.pop()
    expect_violation(tree, "children")


def test_rejects_empty_internal_root():
    tree = build_tree(degree=2, num_keys=3)
    tree.root.children.append(Node())
    tree.root.entries.clear()
    expect_violation(tree, "Internal root has no entries")


def test_rejects_size_mismatch():
    tree = build_tree(degree=2, num_keys=50)
    tree._size += 1
    expect_violation(tree, "Size mismatch")


def test_rejects_broken_tree_under_optimized_python():
    script = (
        "import sys\n"
        "from src.indexing.btree import BTree\n"
        "from src.indexing.validation import validate_tree\n"
        "tree = BTree(degree=2)\n"
        "tree.insert(1, 'a')\n"
        "tree.insert(2, 'b')\n"
        "tree.root.entries.reverse()\n"
        "try:\n"
        "    validate_tree(tree)\n"
        "except AssertionError:\n"
        "    sys.exit(0)\n"
        "sys.exit(3)\n"
    )
    result = subprocess.run(
        [sys.executable, "-O", "-c", script],
        cwd=config.PROJECT_ROOT,
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0, f"exit {result.returncode}: {result.stderr}"


# =========================================================================
# Main
# =========================================================================

if __name__ == "__main__":
    test_functions = [
        obj for name, obj in list(globals().items())
        if name.startswith("test_") and callable(obj)
    ]
    passed = 0
    failed = 0
    for test_fn in test_functions:
        try:
            test_fn()
            passed += 1
            print(f"  PASS: {test_fn.__name__}")
        except Exception as e:
            failed += 1
            print(f"  FAIL: {test_fn.__name__}: {e}")

    print(f"\n{'='*60}")
    print(f"Results: {passed} passed, {failed} failed out of {passed + failed}")
    if failed == 0:
        print("All tests passed!")
    else:
        print("Some tests failed!")
        sys.exit(1)
