"""
B-Tree implementation (CLRS formulation) for in-memory ordered indexing.

Keys only need to support ``<``. Values are opaque handles that the tree
never inspects. Every non-root node holds between ``degree - 1`` and
``2 * degree - 1`` entries, all leaves sit at the same depth, and both
insert and delete repair the tree top-down while descending, so no
operation ever has to walk back up.

Exposes a dict-like interface on top of search/insert/delete, the same
way the B+ tree it replaces did.
"""

import logging
from bisect import bisect_left
from dataclasses import dataclass, fields
from operator import attrgetter
from typing import Any, Dict, Generator, List, Optional, Tuple

import config
from src.common.logger import get_logger

logger = get_logger(__name__)

DUPLICATE_POLICIES = ("overwrite", "reject")

_entry_key = attrgetter("key")


class InvalidConfigurationError(ValueError):
    """Raised when a tree is constructed with an unusable degree or policy."""


class DuplicateKeyError(KeyError):
    """Raised by insert() on an existing key when duplicates are rejected."""


@dataclass(frozen=True)
class Entry:
    """A (key, value) pair stored in a node. Replaced, never mutated."""
    key: Any
    value: Any


class Node:
    """Ordered entries plus, for internal nodes, len(entries) + 1 children."""

    __slots__ = ("entries", "children")

    def __init__(self) -> None:
        self.entries: List[Entry] = []
        self.children: List["Node"] = []

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def __repr__(self) -> str:
        keys = [e.key for e in self.entries]
        return f"Node(keys={keys!r}, children={len(self.children)})"


@dataclass
class TreeStats:
    """Counters for structural changes made by insert and delete."""
    splits: int = 0
    merges: int = 0
    borrows_left: int = 0
    borrows_right: int = 0
    root_grows: int = 0
    root_shrinks: int = 0

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary for CSV output."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


class BTree:
    """
    B-Tree with dict-like interface.

    Args:
        degree: Minimum degree t. Non-root nodes hold t-1 to 2t-1 entries.
                Must be an int >= 2.
        duplicates: What insert() does with a key that is already present:
                    "overwrite" replaces the stored value, "reject" raises
                    DuplicateKeyError.
    """

    def __init__(
        self,
        degree: int = config.BTREE_DEGREE,
        duplicates: str = config.BTREE_DUPLICATES,
    ) -> None:
        if isinstance(degree, bool) or not isinstance(degree, int) or degree < 2:
            raise InvalidConfigurationError(f"B-tree degree must be an int >= 2, got {degree!r}")
        if duplicates not in DUPLICATE_POLICIES:
            raise InvalidConfigurationError(
                f"Unknown duplicate policy {duplicates!r}, expected one of {DUPLICATE_POLICIES}"
            )
        self._degree = degree
        self._duplicates = duplicates
        self._root = Node()
        self._size = 0
        self.stats = TreeStats()
        logger.debug("Created B-tree (degree=%d, duplicates=%s)", degree, duplicates)

    @property
    def degree(self) -> int:
        return self._degree

    @property
    def duplicates(self) -> str:
        return self._duplicates

    @property
    def root(self) -> Node:
        return self._root

    @property
    def height(self) -> int:
        """Number of levels; a tree whose root is a leaf has height 1."""
        height = 1
        node = self._root
        while not node.is_leaf:
            node = node.children[0]
            height += 1
        return height

    @property
    def max_entries(self) -> int:
        return 2 * self._degree - 1

    @property
    def min_entries(self) -> int:
        return self._degree - 1

    # =========================================================================
    # Core Operations
    # =========================================================================

    def search(self, key: Any) -> Optional[Entry]:
        """Return the entry stored under key, or None if not found."""
        found = self._locate(key)
        if found is None:
            return None
        node, idx = found
        return node.entries[idx]

    def insert(self, key: Any, value: Any) -> bool:
        """
        Insert a key-value pair.

        Returns True if a new entry was added and False if an existing
        entry was overwritten. Raises DuplicateKeyError instead of
        overwriting when the tree was built with duplicates="reject".
        """
        found = self._locate(key)
        if found is not None:
            if self._duplicates == "reject":
                raise DuplicateKeyError(key)
            node, idx = found
            node.entries[idx] = Entry(key, value)
            return False

        # A full root is the only place the tree grows in height.
        if len(self._root.entries) == self.max_entries:
            old_root = self._root
            self._root = Node()
            self._root.children.append(old_root)
            self._split_child(self._root, 0)
            self.stats.root_grows += 1
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("Root split, height is now %d", self.height)

        self._insert_non_full(self._root, Entry(key, value))
        self._size += 1
        return True

    def delete(self, key: Any) -> bool:
        """Delete a key. Returns True if deleted, False if not found."""
        deleted = self._delete(self._root, key)
        if deleted:
            self._size -= 1

        # The root's last entry was pulled down by a merge.
        if not self._root.entries and not self._root.is_leaf:
            self._root = self._root.children[0]
            self.stats.root_shrinks += 1
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("Root collapsed, height is now %d", self.height)

        return deleted

    # =========================================================================
    # Dict-like Interface
    # =========================================================================

    def __setitem__(self, key: Any, value: Any) -> None:
        self.insert(key, value)

    def __getitem__(self, key: Any) -> Any:
        entry = self.search(key)
        if entry is None:
            raise KeyError(key)
        return entry.value

    def __contains__(self, key: Any) -> bool:
        return self._locate(key) is not None

    def __delitem__(self, key: Any) -> None:
        if not self.delete(key):
            raise KeyError(key)

    def __len__(self) -> int:
        return self._size

    def __bool__(self) -> bool:
        return self._size > 0

    def __iter__(self) -> Generator[Any, None, None]:
        return self.keys()

    def __repr__(self) -> str:
        return f"BTree(degree={self._degree}, size={self._size}, height={self.height})"

    def get(self, key: Any, default: Any = None) -> Any:
        """Get value for key, returning default if not found."""
        entry = self.search(key)
        return default if entry is None else entry.value

    def pop(self, key: Any, *args: Any) -> Any:
        """Remove and return value for key. Raises KeyError if not found and no default."""
        if len(args) > 1:
            raise TypeError(f"pop expected at most 2 arguments, got {1 + len(args)}")

        entry = self.search(key)
        if entry is not None:
            self.delete(key)
            return entry.value

        if args:
            return args[0]
        raise KeyError(key)

    def keys(self) -> Generator[Any, None, None]:
        """Yield all keys in sorted order."""
        for entry in self._walk(self._root):
            yield entry.key

    def values(self) -> Generator[Any, None, None]:
        """Yield all values in key-sorted order."""
        for entry in self._walk(self._root):
            yield entry.value

    def items(self) -> Generator[Tuple[Any, Any], None, None]:
        """Yield all (key, value) pairs in sorted order."""
        for entry in self._walk(self._root):
            yield entry.key, entry.value

    def min_entry(self) -> Optional[Entry]:
        """Entry with the smallest key, or None for an empty tree."""
        if not self._size:
            return None
        node = self._root
        while not node.is_leaf:
            node = node.children[0]
        return node.entries[0]

    def max_entry(self) -> Optional[Entry]:
        """Entry with the largest key, or None for an empty tree."""
        if not self._size:
            return None
        node = self._root
        while not node.is_leaf:
            node = node.children[-1]
        return node.entries[-1]

    def clear(self) -> None:
        """Remove all entries."""
        self._root = Node()
        self._size = 0

    def reset_stats(self) -> None:
        self.stats = TreeStats()

    # =========================================================================
    # Private Helpers — Navigation
    # =========================================================================

    @staticmethod
    def _position(node: Node, key: Any) -> int:
        """Index of the first entry whose key is not less than key."""
        return bisect_left(node.entries, key, key=_entry_key)

    @staticmethod
    def _matches(node: Node, idx: int, key: Any) -> bool:
        # entries[idx].key >= key already holds, so "not greater" means equal.
        return idx < len(node.entries) and not key < node.entries[idx].key

    def _locate(self, key: Any) -> Optional[Tuple[Node, int]]:
        """Find the node and slot holding key, or None."""
        node = self._root
        while True:
            idx = self._position(node, key)
            if self._matches(node, idx, key):
                return node, idx
            if node.is_leaf:
                return None
            node = node.children[idx]

    def _walk(self, node: Node) -> Generator[Entry, None, None]:
        if node.is_leaf:
            yield from node.entries
            return
        for idx, entry in enumerate(node.entries):
            yield from self._walk(node.children[idx])
            yield entry
        yield from self._walk(node.children[-1])

    # =========================================================================
    # Private Helpers — Insertion / Splitting
    # =========================================================================

    def _split_child(self, parent: Node, index: int) -> None:
        """Split the full child at parent.children[index] around its median."""
        t = self._degree
        child = parent.children[index]
        sibling = Node()

        parent.entries.insert(index, child.entries[t - 1])
        parent.children.insert(index + 1, sibling)

        sibling.entries = child.entries[t:]
        child.entries = child.entries[: t - 1]

        if not child.is_leaf:
            sibling.children = child.children[t:]
            child.children = child.children[:t]

        self.stats.splits += 1

    def _insert_non_full(self, node: Node, entry: Entry) -> None:
        while True:
            idx = self._position(node, entry.key)

            if node.is_leaf:
                node.entries.insert(idx, entry)
                return

            if len(node.children[idx].entries) == self.max_entries:
                self._split_child(node, idx)
                if node.entries[idx].key < entry.key:
                    idx += 1

            node = node.children[idx]

    # =========================================================================
    # Private Helpers — Deletion / Rebalancing
    # =========================================================================

    def _delete(self, node: Node, key: Any) -> bool:
        """Delete key from the subtree rooted at node, which has spare entries."""
        idx = self._position(node, key)

        if self._matches(node, idx, key):
            self._delete_from_node(node, idx)
            return True

        if node.is_leaf:
            return False

        child = self._fill_child(node, idx)
        return self._delete(child, key)

    def _delete_from_node(self, node: Node, idx: int) -> None:
        """Remove node.entries[idx], replacing it from a subtree if internal."""
        if node.is_leaf:
            node.entries.pop(idx)
            return

        t = self._degree
        pred_child = node.children[idx]
        succ_child = node.children[idx + 1]

        if len(pred_child.entries) >= t:
            node.entries[idx] = self._delete_predecessor(pred_child)
        elif len(succ_child.entries) >= t:
            node.entries[idx] = self._delete_successor(succ_child)
        else:
            key = node.entries[idx].key
            self._merge_children(node, idx)
            self._delete(pred_child, key)

    def _delete_predecessor(self, node: Node) -> Entry:
        """Remove and return the largest entry under node (which has >= t entries)."""
        while not node.is_leaf:
            node = self._fill_child(node, len(node.children) - 1)
        return node.entries.pop()

    def _delete_successor(self, node: Node) -> Entry:
        """Remove and return the smallest entry under node (which has >= t entries)."""
        while not node.is_leaf:
            node = self._fill_child(node, 0)
        return node.entries.pop(0)

    def _fill_child(self, node: Node, idx: int) -> Node:
        """
        Make sure node.children[idx] has at least t entries before descending.

        Borrows from the left sibling, then the right sibling, and merges
        (left preferred) when neither has an entry to spare. Returns the
        node that now holds the child's keys.
        """
        child = node.children[idx]
        if len(child.entries) > self.min_entries:
            return child

        left = node.children[idx - 1] if idx > 0 else None
        right = node.children[idx + 1] if idx + 1 < len(node.children) else None

        if left is not None and len(left.entries) > self.min_entries:
            self._borrow_from_left(node, idx)
            return child

        if right is not None and len(right.entries) > self.min_entries:
            self._borrow_from_right(node, idx)
            return child

        if left is not None:
            self._merge_children(node, idx - 1)
            return left

        self._merge_children(node, idx)
        return child

    def _borrow_from_left(self, node: Node, idx: int) -> None:
        """Rotate the left sibling's last entry through the parent into child."""
        child = node.children[idx]
        left = node.children[idx - 1]

        child.entries.insert(0, node.entries[idx - 1])
        node.entries[idx - 1] = left.entries.pop()
        if not left.is_leaf:
            child.children.insert(0, left.children.pop())

        self.stats.borrows_left += 1

    def _borrow_from_right(self, node: Node, idx: int) -> None:
        """Rotate the right sibling's first entry through the parent into child."""
        child = node.children[idx]
        right = node.children[idx + 1]

        child.entries.append(node.entries[idx])
        node.entries[idx] = right.entries.pop(0)
        if not right.is_leaf:
            child.children.append(right.children.pop(0))

        self.stats.borrows_right += 1

    def _merge_children(self, node: Node, idx: int) -> None:
        """Fold the separator node.entries[idx] and children[idx + 1] into children[idx]."""
        left = node.children[idx]
        right = node.children.pop(idx + 1)

        left.entries.append(node.entries.pop(idx))
        left.entries.extend(right.entries)
        left.children.extend(right.children)

        self.stats.merges += 1
