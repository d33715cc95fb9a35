"""
Tests for workload generation, CSV persistence and replay.

Replay doubles as the long-running fuzz check: every step is compared
against a plain dict and the tree invariants are validated throughout.
"""

import os
import sys
import tempfile

import pandas as pd

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.common.workload import (
    COLUMNS,
    NO_VALUE,
    OPERATIONS,
    generate_workload,
    load_workload,
    main,
    replay_workload,
    save_workload,
)
from src.indexing.btree import BTree


class ForgetfulTree(BTree):
    """A tree whose delete() never removes anything."""

    def delete(self, key):
        return False


# =========================================================================
# Tests: Generation
# =========================================================================

def test_generate_shape_and_columns():
    df = generate_workload(num_operations=500, key_universe=100, seed=1)
    assert list(df.columns) == COLUMNS
    assert len(df) == 500
    assert df["step"].tolist() == list(range(500))
    assert set(df["op"].unique()) <= set(OPERATIONS)


def test_generate_keys_within_universe():
    df = generate_workload(num_operations=1000, key_universe=10, seed=2)
    assert all(isinstance(k, str) for k in df["key"])
    assert set(df["key"]) <= {str(i) for i in range(10)}


def test_generate_values():
    df = generate_workload(num_operations=300, seed=3)
    inserts = df[df["op"] == "insert"]
    others = df[df["op"] != "insert"]
    assert (inserts["value"] == inserts["step"]).all()
    assert (others["value"] == NO_VALUE).all()


def test_generate_is_reproducible():
    a = generate_workload(num_operations=200, seed=42)
    b = generate_workload(num_operations=200, seed=42)
    c = generate_workload(num_operations=200, seed=43)
    pd.testing.assert_frame_equal(a, b)
    assert not a.equals(c)


def test_generate_respects_mix():
    df = generate_workload(num_operations=200, mix={"insert": 1.0}, seed=4)
    assert set(df["op"]) == {"insert"}


def test_generate_rejects_unknown_operation():
    try:
        generate_workload(num_operations=10, mix={"insert": 1.0, "scan": 1.0})
        assert False, "Should have raised ValueError"
    except ValueError as e:
        assert "scan" in str(e)


def test_generate_rejects_empty_mix():
    try:
        generate_workload(num_operations=10, mix={"insert": 0.0})
        assert False, "Should have raised ValueError"
    except ValueError:
        pass


# =========================================================================
# Tests: CSV Persistence
# =========================================================================

def test_save_and_load():
    df = generate_workload(num_operations=250, seed=5)
    with tempfile.TemporaryDirectory() as tmp:
        path = save_workload(df, os.path.join(tmp, "trace.csv"))
        loaded = load_workload(path)
    assert loaded["op"].tolist() == df["op"].tolist()
    assert loaded["key"].tolist() == df["key"].tolist()
    assert loaded["value"].tolist() == df["value"].tolist()


def test_load_keeps_keys_as_strings():
    df = pd.DataFrame(
        [(0, "insert", "007", 0), (1, "search", "7", NO_VALUE)],
        columns=COLUMNS,
    )
    with tempfile.TemporaryDirectory() as tmp:
        path = save_workload(df, os.path.join(tmp, "trace.csv"))
        loaded = load_workload(path)
    assert loaded["key"].tolist() == ["007", "7"]


def test_load_rejects_missing_columns():
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "bad.csv")
        pd.DataFrame({"op": ["insert"], "key": ["1"]}).to_csv(path, index=False)
        try:
            load_workload(path)
            assert False, "Should have raised ValueError"
        except ValueError as e:
            assert "missing columns" in str(e)


def test_load_rejects_unknown_operation():
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "bad.csv")
        pd.DataFrame([(0, "upsert", "1", 0)], columns=COLUMNS).to_csv(path, index=False)
        try:
            load_workload(path)
            assert False, "Should have raised ValueError"
        except ValueError as e:
            assert "upsert" in str(e)


def test_load_missing_file():
    try:
        load_workload(os.path.join(tempfile.gettempdir(), "no_such_trace.csv"))
        assert False, "Should have raised FileNotFoundError"
    except FileNotFoundError:
        pass


# =========================================================================
# Tests: Replay
# =========================================================================

def test_replay_long_random_workload():
    """Fuzz: thousands of random ops over keys "0".."99", invariants checked every step."""
    for degree in (2, 3, 4):
        df = generate_workload(num_operations=3000, key_universe=100, seed=degree)
        tree = BTree(degree=degree)
        result = replay_workload(tree, df, validate=True)

        assert result.ok, f"degree={degree}: {result.mismatches} mismatches"
        assert sum(result.operations.values()) == len(df)
        assert result.final_size == len(tree)
        assert result.final_height == tree.height
        assert result.max_height >= result.final_height


def test_replay_matches_dict_model():
    df = generate_workload(num_operations=1000, key_universe=50, seed=9)
    tree = BTree(degree=2)
    replay_workload(tree, df)

    model = {}
    for row in df.itertuples(index=False):
        if row.op == "insert":
            model[row.key] = row.value
        elif row.op == "delete":
            model.pop(row.key, None)
    assert dict(tree.items()) == model


def test_replay_on_populated_tree():
    tree = BTree(degree=3)
    for i in range(100):
        tree.insert(str(i), i)
    df = generate_workload(num_operations=500, mix={"delete": 1.0}, seed=11)
    result = replay_workload(tree, df)
    assert result.ok
    assert result.operations["delete"] == 500


def test_replay_counts_mismatches():
    df = pd.DataFrame(
        [(0, "insert", "a", 1), (1, "delete", "a", NO_VALUE), (2, "search", "a", NO_VALUE)],
        columns=COLUMNS,
    )
    result = replay_workload(ForgetfulTree(degree=2), df, validate=False)
    assert not result.ok
    assert result.mismatches > 0


def test_replay_result_to_dict():
    df = generate_workload(num_operations=100, seed=12)
    result = replay_workload(BTree(degree=2), df)
    flat = result.to_dict()
    assert flat["num_insert"] + flat["num_search"] + flat["num_delete"] == 100
    assert flat["mismatches"] == 0


# =========================================================================
# Tests: Command Line
# =========================================================================

def test_main_replays_generated_workload():
    assert main(["--degree", "2", "--operations", "400", "--keys", "30", "--seed", "3"]) == 0


def test_main_replays_saved_workload():
    df = generate_workload(num_operations=300, key_universe=40, seed=13)
    with tempfile.TemporaryDirectory() as tmp:
        path = save_workload(df, os.path.join(tmp, "trace.csv"))
        assert main(["--degree", "3", "--input", path]) == 0


def test_main_rejects_missing_trace():
    try:
        main(["--input", os.path.join(tempfile.gettempdir(), "no_such_trace.csv")])
        assert False, "Should have raised FileNotFoundError"
    except FileNotFoundError:
        pass


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
