"""
Project configuration and constants.

Centralizes all configurable parameters for the B-tree index, the
workload generator and the evaluation scripts.
"""

import os

# -----------------------------------------------------------------------------
# Directory Paths
# -----------------------------------------------------------------------------

# Project root directory (where this file is located)
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))

# Results directory (for plots and benchmark outputs)
RESULTS_DIR = os.path.join(PROJECT_ROOT, "results")

# -----------------------------------------------------------------------------
# B-Tree Configuration
# -----------------------------------------------------------------------------

# Minimum degree t. Non-root nodes hold between t-1 and 2t-1 entries.
# t=2 is the smallest legal value (a 2-3-4 tree).
BTREE_DEGREE = 3

# What insert() does with a key that is already stored:
# "overwrite" replaces the value, "reject" raises DuplicateKeyError.
BTREE_DUPLICATES = "overwrite"

# -----------------------------------------------------------------------------
# Workload Configuration
# -----------------------------------------------------------------------------

# Keys are integers in [0, WORKLOAD_KEY_UNIVERSE) rendered as strings.
# A small universe forces frequent hits on existing keys.
WORKLOAD_KEY_UNIVERSE = 100

# Default number of operations in a generated trace
WORKLOAD_NUM_OPERATIONS = 5000

# Relative weights of each operation type
WORKLOAD_OPERATION_MIX = {"insert": 0.45, "search": 0.2, "delete": 0.35}

# Random seed for reproducibility
WORKLOAD_SEED = 42

# -----------------------------------------------------------------------------
# Benchmark Configuration
# -----------------------------------------------------------------------------

# Degrees to compare
BENCHMARK_DEGREES = [2, 3, 8, 32, 128]

# Number of keys inserted per run
BENCHMARK_SIZES = [1000, 5000, 20000, 50000]

# Number of repetitions per (degree, size) pair
BENCHMARK_REPETITIONS = 3

# -----------------------------------------------------------------------------
# Logging Configuration
# -----------------------------------------------------------------------------

# Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL
LOG_LEVEL = "INFO"

# Log to file (in addition to console)
LOG_TO_FILE = False

# Log file path (only used if LOG_TO_FILE is True)
LOG_FILE_PATH = os.path.join(PROJECT_ROOT, "btree.log")
