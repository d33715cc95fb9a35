"""
Visualization module for B-tree benchmark results.

Generates comparison plots from benchmark CSV data.

Usage:
    python -m evaluation.visualize
    python -m evaluation.visualize --input results/benchmark_results.csv
    python -m evaluation.visualize --output results/plots/
"""

import argparse
import os
import sys

import pandas as pd
import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import config


# =============================================================================
# Configuration
# =============================================================================

FIGURE_DPI = 150
FIGURE_SIZE_SCALABILITY = (15, 5)
FIGURE_SIZE_COMPARISON = (12, 6)

OPERATIONS = ["insert", "search", "delete"]

OPERATION_LABELS = {
    "insert": "Insert",
    "search": "Search",
    "delete": "Delete",
}

REQUIRED_COLUMNS = {"operation", "degree", "size", "mean_us", "std_us", "height", "splits", "merges", "borrows"}


# =============================================================================
# Data Loading
# =============================================================================

def load_benchmark_data(filepath: str) -> pd.DataFrame:
    """Load benchmark results from CSV."""
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Benchmark results not found: {filepath}")

    df = pd.read_csv(filepath)
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(f"{filepath} is missing columns: {sorted(missing)}")

    print(f"Loaded {len(df)} rows from {filepath}")
    return df


def degree_colors(degrees) -> dict:
    """Assign each degree a stable color from the default cycle."""
    cycle = plt.rcParams["axes.prop_cycle"].by_key()["color"]
    return {degree: cycle[i % len(cycle)] for i, degree in enumerate(sorted(degrees))}


# =============================================================================
# Plot 1: Scalability (Time per Operation vs Size)
# =============================================================================

def plot_scalability(df: pd.DataFrame, output_dir: str) -> str:
    """
    Mean microseconds per operation against number of keys, one subplot
    per operation and one line (with std error bars) per degree.
    """
    colors = degree_colors(df["degree"].unique())

    fig, axes = plt.subplots(1, len(OPERATIONS), figsize=FIGURE_SIZE_SCALABILITY)

    for ax, op in zip(axes, OPERATIONS):
        op_data = df[df["operation"] == op]

        for degree, color in colors.items():
            ddata = op_data[op_data["degree"] == degree].sort_values("size")
            ax.errorbar(
                ddata["size"],
                ddata["mean_us"],
                yerr=ddata["std_us"],
                marker="o",
                color=color,
                linewidth=2,
                markersize=6,
                capsize=4,
                label=f"t={degree}",
            )

        ax.set_title(OPERATION_LABELS[op], fontsize=11, fontweight="bold")
        ax.set_xlabel("Keys")
        ax.set_ylabel("Mean time (us/op)")
        ax.set_xscale("log")
        ax.grid(True, alpha=0.3)
        ax.legend(loc="upper left")

    fig.suptitle("B-tree Scalability: Time per Operation vs Size", fontsize=14, fontweight="bold")
    plt.tight_layout()

    output_path = os.path.join(output_dir, "scalability_plot.png")
    plt.savefig(output_path, dpi=FIGURE_DPI, bbox_inches="tight")
    plt.close()

    print(f"Saved: {output_path}")
    return output_path


# =============================================================================
# Plot 2: Height vs Degree
# =============================================================================

def plot_height(df: pd.DataFrame, output_dir: str) -> str:
    """Tree height after loading, grouped by size, one bar per degree."""
    data = df[df["operation"] == "insert"]
    sizes = sorted(data["size"].unique())
    colors = degree_colors(data["degree"].unique())

    fig, ax = plt.subplots(figsize=FIGURE_SIZE_COMPARISON)

    width = 0.8 / max(len(colors), 1)
    for i, (degree, color) in enumerate(colors.items()):
        heights = [
            data[(data["size"] == size) & (data["degree"] == degree)]["height"].max()
            for size in sizes
        ]
        offsets = [x + (i - (len(colors) - 1) / 2) * width for x in range(len(sizes))]
        bars = ax.bar(offsets, heights, width, label=f"t={degree}", color=color, edgecolor="black")
        ax.bar_label(bars, fontsize=8)

    ax.set_xlabel("Keys", fontsize=11)
    ax.set_ylabel("Height (levels)", fontsize=11)
    ax.set_title("Tree Height by Degree", fontsize=13, fontweight="bold")
    ax.set_xticks(range(len(sizes)))
    ax.set_xticklabels([f"{size:,}" for size in sizes])
    ax.legend()
    ax.grid(True, alpha=0.3, axis="y")

    plt.tight_layout()

    output_path = os.path.join(output_dir, "height_by_degree.png")
    plt.savefig(output_path, dpi=FIGURE_DPI, bbox_inches="tight")
    plt.close()

    print(f"Saved: {output_path}")
    return output_path


# =============================================================================
# Plot 3: Structural Repair
# =============================================================================

def plot_rebalancing(df: pd.DataFrame, output_dir: str, size: int = None) -> str:
    """
    Splits per insert, and merges/borrows per delete, against degree.

    Args:
        df: Benchmark data
        output_dir: Output directory
        size: Which size to show (default: largest available)
    """
    if size is None:
        size = df["size"].max()

    data = df[df["size"] == size]
    if len(data) == 0:
        print(f"No data for size={size}")
        return None

    inserts = data[data["operation"] == "insert"].sort_values("degree")
    deletes = data[data["operation"] == "delete"].sort_values("degree")

    fig, (ax_split, ax_delete) = plt.subplots(1, 2, figsize=FIGURE_SIZE_COMPARISON)

    ax_split.plot(inserts["degree"], inserts["splits"] / size, marker="o", linewidth=2)
    ax_split.set_title("Splits per Insert", fontsize=11, fontweight="bold")

    ax_delete.plot(deletes["degree"], deletes["merges"] / size, marker="o", linewidth=2, label="merges")
    ax_delete.plot(deletes["degree"], deletes["borrows"] / size, marker="s", linewidth=2, label="borrows")
    ax_delete.set_title("Repairs per Delete", fontsize=11, fontweight="bold")
    ax_delete.legend()

    for ax in (ax_split, ax_delete):
        ax.set_xlabel("Degree (t)")
        ax.set_xscale("log", base=2)
        ax.grid(True, alpha=0.3)

    fig.suptitle(f"Structural Repair ({size:,} keys)", fontsize=14, fontweight="bold")
    plt.tight_layout()

    output_path = os.path.join(output_dir, "rebalancing.png")
    plt.savefig(output_path, dpi=FIGURE_DPI, bbox_inches="tight")
    plt.close()

    print(f"Saved: {output_path}")
    return output_path


# =============================================================================
# Main
# =============================================================================

def generate_all_plots(input_file: str, output_dir: str) -> None:
    """Generate all visualization plots."""
    os.makedirs(output_dir, exist_ok=True)

    df = load_benchmark_data(input_file)

    print(f"\nGenerating plots to: {output_dir}")
    print("-" * 50)

    plot_scalability(df, output_dir)
    plot_height(df, output_dir)
    plot_rebalancing(df, output_dir)

    print("-" * 50)
    print("All plots generated successfully!")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Generate B-tree benchmark visualizations")
    parser.add_argument(
        "--input", "-i",
        type=str,
        default=os.path.join(config.RESULTS_DIR, "benchmark_results.csv"),
        help="Input CSV file from benchmark"
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=config.RESULTS_DIR,
        help="Output directory for plots"
    )
    args = parser.parse_args()

    try:
        generate_all_plots(args.input, args.output)
        return 0
    except FileNotFoundError as e:
        print(f"Error: {e}")
        print("Run the benchmark first: python -m evaluation.benchmark")
        return 1


if __name__ == "__main__":
    sys.exit(main())
