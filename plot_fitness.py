#!/usr/bin/env python3
"""
Plot optimizer progress from evolution_log.csv.

Default: plot best fitness and population max/avg over iterations and save to PNG.
"""

from __future__ import annotations

import argparse
import os
import sys

from metafs.progress import read_progress


def main():
    ap = argparse.ArgumentParser(description="Plot best fitness from evolution_log.csv")
    ap.add_argument("--log-csv", type=str, default=os.path.join("fs_results", "evolution_log.csv"))
    ap.add_argument("--out", type=str, default=os.path.join("fs_results", "best_fitness.png"))
    ap.add_argument("--dpi", type=int, default=140)
    ap.add_argument("--show", action="store_true", help="Show the figure interactively (requires GUI)")
    args = ap.parse_args()

    try:
        import matplotlib.pyplot as plt
    except Exception:
        print("matplotlib is required. Please install it: pip install matplotlib", file=sys.stderr)
        sys.exit(1)

    if not os.path.exists(args.log_csv):
        print(f"Log file not found: {args.log_csv}", file=sys.stderr)
        sys.exit(1)

    df = read_progress(args.log_csv)
    if not {"iteration", "best_fitness"}.issubset(df.columns):
        print("CSV must contain 'iteration' and 'best_fitness' columns.", file=sys.stderr)
        sys.exit(1)

    fig, ax = plt.subplots(figsize=(7, 4))
    ax.plot(df["iteration"], df["best_fitness"], marker="o", linewidth=1.8, label="best")
    for col, style in (("max_fitness", "--"), ("avg_fitness", ":")):
        if col in df.columns:
            ax.plot(df["iteration"], df[col], linestyle=style, linewidth=1.2, label=col.replace("_fitness", ""))
    ax.set_xlabel("Iteration")
    ax.set_ylabel("Fitness")
    ax.set_title("Best Fitness over Iterations")
    ax.grid(True, alpha=0.3)
    ax.legend()
    fig.tight_layout()

    out_dir = os.path.dirname(args.out)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    fig.savefig(args.out, dpi=args.dpi)
    print(f"Saved plot to {args.out}")

    if args.show:
        plt.show()


if __name__ == "__main__":
    main()
