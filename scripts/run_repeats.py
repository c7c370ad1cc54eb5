#!/usr/bin/env python3
"""
Run the feature selection driver multiple times on a single config and aggregate results.

Metrics reported (across repeats):
- Avg_fitness: mean of best_solution.json.best_fitness
- Avg_accuracy: mean of best_solution.json.selected_metrics.accuracy
- Selected_num: mean of best_solution.json.num_selected
- Avg_best_fitness_step: for each run, earliest iteration where 'best_fitness' in
  evolution_log.csv reaches its run-maximum; averaged across runs
- Avg_diversity: for each run, average 'diversity' across iterations (ignore NaN); then average across runs
- Best_Fitness / Best_Accuracy: maxima across runs

Usage example:
  python scripts/run_repeats.py \
    --config-dir config \
    --out-root results/repeats_demo \
    --repeats 3 \
    --seed 42

Notes:
- Uses --use-config so algo_config.json and task_info.json in the config dir decide the run.
- Outputs each run to <out-root>/run_<i> and writes a summary CSV to <out-root>/summary.csv.
"""

from __future__ import annotations

import argparse
import csv
import json
import math
import os
import subprocess
import sys
from typing import Dict, List, Tuple


DRIVER = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "feature_selection_meta.py")


def _safe_float(x) -> float:
    try:
        v = float(x)
        if math.isfinite(v):
            return v
        return float("nan")
    except (TypeError, ValueError):
        return float("nan")


def run_one(config_dir: str, out_dir: str, seed: int, args: argparse.Namespace) -> int:
    cmd = [
        sys.executable, DRIVER, "--use-config",
        "--config-dir", config_dir,
        "--output", out_dir,
        "--seed", str(seed),
    ]
    if args.quiet:
        cmd.append("--quiet")
    for ea in (args.extra_arg or []):
        cmd.append(ea)
    print("[RUN]", " ".join(cmd))
    return subprocess.call(cmd)


def parse_best(best_path: str) -> Tuple[float, float, int]:
    with open(best_path, "r") as f:
        data = json.load(f)
    return (
        _safe_float(data.get("best_fitness")),
        _safe_float(data.get("selected_metrics", {}).get("accuracy")),
        int(data.get("num_selected", 0)),
    )


def parse_evolution(evo_csv: str) -> Tuple[float, float]:
    """Return (earliest_best_iteration, avg_diversity)."""
    if not os.path.exists(evo_csv):
        return float("nan"), float("nan")
    iters: List[int] = []
    best_vals: List[float] = []
    div_vals: List[float] = []
    with open(evo_csv, "r", newline="") as f:
        for row in csv.DictReader(f):
            try:
                it = int(row.get("iteration", "0"))
            except ValueError:
                continue
            iters.append(it)
            best_vals.append(_safe_float(row.get("best_fitness", "nan")))
            div_vals.append(_safe_float(row.get("diversity", "nan")))
    if not iters:
        return float("nan"), float("nan")
    run_max = max([v for v in best_vals if v == v], default=float("nan"))
    earliest = float("nan")
    if run_max == run_max:
        for it, v in zip(iters, best_vals):
            if v == v and abs(v - run_max) <= 1e-12:
                earliest = float(it)
                break
    div_clean = [v for v in div_vals if v == v]
    avg_div = sum(div_clean) / len(div_clean) if div_clean else float("nan")
    return earliest, avg_div


def summarize(per_run: List[Dict[str, float]], failed: int) -> Dict[str, float]:
    def _mean(key: str) -> float:
        vals = [r[key] for r in per_run if r[key] == r[key]]
        return sum(vals) / len(vals) if vals else float("nan")

    return {
        "Avg_fitness": _mean("best_fitness"),
        "Avg_accuracy": _mean("accuracy"),
        "Selected_num": _mean("num_selected"),
        "Avg_best_fitness_step": _mean("earliest_best_iter"),
        "Avg_diversity": _mean("avg_diversity"),
        "Best_Fitness": max([r["best_fitness"] for r in per_run], default=float("nan")),
        "Best_Accuracy": max([r["accuracy"] for r in per_run], default=float("nan")),
        "Repeats": len(per_run),
        "Failed": failed,
    }


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--config-dir", type=str, required=True, help="Directory containing task_info.json and algo_config.json")
    ap.add_argument("--out-root", type=str, required=True, help="Output root directory for repeats")
    ap.add_argument("--repeats", type=int, default=3)
    ap.add_argument("--seed", type=int, default=42, help="Base seed; each repeat uses seed+i")
    ap.add_argument("--quiet", action="store_true", help="Pass --quiet to each run")
    ap.add_argument("--extra-arg", action="append", default=[], help="Extra arg forwarded to the driver; can repeat")
    args = ap.parse_args()

    os.makedirs(args.out_root, exist_ok=True)

    per_run: List[Dict[str, float]] = []
    failed = 0
    for i in range(args.repeats):
        out_dir = os.path.join(args.out_root, f"run_{i+1}")
        rc = run_one(args.config_dir, out_dir, args.seed + i, args)
        if rc != 0:
            print(f"[WARN] repeat {i+1} exited with code {rc}")
            failed += 1
            continue
        try:
            bf, acc, sel = parse_best(os.path.join(out_dir, "best_solution.json"))
            earliest, avg_div = parse_evolution(os.path.join(out_dir, "evolution_log.csv"))
        except (OSError, ValueError, KeyError) as e:
            print(f"[WARN] failed to parse outputs for run_{i+1}: {e}")
            failed += 1
            continue
        per_run.append({
            "best_fitness": bf,
            "accuracy": acc,
            "num_selected": float(sel),
            "earliest_best_iter": earliest,
            "avg_diversity": avg_div,
        })

    summary = summarize(per_run, failed)
    summary_csv = os.path.join(args.out_root, "summary.csv")
    with open(summary_csv, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(summary.keys()))
        writer.writeheader()
        writer.writerow(summary)
    print("[SUMMARY]")
    for k, v in summary.items():
        if isinstance(v, float):
            print(f"- {k}: {v:.6f}")
        else:
            print(f"- {k}: {v}")
    print(f"[OK] Wrote summary to {summary_csv}")


if __name__ == "__main__":
    main()
