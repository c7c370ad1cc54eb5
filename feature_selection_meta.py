#!/usr/bin/env python3
"""
Wrapper feature selection with binary metaheuristics.

Supports CSV input (with a target column) or built-in scikit-learn datasets.
A Grey Wolf or Teaching-Learning-Based optimizer searches binary feature
masks; each mask is scored by training a classifier on a fixed holdout split,
with a mild penalty on the fraction of features used. The selected mask is
then re-trained once more and compared against the full feature set.
"""

from __future__ import annotations

import argparse
import json
import os
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from sklearn.datasets import load_breast_cancer, load_iris, load_wine

from metafs.base import Optimizer
from metafs.classifiers import CLASSIFIER_CHOICES
from metafs.config_loader import (
    fitness_settings_from_configs,
    load_configs,
    optimizer_settings_from_configs,
)
from metafs.data import Dataset, dataset_from_frame, min_max_normalize
from metafs.fitness import WrapperFitness
from metafs.gwo import GreyWolfOptimizer
from metafs.metrics import EvaluationMetrics
from metafs.operators import mask_to_string, selected_indices
from metafs.tlbo import TeachingLearningOptimizer


OPTIMIZERS = {
    "gwo": GreyWolfOptimizer,
    "tlbo": TeachingLearningOptimizer,
}


# -----------------------------
# Data loading utilities
# -----------------------------


def load_dataset(
    csv: Optional[str],
    target_col: Optional[str],
    sklearn_dataset: Optional[str],
    null_threshold: float = 0.5,
) -> Dataset:
    if csv:
        if not target_col:
            raise ValueError("--target-col is required when using --csv")
        df = pd.read_csv(csv)
        return dataset_from_frame(df, target_col, null_threshold=null_threshold)

    if sklearn_dataset:
        name = sklearn_dataset.lower()
        if name == "breast_cancer":
            data = load_breast_cancer()
        elif name == "iris":
            data = load_iris()
        elif name == "wine":
            data = load_wine()
        else:
            raise ValueError("Unsupported sklearn dataset. Choose breast_cancer|iris|wine")
        return Dataset(X=min_max_normalize(data.data), y=data.target, feature_names=list(data.feature_names))

    raise ValueError("Provide either --csv with --target-col or --sklearn-dataset")


# -----------------------------
# Run driver
# -----------------------------


def make_optimizer(name: str, **kwargs: Any) -> Optimizer:
    name = name.lower()
    if name not in OPTIMIZERS:
        raise ValueError(f"Unsupported optimizer '{name}'. Choose {'|'.join(OPTIMIZERS)}")
    if name != "gwo":
        kwargs.pop("min_a", None)
    return OPTIMIZERS[name](**kwargs)


def final_metrics(data: Dataset, mask: List[int], fitness: WrapperFitness) -> EvaluationMetrics:
    """Re-train the classifier on the selected columns and score it on the oracle's holdout."""
    bits = np.asarray(mask, dtype=int)
    if bits.sum() == 0:
        return EvaluationMetrics.nan()
    try:
        return fitness.fit_and_score(data, bits)
    except Exception as e:
        print(f"[WARN] final evaluation failed: {e}")
        return EvaluationMetrics.nan()


def run_selection(
    data: Dataset,
    optimizer: Optimizer,
    fitness: WrapperFitness,
) -> Dict[str, Any]:
    best_mask = optimizer.optimize(data, fitness)
    selected = final_metrics(data, best_mask, fitness)
    baseline = final_metrics(data, [1] * data.n_features, fitness)
    idx = selected_indices(best_mask)
    return {
        "optimizer": optimizer.name,
        "best_fitness": optimizer.best_fitness_,
        "best_mask": mask_to_string(best_mask),
        "selected_indices": idx,
        "selected_features": [data.feature_names[i] for i in idx],
        "num_selected": len(idx),
        "total_features": data.n_features,
        "selected_metrics": selected.as_dict(),
        "all_features_metrics": baseline.as_dict(),
    }


def save_results(output_dir: str, result: Dict[str, Any], settings: Dict[str, Any]) -> str:
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, "best_solution.json")
    payload = dict(result)
    payload["settings"] = settings
    with open(path, "w") as f:
        json.dump(payload, f, indent=2, default=float)
    return path


def plot_best_fitness(logbook, output_dir: str, title: str = "Best Fitness over Iterations") -> None:
    """Line plot of incumbent and population-max fitness per iteration.
    Saves to <output_dir>/best_fitness.png. If matplotlib is unavailable, skip gracefully.
    """
    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
    except Exception:
        return
    df = pd.DataFrame(logbook)
    if not {"iteration", "best_fitness"}.issubset(df.columns):
        return
    os.makedirs(output_dir, exist_ok=True)
    fig, ax = plt.subplots(figsize=(7, 4))
    ax.plot(df["iteration"], df["best_fitness"], marker="o", linewidth=1.8, label="best")
    if "max" in df.columns:
        ax.plot(df["iteration"], df["max"], linestyle="--", linewidth=1.2, alpha=0.8, label="population max")
    ax.set_xlabel("Iteration")
    ax.set_ylabel("Fitness")
    ax.set_title(title)
    ax.grid(True, alpha=0.3)
    ax.legend()
    fig.savefig(os.path.join(output_dir, "best_fitness.png"), dpi=140)
    plt.close(fig)


# -----------------------------
# CLI
# -----------------------------


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Wrapper feature selection with binary GWO / TLBO")
    src = p.add_mutually_exclusive_group(required=False)
    src.add_argument("--csv", type=str, help="Path to CSV file")
    src.add_argument("--sklearn-dataset", type=str, help="Built-in dataset: breast_cancer|iris|wine")
    p.add_argument("--target-col", type=str, help="Target column name (with --csv)")
    p.add_argument("--null-threshold", type=float, default=0.5, help="Drop feature columns with a larger share of nulls")

    p.add_argument("--optimizer", type=str, default="gwo", choices=sorted(OPTIMIZERS), help="Search algorithm")
    p.add_argument("--pop-size", type=int, default=10, help="Population size")
    p.add_argument("--iterations", type=int, default=30, help="Number of iterations (generations)")
    p.add_argument("--mutation-rate", type=float, default=0.02, help="Per-bit flip probability after each update")
    p.add_argument("--min-a", type=float, default=0.4, help="Floor of the GWO convergence coefficient")
    p.add_argument("--seed", type=int, default=None, help="Random seed for the optimizer")

    p.add_argument("--classifier", type=str, default="rf", choices=list(CLASSIFIER_CHOICES), help="Classifier to evaluate subsets")
    p.add_argument("--train-fraction", type=float, default=0.8, help="Share of rows in the training split")
    p.add_argument("--split-seed", type=int, default=42, help="Seed of the fixed train/test split")
    p.add_argument("--min-feature-fraction", type=float, default=0.1, help="Masks selecting fewer columns score 0")
    p.add_argument("--size-penalty", type=float, default=0.1, help="Fitness penalty weight on the selected fraction")

    p.add_argument("--output", type=str, default="fs_results", help="Directory to save outputs")
    p.add_argument("--use-config", action="store_true", help="Load run settings from config/*.json instead of CLI flags")
    p.add_argument("--config-dir", type=str, default="config", help="Config directory (task/algo)")
    p.add_argument("--quiet", action="store_true", help="Only print the final summary")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> Dict[str, Any]:
    args = parse_args(argv)
    cfgs = load_configs(args.config_dir) if args.use_config else None

    opt_settings = {
        "name": args.optimizer,
        "population_size": args.pop_size,
        "max_iterations": args.iterations,
        "mutation_rate": args.mutation_rate,
        "min_a": args.min_a,
    }
    fit_settings = {
        "classifier": args.classifier,
        "train_fraction": args.train_fraction,
        "split_seed": args.split_seed,
        "min_feature_fraction": args.min_feature_fraction,
        "size_penalty": args.size_penalty,
    }
    csv_path, target_col, sk_name = args.csv, args.target_col, args.sklearn_dataset
    null_threshold = args.null_threshold

    if cfgs is not None:
        opt_settings = optimizer_settings_from_configs(cfgs, opt_settings)
        fit_settings = fitness_settings_from_configs(cfgs, fit_settings)
        ti = cfgs.get("task_info", {})
        ds_source = (ti.get("dataset_source") or "").lower()
        ds_name = ti.get("dataset_name") or ""
        null_threshold = float(ti.get("null_threshold", null_threshold))
        if ds_source.startswith("sklearn") or ds_name.startswith("sklearn:"):
            csv_path, target_col = None, None
            sk_name = ds_name.split(":", 1)[1] if ":" in ds_name else ds_name
        elif ds_source == "csv":
            csv_info = ti.get("csv", {})
            csv_path, target_col, sk_name = csv_info.get("path"), csv_info.get("target_col"), None
        elif ds_source:
            raise ValueError("Config dataset_source invalid or unsupported")

    if not any([csv_path, sk_name]):
        raise SystemExit("Provide dataset via CLI or use --use-config")
    data = load_dataset(csv_path, target_col, sk_name, null_threshold=null_threshold)
    src = f"CSV '{csv_path}'" if csv_path else f"sklearn dataset '{sk_name}'"
    print(f"[DATA] Loaded {src} with X.shape={data.X.shape}, y.shape={data.y.shape}")

    fitness = WrapperFitness(**fit_settings)
    opt_kwargs = dict(opt_settings)
    opt_name = opt_kwargs.pop("name")
    optimizer = make_optimizer(
        opt_name,
        random_state=args.seed,
        log_path=os.path.join(args.output, "evolution_log.csv"),
        verbose=not args.quiet,
        **opt_kwargs,
    )

    result = run_selection(data, optimizer, fitness)
    settings = {"optimizer": opt_settings, "fitness": fit_settings, "seed": args.seed}
    save_results(args.output, result, settings)
    plot_best_fitness(optimizer.logbook_, args.output, title=f"{optimizer.name}: best fitness")

    sel = result["selected_metrics"]
    base = result["all_features_metrics"]
    print(f"[RESULT] Best fitness (penalized): {result['best_fitness']:.4f}")
    print(f"[RESULT] Selected {result['num_selected']}/{result['total_features']} features: {result['selected_features']}")
    print(f"[RESULT] Holdout accuracy: selected={sel['accuracy']:.4f}, all features={base['accuracy']:.4f}")
    print(f"[RESULT] Results saved to '{args.output}'.")
    return result


if __name__ == "__main__":
    main()
