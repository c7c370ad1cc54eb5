"""
Wrapper fitness evaluation for binary feature masks.

A mask is scored by training a classifier on the selected columns of a fixed
80/20 holdout split and penalizing the fraction of columns used:

    fitness = accuracy * (1 - size_penalty * selected / total)

The split is drawn with the same seed on every call, so every individual of
every generation is judged on the identical holdout. This keeps runs
reproducible, but the search can overfit that single holdout; no
cross-validation happens inside the loop.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence, Tuple, Union

import numpy as np
from sklearn.base import clone
from sklearn.model_selection import train_test_split

from .classifiers import make_classifier
from .data import Dataset
from .metrics import EvaluationMetrics, compute_metrics


class MaskLengthError(ValueError):
    """Raised when a mask does not have one bit per dataset column."""


@dataclass(frozen=True)
class FitnessResult:
    fitness: float
    metrics: EvaluationMetrics = field(default_factory=EvaluationMetrics.nan)
    failed: bool = False

    @classmethod
    def failure(cls, fitness: float = 0.0) -> "FitnessResult":
        if fitness == 0.0:
            return cls(0.0, EvaluationMetrics.zeros(), failed=True)
        return cls(fitness, EvaluationMetrics.nan(), failed=True)


def check_mask(dataset: Dataset, mask: Sequence[int]) -> np.ndarray:
    bits = np.asarray(mask, dtype=int)
    if bits.shape != (dataset.n_features,):
        raise MaskLengthError(f"mask has {bits.size} bits but dataset has {dataset.n_features} columns")
    return bits


class FitnessFunction:
    """Scores a binary mask against a dataset; larger is better."""

    def evaluate(self, dataset: Dataset, mask: Sequence[int]) -> float:
        raise NotImplementedError

    def evaluate_detailed(self, dataset: Dataset, mask: Sequence[int]) -> FitnessResult:
        # Implementations without per-mask metrics report NaN metrics
        return FitnessResult(float(self.evaluate(dataset, mask)), EvaluationMetrics.nan())


class WrapperFitness(FitnessFunction):
    def __init__(
        self,
        classifier: Union[str, Any] = "rf",
        train_fraction: float = 0.8,
        split_seed: int = 42,
        min_feature_fraction: float = 0.1,
        size_penalty: float = 0.1,
    ) -> None:
        if not 0.0 < train_fraction < 1.0:
            raise ValueError("train_fraction must be in (0, 1)")
        if not 0.0 <= min_feature_fraction <= 1.0:
            raise ValueError("min_feature_fraction must be in [0, 1]")
        if size_penalty < 0.0:
            raise ValueError("size_penalty must be >= 0")
        self.estimator = make_classifier(classifier) if isinstance(classifier, str) else classifier
        self.train_fraction = float(train_fraction)
        self.split_seed = int(split_seed)
        self.min_feature_fraction = float(min_feature_fraction)
        self.size_penalty = float(size_penalty)

    def min_required(self, n_features: int) -> int:
        return max(1, int(n_features * self.min_feature_fraction))

    def split_indices(self, n_rows: int) -> Tuple[np.ndarray, np.ndarray]:
        """Row indices of the (train, test) holdout; identical for every call."""
        train_size = int(n_rows * self.train_fraction)
        train_idx, test_idx = train_test_split(
            np.arange(n_rows),
            train_size=train_size,
            shuffle=True,
            random_state=self.split_seed,
        )
        return np.asarray(train_idx), np.asarray(test_idx)

    def fit_and_score(self, dataset: Dataset, bits: np.ndarray) -> EvaluationMetrics:
        """Train a fresh classifier on the selected columns and score it on the holdout."""
        train_idx, test_idx = self.split_indices(dataset.n_rows)
        X_sel = dataset.select(bits).X
        model = clone(self.estimator, safe=False)
        model.fit(X_sel[train_idx], dataset.y[train_idx])
        predicted = model.predict(X_sel[test_idx])
        return compute_metrics(predicted, dataset.y[test_idx])

    def evaluate_detailed(self, dataset: Dataset, mask: Sequence[int]) -> FitnessResult:
        bits = check_mask(dataset, mask)
        n_selected = int(bits.sum())
        if n_selected < self.min_required(dataset.n_features):
            return FitnessResult(0.0, EvaluationMetrics.zeros())
        try:
            metrics = self.fit_and_score(dataset, bits)
        except Exception:
            # Degenerate splits or subsets the model cannot handle
            return FitnessResult.failure()
        usage = n_selected / dataset.n_features
        return FitnessResult(metrics.accuracy * (1.0 - self.size_penalty * usage), metrics)

    def evaluate(self, dataset: Dataset, mask: Sequence[int]) -> float:
        return self.evaluate_detailed(dataset, mask).fitness
