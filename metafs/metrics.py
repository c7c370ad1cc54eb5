from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Dict, Sequence

import numpy as np
from sklearn.metrics import accuracy_score, precision_recall_fscore_support


@dataclass(frozen=True)
class EvaluationMetrics:
    accuracy: float
    precision: float
    recall: float
    f1: float

    @classmethod
    def zeros(cls) -> "EvaluationMetrics":
        return cls(0.0, 0.0, 0.0, 0.0)

    @classmethod
    def nan(cls) -> "EvaluationMetrics":
        return cls(float("nan"), float("nan"), float("nan"), float("nan"))

    def is_nan(self) -> bool:
        return any(math.isnan(v) for v in (self.accuracy, self.precision, self.recall, self.f1))

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


def compute_metrics(predicted: Sequence, actual: Sequence) -> EvaluationMetrics:
    """
    Accuracy plus macro-averaged precision/recall/F1 over every label that
    appears in either sequence. Per-label ratios with a zero denominator count
    as 0, so a label that is only ever predicted (or only ever present) still
    pulls the macro averages down.
    """
    y_pred = np.asarray(predicted)
    y_true = np.asarray(actual)
    if y_pred.shape != y_true.shape:
        raise ValueError(f"predicted and actual differ in length: {y_pred.shape} vs {y_true.shape}")
    if y_true.size == 0:
        raise ValueError("cannot compute metrics on empty label sequences")

    labels = np.union1d(y_true, y_pred)
    precision, recall, f1, _ = precision_recall_fscore_support(
        y_true, y_pred, labels=labels, average="macro", zero_division=0
    )
    return EvaluationMetrics(
        accuracy=float(accuracy_score(y_true, y_pred)),
        precision=float(precision),
        recall=float(recall),
        f1=float(f1),
    )
