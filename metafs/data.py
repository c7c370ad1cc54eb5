from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

import numpy as np
import pandas as pd
from sklearn.preprocessing import MinMaxScaler


@dataclass
class Dataset:
    """Rectangular numeric feature matrix, one label per row, one name per column.

    Shapes are checked once here; the optimizers and the fitness oracle rely on
    them without re-validating.
    """

    X: np.ndarray
    y: np.ndarray
    feature_names: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        X = np.asarray(self.X, dtype=float)
        y = np.asarray(self.y)
        if X.ndim != 2:
            raise ValueError(f"feature matrix must be 2-D, got shape {X.shape}")
        if X.shape[0] < 1 or X.shape[1] < 1:
            raise ValueError(f"dataset needs at least one row and one column, got shape {X.shape}")
        if y.ndim != 1 or y.shape[0] != X.shape[0]:
            raise ValueError(f"label vector length {y.shape} does not match {X.shape[0]} rows")
        names = list(self.feature_names) if len(self.feature_names) else [f"f{i}" for i in range(X.shape[1])]
        if len(names) != X.shape[1]:
            raise ValueError(f"{len(names)} feature names for {X.shape[1]} columns")
        self.X = X
        self.y = y
        self.feature_names = [str(n) for n in names]

    @property
    def n_rows(self) -> int:
        return int(self.X.shape[0])

    @property
    def n_features(self) -> int:
        return int(self.X.shape[1])

    def select(self, mask) -> "Dataset":
        """Return a new dataset restricted to the columns where mask is 1."""
        keep = np.asarray(mask, dtype=int) == 1
        if keep.shape != (self.n_features,):
            raise ValueError(f"mask of length {keep.size} for {self.n_features} columns")
        names = [n for n, k in zip(self.feature_names, keep) if k]
        return Dataset(X=self.X[:, keep], y=self.y, feature_names=names)


def drop_null_columns(df: pd.DataFrame, threshold: float = 0.5) -> pd.DataFrame:
    # Drop columns whose share of nulls is strictly above threshold
    share = df.isna().mean()
    to_drop = [c for c, s in share.items() if s > threshold]
    if to_drop:
        print(f"[DATA] Dropping {len(to_drop)} column(s) with null share > {threshold:.0%}: {to_drop}")
    return df.drop(columns=to_drop)


def min_max_normalize(X: np.ndarray) -> np.ndarray:
    """Scale every column to [0, 1]. Constant columns become all zeros."""
    X = np.asarray(X, dtype=float)
    return MinMaxScaler().fit_transform(X)


def encode_labels(y) -> np.ndarray:
    series = pd.Series(y)
    if series.dtype.kind in ("O", "U", "S") or str(series.dtype) == "category":
        codes, _ = pd.factorize(series, sort=True)
        return codes.astype(int)
    return series.to_numpy()


def dataset_from_frame(
    df: pd.DataFrame,
    target_col: str,
    null_threshold: float = 0.5,
    normalize: bool = True,
) -> Dataset:
    """Build a clean, normalized Dataset from a frame holding features and target."""
    if target_col not in df.columns:
        raise ValueError(f"Target column '{target_col}' not found")
    df = df[df[target_col].notna()]
    features = df.drop(columns=[target_col]).apply(pd.to_numeric, errors="coerce")
    features = drop_null_columns(features, threshold=null_threshold)
    keep_rows = features.notna().all(axis=1)
    features = features[keep_rows]
    y = encode_labels(df.loc[keep_rows, target_col].values)
    X = features.values
    if normalize:
        X = min_max_normalize(X)
    return Dataset(X=X, y=y, feature_names=list(features.columns))
