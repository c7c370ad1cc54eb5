import numpy as np
import pytest

from metafs.data import Dataset
from metafs.fitness import WrapperFitness


def make_separable(n_rows: int = 20) -> Dataset:
    """Column 0 equals the label; columns 1-3 are constant.

    The fixed holdout is forced to contain both classes, so a mask without
    column 0 can never reach perfect accuracy.
    """
    _, test_idx = WrapperFitness(classifier="tree").split_indices(n_rows)
    y = np.arange(n_rows) % 2
    y[test_idx[0]] = 0
    y[test_idx[1]] = 1
    X = np.column_stack([y, np.ones(n_rows), np.zeros(n_rows), np.ones(n_rows)]).astype(float)
    return Dataset(X=X, y=y, feature_names=["signal", "ones", "zeros", "ones_b"])


def make_noisy(n_rows: int = 60, n_features: int = 8, seed: int = 0) -> Dataset:
    """Two informative columns plus uniform noise."""
    rng = np.random.default_rng(seed)
    y = rng.integers(0, 2, size=n_rows)
    X = rng.random((n_rows, n_features))
    X[:, 0] = np.clip(y * 0.6 + rng.normal(0, 0.15, n_rows), 0, 1)
    X[:, 3] = np.clip((1 - y) * 0.5 + rng.normal(0, 0.2, n_rows), 0, 1)
    return Dataset(X=X, y=y)


@pytest.fixture
def separable():
    return make_separable()


@pytest.fixture
def noisy():
    return make_noisy()


@pytest.fixture
def tree_fitness():
    return WrapperFitness(classifier="tree")
