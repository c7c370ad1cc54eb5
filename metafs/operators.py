from __future__ import annotations

from typing import List, Sequence, Union

import numpy as np


RandomSource = Union[None, int, np.random.Generator]


def make_rng(random_state: RandomSource = None) -> np.random.Generator:
    """One generator per run. Accepts a seed, None (fresh entropy) or a Generator."""
    return np.random.default_rng(random_state)


def sigmoid(x: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-np.asarray(x, dtype=float)))


def sample_bits(prob: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """Bernoulli draw per cell: 1 where a uniform falls below prob."""
    prob = np.asarray(prob, dtype=float)
    return (rng.random(prob.shape) < prob).astype(int)


def transfer(x: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    # Squash a continuous step to (0, 1) and binarize with a biased coin
    return sample_bits(sigmoid(x), rng)


def random_population(n: int, n_features: int, rng: np.random.Generator) -> np.ndarray:
    return sample_bits(np.full((n, n_features), 0.5), rng)


def flip_mutation(bits: np.ndarray, rate: float, rng: np.random.Generator) -> np.ndarray:
    """Flip every bit independently with probability rate.

    The uniforms are drawn even when rate is 0 so the stream position does
    not depend on the rate.
    """
    bits = np.asarray(bits, dtype=int)
    flips = rng.random(bits.shape) < rate
    return np.where(flips, 1 - bits, bits)


def population_diversity(population: Sequence[Sequence[int]]) -> float:
    """
    Average pairwise Hamming distance as a fraction of the mask length, in [0, 1].
    Uses per-bit ones counts: sum_j 2 * n1_j * (N - n1_j) / (N * (N - 1) * L).
    """
    if len(population) == 0:
        return float("nan")
    M = np.asarray(population, dtype=int)
    N, L = M.shape
    if N < 2 or L == 0:
        return 0.0
    n1 = M.sum(axis=0)
    pairs_diff_per_bit = 2.0 * n1 * (N - n1)
    return float(pairs_diff_per_bit.sum()) / (N * (N - 1)) / L


def mask_to_string(mask: Sequence[int]) -> str:
    return "".join("1" if int(b) == 1 else "0" for b in mask)


def selected_indices(mask: Sequence[int]) -> List[int]:
    return [i for i, b in enumerate(mask) if int(b) == 1]
