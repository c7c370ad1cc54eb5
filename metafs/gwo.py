"""
Binary Grey Wolf Optimizer.

The three best wolves seen so far (alpha, beta, delta) pull every other wolf
towards them. For each wolf and feature, three continuous targets

    X_k = leader_k - A_k * |C_k * leader_k - wolf|,  A_k = 2*a*r1 - a,  C_k = 2*r2

are averaged, squashed with a logistic function and sampled as a Bernoulli
bit. ``a`` anneals linearly from 2 to ``min_a`` over the run, which moves the
pack from exploration to exploitation without ever becoming purely greedy.

Leader scores persist across iterations: a leader is only displaced by a
strictly better fitness. The run returns the alpha mask after the last
iteration.
"""

from __future__ import annotations

from typing import Iterable, NamedTuple, Sequence, Tuple

import numpy as np

from .base import Optimizer
from .data import Dataset
from .fitness import FitnessResult
from .metrics import EvaluationMetrics
from .operators import flip_mutation, random_population, transfer


class Leader(NamedTuple):
    mask: Tuple[int, ...]
    score: float
    metrics: EvaluationMetrics


class Leaders(NamedTuple):
    alpha: Leader
    beta: Leader
    delta: Leader


def initial_leaders(population: Sequence[Sequence[int]]) -> Leaders:
    """Seat the first three wolves with a score any real fitness beats."""
    if len(population) < 3:
        raise ValueError("need at least three wolves to seat alpha, beta and delta")
    seats = [Leader(tuple(int(b) for b in population[i]), float("-inf"), EvaluationMetrics.zeros()) for i in range(3)]
    return Leaders(*seats)


def update_leaders(leaders: Leaders, scored: Iterable[Tuple[Sequence[int], FitnessResult]]) -> Leaders:
    """
    One left-to-right pass keeping a running top three. Comparisons are strict,
    so on ties the wolf encountered first keeps its seat. Displaced leaders
    cascade down: alpha -> beta -> delta.
    """
    alpha, beta, delta = leaders
    for wolf, result in scored:
        fitness = float(result.fitness)
        if fitness > alpha.score:
            delta, beta = beta, alpha
            alpha = Leader(tuple(int(b) for b in wolf), fitness, result.metrics)
        elif fitness > beta.score:
            delta = beta
            beta = Leader(tuple(int(b) for b in wolf), fitness, result.metrics)
        elif fitness > delta.score:
            delta = Leader(tuple(int(b) for b in wolf), fitness, result.metrics)
    return Leaders(alpha, beta, delta)


def convergence_coefficient(iteration: int, max_iterations: int, min_a: float = 0.4) -> float:
    return max(2.0 * (1.0 - iteration / max_iterations), min_a)


def wolf_step(bits: np.ndarray, leaders: Leaders, a: float, rng: np.random.Generator) -> np.ndarray:
    """Move every wolf towards the three leaders and binarize the result."""
    W = np.asarray(bits, dtype=float)                              # (N, D)
    L = np.array([leaders.alpha.mask, leaders.beta.mask, leaders.delta.mask], dtype=float)[:, None, :]  # (3, 1, D)
    n, d = W.shape
    A = 2.0 * a * rng.random((3, n, d)) - a
    C = 2.0 * rng.random((3, n, d))
    D = np.abs(C * L - W[None, :, :])
    X = L - A * D
    return transfer(X.mean(axis=0), rng)


class GreyWolfOptimizer(Optimizer):
    name = "Binary Grey Wolf Optimizer"
    tag = "GWO"
    min_population = 3

    def __init__(
        self,
        population_size: int = 10,
        max_iterations: int = 30,
        mutation_rate: float = 0.02,
        min_a: float = 0.4,
        **kwargs,
    ) -> None:
        super().__init__(population_size, max_iterations, mutation_rate=mutation_rate, **kwargs)
        if float(min_a) < 0.0:
            raise ValueError(f"min_a must be >= 0, got {min_a}")
        self.min_a = float(min_a)
        self.leaders_: Leaders = None

    def _search(self, dataset: Dataset) -> Sequence[int]:
        bits = random_population(self.population_size, dataset.n_features, self.rng)
        wolves = self._population(bits)
        leaders = initial_leaders(wolves)

        for it in range(self.max_iterations):
            results = self._evaluate(wolves)
            leaders = update_leaders(leaders, zip(wolves, results))
            self._record(it + 1, wolves, leaders.alpha.score, leaders.alpha.metrics, leaders.alpha.mask)

            a = convergence_coefficient(it, self.max_iterations, self.min_a)
            bits = wolf_step(self._bits(wolves), leaders, a, self.rng)
            bits = flip_mutation(bits, self.mutation_rate, self.rng)
            wolves = self._population(bits)

        self.leaders_ = leaders
        return list(leaders.alpha.mask)
