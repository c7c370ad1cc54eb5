"""
Binary Teaching-Learning-Based Optimizer.

Every iteration runs three phases, each followed by a full re-evaluation:

* teacher: every bit is resampled from sigmoid(teacher_bit - TF * mean_bit),
  TF drawn from {1, 2};
* learner: each learner picks a random peer and moves towards it if the peer
  scores higher, away from it otherwise;
* mutation: independent bit flips.

Unlike the grey wolf variant, the run keeps a run-wide incumbent (a DEAP hall
of fame of size one, replaced only on strict improvement) and returns it, not
the last population's best. The hall of fame is offered every phase's
population, not only the one left after mutation, so a mask that a later
phase of the same iteration discards can still become the incumbent.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from deap import tools

from .base import Optimizer
from .data import Dataset
from .operators import flip_mutation, random_population, transfer


def teacher_index(fitnesses: Sequence[float]) -> int:
    # argmax returns the first index on ties
    return int(np.argmax(np.asarray(fitnesses, dtype=float)))


def teacher_step(bits: np.ndarray, teacher: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    bits = np.asarray(bits, dtype=int)
    mean = bits.mean(axis=0)
    tf = rng.integers(1, 3, size=bits.shape)
    diff = np.asarray(teacher, dtype=float)[None, :] - tf * mean[None, :]
    return transfer(diff, rng)


def pick_peers(n: int, rng: np.random.Generator) -> np.ndarray:
    """A uniformly random peer index for every learner, never the learner itself."""
    if n < 2:
        raise ValueError("learner phase needs at least two individuals")
    offsets = rng.integers(0, n - 1, size=n)
    own = np.arange(n)
    return np.where(offsets >= own, offsets + 1, offsets)


def learner_step(bits: np.ndarray, fitnesses: Sequence[float], rng: np.random.Generator) -> np.ndarray:
    bits = np.asarray(bits, dtype=int)
    fit = np.asarray(fitnesses, dtype=float)
    peers = pick_peers(bits.shape[0], rng)
    peer_bits = bits[peers]
    better = (fit[peers] > fit)[:, None]
    diff = np.where(better, peer_bits - bits, bits - peer_bits)
    return transfer(diff, rng)


class TeachingLearningOptimizer(Optimizer):
    name = "Binary Teaching-Learning-Based Optimizer"
    tag = "TLBO"
    min_population = 2

    def __init__(
        self,
        population_size: int = 30,
        max_iterations: int = 100,
        mutation_rate: float = 0.02,
        **kwargs,
    ) -> None:
        super().__init__(population_size, max_iterations, mutation_rate=mutation_rate, **kwargs)
        self.hall_of_fame_: tools.HallOfFame = None

    def _phase(self, bits: np.ndarray, hof: tools.HallOfFame) -> list:
        population = self._population(bits)
        self._evaluate(population)
        hof.update(population)
        return population

    def _search(self, dataset: Dataset) -> Sequence[int]:
        hof = tools.HallOfFame(maxsize=1)
        bits = random_population(self.population_size, dataset.n_features, self.rng)
        population = self._phase(bits, hof)

        for it in range(self.max_iterations):
            fit = self._fitnesses(population)
            teacher = bits[teacher_index(fit)]
            bits = teacher_step(bits, teacher, self.rng)
            population = self._phase(bits, hof)

            bits = learner_step(bits, self._fitnesses(population), self.rng)
            population = self._phase(bits, hof)

            bits = flip_mutation(bits, self.mutation_rate, self.rng)
            population = self._phase(bits, hof)

            best = hof[0]
            self._record(it + 1, population, best.fitness.values[0], best.metrics, best)

        self.hall_of_fame_ = hof
        return list(hof[0])
