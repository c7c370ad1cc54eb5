from __future__ import annotations

import math
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np
from deap import base, creator, tools

from .data import Dataset
from .fitness import FitnessFunction, FitnessResult, MaskLengthError
from .metrics import EvaluationMetrics
from .operators import RandomSource, make_rng, mask_to_string, population_diversity
from .progress import ProgressLog


# DEAP setup: single-objective maximization over 0/1 lists
if "FitnessMax" not in creator.__dict__:
    creator.create("FitnessMax", base.Fitness, weights=(1.0,))
if "MaskIndividual" not in creator.__dict__:
    creator.create("MaskIndividual", list, fitness=creator.FitnessMax, metrics=None)


class OptimizerState(str, Enum):
    INITIALIZED = "initialized"
    RUNNING = "running"
    TERMINATED = "terminated"


def _check_int(value, name: str, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return int(value)


class Optimizer:
    """
    Shared machinery for the population-based binary optimizers.

    Subclasses implement ``_search`` and return the mask they select; this
    class validates configuration, owns the random stream, evaluates
    populations through the fitness function and records one logbook entry
    (and optionally one CSV row) per iteration.

    Configuration is fixed at construction. A single instance must not run
    ``optimize`` from several threads at once.
    """

    name = "Optimizer"
    tag = "OPT"
    min_population = 2

    def __init__(
        self,
        population_size: int,
        max_iterations: int,
        name: Optional[str] = None,
        mutation_rate: float = 0.02,
        random_state: RandomSource = None,
        log_path: Optional[str] = None,
        verbose: bool = True,
    ) -> None:
        self.population_size = _check_int(population_size, "population_size", self.min_population)
        self.max_iterations = _check_int(max_iterations, "max_iterations", 1)
        if not 0.0 <= float(mutation_rate) <= 1.0:
            raise ValueError(f"mutation_rate must be in [0, 1], got {mutation_rate}")
        self.mutation_rate = float(mutation_rate)
        if name is not None:
            self.name = name
        self.random_state = random_state
        self.log_path = log_path
        self.verbose = verbose

        self.state = OptimizerState.INITIALIZED
        self.best_mask_: Optional[List[int]] = None
        self.best_fitness_: float = float("nan")
        self.best_metrics_: Optional[EvaluationMetrics] = None
        self.logbook_: Optional[tools.Logbook] = None

        self.stats = tools.Statistics(lambda ind: ind.fitness.values[0])
        self.stats.register("avg", np.mean)
        self.stats.register("std", _std)
        self.stats.register("min", np.min)
        self.stats.register("max", np.max)

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------

    def optimize(self, dataset: Dataset, fitness_function: FitnessFunction) -> List[int]:
        if self.state is OptimizerState.RUNNING:
            raise RuntimeError(f"{self.name} is already running")
        if not isinstance(dataset, Dataset):
            raise TypeError(f"dataset must be a Dataset, got {type(dataset).__name__}")

        self.rng = make_rng(self.random_state)
        self.toolbox = base.Toolbox()
        self.toolbox.register("map", map)
        self.toolbox.register("evaluate", self._guarded_evaluate, dataset, fitness_function)
        self.logbook_ = tools.Logbook()
        self.logbook_.header = ["iteration", "best_fitness", "features_selected", "diversity"] + self.stats.fields
        self._progress = ProgressLog(self.log_path) if self.log_path else None

        self.state = OptimizerState.RUNNING
        if self.verbose:
            print(
                f"[{self.tag}] Starting {self.name} with {self.population_size} individuals, "
                f"{self.max_iterations} iterations, {dataset.n_features} features"
            )
        try:
            mask = self._search(dataset)
        finally:
            self.state = OptimizerState.TERMINATED

        self.best_mask_ = [int(b) for b in mask]
        if self.verbose:
            print(
                f"[{self.tag}] {self.name} finished. Best fitness: {self.best_fitness_:.4f}, "
                f"features selected: {sum(self.best_mask_)}/{len(self.best_mask_)}"
            )
        return list(self.best_mask_)

    # ------------------------------------------------------------------
    # helpers for subclasses
    # ------------------------------------------------------------------

    def _search(self, dataset: Dataset) -> Sequence[int]:
        raise NotImplementedError

    def _population(self, bits: np.ndarray) -> list:
        return [creator.MaskIndividual(int(b) for b in row) for row in np.asarray(bits, dtype=int)]

    @staticmethod
    def _bits(population: Sequence[Sequence[int]]) -> np.ndarray:
        return np.asarray(population, dtype=int)

    @staticmethod
    def _fitnesses(population) -> np.ndarray:
        return np.array([ind.fitness.values[0] for ind in population], dtype=float)

    def _guarded_evaluate(self, dataset: Dataset, fitness_function: FitnessFunction, individual) -> FitnessResult:
        try:
            return fitness_function.evaluate_detailed(dataset, list(individual))
        except MaskLengthError:
            raise
        except Exception as e:
            print(f"[WARN] {self.tag}: fitness evaluation failed ({e}); scoring individual as -inf")
            return FitnessResult.failure(float("-inf"))

    def _evaluate(self, population) -> List[FitnessResult]:
        results = list(self.toolbox.map(self.toolbox.evaluate, population))
        for ind, result in zip(population, results):
            ind.fitness.values = (float(result.fitness),)
            ind.metrics = result.metrics
        return results

    def _record(
        self,
        iteration: int,
        population,
        best_fitness: float,
        best_metrics: Optional[EvaluationMetrics],
        best_mask: Sequence[int],
    ) -> dict:
        record = self.stats.compile(population)
        diversity = population_diversity(population)
        n_selected = int(sum(best_mask))
        metrics = best_metrics if best_metrics is not None else EvaluationMetrics.nan()
        self.logbook_.record(
            iteration=iteration,
            best_fitness=best_fitness,
            features_selected=n_selected,
            diversity=diversity,
            **record,
        )
        self.best_fitness_ = float(best_fitness)
        self.best_metrics_ = metrics

        if self._progress is not None:
            self._progress.append({
                "iteration": iteration,
                "best_fitness": best_fitness,
                "max_fitness": record["max"],
                "min_fitness": record["min"],
                "avg_fitness": record["avg"],
                "best_accuracy": metrics.accuracy,
                "best_precision": metrics.precision,
                "best_recall": metrics.recall,
                "best_f1": metrics.f1,
                "features_selected": n_selected,
                "diversity": diversity,
                "best_mask": mask_to_string(best_mask),
            })
        if self.verbose:
            print(
                f"[{self.tag}] Iteration {iteration}/{self.max_iterations}: "
                f"best={_fmt(best_fitness)} max={_fmt(record['max'])} min={_fmt(record['min'])} "
                f"avg={_fmt(record['avg'])} acc={_fmt(metrics.accuracy)} prec={_fmt(metrics.precision)} "
                f"rec={_fmt(metrics.recall)} f1={_fmt(metrics.f1)} features={n_selected}"
            )
        return record


def _std(values) -> float:
    # All -inf (every evaluation failed) gives NaN
    with np.errstate(invalid="ignore"):
        return float(np.std(values))


def _fmt(value: float) -> str:
    value = float(value)
    return f"{value:.4f}" if math.isfinite(value) else str(value)
