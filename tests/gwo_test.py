import math

import numpy as np
import pytest

from metafs.base import OptimizerState
from metafs.data import Dataset
from metafs.fitness import FitnessFunction, FitnessResult, MaskLengthError
from metafs.gwo import (
    GreyWolfOptimizer,
    Leaders,
    convergence_coefficient,
    initial_leaders,
    update_leaders,
    wolf_step,
)
from metafs.metrics import EvaluationMetrics
from metafs.progress import PROGRESS_COLUMNS, read_progress


WOLVES = [[1, 0, 0, 0], [0, 1, 0, 0], [0, 0, 1, 0], [0, 0, 0, 1]]


def _scored(fitnesses):
    return [(w, FitnessResult(f, EvaluationMetrics(f, f, f, f))) for w, f in zip(WOLVES, fitnesses)]


class RaisingFitness(FitnessFunction):
    def evaluate(self, dataset, mask):
        raise RuntimeError("oracle down")


class WrongLengthFitness(FitnessFunction):
    def evaluate(self, dataset, mask):
        raise MaskLengthError("mask too short")


class StateProbe(FitnessFunction):
    def __init__(self):
        self.optimizer = None
        self.seen = set()

    def evaluate(self, dataset, mask):
        self.seen.add(self.optimizer.state)
        return float(sum(mask))


def test_initial_leaders_are_first_three_wolves_and_unscored():
    leaders = initial_leaders(WOLVES)
    assert [l.mask for l in leaders] == [tuple(w) for w in WOLVES[:3]]
    assert all(l.score == float("-inf") for l in leaders)
    with pytest.raises(ValueError):
        initial_leaders(WOLVES[:2])


def test_leader_cascade_keeps_first_on_ties():
    leaders = update_leaders(initial_leaders(WOLVES), _scored([0.5, 0.7, 0.6, 0.7]))
    assert leaders.alpha.mask == tuple(WOLVES[1]) and leaders.alpha.score == 0.7
    assert leaders.beta.mask == tuple(WOLVES[3]) and leaders.beta.score == 0.7
    assert leaders.delta.mask == tuple(WOLVES[2]) and leaders.delta.score == 0.6
    assert leaders.alpha.metrics.accuracy == 0.7


def test_update_does_not_mutate_input_leaders():
    before = initial_leaders(WOLVES)
    after = update_leaders(before, _scored([0.9, 0.8, 0.7, 0.6]))
    assert all(l.score == float("-inf") for l in before)
    assert isinstance(after, Leaders)
    assert [l.score for l in after] == [0.9, 0.8, 0.7]


def test_leaders_only_improve_across_iterations():
    leaders = update_leaders(initial_leaders(WOLVES), _scored([0.4, 0.9, 0.2, 0.3]))
    leaders = update_leaders(leaders, _scored([0.1, 0.1, 0.1, 0.1]))
    assert leaders.alpha.score == 0.9
    assert [l.score for l in leaders] == [0.9, 0.4, 0.3]


def test_convergence_coefficient_schedule():
    assert convergence_coefficient(0, 10) == 2.0
    assert convergence_coefficient(5, 10) == pytest.approx(1.0)
    assert convergence_coefficient(9, 10) == 0.4
    assert convergence_coefficient(9, 10, min_a=0.0) == pytest.approx(0.2)


def test_wolf_step_shape_and_reproducibility():
    bits = np.array(WOLVES * 2)
    leaders = initial_leaders(WOLVES)
    a = wolf_step(bits, leaders, 1.5, np.random.default_rng(3))
    b = wolf_step(bits, leaders, 1.5, np.random.default_rng(3))
    assert a.shape == (8, 4)
    assert set(np.unique(a)) <= {0, 1}
    assert np.array_equal(a, b)


def test_run_selects_signal_column(separable, tree_fitness):
    opt = GreyWolfOptimizer(population_size=4, max_iterations=1, random_state=42, verbose=False)
    mask = opt.optimize(separable, tree_fitness)
    assert len(mask) == separable.n_features
    assert set(mask) <= {0, 1}
    assert mask[0] == 1
    assert opt.best_fitness_ >= 0.9
    assert opt.leaders_.alpha.score == pytest.approx(tree_fitness.evaluate(separable, mask))
    assert opt.state is OptimizerState.TERMINATED


def test_logbook_and_progress_file(tmp_path, separable, tree_fitness):
    log = tmp_path / "logs" / "gwo.csv"
    opt = GreyWolfOptimizer(population_size=5, max_iterations=4, random_state=0, log_path=str(log), verbose=False)
    opt.optimize(separable, tree_fitness)

    best = opt.logbook_.select("best_fitness")
    assert opt.logbook_.select("iteration") == [1, 2, 3, 4]
    assert all(b2 >= b1 for b1, b2 in zip(best, best[1:]))
    assert all(mx <= b + 1e-12 for mx, b in zip(opt.logbook_.select("max"), best))

    df = read_progress(str(log))
    assert list(df.columns) == PROGRESS_COLUMNS
    assert len(df) == 4
    assert all(len(m) == separable.n_features for m in df["best_mask"])
    assert df["best_fitness"].iloc[-1] == pytest.approx(opt.best_fitness_, abs=1e-6)


@pytest.mark.parametrize("mutation_rate", [0.0, 0.02])
def test_same_seed_same_run(noisy, tree_fitness, mutation_rate):
    runs = []
    for _ in range(2):
        opt = GreyWolfOptimizer(
            population_size=5, max_iterations=3, mutation_rate=mutation_rate, random_state=11, verbose=False
        )
        mask = opt.optimize(noisy, tree_fitness)
        runs.append((mask, opt.logbook_.select("best_fitness")))
    assert runs[0] == runs[1]


@pytest.mark.filterwarnings("error::RuntimeWarning")
def test_failing_oracle_does_not_abort(separable, capsys):
    opt = GreyWolfOptimizer(population_size=3, max_iterations=2, random_state=1)
    mask = opt.optimize(separable, RaisingFitness())
    assert len(mask) == separable.n_features
    assert math.isinf(opt.best_fitness_) and opt.best_fitness_ < 0
    assert "[WARN]" in capsys.readouterr().out


def test_mask_length_error_propagates(separable):
    opt = GreyWolfOptimizer(population_size=3, max_iterations=2, random_state=1, verbose=False)
    with pytest.raises(MaskLengthError):
        opt.optimize(separable, WrongLengthFitness())
    assert opt.state is OptimizerState.TERMINATED


def test_state_is_running_during_search(separable):
    opt = GreyWolfOptimizer(population_size=3, max_iterations=1, random_state=1, verbose=False)
    probe = StateProbe()
    probe.optimizer = opt
    assert opt.state is OptimizerState.INITIALIZED
    opt.optimize(separable, probe)
    assert probe.seen == {OptimizerState.RUNNING}
    assert opt.state is OptimizerState.TERMINATED


def test_rejects_non_dataset(tree_fitness):
    opt = GreyWolfOptimizer(population_size=3, max_iterations=1, verbose=False)
    with pytest.raises(TypeError):
        opt.optimize(np.zeros((4, 2)), tree_fitness)


def test_single_feature_dataset(tree_fitness):
    data = Dataset(X=[[0.0], [1.0], [0.0], [1.0], [0.0], [1.0]], y=[0, 1, 0, 1, 0, 1])
    mask = GreyWolfOptimizer(population_size=3, max_iterations=2, random_state=5, verbose=False).optimize(data, tree_fitness)
    assert mask in ([0], [1])


@pytest.mark.parametrize("kwargs", [
    {"population_size": 2},
    {"population_size": 3.0},
    {"max_iterations": 0},
    {"mutation_rate": 1.5},
    {"min_a": -0.1},
])
def test_invalid_configuration(kwargs):
    params = {"population_size": 5, "max_iterations": 3}
    params.update(kwargs)
    with pytest.raises(ValueError):
        GreyWolfOptimizer(**params)
