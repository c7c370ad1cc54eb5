import json
import os

import pandas as pd
import pytest

import feature_selection_meta as fsm
from metafs.gwo import GreyWolfOptimizer
from metafs.tlbo import TeachingLearningOptimizer

from conftest import make_noisy


def _write_csv(path):
    data = make_noisy(n_rows=40, n_features=6, seed=4)
    df = pd.DataFrame(data.X, columns=[f"col{i}" for i in range(6)])
    df["label"] = ["M" if v else "B" for v in data.y]
    df.to_csv(path, index=False)
    return data


def test_main_on_csv(tmp_path):
    csv_path = tmp_path / "data.csv"
    _write_csv(csv_path)
    out = tmp_path / "out"
    result = fsm.main([
        "--csv", str(csv_path), "--target-col", "label",
        "--optimizer", "gwo", "--pop-size", "4", "--iterations", "2",
        "--classifier", "tree", "--seed", "1",
        "--output", str(out), "--quiet",
    ])

    assert result["total_features"] == 6
    assert result["num_selected"] == len(result["selected_features"]) == len(result["selected_indices"])
    assert len(result["best_mask"]) == 6

    with open(out / "best_solution.json") as f:
        saved = json.load(f)
    assert saved["best_mask"] == result["best_mask"]
    assert saved["settings"]["optimizer"]["population_size"] == 4
    assert set(saved["all_features_metrics"]) == {"accuracy", "precision", "recall", "f1"}

    log = pd.read_csv(out / "evolution_log.csv", dtype={"best_mask": str})
    assert log["iteration"].tolist() == [1, 2]
    assert os.path.exists(out / "best_fitness.png")


def test_main_with_config_dir(tmp_path):
    csv_path = tmp_path / "data.csv"
    _write_csv(csv_path)
    cfg = tmp_path / "cfg"
    cfg.mkdir()
    (cfg / "task_info.json").write_text(json.dumps({
        "dataset_source": "csv",
        "csv": {"path": str(csv_path), "target_col": "label"},
    }))
    (cfg / "algo_config.json").write_text(json.dumps({
        "optimizer": {"name": "tlbo", "population_size": 3, "max_iterations": 2},
        "fitness": {"classifier": "tree", "size_penalty": 0.0},
    }))
    out = tmp_path / "out"
    result = fsm.main(["--use-config", "--config-dir", str(cfg), "--output", str(out), "--seed", "3", "--quiet"])

    assert result["optimizer"] == TeachingLearningOptimizer.name
    with open(out / "best_solution.json") as f:
        settings = json.load(f)["settings"]
    assert settings["optimizer"]["name"] == "tlbo"
    assert settings["fitness"]["size_penalty"] == 0.0
    assert len(pd.read_csv(out / "evolution_log.csv")) == 2


def test_make_optimizer():
    gwo = fsm.make_optimizer("GWO", population_size=3, max_iterations=1, min_a=0.2)
    assert isinstance(gwo, GreyWolfOptimizer) and gwo.min_a == 0.2
    tlbo = fsm.make_optimizer("tlbo", population_size=3, max_iterations=1, min_a=0.2)
    assert isinstance(tlbo, TeachingLearningOptimizer)
    with pytest.raises(ValueError):
        fsm.make_optimizer("pso", population_size=3, max_iterations=1)


def test_load_dataset_requires_a_source():
    with pytest.raises(ValueError):
        fsm.load_dataset(None, None, None)
    with pytest.raises(ValueError):
        fsm.load_dataset(None, None, "digits")
    iris = fsm.load_dataset(None, None, "iris")
    assert iris.n_features == 4 and iris.X.max() == pytest.approx(1.0)


def test_final_metrics_of_empty_mask_is_nan(separable, tree_fitness):
    assert fsm.final_metrics(separable, [0, 0, 0, 0], tree_fitness).is_nan()
    assert fsm.final_metrics(separable, [1, 0, 0, 0], tree_fitness).accuracy == pytest.approx(1.0)


def test_plot_best_fitness(tmp_path):
    pytest.importorskip("matplotlib")
    logbook = [
        {"iteration": 1, "best_fitness": 0.5, "max": 0.5},
        {"iteration": 2, "best_fitness": 0.7, "max": 0.6},
    ]
    fsm.plot_best_fitness(logbook, str(tmp_path))
    assert (tmp_path / "best_fitness.png").exists()
