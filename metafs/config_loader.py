import json
import os
from typing import Any, Dict


def _load_json(path: str) -> Dict[str, Any]:
    with open(path, "r") as f:
        return json.load(f)


def load_configs(config_dir: str = "config") -> Dict[str, Any]:
    """
    Load static JSON run configs from a directory.
    Expected files:
      - task_info.json   (dataset source)
      - algo_config.json (optimizer and fitness settings)
    Returns a dict with keys task_info and algo_config for the files present.
    """
    task_path = os.path.join(config_dir, "task_info.json")
    algo_path = os.path.join(config_dir, "algo_config.json")
    out: Dict[str, Any] = {}
    if os.path.exists(task_path):
        out["task_info"] = _load_json(task_path)
    if os.path.exists(algo_path):
        out["algo_config"] = _load_json(algo_path)
    return out


def optimizer_settings_from_configs(configs: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
    opt = configs.get("algo_config", {}).get("optimizer", {})
    out = dict(defaults)
    out["name"] = str(opt.get("name", out.get("name", "gwo"))).lower()
    out["population_size"] = int(opt.get("population_size", out.get("population_size")))
    out["max_iterations"] = int(opt.get("max_iterations", out.get("max_iterations")))
    out["mutation_rate"] = float(opt.get("mutation_rate", out.get("mutation_rate")))
    out["min_a"] = float(opt.get("min_a", out.get("min_a")))
    return out


def fitness_settings_from_configs(configs: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
    fit = configs.get("algo_config", {}).get("fitness", {})
    out = dict(defaults)
    out["classifier"] = str(fit.get("classifier", out.get("classifier", "rf")))
    for key in ("train_fraction", "min_feature_fraction", "size_penalty"):
        if key in fit:
            out[key] = float(fit[key])
    if "split_seed" in fit:
        out["split_seed"] = int(fit["split_seed"])
    return out
