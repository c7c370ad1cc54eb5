from __future__ import annotations

import os
from typing import Any, Dict, List

import pandas as pd


PROGRESS_COLUMNS: List[str] = [
    "iteration",
    "best_fitness",
    "max_fitness",
    "min_fitness",
    "avg_fitness",
    "best_accuracy",
    "best_precision",
    "best_recall",
    "best_f1",
    "features_selected",
    "diversity",
    "best_mask",
]


class ProgressLog:
    """
    Per-iteration CSV sink. Each row is appended to disk as soon as it is
    recorded, so an interrupted run still leaves the history up to that point.
    """

    def __init__(self, path: str, overwrite: bool = True) -> None:
        self.path = path
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        if overwrite and os.path.exists(path):
            os.remove(path)
        self._header_written = os.path.exists(path) and os.path.getsize(path) > 0

    def append(self, row: Dict[str, Any]) -> None:
        frame = pd.DataFrame([{c: row.get(c) for c in PROGRESS_COLUMNS}], columns=PROGRESS_COLUMNS)
        frame.to_csv(
            self.path,
            mode="a",
            header=not self._header_written,
            index=False,
            float_format="%.6f",
        )
        self._header_written = True


def read_progress(path: str) -> pd.DataFrame:
    # Masks are kept as strings; leading zeros would be lost otherwise
    return pd.read_csv(path, dtype={"best_mask": str})
