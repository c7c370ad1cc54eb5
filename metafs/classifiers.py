from __future__ import annotations

from typing import Any

from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.svm import SVC
from sklearn.tree import DecisionTreeClassifier


CLASSIFIER_CHOICES = ("rf", "tree", "logistic", "svm")


def make_classifier(name: str, random_state: int = 0) -> Any:
    name = name.lower()
    if name == "rf":
        clf = RandomForestClassifier(n_estimators=100, random_state=random_state)
    elif name == "tree":
        clf = DecisionTreeClassifier(random_state=random_state)
    elif name == "logistic":
        clf = Pipeline([
            ("scaler", StandardScaler()),
            ("clf", LogisticRegression(max_iter=200, solver="liblinear")),
        ])
    elif name == "svm":
        clf = Pipeline([
            ("scaler", StandardScaler()),
            ("clf", SVC(kernel="rbf", gamma="scale")),
        ])
    else:
        raise ValueError(f"Unsupported classifier '{name}'. Choose {'|'.join(CLASSIFIER_CHOICES)}")
    return clf
