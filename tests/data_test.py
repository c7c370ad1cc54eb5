import numpy as np
import pandas as pd
import pytest

from metafs.data import Dataset, dataset_from_frame, drop_null_columns, encode_labels, min_max_normalize


def test_default_feature_names():
    data = Dataset(X=np.zeros((3, 2)), y=[0, 1, 0])
    assert data.feature_names == ["f0", "f1"]
    assert data.n_rows == 3 and data.n_features == 2


@pytest.mark.parametrize("X, y, names", [
    (np.zeros((3, 2)), [0, 1], []),             # label count
    (np.zeros(3), [0, 1, 0], []),               # not 2-D
    (np.zeros((3, 0)), [0, 1, 0], []),          # no columns
    (np.zeros((0, 2)), [], []),                 # no rows
    (np.zeros((3, 2)), [0, 1, 0], ["a"]),       # name count
])
def test_shape_violations_rejected(X, y, names):
    with pytest.raises(ValueError):
        Dataset(X=X, y=y, feature_names=names)


def test_select_keeps_marked_columns():
    data = Dataset(X=np.arange(12).reshape(3, 4), y=[0, 1, 0], feature_names=["a", "b", "c", "d"])
    sub = data.select([1, 0, 0, 1])
    assert sub.feature_names == ["a", "d"]
    assert sub.X.tolist() == [[0, 3], [4, 7], [8, 11]]
    with pytest.raises(ValueError):
        data.select([1, 0])


def test_min_max_normalize_range_and_constant_column():
    X = np.array([[1.0, 5.0, 2.0], [3.0, 5.0, 4.0], [2.0, 5.0, 6.0]])
    out = min_max_normalize(X)
    assert out.min() >= 0.0 and out.max() <= 1.0
    assert out[:, 0].tolist() == [0.0, 1.0, 0.5]
    assert out[:, 1].tolist() == [0.0, 0.0, 0.0]


def test_drop_null_columns_threshold():
    df = pd.DataFrame({"a": [1, None, None, None], "b": [1, 2, None, 4], "c": [1, 2, 3, 4]})
    out = drop_null_columns(df, threshold=0.5)
    assert list(out.columns) == ["b", "c"]


def test_encode_labels_factorizes_strings_in_sorted_order():
    assert encode_labels(["M", "B", "B", "M"]).tolist() == [1, 0, 0, 1]
    assert encode_labels([3, 1, 2]).tolist() == [3, 1, 2]


def test_dataset_from_frame_cleans_and_scales():
    df = pd.DataFrame({
        "id_like": [None, None, None, 1.0, None],
        "radius": [10.0, 20.0, None, 30.0, 40.0],
        "texture": [1.0, 2.0, 3.0, 4.0, 5.0],
        "diagnosis": ["B", "M", "B", "M", "B"],
    })
    data = dataset_from_frame(df, "diagnosis")
    assert data.feature_names == ["radius", "texture"]
    assert data.n_rows == 4
    assert data.y.tolist() == [0, 1, 1, 0]
    assert data.X.min() == 0.0 and data.X.max() == 1.0


def test_dataset_from_frame_missing_target():
    with pytest.raises(ValueError, match="Target column"):
        dataset_from_frame(pd.DataFrame({"a": [1]}), "label")
