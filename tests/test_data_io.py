import numpy as np
import pytest

from nn_grad_check.data import load_csv, one_hot, train_val_split
from nn_grad_check.matrix_io import read_matrix, write_matrix


def test_one_hot():
    Y = one_hot(np.array([2, 0, 1]), 3)
    np.testing.assert_array_equal(Y, [[0, 0, 1], [1, 0, 0], [0, 1, 0]])


def test_one_hot_rejects_out_of_range():
    with pytest.raises(ValueError, match=r"labels must lie in \[0, 3\)"):
        one_hot(np.array([0, 3]), 3)


def test_load_csv_scales_pixels(tmp_path):
    path = tmp_path / "digits.csv"
    path.write_text("3,0,255,51\n7,255,0,102\n")
    X, y = load_csv(str(path))
    np.testing.assert_array_equal(y, [3, 7])
    np.testing.assert_allclose(X, [[0.0, 1.0, 0.2], [1.0, 0.0, 0.4]])


def test_train_val_split_partitions_rows():
    X = np.arange(20, dtype=np.float64).reshape(10, 2)
    y = np.arange(10)
    Xtr, ytr, Xva, yva = train_val_split(X, y, val_frac=0.3, rng=np.random.default_rng(0))
    assert len(ytr) == 7 and len(yva) == 3
    assert sorted(np.concatenate([ytr, yva]).tolist()) == list(range(10))
    np.testing.assert_array_equal(Xtr[:, 0], 2 * ytr)


@pytest.mark.parametrize("fmt,name", [("csv", "W.csv"), ("binary", "W")])
def test_write_then_read(tmp_path, fmt, name):
    M = np.random.default_rng(0).normal(size=(3, 4))
    path = write_matrix(str(tmp_path / "out" / name), M, fmt)
    np.testing.assert_array_equal(read_matrix(path), M)


def test_binary_appends_extension(tmp_path):
    path = write_matrix(str(tmp_path / "b"), np.ones((1, 2)), "binary")
    assert path.endswith("b.npy")


def test_unknown_format(tmp_path):
    with pytest.raises(ValueError, match="unknown matrix format"):
        write_matrix(str(tmp_path / "W"), np.ones((2, 2)), "parquet")
