"""
Score (user, item) pairs from two factor matrices of a rating matrix V ~ L @ R.

    X: (k, 2)       1-based user and item ids
    L: (Vrows, r)   user factors
    R: (r, Vcols)   item factors

Output Y: (k, 3) rows [user, item, L[user] . R[:, item]].

Usage:
    python -m nn_grad_check.als_predict --X pairs.csv --L L.csv --R R.csv \
        --Vrows 1000 --Vcols 500 --out Y.csv --fmt csv
"""
import argparse

import numpy as np

from .matrix_io import FORMATS, read_matrix, write_matrix


def _check_ids(ids, bound, what):
    if not np.all(ids == np.round(ids)):
        raise ValueError(f"{what} ids must be integers")
    if ids.size and (ids.min() < 1 or ids.max() > bound):
        raise ValueError(f"{what} ids must lie in [1, {bound}], got range "
                         f"[{int(ids.min())}, {int(ids.max())}]")


def predict_ratings(X: np.ndarray, L: np.ndarray, R: np.ndarray, Vrows: int, Vcols: int) -> np.ndarray:
    X = np.atleast_2d(X)
    if X.shape[1] != 2:
        raise ValueError(f"X must have 2 columns (user, item), got {X.shape[1]}")
    if L.shape[0] != Vrows:
        raise ValueError(f"Number of rows of L ({L.shape[0]}) differs from Vrows ({Vrows})")
    if R.shape[1] != Vcols:
        raise ValueError(f"Number of columns of R ({R.shape[1]}) differs from Vcols ({Vcols})")
    if L.shape[1] != R.shape[0]:
        raise ValueError(f"Rank of L ({L.shape[1]}) and R ({R.shape[0]}) do not match")

    users, items = X[:, 0], X[:, 1]
    _check_ids(users, Vrows, "user")
    _check_ids(items, Vcols, "item")

    u = users.astype(np.int64) - 1
    i = items.astype(np.int64) - 1
    ratings = np.sum(L[u] * R[:, i].T, axis=1)
    return np.column_stack([users, items, ratings])


def main(argv=None):
    ap = argparse.ArgumentParser(description="Predict ratings for user/item pairs from ALS factors.")
    ap.add_argument("--X", required=True, help="user/item id pairs, one pair per row")
    ap.add_argument("--L", required=True, help="user factor matrix (Vrows x r)")
    ap.add_argument("--R", required=True, help="item factor matrix (r x Vcols)")
    ap.add_argument("--Vrows", type=int, required=True)
    ap.add_argument("--Vcols", type=int, required=True)
    ap.add_argument("--out", required=True)
    ap.add_argument("--fmt", choices=FORMATS, default="csv")
    args = ap.parse_args(argv)

    Y = predict_ratings(read_matrix(args.X), read_matrix(args.L), read_matrix(args.R),
                        args.Vrows, args.Vcols)
    path = write_matrix(args.out, Y, args.fmt)
    print(f"Scored {Y.shape[0]} pairs -> {path}")


if __name__ == "__main__":
    main()
