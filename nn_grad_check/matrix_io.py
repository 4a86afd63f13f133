import os
import numpy as np

FORMATS = ("csv", "binary")


def write_matrix(path: str, M: np.ndarray, fmt: str = "csv") -> str:
    """
    Save a 2-D matrix. csv -> comma separated text, binary -> .npy.
    Returns the path actually written (np.save appends .npy when missing).
    """
    if fmt not in FORMATS:
        raise ValueError(f"unknown matrix format {fmt!r}, expected one of {FORMATS}")
    M = np.atleast_2d(np.asarray(M, dtype=np.float64))
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    if fmt == "csv":
        np.savetxt(path, M, delimiter=",", fmt="%.17g")
        return path
    if not path.endswith(".npy"):
        path += ".npy"
    np.save(path, M)
    return path


def read_matrix(path: str) -> np.ndarray:
    if path.endswith(".npy"):
        return np.atleast_2d(np.load(path))
    return np.loadtxt(path, delimiter=",", ndmin=2)
