import numpy as np
import torchvision as thv

RNG = np.random.default_rng(42)


def one_hot(labels: np.ndarray, K: int) -> np.ndarray:
    """Integer labels in [0, K) -> (N, K) indicator matrix."""
    labels = np.asarray(labels, dtype=np.int64).reshape(-1)
    if labels.size and (labels.min() < 0 or labels.max() >= K):
        raise ValueError(f"labels must lie in [0, {K}), got range [{labels.min()}, {labels.max()}]")
    Y = np.zeros((labels.shape[0], K))
    Y[np.arange(labels.shape[0]), labels] = 1.0
    return Y


def load_csv(path: str):
    """
    Rows of `label, pixel_1, ..., pixel_n` with pixels in 0..255.
    Returns X (N, n) scaled to [0,1] and integer labels (N,).
    """
    data = np.loadtxt(path, delimiter=",", ndmin=2)
    if data.shape[1] < 2:
        raise ValueError(f"{path}: expected a label column followed by pixel columns")
    y = data[:, 0].astype(np.int64)
    X = data[:, 1:] / 255.0
    return X, y


def load_mnist(root: str = "./data"):
    train = thv.datasets.MNIST(root, download=True, train=True)
    val   = thv.datasets.MNIST(root, download=True, train=False)

    Xtr = train.data.numpy().reshape(len(train), -1).astype(np.float64) / 255.0
    Ytr = train.targets.numpy().astype(np.int64)
    Xva = val.data.numpy().reshape(len(val), -1).astype(np.float64) / 255.0
    Yva = val.targets.numpy().astype(np.int64)
    return Xtr, Ytr, Xva, Yva


def train_val_split(X, y, val_frac=0.1, rng=RNG):
    idx = np.arange(len(y))
    rng.shuffle(idx)
    k = int(round(len(y) * val_frac))
    return X[idx[k:]], y[idx[k:]], X[idx[:k]], y[idx[:k]]

