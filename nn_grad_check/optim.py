import numpy as np

OPTIMIZERS = ("sgd", "nesterov")


def sgd(X: np.ndarray, dX: np.ndarray, lr: float) -> np.ndarray:
    return X - lr * dX


def sgd_nesterov(X: np.ndarray, dX: np.ndarray, lr: float, mu: float, v: np.ndarray):
    """
    Nesterov momentum in the velocity form:
      v_new = mu*v - lr*dX
      X_new = X - mu*v + (1 + mu)*v_new
    Returns (X_new, v_new).
    """
    v_prev = v
    v = mu * v - lr * dX
    X = X - mu * v_prev + (1 + mu) * v
    return X, v


def sgd_nesterov_init(X: np.ndarray) -> np.ndarray:
    return np.zeros_like(X)
