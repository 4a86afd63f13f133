import numpy as np
RNG = np.random.default_rng(42)

class affine_t:

    def __init__(self, D: int, M: int, rng: np.random.Generator = None):
        rng = RNG if rng is None else rng
        # He init, zero bias
        self.W = rng.normal(size=(D, M)) * np.sqrt(2.0 / D)
        self.b = np.zeros((1, M))

        # Grads
        self.dW = np.zeros_like(self.W)
        self.db = np.zeros_like(self.b)
        self.X = None   # cache input

    def forward(self, X: np.ndarray) -> np.ndarray:
        """
        X: (N, D) → returns (N, M)
        """
        if X.shape[1] != self.W.shape[0]:
            raise ValueError(f"affine input has {X.shape[1]} features, W expects {self.W.shape[0]}")
        self.X = X
        return X @ self.W + self.b   # (N,M)

    def backward(self, dout: np.ndarray) -> np.ndarray:
        """
        dout: dL/d(out) of shape (N, M)
        Returns: dL/dX of shape (N, D)
        """
        assert self.X is not None, "Call forward() first"

        # dW = (D,M) from (N,D)^T @ (N,M)
        self.dW = self.X.T @ dout
        self.db = dout.sum(axis=0, keepdims=True)

        dX = dout @ self.W.T   # (N,D)
        return dX

    def zero_grad(self):
        self.dW[...] = 0.0
        self.db[...] = 0.0
