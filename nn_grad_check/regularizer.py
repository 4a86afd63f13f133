import numpy as np


class l1_reg_t:
    """lam * sum(|X|); subgradient sign(X)"""

    def __init__(self, lam: float = 0.01):
        self.lam = lam
        self.X = None

    def forward(self, X: np.ndarray) -> float:
        self.X = X
        return float(self.lam * np.sum(np.abs(X)))

    def backward(self) -> np.ndarray:
        assert self.X is not None, "Call forward() first"
        return self.lam * np.sign(self.X)

    def zero_grad(self):
        pass


class l2_reg_t:
    """0.5 * lam * sum(X^2); gradient lam * X"""

    def __init__(self, lam: float = 0.01):
        self.lam = lam
        self.X = None

    def forward(self, X: np.ndarray) -> float:
        self.X = X
        return float(0.5 * self.lam * np.sum(X ** 2))

    def backward(self) -> np.ndarray:
        assert self.X is not None, "Call forward() first"
        return self.lam * self.X

    def zero_grad(self):
        pass
