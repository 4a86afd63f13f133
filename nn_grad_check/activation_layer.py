import numpy as np

class relu_t:
    """
    Elementwise ReLU:
      forward:  y = max(0, x)
      backward: dL/dx = dL/dy * 1{x > 0}
    No parameters; just caches a boolean mask from the forward pass.
    """
    def __init__(self):
        self.mask = None  # True where input > 0

    def forward(self, X: np.ndarray) -> np.ndarray:
        self.mask = (X > 0)
        return np.where(self.mask, X, 0.0)

    def backward(self, dout: np.ndarray) -> np.ndarray:
        assert self.mask is not None, "Call forward() first"
        # Only let gradients flow where input was positive
        return dout * self.mask

    def zero_grad(self):
        pass


class sigmoid_t:
    """
    Elementwise logistic sigmoid, y = 1 / (1 + exp(-x)).
    backward uses the cached output: dL/dx = dL/dy * y * (1 - y)
    """
    def __init__(self):
        self.out = None

    def forward(self, X: np.ndarray) -> np.ndarray:
        # split by sign so exp never overflows
        out = np.empty_like(X, dtype=np.float64)
        pos = X >= 0
        out[pos] = 1.0 / (1.0 + np.exp(-X[pos]))
        ez = np.exp(X[~pos])
        out[~pos] = ez / (1.0 + ez)
        self.out = out
        return out

    def backward(self, dout: np.ndarray) -> np.ndarray:
        assert self.out is not None, "Call forward() first"
        return dout * self.out * (1.0 - self.out)

    def zero_grad(self):
        pass


class tanh_t:
    def __init__(self):
        self.out = None

    def forward(self, X: np.ndarray) -> np.ndarray:
        self.out = np.tanh(X)
        return self.out

    def backward(self, dout: np.ndarray) -> np.ndarray:
        assert self.out is not None, "Call forward() first"
        return dout * (1.0 - self.out ** 2)

    def zero_grad(self):
        pass


class softmax_t:
    """
    Row-wise softmax over the columns of a (N, K) score matrix.
    backward: dL/ds = p * (dL/dp - rowsum(dL/dp * p))
    """
    def __init__(self):
        self.probs = None  # (N, K)

    def forward(self, scores: np.ndarray) -> np.ndarray:
        # numerically stable softmax
        z = scores - np.max(scores, axis=1, keepdims=True)
        ez = np.exp(z)
        self.probs = ez / np.sum(ez, axis=1, keepdims=True)
        return self.probs

    def backward(self, dprobs: np.ndarray) -> np.ndarray:
        assert self.probs is not None, "Call forward() first"
        p = self.probs
        return p * dprobs - p * np.sum(dprobs * p, axis=1, keepdims=True)

    def zero_grad(self):
        pass
