import numpy as np

# Every loss averages over the N rows of pred, so gradients carry a 1/N.


class l1_loss_t:
    """L = sum(|pred - y|) / N"""

    def __init__(self):
        self.pred = None
        self.y = None

    def forward(self, pred: np.ndarray, y: np.ndarray) -> float:
        self.pred, self.y = pred, y
        return float(np.sum(np.abs(pred - y)) / pred.shape[0])

    def backward(self) -> np.ndarray:
        assert self.pred is not None, "Call forward() first"
        return np.sign(self.pred - self.y) / self.pred.shape[0]

    def zero_grad(self):
        pass


class l2_loss_t:
    """L = 0.5 * sum((pred - y)^2) / N"""

    def __init__(self):
        self.pred = None
        self.y = None

    def forward(self, pred: np.ndarray, y: np.ndarray) -> float:
        self.pred, self.y = pred, y
        return float(0.5 * np.sum((pred - y) ** 2) / pred.shape[0])

    def backward(self) -> np.ndarray:
        assert self.pred is not None, "Call forward() first"
        return (self.pred - self.y) / self.pred.shape[0]

    def zero_grad(self):
        pass


class log_loss_t:
    """
    Binary log-loss for probabilities pred in (0,1) and labels y in {0,1}:
      L = -1/N * sum(y*log(pred) + (1-y)*log(1-pred))
    """

    def __init__(self):
        self.pred = None
        self.y = None

    def forward(self, pred: np.ndarray, y: np.ndarray) -> float:
        self.pred, self.y = pred, y
        N = pred.shape[0]
        return float(-np.sum(y * np.log(pred) + (1 - y) * np.log(1 - pred)) / N)

    def backward(self) -> np.ndarray:
        assert self.pred is not None, "Call forward() first"
        N = self.pred.shape[0]
        return (self.pred - self.y) / (self.pred * (1 - self.pred)) / N

    def zero_grad(self):
        pass


class cross_entropy_loss_t:
    """
    Multi-class cross-entropy between row distributions pred and y, both (N, K):
      L = -1/N * sum(y * log(pred))
    pred is expected to be normalized already (e.g. a softmax_t output).
    """

    def __init__(self):
        self.pred = None
        self.y = None

    def forward(self, pred: np.ndarray, y: np.ndarray) -> float:
        self.pred, self.y = pred, y
        N = pred.shape[0]
        # 0 * log(0) counts as 0
        return float(-np.sum(y * np.log(pred + 1e-300)) / N)

    def backward(self) -> np.ndarray:
        assert self.pred is not None, "Call forward() first"
        N = self.pred.shape[0]
        return -(self.y / (self.pred + 1e-300)) / N

    def zero_grad(self):
        pass
