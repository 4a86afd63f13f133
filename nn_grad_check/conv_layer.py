"""
2-D convolution over flattened images.

Every variant uses the same layout:
  X:   (N, C*Hin*Win)   row-major over (C, Hin, Win)
  W:   (F, C*Hf*Wf)     row-major over (C, Hf, Wf)
  b:   (F, 1)
  out: (N, F*Hout*Wout)

conv2d_t         im2col per example, one matmul per example
conv2d_builtin_t torch.nn.functional.conv2d and torch.nn.grad
conv2d_simple_t  explicit loops over every output pixel; slow, used as a reference

All three must agree on forward outputs and gradients.
"""
import numpy as np
import torch
import torch.nn.grad
import torch.nn.functional as F

RNG = np.random.default_rng(42)


def _pair(v):
    if isinstance(v, (tuple, list)):
        return int(v[0]), int(v[1])
    return int(v), int(v)


def out_dims(Hin, Win, Hf, Wf, stride, pad):
    sh, sw = stride
    ph, pw = pad
    Hout = (Hin + 2 * ph - Hf) // sh + 1
    Wout = (Win + 2 * pw - Wf) // sw + 1
    if Hout < 1 or Wout < 1:
        raise ValueError(f"filter {Hf}x{Wf} does not fit a padded {Hin}x{Win} input")
    return Hout, Wout


def im2col(xpad, Hf, Wf, stride, Hout, Wout):
    """(C, Hp, Wp) -> (C*Hf*Wf, Hout*Wout), one column per output pixel."""
    sh, sw = stride
    C = xpad.shape[0]
    cols = np.empty((C, Hf, Wf, Hout, Wout), dtype=xpad.dtype)
    for i in range(Hf):
        for j in range(Wf):
            cols[:, i, j] = xpad[:, i:i + sh * Hout:sh, j:j + sw * Wout:sw]
    return cols.reshape(C * Hf * Wf, Hout * Wout)


def col2im(cols, C, Hp, Wp, Hf, Wf, stride, Hout, Wout):
    """Inverse scatter of im2col: overlapping patches are summed."""
    sh, sw = stride
    cols = cols.reshape(C, Hf, Wf, Hout, Wout)
    xpad = np.zeros((C, Hp, Wp))
    for i in range(Hf):
        for j in range(Wf):
            xpad[:, i:i + sh * Hout:sh, j:j + sw * Wout:sw] += cols[:, i, j]
    return xpad


def reshape_input(X, C, Hin, Win):
    if X.ndim != 2 or X.shape[1] != C * Hin * Win:
        raise ValueError(f"expected input of shape (N, {C * Hin * Win}) for C={C}, "
                         f"Hin={Hin}, Win={Win}; got {X.shape}")
    return X.reshape(X.shape[0], C, Hin, Win)


class _conv2d_base:

    def __init__(self, C: int, Hin: int, Win: int, num_filters: int, Hf: int, Wf: int,
                 stride=1, pad=0, rng: np.random.Generator = None):
        rng = RNG if rng is None else rng
        self.C, self.Hin, self.Win = C, Hin, Win
        self.num_filters, self.Hf, self.Wf = num_filters, Hf, Wf
        self.stride, self.pad = _pair(stride), _pair(pad)
        self.Hout, self.Wout = out_dims(Hin, Win, Hf, Wf, self.stride, self.pad)

        # He init over the fan-in of one filter
        self.W = rng.normal(size=(num_filters, C * Hf * Wf)) * np.sqrt(2.0 / (C * Hf * Wf))
        self.b = np.zeros((num_filters, 1))

        self.dW = np.zeros_like(self.W)
        self.db = np.zeros_like(self.b)
        self.X = None

    def _padded(self, X):
        ph, pw = self.pad
        Xr = reshape_input(X, self.C, self.Hin, self.Win)
        return np.pad(Xr, ((0, 0), (0, 0), (ph, ph), (pw, pw)))

    def _unpad(self, dXpad):
        ph, pw = self.pad
        N = dXpad.shape[0]
        return dXpad[:, :, ph:ph + self.Hin, pw:pw + self.Win].reshape(N, -1)

    def zero_grad(self):
        self.dW[...] = 0.0
        self.db[...] = 0.0


class conv2d_t(_conv2d_base):

    def forward(self, X: np.ndarray) -> np.ndarray:
        self.X = X
        Xpad = self._padded(X)
        N = X.shape[0]
        out = np.empty((N, self.num_filters, self.Hout * self.Wout))
        for n in range(N):
            cols = im2col(Xpad[n], self.Hf, self.Wf, self.stride, self.Hout, self.Wout)
            out[n] = self.W @ cols + self.b
        return out.reshape(N, -1)

    def backward(self, dout: np.ndarray) -> np.ndarray:
        assert self.X is not None, "Call forward() first"
        Xpad = self._padded(self.X)
        N, _, Hp, Wp = Xpad.shape
        dout = dout.reshape(N, self.num_filters, self.Hout * self.Wout)

        self.dW = np.zeros_like(self.W)
        self.db = np.zeros_like(self.b)
        dXpad = np.zeros_like(Xpad)
        for n in range(N):
            cols = im2col(Xpad[n], self.Hf, self.Wf, self.stride, self.Hout, self.Wout)
            self.dW += dout[n] @ cols.T
            self.db += dout[n].sum(axis=1, keepdims=True)
            dXpad[n] = col2im(self.W.T @ dout[n], self.C, Hp, Wp,
                              self.Hf, self.Wf, self.stride, self.Hout, self.Wout)
        return self._unpad(dXpad)


class conv2d_builtin_t(_conv2d_base):

    def _torch_weight(self):
        return torch.from_numpy(np.ascontiguousarray(
            self.W.reshape(self.num_filters, self.C, self.Hf, self.Wf)))

    def forward(self, X: np.ndarray) -> np.ndarray:
        self.X = X
        x = torch.from_numpy(np.ascontiguousarray(reshape_input(X, self.C, self.Hin, self.Win)))
        bias = torch.from_numpy(np.ascontiguousarray(self.b.reshape(-1)))
        with torch.no_grad():
            out = F.conv2d(x, self._torch_weight(), bias, stride=self.stride, padding=self.pad)
        return out.numpy().reshape(X.shape[0], -1)

    def backward(self, dout: np.ndarray) -> np.ndarray:
        assert self.X is not None, "Call forward() first"
        N = self.X.shape[0]
        x = torch.from_numpy(np.ascontiguousarray(reshape_input(self.X, self.C, self.Hin, self.Win)))
        w = self._torch_weight()
        g = torch.from_numpy(np.ascontiguousarray(
            dout.reshape(N, self.num_filters, self.Hout, self.Wout)))

        dx = torch.nn.grad.conv2d_input(x.shape, w, g, stride=self.stride, padding=self.pad)
        dw = torch.nn.grad.conv2d_weight(x, w.shape, g, stride=self.stride, padding=self.pad)
        self.dW = dw.numpy().reshape(self.num_filters, -1)
        self.db = g.sum(dim=(0, 2, 3)).numpy().reshape(-1, 1)
        return dx.numpy().reshape(N, -1)


class conv2d_simple_t(_conv2d_base):

    def forward(self, X: np.ndarray) -> np.ndarray:
        self.X = X
        Xpad = self._padded(X)
        N = X.shape[0]
        sh, sw = self.stride
        Wr = self.W.reshape(self.num_filters, self.C, self.Hf, self.Wf)
        out = np.zeros((N, self.num_filters, self.Hout, self.Wout))
        for n in range(N):
            for f in range(self.num_filters):
                for oh in range(self.Hout):
                    for ow in range(self.Wout):
                        h0, w0 = oh * sh, ow * sw
                        patch = Xpad[n, :, h0:h0 + self.Hf, w0:w0 + self.Wf]
                        out[n, f, oh, ow] = np.sum(Wr[f] * patch) + self.b[f, 0]
        return out.reshape(N, -1)

    def backward(self, dout: np.ndarray) -> np.ndarray:
        assert self.X is not None, "Call forward() first"
        Xpad = self._padded(self.X)
        N = Xpad.shape[0]
        sh, sw = self.stride
        Wr = self.W.reshape(self.num_filters, self.C, self.Hf, self.Wf)
        dout = dout.reshape(N, self.num_filters, self.Hout, self.Wout)

        dWr = np.zeros_like(Wr)
        db = np.zeros_like(self.b)
        dXpad = np.zeros_like(Xpad)
        for n in range(N):
            for f in range(self.num_filters):
                for oh in range(self.Hout):
                    for ow in range(self.Wout):
                        h0, w0 = oh * sh, ow * sw
                        g = dout[n, f, oh, ow]
                        dWr[f] += g * Xpad[n, :, h0:h0 + self.Hf, w0:w0 + self.Wf]
                        dXpad[n, :, h0:h0 + self.Hf, w0:w0 + self.Wf] += g * Wr[f]
                        db[f, 0] += g
        self.dW = dWr.reshape(self.num_filters, -1)
        self.db = db
        return self._unpad(dXpad)
