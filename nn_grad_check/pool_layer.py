"""
2-D max pooling over flattened images, (N, C*Hin*Win) -> (N, C*Hout*Wout).
Padding counts as -inf so a padded cell is never the max.

Same three variants as the convolutions: im2col, torch builtin, plain loops.
"""
import numpy as np
import torch
import torch.nn.functional as F

from .conv_layer import _pair, out_dims, im2col, col2im, reshape_input


class _max_pool2d_base:

    def __init__(self, C: int, Hin: int, Win: int, Hf: int, Wf: int, stride=None, pad=0):
        self.C, self.Hin, self.Win = C, Hin, Win
        self.Hf, self.Wf = Hf, Wf
        # non-overlapping windows unless told otherwise
        self.stride = (Hf, Wf) if stride is None else _pair(stride)
        self.pad = _pair(pad)
        self.Hout, self.Wout = out_dims(Hin, Win, Hf, Wf, self.stride, self.pad)
        self.X = None

    def _padded(self, X):
        ph, pw = self.pad
        Xr = reshape_input(X, self.C, self.Hin, self.Win)
        return np.pad(Xr, ((0, 0), (0, 0), (ph, ph), (pw, pw)), constant_values=-np.inf)

    def _unpad(self, dXpad):
        ph, pw = self.pad
        N = dXpad.shape[0]
        return dXpad[:, :, ph:ph + self.Hin, pw:pw + self.Win].reshape(N, -1)

    def zero_grad(self):
        pass


class max_pool2d_t(_max_pool2d_base):

    def _windows(self, xpad):
        cols = im2col(xpad, self.Hf, self.Wf, self.stride, self.Hout, self.Wout)
        return cols.reshape(self.C, self.Hf * self.Wf, self.Hout * self.Wout)

    def forward(self, X: np.ndarray) -> np.ndarray:
        self.X = X
        Xpad = self._padded(X)
        N = X.shape[0]
        out = np.empty((N, self.C, self.Hout * self.Wout))
        for n in range(N):
            out[n] = self._windows(Xpad[n]).max(axis=1)
        return out.reshape(N, -1)

    def backward(self, dout: np.ndarray) -> np.ndarray:
        assert self.X is not None, "Call forward() first"
        Xpad = self._padded(self.X)
        N, _, Hp, Wp = Xpad.shape
        dout = dout.reshape(N, self.C, 1, self.Hout * self.Wout)
        dXpad = np.zeros_like(Xpad)
        for n in range(N):
            win = self._windows(Xpad[n])
            # route each window's gradient to its first max
            idx = win.argmax(axis=1)[:, None, :]
            dcols = np.zeros_like(win)
            np.put_along_axis(dcols, idx, dout[n], axis=1)
            dXpad[n] = col2im(dcols, self.C, Hp, Wp, self.Hf, self.Wf,
                              self.stride, self.Hout, self.Wout)
        return self._unpad(dXpad)


class max_pool2d_builtin_t(_max_pool2d_base):

    def _pool(self, x):
        return F.max_pool2d(x, kernel_size=(self.Hf, self.Wf), stride=self.stride, padding=self.pad)

    def forward(self, X: np.ndarray) -> np.ndarray:
        self.X = X
        x = torch.from_numpy(np.ascontiguousarray(reshape_input(X, self.C, self.Hin, self.Win)))
        with torch.no_grad():
            out = self._pool(x)
        return out.numpy().reshape(X.shape[0], -1)

    def backward(self, dout: np.ndarray) -> np.ndarray:
        assert self.X is not None, "Call forward() first"
        N = self.X.shape[0]
        x = torch.tensor(reshape_input(self.X, self.C, self.Hin, self.Win), requires_grad=True)
        out = self._pool(x)
        out.backward(torch.from_numpy(np.ascontiguousarray(dout)).reshape(out.shape))
        return x.grad.numpy().reshape(N, -1)


class max_pool2d_simple_t(_max_pool2d_base):

    def forward(self, X: np.ndarray) -> np.ndarray:
        self.X = X
        Xpad = self._padded(X)
        N = X.shape[0]
        sh, sw = self.stride
        out = np.empty((N, self.C, self.Hout, self.Wout))
        for n in range(N):
            for c in range(self.C):
                for oh in range(self.Hout):
                    for ow in range(self.Wout):
                        h0, w0 = oh * sh, ow * sw
                        out[n, c, oh, ow] = Xpad[n, c, h0:h0 + self.Hf, w0:w0 + self.Wf].max()
        return out.reshape(N, -1)

    def backward(self, dout: np.ndarray) -> np.ndarray:
        assert self.X is not None, "Call forward() first"
        Xpad = self._padded(self.X)
        N = Xpad.shape[0]
        sh, sw = self.stride
        dout = dout.reshape(N, self.C, self.Hout, self.Wout)
        dXpad = np.zeros_like(Xpad)
        for n in range(N):
            for c in range(self.C):
                for oh in range(self.Hout):
                    for ow in range(self.Wout):
                        h0, w0 = oh * sh, ow * sw
                        patch = Xpad[n, c, h0:h0 + self.Hf, w0:w0 + self.Wf]
                        # ties share the gradient; random inputs make ties unlikely
                        dXpad[n, c, h0:h0 + self.Hf, w0:w0 + self.Wf] += dout[n, c, oh, ow] * (patch == patch.max())
        return self._unpad(dXpad)
