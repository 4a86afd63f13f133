"""
Per-layer adapters for gradient_check.grad_check.

Each builder takes a numpy Generator, draws small random inputs/targets,
initializes the layer through its own constructor and returns a LayerCase.
Layers are chained into an L2 loss unless the unit under test is itself a
loss or a regularizer.
"""
from functools import partial

import numpy as np

from .gradient_check import LayerCase
from .linear_layer import affine_t
from .activation_layer import relu_t, sigmoid_t, tanh_t, softmax_t
from .conv_layer import conv2d_t, conv2d_builtin_t, conv2d_simple_t
from .pool_layer import max_pool2d_t, max_pool2d_builtin_t, max_pool2d_simple_t
from .loss_layer import l1_loss_t, l2_loss_t, log_loss_t, cross_entropy_loss_t
from .regularizer import l1_reg_t, l2_reg_t


def _name(layer_cls):
    return layer_cls.__name__[:-len("_t")]


def _l2_case(name, layer, X, y, param_names, check):
    """layer -> l2 loss against y; params are X plus the named layer attributes."""
    loss = l2_loss_t()
    params = {"X": X}
    params.update({p: getattr(layer, p) for p in param_names})

    def loss_fn():
        return loss.forward(layer.forward(X), y)

    def grads():
        loss_fn()
        layer.zero_grad()
        g = {"X": layer.backward(loss.backward())}
        g.update({p: getattr(layer, "d" + p) for p in param_names})
        return g

    return LayerCase(name, params, loss_fn, grads, check)


def affine_case(rng, N=3, D=100, M=10):
    X = rng.normal(size=(N, D))
    y = rng.normal(size=(N, M))
    layer = affine_t(D, M, rng=rng)
    return _l2_case("affine", layer, X, y, ("W", "b"), ("X", "W", "b"))


def conv2d_case(rng, layer_cls=conv2d_t, N=2, C=2, Hin=3, Win=3, F=2, Hf=3, Wf=3, stride=1, pad=1):
    X = rng.normal(size=(N, C * Hin * Win))
    layer = layer_cls(C, Hin, Win, F, Hf, Wf, stride=stride, pad=pad, rng=rng)
    y = rng.normal(size=(N, F * layer.Hout * layer.Wout))
    return _l2_case(_name(layer_cls), layer, X, y, ("W", "b"), ("X", "W", "b"))


def max_pool2d_case(rng, layer_cls=max_pool2d_t, N=2, C=2, Hin=4, Win=4, Hf=2, Wf=2, stride=2, pad=0):
    X = rng.normal(size=(N, C * Hin * Win))
    layer = layer_cls(C, Hin, Win, Hf, Wf, stride=stride, pad=pad)
    y = rng.normal(size=(N, C * layer.Hout * layer.Wout))
    return _l2_case(_name(layer_cls), layer, X, y, (), ("X",))


def activation_case(rng, layer_cls=relu_t, N=3, M=10):
    X = rng.normal(size=(N, M))
    y = rng.normal(size=(N, M))
    return _l2_case(_name(layer_cls), layer_cls(), X, y, (), ("X",))


def _loss_case(name, loss, pred, y):
    def loss_fn():
        return loss.forward(pred, y)

    def grads():
        loss_fn()
        return {"pred": loss.backward()}

    return LayerCase(name, {"pred": pred, "y": y}, loss_fn, grads, ("pred",))


def l1_loss_case(rng, N=3, M=10):
    return _loss_case("l1_loss", l1_loss_t(), rng.normal(size=(N, M)), rng.normal(size=(N, M)))


def l2_loss_case(rng, N=3, M=10):
    return _loss_case("l2_loss", l2_loss_t(), rng.normal(size=(N, M)), rng.normal(size=(N, M)))


def log_loss_case(rng, N=20):
    # keep probabilities away from 0 and 1 so pred +- h stays inside the domain
    pred = rng.uniform(0.05, 0.95, size=(N, 1))
    y = (rng.uniform(size=(N, 1)) > 0.5).astype(np.float64)
    return _loss_case("log_loss", log_loss_t(), pred, y)


def cross_entropy_case(rng, N=3, K=10):
    pred = rng.uniform(0.01, 1.0, size=(N, K))
    pred /= pred.sum(axis=1, keepdims=True)
    y = rng.uniform(size=(N, K))
    y /= y.sum(axis=1, keepdims=True)
    return _loss_case("cross_entropy", cross_entropy_loss_t(), pred, y)


def reg_case(rng, reg_cls=l2_reg_t, D=10, M=5, lam=0.01):
    X = rng.normal(size=(D, M))
    reg = reg_cls(lam)

    def loss_fn():
        return reg.forward(X)

    def grads():
        loss_fn()
        return {"X": reg.backward()}

    return LayerCase(_name(reg_cls), {"X": X}, loss_fn, grads, ("X",))


CASES = {
    "affine": affine_case,
    "conv2d": conv2d_case,
    "conv2d_builtin": partial(conv2d_case, layer_cls=conv2d_builtin_t),
    "conv2d_simple": partial(conv2d_case, layer_cls=conv2d_simple_t),
    "max_pool2d": max_pool2d_case,
    "max_pool2d_builtin": partial(max_pool2d_case, layer_cls=max_pool2d_builtin_t),
    "max_pool2d_simple": partial(max_pool2d_case, layer_cls=max_pool2d_simple_t),
    "relu": partial(activation_case, layer_cls=relu_t),
    "sigmoid": partial(activation_case, layer_cls=sigmoid_t),
    "tanh": partial(activation_case, layer_cls=tanh_t),
    "softmax": partial(activation_case, layer_cls=softmax_t),
    "l1_loss": l1_loss_case,
    "l2_loss": l2_loss_case,
    "log_loss": log_loss_case,
    "cross_entropy": cross_entropy_case,
    "l1_reg": partial(reg_case, reg_cls=l1_reg_t),
    "l2_reg": partial(reg_case, reg_cls=l2_reg_t),
}
