import numpy as np
import pytest

from nn_grad_check.activation_layer import relu_t, sigmoid_t, softmax_t, tanh_t
from nn_grad_check.linear_layer import affine_t
from nn_grad_check.loss_layer import cross_entropy_loss_t, l1_loss_t, l2_loss_t, log_loss_t
from nn_grad_check.regularizer import l1_reg_t, l2_reg_t


def test_affine_shapes_and_init():
    layer = affine_t(4, 3, rng=np.random.default_rng(0))
    assert layer.W.shape == (4, 3)
    np.testing.assert_array_equal(layer.b, np.zeros((1, 3)))
    X = np.ones((5, 4))
    assert layer.forward(X).shape == (5, 3)
    dX = layer.backward(np.ones((5, 3)))
    assert dX.shape == (5, 4)
    np.testing.assert_allclose(layer.db, [[5.0, 5.0, 5.0]])


def test_affine_rejects_wrong_width():
    layer = affine_t(4, 3)
    with pytest.raises(ValueError, match="affine input has 5 features"):
        layer.forward(np.ones((2, 5)))


def test_backward_before_forward():
    with pytest.raises(AssertionError, match="Call forward"):
        relu_t().backward(np.ones((1, 1)))


def test_relu_masks_negatives():
    layer = relu_t()
    X = np.array([[-1.0, 0.0, 2.0]])
    np.testing.assert_array_equal(layer.forward(X), [[0.0, 0.0, 2.0]])
    np.testing.assert_array_equal(layer.backward(np.ones((1, 3))), [[0.0, 0.0, 1.0]])


def test_sigmoid_is_stable_at_extremes():
    out = sigmoid_t().forward(np.array([[-1000.0, 0.0, 1000.0]]))
    np.testing.assert_allclose(out, [[0.0, 0.5, 1.0]])
    assert np.all(np.isfinite(out))


def test_tanh_backward():
    layer = tanh_t()
    X = np.array([[0.0, 1.0]])
    layer.forward(X)
    np.testing.assert_allclose(layer.backward(np.ones((1, 2))), 1 - np.tanh(X) ** 2)


def test_softmax_rows_sum_to_one():
    scores = np.random.default_rng(0).normal(size=(4, 6)) * 50
    probs = softmax_t().forward(scores)
    np.testing.assert_allclose(probs.sum(axis=1), np.ones(4))
    assert np.all(probs >= 0)


def test_softmax_backward_of_constant_is_zero():
    layer = softmax_t()
    layer.forward(np.random.default_rng(1).normal(size=(2, 5)))
    np.testing.assert_allclose(layer.backward(np.ones((2, 5))), 0.0, atol=1e-15)


def test_loss_values():
    pred = np.array([[1.0, 2.0], [3.0, 4.0]])
    y = np.array([[0.0, 2.0], [3.0, 2.0]])
    assert l1_loss_t().forward(pred, y) == pytest.approx(1.5)
    assert l2_loss_t().forward(pred, y) == pytest.approx(1.25)


def test_log_loss_value():
    loss = log_loss_t().forward(np.array([[0.5], [0.5]]), np.array([[1.0], [0.0]]))
    assert loss == pytest.approx(np.log(2))


def test_cross_entropy_of_one_hot():
    pred = np.array([[0.25, 0.75]])
    y = np.array([[0.0, 1.0]])
    layer = cross_entropy_loss_t()
    assert layer.forward(pred, y) == pytest.approx(-np.log(0.75))
    np.testing.assert_allclose(layer.backward(), [[0.0, -1 / 0.75]])


def test_regularizers():
    X = np.array([[1.0, -2.0]])
    l1 = l1_reg_t(0.1)
    l2 = l2_reg_t(0.1)
    assert l1.forward(X) == pytest.approx(0.3)
    assert l2.forward(X) == pytest.approx(0.25)
    np.testing.assert_allclose(l1.backward(), [[0.1, -0.1]])
    np.testing.assert_allclose(l2.backward(), [[0.1, -0.2]])
    # parameter-free, so zero_grad leaves nothing behind
    for reg in (l1, l2):
        reg.zero_grad()
        assert reg.lam == 0.1
