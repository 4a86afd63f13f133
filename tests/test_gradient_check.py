"""Tests for the differentiator, the relative-error reporter and the generic driver."""

import numpy as np
import pytest

from nn_grad_check.gradient_check import (
    GradCheckConfig,
    LayerCase,
    RelErrorRecord,
    classify,
    grad_check,
    main,
    numeric_grad,
    probe_entries,
    rel_error,
    report,
    run_cases,
)


@pytest.mark.parametrize(
    "analytical,numerical,expected",
    [
        (1.0, 1.0001, "OK"),
        (1.0, 1.001, "WARNING"),
        (1.0, 1.02, "ERROR"),
        (1.0, 0.5, "ERROR"),
        (0.0, 0.0, "OK"),
        (np.nan, 1.0, "ERROR"),
        (np.inf, 1.0, "ERROR"),
        (1.0, np.nan, "ERROR"),
        (-np.inf, -np.inf, "ERROR"),
    ],
)
def test_classification_bands(analytical, numerical, expected):
    assert classify(rel_error(analytical, numerical)) == expected


def test_rel_error_is_zero_safe():
    assert rel_error(0.0, 0.0) == 0.0
    assert np.isfinite(rel_error(1e-300, -1e-300))
    assert rel_error(2.0, 1.0) == pytest.approx(0.5)


def test_non_finite_values_never_pass():
    assert rel_error(np.inf, np.inf) == np.inf
    assert rel_error(np.nan, np.nan) == np.inf
    assert classify(np.nan) == "ERROR"


def test_threshold_edges_are_inclusive_on_the_lower_band():
    assert classify(1e-4) == "OK"
    assert classify(1e-2) == "WARNING"
    assert classify(np.nextafter(1e-2, 1.0)) == "ERROR"


def test_report_prints_only_warnings_and_errors(capsys):
    ok = RelErrorRecord(1.0, 1.0, 2.0, 1.0, 0.0)
    err = RelErrorRecord(1.0, 0.5, 3.0, 2.0, 0.5)
    warn = RelErrorRecord(1.0, 1.001, 3.0, 2.0, 1e-3)

    assert report("ok entry", ok) == "OK"
    assert capsys.readouterr().out == ""

    assert report("bad entry", err) == "ERROR"
    out = capsys.readouterr().out
    assert out.startswith("ERROR: bad entry")
    assert "loss(+h) 3.000000000e+00" in out
    assert "loss(-h) 2.000000000e+00" in out

    assert report("meh entry", warn) == "WARNING"
    assert capsys.readouterr().out.startswith("WARNING: meh entry")


def test_report_quiet_mode(capsys):
    err = RelErrorRecord(1.0, 0.5, 3.0, 2.0, 0.5)
    assert report("bad", err, GradCheckConfig(verbose=False)) == "ERROR"
    assert capsys.readouterr().out == ""


def test_numeric_grad_of_quadratic():
    A = np.array([[1.0, -2.0, 3.0], [0.5, 0.0, -1.5]])
    params = {"A": A}
    g = numeric_grad(lambda: float(np.sum(params["A"] ** 2)), params, "A")
    np.testing.assert_allclose(g, 2 * A, rtol=1e-8, atol=1e-8)


def test_probe_round_trip_restores_bits():
    rng = np.random.default_rng(0)
    P = rng.normal(size=(4, 5))
    before = P.copy()
    for _ in range(2):
        for _ in probe_entries(lambda: float(np.sum(np.sin(P))), P):
            # the entry just probed is already restored when it is yielded
            np.testing.assert_array_equal(P, before)
    assert P.tobytes() == before.tobytes()


def test_probe_restores_when_forward_raises():
    P = np.array([[1.0, 2.0]])
    before = P.copy()
    calls = []

    def loss():
        calls.append(1)
        if len(calls) == 2:
            raise RuntimeError("forward failed")
        return 0.0

    with pytest.raises(RuntimeError, match="forward failed"):
        list(probe_entries(loss, P))
    assert P.tobytes() == before.tobytes()


@pytest.mark.parametrize("h", [0.0, -1e-5, np.nan, np.inf])
def test_probe_rejects_bad_step(h):
    with pytest.raises(ValueError, match="step size h must be a positive finite number"):
        list(probe_entries(lambda: 0.0, np.zeros((1, 1)), h=h))


def _quadratic_case(grad_scale=1.0, grad_shape=None):
    X = np.array([[1.0, 2.0], [-3.0, 0.5]])

    def loss():
        return float(0.5 * np.sum(X ** 2))

    def grads():
        g = grad_scale * X
        return {"X": g if grad_shape is None else np.zeros(grad_shape)}

    return LayerCase("quadratic", {"X": X}, loss, grads, ("X",))


def test_grad_check_passes_correct_gradient(capsys):
    result = grad_check(_quadratic_case())
    assert result.passed
    assert result.counts == {"OK": 4, "WARNING": 0, "ERROR": 0}
    assert result.max_rel_error["X"] < 1e-8
    assert "quadratic: PASS" in capsys.readouterr().out


def test_grad_check_keeps_scanning_after_errors(capsys):
    # every entry is off by 2x; all four must still be visited
    result = grad_check(_quadratic_case(grad_scale=2.0))
    assert not result.passed
    assert result.counts["ERROR"] == 4
    out = capsys.readouterr().out
    assert out.count("ERROR: quadratic dX") == 4
    assert "quadratic: FAIL" in out


def test_grad_check_shape_mismatch_is_fatal():
    with pytest.raises(ValueError, match="has shape"):
        grad_check(_quadratic_case(grad_shape=(3, 3)))


def test_grad_check_unknown_parameter_is_fatal():
    case = _quadratic_case()
    case.check = ("W",)
    with pytest.raises(ValueError, match="no parameter named 'W'"):
        grad_check(case)


def test_grad_check_respects_custom_step():
    result = grad_check(_quadratic_case(), GradCheckConfig(h=1e-3, verbose=False))
    assert result.passed


def test_run_cases_unknown_name():
    with pytest.raises(ValueError, match="unknown gradient-check case"):
        run_cases(["not_a_layer"])


def test_main_exit_code(capsys):
    assert main(["--cases", "affine", "l2_reg", "--quiet"]) == 0
    out = capsys.readouterr().out
    assert "2/2 cases passed" in out


def test_main_rejects_nan_step():
    with pytest.raises(ValueError, match="positive finite"):
        main(["--cases", "affine", "--h", "nan", "--quiet"])


def test_grad_check_fails_on_nan_backward(capsys):
    case = _quadratic_case()
    case.grads = lambda: {"X": np.full((2, 2), np.nan)}
    result = grad_check(case)
    assert not result.passed
    assert result.counts["ERROR"] == 4
    assert result.max_rel_error["X"] == np.inf
    assert "quadratic: FAIL" in capsys.readouterr().out


def test_grad_check_fails_on_inf_backward():
    case = _quadratic_case()
    case.grads = lambda: {"X": np.array([[1.0, np.inf], [-3.0, 0.5]])}
    result = grad_check(case, GradCheckConfig(verbose=False))
    assert not result.passed
    assert result.counts == {"OK": 3, "WARNING": 0, "ERROR": 1}
    assert result.max_rel_error["X"] == np.inf


def test_grad_check_fails_on_nan_loss():
    case = _quadratic_case()
    case.loss = lambda: float("nan")
    result = grad_check(case, GradCheckConfig(verbose=False))
    assert not result.passed
    assert result.counts["ERROR"] == 4
    assert result.max_rel_error["X"] == np.inf
