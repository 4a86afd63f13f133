"""
Finite-difference gradient checking for the numpy layers in this package.

For every scalar entry p of a checked parameter tensor:

    dL/dp ~= (L(p + h) - L(p - h)) / (2h)

is compared against the analytical gradient from the layer's backward pass
via the relative error

    |a - n| / max(|a|, |n|, eps)

and classified as OK (<= 1e-4), WARNING (<= 1e-2) or ERROR. Findings are
printed and counted; a bad entry never stops the scan.

Run every registered case with:
    python -m nn_grad_check.gradient_check [--cases affine conv2d ...] [--h 1e-5]
"""
import argparse
import sys
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import numpy as np

H = 1e-5
WARN_THRESHOLD = 1e-4
ERROR_THRESHOLD = 1e-2
EPSILON = 1e-12


@dataclass
class GradCheckConfig:
    h: float = H
    warn_threshold: float = WARN_THRESHOLD
    error_threshold: float = ERROR_THRESHOLD
    epsilon: float = EPSILON
    seed: int = 42
    verbose: bool = True


@dataclass
class RelErrorRecord:
    analytical: float
    numerical: float
    loss_plus: float
    loss_minus: float
    rel_error: float


@dataclass
class LayerCase:
    """
    Adapter between one layer (or loss/regularizer) and the generic check.

    params: the Parameter Set; these arrays are the ones the layer reads, so
            probing them in place changes what loss() sees.
    loss:   full forward pass plus loss, returns a float.
    grads:  one forward + backward pass, returns analytical grads by name.
    check:  which entries of params to perturb.
    """
    name: str
    params: Dict[str, np.ndarray]
    loss: Callable[[], float]
    grads: Callable[[], Dict[str, np.ndarray]]
    check: Tuple[str, ...]


@dataclass
class GradCheckResult:
    name: str
    max_rel_error: Dict[str, float] = field(default_factory=dict)
    counts: Dict[str, int] = field(default_factory=lambda: {"OK": 0, "WARNING": 0, "ERROR": 0})

    @property
    def passed(self) -> bool:
        return self.counts["ERROR"] == 0


# ---------------------------------------------------------------------------
# Relative-error reporter
# ---------------------------------------------------------------------------

def rel_error(a: float, n: float, epsilon: float = EPSILON) -> float:
    # a NaN or Inf on either side can never match
    if not (np.isfinite(a) and np.isfinite(n)):
        return np.inf
    return abs(a - n) / max(abs(a), abs(n), epsilon)


def classify(rel: float, warn_threshold: float = WARN_THRESHOLD,
             error_threshold: float = ERROR_THRESHOLD) -> str:
    if not rel <= error_threshold:
        return "ERROR"
    if rel > warn_threshold:
        return "WARNING"
    return "OK"


def report(label: str, record: RelErrorRecord, config: Optional[GradCheckConfig] = None) -> str:
    """Print WARNING/ERROR findings and return the band. Never raises."""
    config = GradCheckConfig() if config is None else config
    band = classify(record.rel_error, config.warn_threshold, config.error_threshold)
    if not config.verbose or band == "OK":
        return band
    if band == "ERROR":
        print(f"ERROR: {label}: rel.err {record.rel_error:.3e} > {config.error_threshold:g} "
              f"| analytical {record.analytical:.6e} vs numerical {record.numerical:.6e} "
              f"| loss(+h) {record.loss_plus:.9e}, loss(-h) {record.loss_minus:.9e}")
    else:
        print(f"WARNING: {label}: rel.err {record.rel_error:.3e} > {config.warn_threshold:g} "
              f"| analytical {record.analytical:.6e} vs numerical {record.numerical:.6e}")
    return band


# ---------------------------------------------------------------------------
# Numeric differentiator
# ---------------------------------------------------------------------------

def probe_entries(loss_fn: Callable[[], float], P: np.ndarray,
                  h: float = H) -> Iterator[Tuple[tuple, float, float, float]]:
    """
    Yield (index, loss_plus, loss_minus, numeric) for every entry of P, row-major.

    P is perturbed in place and restored before the next entry (and on the way
    out if loss_fn raises), so only one scan may own P at a time.
    """
    if not (np.isfinite(h) and h > 0):
        raise ValueError(f"step size h must be a positive finite number, got {h}")
    for idx in np.ndindex(*P.shape):
        old = P[idx]
        try:
            P[idx] = old - h
            loss_minus = float(loss_fn())
            P[idx] = old + h
            loss_plus = float(loss_fn())
        finally:
            P[idx] = old
        yield idx, loss_plus, loss_minus, (loss_plus - loss_minus) / (2 * h)


def numeric_grad(loss_fn: Callable[[], float], params: Dict[str, np.ndarray],
                 name: str, h: float = H) -> np.ndarray:
    P = params[name]
    grad = np.zeros(P.shape)
    for idx, _, _, num in probe_entries(loss_fn, P, h):
        grad[idx] = num
    return grad


# ---------------------------------------------------------------------------
# Generic driver
# ---------------------------------------------------------------------------

def _validate(case: LayerCase, grads: Dict[str, np.ndarray]):
    for name in case.check:
        if name not in case.params:
            raise ValueError(f"{case.name}: no parameter named {name!r} to check")
        if name not in grads:
            raise ValueError(f"{case.name}: backward pass returned no gradient for {name!r}")
        P, dP = case.params[name], grads[name]
        if np.shape(dP) != P.shape:
            raise ValueError(f"{case.name}: gradient for {name!r} has shape {np.shape(dP)}, "
                             f"parameter has shape {P.shape}")
        if P.dtype != np.float64:
            raise ValueError(f"{case.name}: parameter {name!r} must be float64, got {P.dtype}")


def grad_check(case: LayerCase, config: Optional[GradCheckConfig] = None) -> GradCheckResult:
    config = GradCheckConfig() if config is None else config
    # snapshot so later forward passes cannot touch the analytical grads
    grads = {k: np.array(v, dtype=np.float64, copy=True) for k, v in case.grads().items()}
    _validate(case, grads)

    result = GradCheckResult(case.name)
    for name in case.check:
        worst = 0.0
        for idx, loss_plus, loss_minus, num in probe_entries(case.loss, case.params[name], config.h):
            an = float(grads[name][idx])
            rec = RelErrorRecord(an, num, loss_plus, loss_minus,
                                 rel_error(an, num, config.epsilon))
            band = report(f"{case.name} d{name}{list(idx)}", rec, config)
            result.counts[band] += 1
            if not rec.rel_error <= worst:
                worst = rec.rel_error
        result.max_rel_error[name] = worst

    if config.verbose:
        for name, worst in result.max_rel_error.items():
            print(f"  {case.name} {name}: max rel.err {worst:.3e}")
        print(f"{case.name}: {'PASS' if result.passed else 'FAIL'} "
              f"(ok {result.counts['OK']}, warning {result.counts['WARNING']}, "
              f"error {result.counts['ERROR']})")
    return result


def run_cases(names: Optional[List[str]] = None, config: Optional[GradCheckConfig] = None) -> List[GradCheckResult]:
    from .layer_cases import CASES

    config = GradCheckConfig() if config is None else config
    names = list(CASES) if not names else names
    unknown = [n for n in names if n not in CASES]
    if unknown:
        raise ValueError(f"unknown gradient-check case(s): {', '.join(unknown)}")

    results = []
    for name in names:
        # fresh generator per case so each case is reproducible on its own
        rng = np.random.default_rng(config.seed)
        results.append(grad_check(CASES[name](rng), config))
    return results


def main(argv=None):
    from .layer_cases import CASES

    ap = argparse.ArgumentParser(description="Finite-difference gradient checks for every layer.")
    ap.add_argument("--cases", nargs="*", choices=sorted(CASES), default=None,
                    help="subset of cases to run (default: all)")
    ap.add_argument("--h", type=float, default=H, help="finite-difference step size")
    ap.add_argument("--seed", type=int, default=42)
    ap.add_argument("--quiet", action="store_true", help="only print the final summary")
    args = ap.parse_args(argv)

    config = GradCheckConfig(h=args.h, seed=args.seed, verbose=not args.quiet)
    results = run_cases(args.cases, config)

    failed = [r.name for r in results if not r.passed]
    print(f"\n{len(results) - len(failed)}/{len(results)} cases passed")
    if failed:
        print("FAILED:", ", ".join(failed))
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
