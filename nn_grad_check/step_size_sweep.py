"""
Max relative error of the centered difference as a function of h.

Truncation error (~h^2) dominates for large h and floating-point cancellation
(~eps_machine / h) for tiny h, so the curve is U-shaped on log-log axes.
For an affine layer into an L2 loss the truncation term is exactly zero and
only the right arm of the U is visible.
"""
import argparse
from typing import Callable, Dict, Sequence

import numpy as np
import matplotlib.pyplot as plt

from .gradient_check import EPSILON, LayerCase, probe_entries, rel_error
from .layer_cases import CASES

STEP_SIZES = (1e-1, 1e-2, 1e-3, 1e-4, 1e-5, 1e-6, 1e-7, 1e-8, 1e-9, 1e-10, 1e-11, 1e-12)


def sweep_step_sizes(build: Callable[[np.random.Generator], LayerCase],
                     hs: Sequence[float] = STEP_SIZES, seed: int = 42) -> Dict[float, float]:
    """Rebuild the same case for every h and record the worst entry over all checked params."""
    out = {}
    for h in hs:
        case = build(np.random.default_rng(seed))
        grads = {k: np.array(v, copy=True) for k, v in case.grads().items()}
        worst = 0.0
        for name in case.check:
            for idx, _, _, num in probe_entries(case.loss, case.params[name], h):
                worst = max(worst, rel_error(float(grads[name][idx]), num, EPSILON))
        out[h] = worst
    return out


def main(argv=None):
    ap = argparse.ArgumentParser(description="Plot finite-difference error against step size.")
    ap.add_argument("--cases", nargs="*", choices=sorted(CASES), default=["affine", "tanh", "sigmoid"])
    ap.add_argument("--seed", type=int, default=42)
    ap.add_argument("--out", default="step_size_sweep.png")
    args = ap.parse_args(argv)

    plt.figure(figsize=(6, 4))
    for name in args.cases:
        errs = sweep_step_sizes(CASES[name], seed=args.seed)
        for h, e in errs.items():
            print(f"{name:>14s}  h={h:.0e}  max rel.err {e:.3e}")
        plt.loglog(list(errs), [max(e, 1e-18) for e in errs.values()], marker='o', label=name)
    plt.xlabel('step size h'); plt.ylabel('max relative error')
    plt.title('Centered difference error vs h')
    plt.grid(True, which="both", ls="--", lw=0.5)
    plt.legend()
    plt.tight_layout()
    plt.savefig(args.out, dpi=150)
    print("Saved", args.out)


if __name__ == "__main__":
    main()
