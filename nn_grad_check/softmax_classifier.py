"""
Softmax classifier built from the layers in this package:

    scores = affine(X)        (N, D) -> (N, K)
    probs  = softmax(scores)
    loss   = cross_entropy(probs, Y) + l2_reg(W)

Trained with minibatch SGD (plain or Nesterov momentum), lr decayed once per epoch.
The number of classes comes from the labels unless --classes is given.

Usage:
    python -m nn_grad_check.softmax_classifier --train train.csv --test test.csv --out-dir model --fmt csv
Without --train, MNIST is downloaded through torchvision.
"""
import argparse
import os
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
import matplotlib.pyplot as plt
from sklearn.metrics import accuracy_score, confusion_matrix
from tqdm import trange

from .activation_layer import softmax_t
from .data import load_csv, load_mnist, one_hot, train_val_split
from .linear_layer import affine_t
from .loss_layer import cross_entropy_loss_t
from .matrix_io import FORMATS, write_matrix
from .optim import OPTIMIZERS, sgd, sgd_nesterov, sgd_nesterov_init
from .regularizer import l2_reg_t


@dataclass
class TrainConfig:
    epochs: int = 1
    batch_size: int = 50
    lr: float = 0.2
    mu: float = 0.9
    decay: float = 0.99
    lam: float = 5e-4
    seed: int = 42
    eval_every: int = 100
    optimizer: str = "nesterov"


def predict(X: np.ndarray, layer: affine_t) -> np.ndarray:
    return softmax_t().forward(layer.forward(X))


def evaluate(probs: np.ndarray, Y: np.ndarray) -> Tuple[float, float]:
    """Cross-entropy and accuracy of probs against one-hot Y."""
    loss = cross_entropy_loss_t().forward(probs, Y)
    acc = accuracy_score(Y.argmax(axis=1), probs.argmax(axis=1))
    return loss, float(acc)


def train(X: np.ndarray, Y: np.ndarray, Xval: np.ndarray, Yval: np.ndarray,
          cfg: Optional[TrainConfig] = None) -> Tuple[affine_t, Dict[str, List[float]]]:
    cfg = TrainConfig() if cfg is None else cfg
    N, D = X.shape
    if Y.shape[0] != N:
        raise ValueError(f"X has {N} rows but Y has {Y.shape[0]}")
    if cfg.optimizer not in OPTIMIZERS:
        raise ValueError(f"unknown optimizer {cfg.optimizer!r}, expected one of {OPTIMIZERS}")
    rng = np.random.default_rng(cfg.seed)

    l1 = affine_t(D, Y.shape[1], rng=rng)
    l2 = softmax_t()
    l3 = cross_entropy_loss_t()
    reg = l2_reg_t(cfg.lam)
    vW, vb = sgd_nesterov_init(l1.W), sgd_nesterov_init(l1.b)

    lr = cfg.lr
    iters = int(np.ceil(N / cfg.batch_size))
    hist = {"iter": [], "val_loss": [], "val_acc": []}
    t0 = time.time()
    for epoch in range(1, cfg.epochs + 1):
        for i in trange(iters, desc=f"epoch {epoch}"):
            beg = i * cfg.batch_size
            end = min(N, beg + cfg.batch_size)
            xb, yb = X[beg:end], Y[beg:end]

            # forward
            probs = l2.forward(l1.forward(xb))
            loss = l3.forward(probs, yb) + reg.forward(l1.W)

            # backward
            l1.zero_grad()
            l1.backward(l2.backward(l3.backward()))
            dW = l1.dW + reg.backward()

            if cfg.optimizer == "sgd":
                l1.W = sgd(l1.W, dW, lr)
                l1.b = sgd(l1.b, l1.db, lr)
            else:
                l1.W, vW = sgd_nesterov(l1.W, dW, lr, cfg.mu, vW)
                l1.b, vb = sgd_nesterov(l1.b, l1.db, lr, cfg.mu, vb)

            if (i + 1) % cfg.eval_every == 0:
                vloss, vacc = evaluate(predict(Xval, l1), Yval)
                hist["iter"].append((epoch - 1) * iters + i + 1)
                hist["val_loss"].append(vloss)
                hist["val_acc"].append(vacc)

        vloss, vacc = evaluate(predict(Xval, l1), Yval)
        print(f"epoch {epoch:3d} | train loss {loss:.4f} | val loss {vloss:.4f} | val acc {vacc:.4f} | lr {lr:.4g}")
        lr *= cfg.decay

    print(f"Done {cfg.epochs} epochs in {time.time() - t0:.1f}s.")
    return l1, hist


def plot_history(hist, out_dir):
    for key, label in (("val_loss", "val loss"), ("val_acc", "val accuracy")):
        plt.figure(figsize=(6, 4))
        plt.plot(hist["iter"], hist[key], marker='o')
        plt.xlabel('updates'); plt.ylabel(label); plt.title(f'{label} vs updates')
        plt.grid(True, alpha=0.3)
        plt.tight_layout()
        plt.savefig(os.path.join(out_dir, f'{key}_vs_updates.png'), dpi=150)
        plt.close()


def main(argv=None):
    ap = argparse.ArgumentParser(description="Train and evaluate a softmax classifier.")
    ap.add_argument("--train", default=None, help="CSV of label,pixel_1..pixel_n rows")
    ap.add_argument("--test", default=None, help="CSV for final evaluation")
    ap.add_argument("--out-dir", default="./softmax_model")
    ap.add_argument("--fmt", choices=FORMATS, default="csv")
    ap.add_argument("--epochs", type=int, default=TrainConfig.epochs)
    ap.add_argument("--batch-size", type=int, default=TrainConfig.batch_size)
    ap.add_argument("--lr", type=float, default=TrainConfig.lr)
    ap.add_argument("--seed", type=int, default=TrainConfig.seed)
    ap.add_argument("--optimizer", choices=OPTIMIZERS, default=TrainConfig.optimizer)
    ap.add_argument("--classes", type=int, default=None,
                    help="number of classes (default: largest label + 1)")
    args = ap.parse_args(argv)

    if args.train:
        X, y = load_csv(args.train)
        X, y, Xva, yva = train_val_split(X, y, rng=np.random.default_rng(args.seed))
        Xte, yte = load_csv(args.test) if args.test else (Xva, yva)
    else:
        X, y, Xte, yte = load_mnist()
        X, y, Xva, yva = train_val_split(X, y, rng=np.random.default_rng(args.seed))
    print("Train:", X.shape, "| Val:", Xva.shape, "| Test:", Xte.shape)
    K = args.classes if args.classes else int(max(y.max(), yva.max(), yte.max())) + 1

    cfg = TrainConfig(epochs=args.epochs, batch_size=args.batch_size, lr=args.lr, seed=args.seed,
                      optimizer=args.optimizer)
    layer, hist = train(X, one_hot(y, K), Xva, one_hot(yva, K), cfg)

    probs = predict(Xte, layer)
    loss, acc = evaluate(probs, one_hot(yte, K))
    print(f"Test loss {loss:.4f} | Test acc {acc * 100:.2f}%")
    print("Confusion matrix:")
    print(confusion_matrix(yte, probs.argmax(axis=1), labels=np.arange(K)))

    os.makedirs(args.out_dir, exist_ok=True)
    w_path = write_matrix(os.path.join(args.out_dir, "W"), layer.W, args.fmt)
    b_path = write_matrix(os.path.join(args.out_dir, "b"), layer.b, args.fmt)
    print("Saved", w_path, "and", b_path)
    if hist["iter"]:
        plot_history(hist, args.out_dir)


if __name__ == "__main__":
    main()
