# misminer/predictions.py
# Repeated cross-validation of a scikit-learn classifier, collected as
# per-row vote counts, and the target rows derived from them.

from typing import List, Tuple

import numpy as np
from joblib import Parallel, delayed
from sklearn.base import clone
from sklearn.metrics import confusion_matrix
from sklearn.model_selection import KFold

from .data import Dataset
from .errors import ConfigError, DataError


def _fit_predict(classifier, X: np.ndarray, y: np.ndarray,
                 train_idx: np.ndarray, test_idx: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    model = clone(classifier)
    model.fit(X[train_idx], y[train_idx])
    return test_idx, np.asarray(model.predict(X[test_idx]), dtype=int)


def cross_val_votes(
    ds: Dataset,
    classifier,
    folds: int,
    iterations: int = 1,
    seed: int = 0,
    n_jobs: int = 1,
    verbose: bool = False,
) -> np.ndarray:
    """
    Returns votes[i, c]: how often row i was predicted as class c when held
    out, over `iterations` independently shuffled k-fold runs. Every
    (iteration, fold) pair is an independent job; a failing job aborts the run.
    """
    att = ds.class_attribute
    if att is None:
        raise ConfigError("cross validation needs a class attribute")
    if not att.is_nominal:
        raise ConfigError(f"class attribute '{att.name}' must be nominal")
    if folds < 2:
        raise ConfigError(f"need at least 2 folds, got {folds}")
    if folds > ds.n:
        raise ConfigError(f"cannot run {folds} folds over {ds.n} rows")
    if iterations < 1:
        raise ConfigError(f"need at least 1 iteration, got {iterations}")

    X = ds.feature_matrix()
    classes = ds.class_values()
    if np.isnan(classes).any():
        raise DataError(f"class attribute '{att.name}' has missing values")
    y = classes.astype(int)

    jobs = []
    for it in range(iterations):
        kf = KFold(n_splits=folds, shuffle=True, random_state=seed + it)
        for fold, (train_idx, test_idx) in enumerate(kf.split(X)):
            jobs.append((it, fold, train_idx, test_idx))
    if verbose:
        print(f"[cv] {len(jobs)} fits ({iterations} x {folds} folds), n_jobs={n_jobs}")

    results: List[Tuple[np.ndarray, np.ndarray]] = Parallel(n_jobs=n_jobs)(
        delayed(_fit_predict)(classifier, X, y, train_idx, test_idx)
        for _, _, train_idx, test_idx in jobs
    )

    votes = np.zeros((ds.n, att.num_values), dtype=int)
    for test_idx, preds in results:
        np.add.at(votes, (test_idx, preds), 1)
    return votes


def find_targets(votes: np.ndarray, true_classes, cutoff: float) -> np.ndarray:
    """Rows whose share of votes for their true class is below cutoff."""
    votes = np.asarray(votes, dtype=float)
    true_classes = np.asarray(true_classes, dtype=int)
    totals = votes.sum(axis=1)
    correct = votes[np.arange(len(votes)), true_classes]
    return correct / totals < cutoff


def vote_confusion_matrix(true_classes, votes: np.ndarray, num_classes: int) -> np.ndarray:
    """entry[i][j]: rows of true class i whose most-voted class is j."""
    predicted = np.argmax(votes, axis=1)
    return confusion_matrix(np.asarray(true_classes, dtype=int), predicted, labels=list(range(num_classes)))
