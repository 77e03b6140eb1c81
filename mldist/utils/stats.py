"""
Per-column (optionally weighted) summary statistics used by the estimators.

Observations are rows, so every function reduces over axis 0 and returns one
value per column.
"""

from typing import Optional
import numpy as np
from numpy.typing import NDArray


def weighted_mean(X: NDArray, w: Optional[NDArray] = None) -> NDArray:
    """
    Per-column mean :math:`\\sum_i w_i x_i / \\sum_i w_i`.

    Parameters
    ----------
    X : ndarray, shape (n, d)
        Data matrix.
    w : ndarray, shape (n,), optional
        Non-negative weights. ``None`` gives the plain mean.

    Returns
    -------
    mean : ndarray, shape (d,)
    """
    if w is None:
        return np.mean(X, axis=0)
    total = np.sum(w)
    if total <= 0:
        raise ValueError("sample_weight sums to zero")
    return (w @ X) / total


def weighted_median(X: NDArray, w: Optional[NDArray] = None) -> NDArray:
    """
    Per-column median, weighted by ``w`` when given.

    The weighted median of a column is the smallest value whose cumulative
    weight (in sorted order) reaches half of the total weight.

    Parameters
    ----------
    X : ndarray, shape (n, d)
        Data matrix.
    w : ndarray, shape (n,), optional
        Non-negative weights. ``None`` gives ``np.median``.

    Returns
    -------
    median : ndarray, shape (d,)
    """
    if w is None:
        return np.median(X, axis=0)
    total = np.sum(w)
    if total <= 0:
        raise ValueError("sample_weight sums to zero")

    order = np.argsort(X, axis=0, kind='stable')
    sorted_X = np.take_along_axis(X, order, axis=0)
    cum_w = np.cumsum(w[order], axis=0)
    idx = np.argmax(cum_w >= 0.5 * total, axis=0)
    return sorted_X[idx, np.arange(X.shape[1])]
