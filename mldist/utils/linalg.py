"""Linear algebra utilities for mldist.

Provides the positive-definite constraint applied to covariance matrices
produced by maximum-likelihood training.
"""

import numpy as np
from numpy.typing import NDArray


def positive_definite_constraint(A: NDArray, *, eps: float = 1e-10) -> NDArray:
    r"""
    Lift the spectrum of a symmetric matrix so it is positive definite.

    If the smallest eigenvalue :math:`\lambda_{\min}` of :math:`A` is below
    ``eps``, returns :math:`A + (\varepsilon - \lambda_{\min}) I`; otherwise
    returns :math:`A` unchanged (symmetrized).

    Parameters
    ----------
    A : ndarray, shape (d, d)
        Approximately symmetric matrix, e.g. a sample covariance.
    eps : float, optional
        Smallest eigenvalue allowed in the result. Default ``1e-10``.

    Returns
    -------
    A_pd : ndarray, shape (d, d)
        Symmetric matrix whose smallest eigenvalue is at least ``eps``
        (up to rounding).

    Notes
    -----
    Only used on covariances estimated from data, where a rank-deficient
    sample (``n <= d`` or collinear columns) would otherwise leave the
    distribution without a Cholesky factor. Covariances assigned directly by
    the caller are never altered.

    Examples
    --------
    >>> import numpy as np
    >>> from mldist.utils import positive_definite_constraint
    >>> A = np.array([[1.0, 1.0], [1.0, 1.0]])
    >>> np.linalg.eigvalsh(positive_definite_constraint(A))[0] > 0
    True
    """
    A = (A + A.T) / 2
    if A.shape[0] == 0:
        return A
    min_eig = np.linalg.eigvalsh(A)[0]
    if min_eig < eps:
        A = A + (eps - min_eig) * np.eye(A.shape[0], dtype=A.dtype)
    return A
