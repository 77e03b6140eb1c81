"""
Linear (ridge) regression function used by :class:`RegressionDistribution`.

Predictions are :math:`\\hat y = \\theta_0 + \\sum_j \\theta_j x_j`. The
parameter vector minimizes the (weighted) penalized squared error

.. math::
    \\sum_i w_i (y_i - \\theta_0 - x_i^T \\theta_{1:})^2
    + \\lambda \\|\\theta_{1:}\\|^2

which has the closed form solution of the normal equations

.. math::
    (\\tilde X^T W \\tilde X + \\lambda I') \\theta = \\tilde X^T W y

where :math:`\\tilde X` is ``X`` with a leading column of ones and
:math:`I'` is the identity with its intercept entry zeroed, so the
intercept is never penalized.
"""

from typing import Any, Dict, Optional
import logging
import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.linalg import lstsq, solve, LinAlgError

from mldist.params import LinearRegressionParams

logger = logging.getLogger(__name__)


class LinearRegression:
    """
    Least-squares linear regression with an intercept and optional ridge
    penalty.

    Parameters
    ----------
    lambda_ : float, optional
        Ridge regularization strength, ``>= 0``. Default 0 (ordinary least
        squares).
    dtype : numpy dtype, optional
        Floating type of the parameters.

    Attributes
    ----------
    parameters : ndarray, shape (1 + n_covariates,)
        Intercept followed by one coefficient per covariate. Empty before
        :meth:`fit`.

    Examples
    --------
    >>> X = np.array([[0.0], [1.0], [2.0]])
    >>> rf = LinearRegression().fit(X, [1.0, 3.0, 5.0])
    >>> rf.parameters
    array([1., 2.])
    """

    def __init__(self, lambda_: float = 0.0, *, dtype=np.float64):
        if lambda_ < 0:
            raise ValueError(f"lambda_ must be non-negative, got {lambda_}")
        self.lambda_ = float(lambda_)
        self._dtype = np.dtype(dtype)
        self._parameters = np.zeros(0, dtype=self._dtype)

    @property
    def parameters(self) -> NDArray:
        """Intercept followed by the covariate coefficients (a copy)."""
        return self._parameters.copy()

    @property
    def n_covariates(self) -> int:
        """Number of covariates the function was fitted on (0 when empty)."""
        return max(len(self._parameters) - 1, 0)

    @property
    def params(self) -> LinearRegressionParams:
        return LinearRegressionParams(parameters=self.parameters, lambda_=self.lambda_)

    def _check_fitted(self) -> None:
        if len(self._parameters) == 0:
            raise ValueError("LinearRegression: parameters not set. Use fit().")

    def _as_covariates(self, X: ArrayLike) -> NDArray:
        X = np.asarray(X, dtype=self._dtype)
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        if X.ndim != 2:
            raise ValueError(f"Covariates must be 1-D or 2-D, got {X.ndim} dimensions")
        return X

    def fit(self, X: ArrayLike, y: ArrayLike,
            sample_weight: Optional[ArrayLike] = None) -> 'LinearRegression':
        """
        Fit the parameters by (weighted, regularized) least squares.

        Parameters
        ----------
        X : array_like, shape (n_samples, n_covariates)
            Covariates, one sample per row.
        y : array_like, shape (n_samples,)
            Responses.
        sample_weight : array_like, shape (n_samples,), optional
            Non-negative weight of each sample.

        Returns
        -------
        self : LinearRegression
        """
        X = self._as_covariates(X)
        y = np.asarray(y, dtype=self._dtype).ravel()
        n = X.shape[0]
        if n == 0:
            raise ValueError("Training data is empty")
        if len(y) != n:
            raise ValueError(f"X has {n} samples but y has {len(y)}")

        A = np.hstack([np.ones((n, 1), dtype=self._dtype), X])
        if sample_weight is not None:
            w = np.asarray(sample_weight, dtype=self._dtype).ravel()
            if len(w) != n:
                raise ValueError(f"sample_weight has {len(w)} entries but data has {n} samples")
            if np.any(w < 0):
                raise ValueError("sample_weight must be non-negative")
            sqrt_w = np.sqrt(w)
            A = A * sqrt_w[:, None]
            y = y * sqrt_w

        if self.lambda_ == 0.0:
            theta, _, rank, _ = lstsq(A, y)
            if rank < A.shape[1]:
                logger.debug("Design matrix is rank deficient (rank %d of %d)",
                             rank, A.shape[1])
        else:
            penalty = self.lambda_ * np.eye(A.shape[1], dtype=self._dtype)
            penalty[0, 0] = 0.0
            try:
                theta = solve(A.T @ A + penalty, A.T @ y, assume_a='sym')
            except LinAlgError:
                theta, _, _, _ = lstsq(A.T @ A + penalty, A.T @ y)

        self._parameters = np.asarray(theta, dtype=self._dtype)
        return self

    def predict(self, X: ArrayLike) -> NDArray:
        """
        Predicted responses.

        Parameters
        ----------
        X : array_like, shape (n_samples, n_covariates)

        Returns
        -------
        y_pred : ndarray, shape (n_samples,)
        """
        self._check_fitted()
        X = self._as_covariates(X)
        if X.shape[1] != self.n_covariates:
            raise ValueError(
                f"Expected {self.n_covariates} covariates, got {X.shape[1]}"
            )
        return self._parameters[0] + X @ self._parameters[1:]

    def compute_error(self, X: ArrayLike, y: ArrayLike) -> float:
        """Mean squared error of the predictions on ``(X, y)``."""
        residuals = np.asarray(y, dtype=self._dtype).ravel() - self.predict(X)
        return float(np.mean(residuals ** 2))

    def to_dict(self) -> Dict[str, Any]:
        return {'parameters': self.parameters, 'lambda_': self.lambda_}

    @classmethod
    def from_dict(cls, state: Dict[str, Any], *, dtype=np.float64) -> 'LinearRegression':
        instance = cls(float(state['lambda_']), dtype=dtype)
        instance._parameters = np.asarray(state['parameters'], dtype=instance._dtype).ravel()
        return instance

    def __repr__(self) -> str:
        if len(self._parameters) == 0:
            return f"LinearRegression(lambda_={self.lambda_}, not fitted)"
        return f"LinearRegression(n_covariates={self.n_covariates}, lambda_={self.lambda_})"
