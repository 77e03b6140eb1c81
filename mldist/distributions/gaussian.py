"""
Multivariate Gaussian distribution with a full covariance matrix.

The density is

.. math::
    p(x|\\mu,\\Sigma) = (2\\pi)^{-d/2} |\\Sigma|^{-1/2}
    \\exp\\left(-\\frac{1}{2} (x-\\mu)^T \\Sigma^{-1} (x-\\mu)\\right)

and is always evaluated in log space:

.. math::
    \\log p(x) = -\\frac{1}{2}\\left(d\\log(2\\pi) + \\log|\\Sigma|
    + (x-\\mu)^T \\Sigma^{-1} (x-\\mu)\\right)

Internal storage
----------------
- ``_mean``: mean vector, shape ``(d,)``
- ``_cov``: covariance matrix, shape ``(d, d)``

Derived quantities ``cov_lower`` (lower Cholesky factor), ``log_det_cov`` and
``inv_cov`` are cached properties, computed on demand and invalidated whenever
the covariance is reassigned.
"""

from functools import cached_property
from typing import Optional, Tuple, Union
import logging
import warnings
import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.linalg import cholesky, solve_triangular, LinAlgError

from mldist.base import Distribution
from mldist.params import GaussianParams
from mldist.utils import positive_definite_constraint, weighted_mean

logger = logging.getLogger(__name__)

LOG_2PI = np.log(2 * np.pi)


class GaussianDistribution(Distribution):
    """
    Multivariate Gaussian distribution with full covariance.

    Parameters
    ----------
    d : int, optional
        Dimension. When given, the distribution starts with zero mean and
        identity covariance; otherwise it is empty (``d == 0``) until
        parameters are set or fitted.
    dtype : numpy dtype, optional
        Floating type of the parameters.
    random_state : None, int or Generator, optional
        Generator used by :meth:`rvs`.

    Attributes
    ----------
    _mean : ndarray
        Mean vector, shape ``(d,)``.
    _cov : ndarray
        Covariance matrix, shape ``(d, d)``.

    Examples
    --------
    >>> g = GaussianDistribution.from_classical_params(mean=[0.0], cov=[[1.0]])
    >>> g.pdf(0.0)
    0.3989422804014327

    >>> g = GaussianDistribution().fit(np.random.default_rng(0).normal(size=(500, 3)))
    >>> g.d
    3

    Notes
    -----
    The covariance is not checked for positive definiteness when it is
    assigned. A singular or indefinite covariance gives ``nan`` or ``inf``
    log-densities (with a ``RuntimeWarning``) and makes :meth:`rvs` raise.
    Covariances produced by :meth:`fit` are lifted to be positive definite.
    """

    _cached_attrs: Tuple[str, ...] = Distribution._cached_attrs + (
        'cov_lower', 'log_det_cov', 'inv_cov',
    )

    def __init__(self, d: Optional[int] = None, *, dtype=np.float64, random_state=None):
        super().__init__(dtype=dtype, random_state=random_state)
        self._mean = np.zeros(0, dtype=self._dtype)
        self._cov = np.zeros((0, 0), dtype=self._dtype)
        if d:
            if d < 0:
                raise ValueError(f"Dimension must be non-negative, got {d}")
            self._set_from_classical(
                mean=np.zeros(d, dtype=self._dtype), cov=np.eye(d, dtype=self._dtype)
            )

    @property
    def d(self) -> int:
        """Dimension of the distribution (0 when empty)."""
        return len(self._mean)

    # ============================================================
    # Parameters
    # ============================================================

    @property
    def mean(self) -> NDArray:
        """Mean vector :math:`\\mu` (a copy)."""
        return self._mean.copy()

    @mean.setter
    def mean(self, value: ArrayLike) -> None:
        self._check_fitted()
        value = np.asarray(value, dtype=self._dtype).ravel()
        if len(value) != self.d:
            raise ValueError(f"Expected a {self.d}-dimensional mean, got {len(value)}")
        self._mean = value.copy()
        self._invalidate_cache()

    @property
    def cov(self) -> NDArray:
        """Covariance matrix :math:`\\Sigma` (a copy)."""
        return self._cov.copy()

    @cov.setter
    def cov(self, value: ArrayLike) -> None:
        """Replace the covariance; every cached factor is invalidated."""
        self._check_fitted()
        cov = self._as_cov_matrix(value, self.d)
        self._cov = cov
        self._invalidate_cache()

    def _as_cov_matrix(self, cov: ArrayLike, d: int) -> NDArray:
        cov = np.asarray(cov, dtype=self._dtype)
        if cov.ndim == 0:
            cov = cov.reshape(1, 1)
        elif cov.ndim == 1:
            cov = np.diag(cov)
        if cov.shape != (d, d):
            raise ValueError(f"cov shape {cov.shape} doesn't match mean dimension {d}")
        if not np.allclose(cov, cov.T, rtol=1e-6, atol=1e-8):
            raise ValueError("Covariance matrix must be symmetric")
        return cov.copy()

    def _set_from_classical(self, *, mean, cov) -> None:
        """
        Set mean and covariance.

        Parameters
        ----------
        mean : array_like
            Mean vector (d,).
        cov : array_like
            Covariance matrix (d, d). A scalar or a length-``d`` vector is
            accepted for the univariate and diagonal cases.
        """
        mean = np.asarray(mean, dtype=self._dtype).ravel()
        self._cov = self._as_cov_matrix(cov, len(mean))
        self._mean = mean.copy()
        self._fitted = True
        self._invalidate_cache()

    def _compute_classical_params(self) -> GaussianParams:
        return GaussianParams(mean=self.mean, cov=self.cov)

    # ============================================================
    # Cached derived quantities
    # ============================================================

    @cached_property
    def cov_lower(self) -> Optional[NDArray]:
        """
        Lower Cholesky factor :math:`L` with :math:`\\Sigma = L L^T` (cached).

        ``None`` when the covariance is not positive definite.
        """
        self._check_fitted()
        try:
            return cholesky(self._cov, lower=True)
        except (LinAlgError, ValueError):
            warnings.warn(
                "Covariance matrix is not positive definite; densities will be "
                "degenerate",
                RuntimeWarning,
                stacklevel=3,
            )
            return None

    @cached_property
    def log_det_cov(self) -> float:
        """
        Log-determinant of the covariance matrix (cached).

        .. math::
            \\log|\\Sigma| = 2 \\sum_{i=1}^d \\log L_{ii}

        ``-inf`` for a singular and ``nan`` for an indefinite covariance.
        """
        L = self.cov_lower
        if L is not None:
            return float(2.0 * np.sum(np.log(np.diag(L))))
        sign, logdet = np.linalg.slogdet(self._cov)
        if sign > 0:
            return float(logdet)
        if sign == 0:
            return -np.inf
        return np.nan

    @cached_property
    def inv_cov(self) -> NDArray:
        """Inverse covariance :math:`\\Sigma^{-1}` (cached)."""
        L = self.cov_lower
        if L is not None:
            L_inv = solve_triangular(L, np.eye(self.d, dtype=L.dtype), lower=True)
            return L_inv.T @ L_inv
        return np.linalg.pinv(self._cov)

    # ============================================================
    # Density
    # ============================================================

    def _mahalanobis(self, X: NDArray) -> NDArray:
        diff = X - self._mean
        L = self.cov_lower
        if L is not None:
            # Solve L @ Z = diff.T => Z = L^{-1}(X - mu)^T, shape (d, n)
            Z = solve_triangular(L, diff.T, lower=True)
            return np.sum(Z ** 2, axis=0)
        return np.einsum('ij,jk,ik->i', diff, self.inv_cov, diff)

    def logpdf(self, x: ArrayLike) -> Union[float, NDArray[np.floating]]:
        """
        Log probability density.

        .. math::
            \\log p(x) = -\\frac{1}{2}\\left(d\\log(2\\pi) + \\log|\\Sigma|
            + (x-\\mu)^T \\Sigma^{-1}(x-\\mu)\\right)

        Parameters
        ----------
        x : array_like
            Shape ``(d,)`` for one sample, ``(n, d)`` for n samples.

        Returns
        -------
        logpdf : float or ndarray
        """
        self._check_fitted()
        X, single = self._as_observations(x)
        mahal = self._mahalanobis(X)
        result = -0.5 * (self.d * LOG_2PI + self.log_det_cov + mahal)
        return self._format_result(np.asarray(result, dtype=self._dtype), single)

    # ============================================================
    # Sampling
    # ============================================================

    def rvs(self, size: Optional[int] = None, random_state=None) -> NDArray:
        """
        Generate samples using :math:`X = \\mu + L Z` where :math:`Z \\sim N(0, I)`.

        Returns
        -------
        samples : ndarray
            Shape ``(d,)`` for ``size=None``, ``(size, d)`` otherwise.
        """
        self._check_fitted()
        L = self.cov_lower
        if L is None:
            raise ValueError("Cannot sample: covariance matrix is not positive definite")
        rng = self._get_rng(random_state)

        if size is None:
            z = rng.standard_normal(self.d)
            return (self._mean + L @ z).astype(self._dtype, copy=False)
        z = rng.standard_normal((int(size), self.d))
        return (self._mean + z @ L.T).astype(self._dtype, copy=False)

    # ============================================================
    # Fitting
    # ============================================================

    def fit(self, X: ArrayLike, y: Optional[ArrayLike] = None,
            sample_weight: Optional[ArrayLike] = None) -> 'GaussianDistribution':
        """
        Fit mean and covariance by maximum likelihood.

        Without weights the covariance is the bias-corrected sample
        covariance (divided by ``n - 1`` when ``n > 1``). With
        ``sample_weight`` it is the weighted population covariance

        .. math::
            \\hat\\Sigma = \\frac{\\sum_i w_i (x_i - \\hat\\mu)(x_i - \\hat\\mu)^T}
            {\\sum_i w_i},\\qquad
            \\hat\\mu = \\frac{\\sum_i w_i x_i}{\\sum_i w_i}

        so the two paths differ by a factor ``(n - 1) / n`` for equal weights.
        The estimate is then lifted to be positive definite.

        Parameters
        ----------
        X : array_like, shape (n_samples, d)
        y : ignored
        sample_weight : array_like, shape (n_samples,), optional

        Returns
        -------
        self : GaussianDistribution
        """
        X, w = self._as_training_data(X, sample_weight)
        n, d = X.shape

        mean = weighted_mean(X, w)
        diff = X - mean
        if w is None:
            cov = diff.T @ diff
            if n > 1:
                cov /= (n - 1)
        else:
            cov = (diff * w[:, None]).T @ diff / np.sum(w)

        cov = positive_definite_constraint(cov)
        logger.debug("Fitted %d-dimensional Gaussian on %d samples", d, n)

        self._mean = mean.astype(self._dtype, copy=False)
        self._cov = cov.astype(self._dtype, copy=False)
        self._fitted = True
        self._invalidate_cache()
        return self

    def entropy(self) -> float:
        """
        Differential entropy.

        .. math::
            H(X) = \\frac{d}{2}(1 + \\log(2\\pi)) + \\frac{1}{2}\\log|\\Sigma|
        """
        self._check_fitted()
        return 0.5 * self.d * (1 + LOG_2PI) + 0.5 * self.log_det_cov

    # ============================================================
    # Structural state
    # ============================================================

    def _get_state(self):
        return {'mean': self.mean, 'cov': self.cov}

    def _set_state(self, state) -> None:
        mean = np.asarray(state['mean'], dtype=self._dtype).ravel()
        cov = np.asarray(state['cov'], dtype=self._dtype).reshape(len(mean), len(mean))
        self._mean = mean.copy()
        self._cov = cov.copy()
        self._fitted = len(mean) > 0
        self._invalidate_cache()

    def __repr__(self) -> str:
        if not self._fitted:
            return "GaussianDistribution(not fitted)"
        if self.d == 1:
            return f"GaussianDistribution(μ={self._mean[0]:.4f}, σ²={self._cov[0, 0]:.4f})"
        if self.d <= 3:
            mu_str = ", ".join(f"{x:.4f}" for x in self._mean)
            return f"GaussianDistribution(μ=[{mu_str}], d={self.d})"
        return f"GaussianDistribution(d={self.d})"
