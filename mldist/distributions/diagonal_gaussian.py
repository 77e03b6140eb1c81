"""
Multivariate Gaussian distribution restricted to a diagonal covariance.

The covariance is stored as the vector :math:`\\sigma^2 = (\\sigma_1^2, \\ldots,
\\sigma_d^2)` of its diagonal, so storage and every evaluation are
:math:`O(d)`:

.. math::
    \\log p(x) = -\\frac{1}{2}\\left(d\\log(2\\pi) + \\sum_i \\log\\sigma_i^2
    + \\sum_i \\frac{(x_i-\\mu_i)^2}{\\sigma_i^2}\\right)

Cached derived quantities: ``inv_cov`` (:math:`1/\\sigma_i^2`) and
``log_det_cov`` (:math:`\\sum_i \\log\\sigma_i^2`).
"""

from functools import cached_property
from typing import Optional, Tuple, Union
import logging
import numpy as np
from numpy.typing import ArrayLike, NDArray

from mldist.base import Distribution
from mldist.params import DiagonalGaussianParams
from mldist.utils import weighted_mean

logger = logging.getLogger(__name__)

LOG_2PI = np.log(2 * np.pi)

# Smallest variance a fit may produce, matching positive_definite_constraint.
MIN_FITTED_VARIANCE = 1e-10


class DiagonalGaussianDistribution(Distribution):
    """
    Gaussian distribution with diagonal covariance.

    Parameters
    ----------
    d : int, optional
        Dimension. When given, the distribution starts with zero mean and unit
        variances; otherwise it is empty (``d == 0``).
    dtype : numpy dtype, optional
        Floating type of the parameters.
    random_state : None, int or Generator, optional
        Generator used by :meth:`rvs`.

    Examples
    --------
    >>> g = DiagonalGaussianDistribution.from_classical_params(
    ...     mean=[2.0, 5.0], cov=[3.0, 1.0])
    >>> g.cov
    array([3., 1.])
    """

    _cached_attrs: Tuple[str, ...] = Distribution._cached_attrs + (
        'inv_cov', 'log_det_cov',
    )

    def __init__(self, d: Optional[int] = None, *, dtype=np.float64, random_state=None):
        super().__init__(dtype=dtype, random_state=random_state)
        self._mean = np.zeros(0, dtype=self._dtype)
        self._cov = np.zeros(0, dtype=self._dtype)
        if d:
            if d < 0:
                raise ValueError(f"Dimension must be non-negative, got {d}")
            self._set_from_classical(mean=np.zeros(d), cov=np.ones(d))

    @property
    def d(self) -> int:
        """Dimension of the distribution (0 when empty)."""
        return len(self._mean)

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
        """Diagonal of the covariance matrix (a copy)."""
        return self._cov.copy()

    @cov.setter
    def cov(self, value: ArrayLike) -> None:
        """Replace the variances; the cached inverse and log-determinant are dropped."""
        self._check_fitted()
        self._cov = self._as_cov_vector(value, self.d)
        self._invalidate_cache()

    def _as_cov_vector(self, cov: ArrayLike, d: int) -> NDArray:
        cov = np.asarray(cov, dtype=self._dtype)
        if cov.ndim == 2:
            if cov.shape != (d, d):
                raise ValueError(f"cov shape {cov.shape} doesn't match mean dimension {d}")
            cov = np.diag(cov)
        cov = cov.ravel()
        if len(cov) != d:
            raise ValueError(f"Expected {d} variances, got {len(cov)}")
        return cov.copy()

    def _set_from_classical(self, *, mean, cov) -> None:
        """
        Set mean and diagonal covariance.

        ``cov`` may be the vector of variances or a ``(d, d)`` matrix, in
        which case only its diagonal is kept.
        """
        mean = np.asarray(mean, dtype=self._dtype).ravel()
        self._cov = self._as_cov_vector(cov, len(mean))
        self._mean = mean.copy()
        self._fitted = True
        self._invalidate_cache()

    def _compute_classical_params(self) -> DiagonalGaussianParams:
        return DiagonalGaussianParams(mean=self.mean, cov=self.cov)

    @cached_property
    def inv_cov(self) -> NDArray:
        """Per-dimension inverse variances :math:`1/\\sigma_i^2` (cached)."""
        self._check_fitted()
        with np.errstate(divide='ignore'):
            return 1.0 / self._cov

    @cached_property
    def log_det_cov(self) -> float:
        """Log-determinant :math:`\\sum_i \\log\\sigma_i^2` (cached)."""
        self._check_fitted()
        with np.errstate(divide='ignore', invalid='ignore'):
            return float(np.sum(np.log(self._cov)))

    def logpdf(self, x: ArrayLike) -> Union[float, NDArray[np.floating]]:
        """
        Log probability density, :math:`O(d)` per observation.

        Parameters
        ----------
        x : array_like
            Shape ``(d,)`` for one sample, ``(n, d)`` for n samples.
        """
        self._check_fitted()
        X, single = self._as_observations(x)
        diff = X - self._mean
        mahal = np.sum(diff ** 2 * self.inv_cov, axis=1)
        result = -0.5 * (self.d * LOG_2PI + self.log_det_cov + mahal)
        return self._format_result(np.asarray(result, dtype=self._dtype), single)

    def rvs(self, size: Optional[int] = None, random_state=None) -> NDArray:
        """
        Generate samples :math:`\\mu + \\sigma \\odot z`, :math:`z \\sim N(0, I)`.
        """
        self._check_fitted()
        if np.any(self._cov < 0):
            raise ValueError("Cannot sample: negative variance")
        rng = self._get_rng(random_state)
        std = np.sqrt(self._cov)
        shape = self.d if size is None else (int(size), self.d)
        z = rng.standard_normal(shape)
        return (self._mean + std * z).astype(self._dtype, copy=False)

    def fit(self, X: ArrayLike, y: Optional[ArrayLike] = None,
            sample_weight: Optional[ArrayLike] = None) -> 'DiagonalGaussianDistribution':
        """
        Fit mean and per-dimension variances.

        Without weights the variances are the bias-corrected sample variances
        (divided by ``n - 1`` when ``n > 1``). With ``sample_weight`` they are
        the unbiased weighted variances

        .. math::
            \\hat\\sigma_j^2 = \\frac{\\sum_i w_i (x_{ij} - \\hat\\mu_j)^2}
            {V_1 - V_2 / V_1},\\qquad V_1 = \\sum_i w_i,\\; V_2 = \\sum_i w_i^2

        which equal the unweighted estimates whenever all weights are equal.
        If a single observation carries all the weight, the denominator falls
        back to :math:`V_1`. Fitted variances are floored at
        ``MIN_FITTED_VARIANCE`` so that constant columns keep a finite
        density; variances assigned directly are left as given.

        Parameters
        ----------
        X : array_like, shape (n_samples, d)
        y : ignored
        sample_weight : array_like, shape (n_samples,), optional

        Returns
        -------
        self : DiagonalGaussianDistribution
        """
        X, w = self._as_training_data(X, sample_weight)
        n, d = X.shape

        mean = weighted_mean(X, w)
        sq_diff = (X - mean) ** 2
        if w is None:
            cov = np.sum(sq_diff, axis=0)
            if n > 1:
                cov /= (n - 1)
        else:
            v1 = np.sum(w)
            v2 = np.sum(w ** 2)
            denom = v1 - v2 / v1
            if denom <= 0:
                denom = v1
            cov = (w @ sq_diff) / denom
        cov = np.maximum(cov, MIN_FITTED_VARIANCE)

        logger.debug("Fitted %d-dimensional diagonal Gaussian on %d samples", d, n)

        self._mean = mean.astype(self._dtype, copy=False)
        self._cov = cov.astype(self._dtype, copy=False)
        self._fitted = True
        self._invalidate_cache()
        return self

    def _get_state(self):
        return {'mean': self.mean, 'cov': self.cov}

    def _set_state(self, state) -> None:
        mean = np.asarray(state['mean'], dtype=self._dtype).ravel()
        cov = np.asarray(state['cov'], dtype=self._dtype).ravel()
        if len(cov) != len(mean):
            raise ValueError(f"Expected {len(mean)} variances, got {len(cov)}")
        self._mean = mean.copy()
        self._cov = cov.copy()
        self._fitted = len(mean) > 0
        self._invalidate_cache()

    def __repr__(self) -> str:
        if not self._fitted:
            return "DiagonalGaussianDistribution(not fitted)"
        return f"DiagonalGaussianDistribution(d={self.d})"
