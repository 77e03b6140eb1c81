"""
Multivariate Laplace distribution with independent dimensions and a shared scale.

.. math::
    p(x|\\mu, b) = \\prod_{i=1}^d \\frac{1}{2b}
    \\exp\\left(-\\frac{|x_i - \\mu_i|}{b}\\right)

so that

.. math::
    \\log p(x) = \\sum_{i=1}^d \\left(-\\log(2b) - \\frac{|x_i-\\mu_i|}{b}\\right)
"""

from typing import Optional, Union
import numpy as np
from numpy.typing import ArrayLike, NDArray

from mldist.base import Distribution
from mldist.params import LaplaceParams
from mldist.utils import weighted_median


class LaplaceDistribution(Distribution):
    """
    Laplace distribution located at ``mean`` with scale :math:`b > 0`.

    Parameters
    ----------
    d : int, optional
        Dimension. When given, starts with zero mean and unit scale.
    dtype : numpy dtype, optional
        Floating type of the parameters.
    random_state : None, int or Generator, optional
        Generator used by :meth:`rvs`.

    Examples
    --------
    >>> l = LaplaceDistribution.from_classical_params(mean=[0.0], scale=1.0)
    >>> l.pdf(0.0)
    0.5
    """

    def __init__(self, d: Optional[int] = None, *, dtype=np.float64, random_state=None):
        super().__init__(dtype=dtype, random_state=random_state)
        self._mean = np.zeros(0, dtype=self._dtype)
        self._scale = 1.0
        if d:
            if d < 0:
                raise ValueError(f"Dimension must be non-negative, got {d}")
            self._set_from_classical(mean=np.zeros(d), scale=1.0)

    @property
    def d(self) -> int:
        return len(self._mean)

    @property
    def mean(self) -> NDArray:
        """Location vector :math:`\\mu` (a copy)."""
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
    def scale(self) -> float:
        """Scale :math:`b`."""
        return self._scale

    @scale.setter
    def scale(self, value: float) -> None:
        self._scale = self._check_scale(value)
        self._invalidate_cache()

    @staticmethod
    def _check_scale(scale: float) -> float:
        scale = float(scale)
        if not scale > 0:
            raise ValueError(f"Scale must be positive, got {scale}")
        return scale

    def _set_from_classical(self, *, mean, scale) -> None:
        self._scale = self._check_scale(scale)
        self._mean = np.asarray(mean, dtype=self._dtype).ravel().copy()
        self._fitted = True
        self._invalidate_cache()

    def _compute_classical_params(self) -> LaplaceParams:
        return LaplaceParams(mean=self.mean, scale=self._scale)

    def logpdf(self, x: ArrayLike) -> Union[float, NDArray[np.floating]]:
        """Log density, summed over dimensions."""
        self._check_fitted()
        X, single = self._as_observations(x)
        b = self._scale
        result = -self.d * np.log(2 * b) - np.sum(np.abs(X - self._mean), axis=1) / b
        return self._format_result(np.asarray(result, dtype=self._dtype), single)

    def rvs(self, size: Optional[int] = None, random_state=None) -> NDArray:
        """Draw observations with independent Laplace coordinates."""
        self._check_fitted()
        rng = self._get_rng(random_state)
        shape = self.d if size is None else (int(size), self.d)
        return rng.laplace(self._mean, self._scale, size=shape).astype(self._dtype, copy=False)

    def fit(self, X: ArrayLike, y: Optional[ArrayLike] = None,
            sample_weight: Optional[ArrayLike] = None) -> 'LaplaceDistribution':
        """
        Maximum-likelihood estimate of the location and the shared scale.

        The location is the per-dimension (weighted) median and the scale the
        (weighted) mean absolute deviation from it, averaged over dimensions:

        .. math::
            \\hat b = \\frac{1}{d \\sum_j w_j} \\sum_j w_j \\sum_i |x_{ji} - \\hat\\mu_i|

        Returns
        -------
        self : LaplaceDistribution
        """
        X, w = self._as_training_data(X, sample_weight)
        n, d = X.shape

        mean = weighted_median(X, w)
        abs_dev = np.sum(np.abs(X - mean), axis=1)
        if w is None:
            scale = np.mean(abs_dev) / d
        else:
            scale = (w @ abs_dev) / (np.sum(w) * d)
        if not scale > 0:
            raise ValueError("All observations coincide with the median; scale would be zero")

        self._mean = mean.astype(self._dtype, copy=False)
        self._scale = float(scale)
        self._fitted = True
        self._invalidate_cache()
        return self

    def _get_state(self):
        return {'mean': self.mean, 'scale': self._scale}

    def _set_state(self, state) -> None:
        self._mean = np.asarray(state['mean'], dtype=self._dtype).ravel().copy()
        self._scale = self._check_scale(state['scale'])
        self._fitted = len(self._mean) > 0
        self._invalidate_cache()

    def __repr__(self) -> str:
        if not self._fitted:
            return "LaplaceDistribution(not fitted)"
        return f"LaplaceDistribution(d={self.d}, scale={self._scale:.4f})"
