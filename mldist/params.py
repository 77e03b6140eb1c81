"""
Frozen dataclass parameter containers for all distributions.

Each distribution's classical parameters are represented as a frozen dataclass
with ``slots=True`` for memory efficiency. This provides:

- **IDE autocompletion**: ``params.mean`` instead of ``params['mean']``
- **Immutability**: Prevents accidental reassignment of fitted parameters
- **Dict conversion**: ``dataclasses.asdict(params)`` when needed

Examples
--------
>>> from mldist.params import LaplaceParams
>>> p = LaplaceParams(mean=np.zeros(2), scale=2.5)
>>> p.scale
2.5
>>> p.scale = 3.0  # Raises FrozenInstanceError

Notes
-----
The ``frozen=True`` flag prevents attribute reassignment, but numpy arrays
are internally mutable (``params.mean[0] = 999`` still works at the Python
level). Distributions hand out copies, so editing them does not touch the
distribution they came from.
"""

from dataclasses import dataclass, fields
from typing import Tuple
import numpy as np


class _ParamsBase:
    """Mixin providing dict-style access on frozen dataclass params.

    Allows both ``params.mean`` and ``params['mean']`` access styles,
    plus ``items()``, ``keys()``, ``values()`` for iteration.
    """

    __slots__ = ()

    def __getitem__(self, key: str):
        try:
            return getattr(self, key)
        except AttributeError:
            raise KeyError(key)

    def __contains__(self, key: str) -> bool:
        return hasattr(self, key)

    def keys(self):
        """Yield field names."""
        return (f.name for f in fields(self))

    def values(self):
        """Yield field values."""
        return (getattr(self, f.name) for f in fields(self))

    def items(self):
        """Yield ``(name, value)`` pairs."""
        return ((f.name, getattr(self, f.name)) for f in fields(self))


@dataclass(frozen=True, slots=True)
class DiscreteParams(_ParamsBase):
    """
    Classical parameters for the Discrete distribution.

    Attributes
    ----------
    probabilities : tuple of ndarray
        One probability vector per dimension, each summing to one.
    """
    probabilities: Tuple[np.ndarray, ...]


@dataclass(frozen=True, slots=True)
class GaussianParams(_ParamsBase):
    """
    Classical parameters for the full-covariance Gaussian distribution.

    Attributes
    ----------
    mean : ndarray
        Mean vector :math:`\\mu`, shape ``(d,)``.
    cov : ndarray
        Covariance matrix :math:`\\Sigma`, shape ``(d, d)``.
    """
    mean: np.ndarray
    cov: np.ndarray


@dataclass(frozen=True, slots=True)
class DiagonalGaussianParams(_ParamsBase):
    """
    Classical parameters for the diagonal-covariance Gaussian distribution.

    Attributes
    ----------
    mean : ndarray
        Mean vector :math:`\\mu`, shape ``(d,)``.
    cov : ndarray
        Diagonal of the covariance matrix, shape ``(d,)``.
    """
    mean: np.ndarray
    cov: np.ndarray


@dataclass(frozen=True, slots=True)
class LaplaceParams(_ParamsBase):
    """
    Classical parameters for the Laplace distribution.

    Attributes
    ----------
    mean : ndarray
        Location vector :math:`\\mu`, shape ``(d,)``.
    scale : float
        Scale :math:`b > 0` shared by every dimension.
    """
    mean: np.ndarray
    scale: float


@dataclass(frozen=True, slots=True)
class GammaParams(_ParamsBase):
    """
    Classical parameters for the per-dimension Gamma distribution.

    Attributes
    ----------
    alpha : ndarray
        Shape parameters :math:`\\alpha_i > 0`, shape ``(d,)``.
    beta : ndarray
        Scale parameters :math:`\\beta_i > 0`, shape ``(d,)``.
    """
    alpha: np.ndarray
    beta: np.ndarray


@dataclass(frozen=True, slots=True)
class LinearRegressionParams(_ParamsBase):
    """
    Parameters of a fitted linear regression function.

    Attributes
    ----------
    parameters : ndarray
        Intercept followed by one coefficient per covariate.
    lambda_ : float
        Ridge regularization strength (0 for ordinary least squares).
    """
    parameters: np.ndarray
    lambda_: float


@dataclass(frozen=True, slots=True)
class RegressionParams(_ParamsBase):
    """
    Classical parameters for the Regression distribution.

    Attributes
    ----------
    rf : LinearRegressionParams
        The regression function.
    err_mean : float
        Mean of the residual Gaussian.
    err_var : float
        Variance of the residual Gaussian.
    """
    rf: LinearRegressionParams
    err_mean: float
    err_var: float
