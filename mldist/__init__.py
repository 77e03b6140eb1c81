"""
mldist: probability distributions for machine learning.

Discrete, Gaussian (full and diagonal covariance), Laplace, Gamma and
linear-regression distributions with a scipy/sklearn-style API.

Key features:
- ``pdf``, ``logpdf``, ``rvs`` and ``fit`` (optionally weighted by
  per-sample responsibilities) on ``(n_samples, d)`` arrays
- Cached derived quantities (Cholesky factors, log-determinants)
- Frozen dataclass parameter containers (mldist.params)
- XML, JSON and binary round trips (mldist.serialization)
"""

from mldist.distributions import (
    DiscreteDistribution,
    GaussianDistribution,
    DiagonalGaussianDistribution,
    LaplaceDistribution,
    GammaDistribution,
    RegressionDistribution,
)
from mldist.exceptions import MLDistError, ConvergenceError, SerializationError
from mldist.linear_model import LinearRegression
from mldist.params import (
    DiscreteParams,
    GaussianParams,
    DiagonalGaussianParams,
    LaplaceParams,
    GammaParams,
    LinearRegressionParams,
    RegressionParams,
)
from mldist import serialization

__version__ = "0.1.0"

__all__ = [
    # Distributions
    "DiscreteDistribution",
    "GaussianDistribution",
    "DiagonalGaussianDistribution",
    "LaplaceDistribution",
    "GammaDistribution",
    "RegressionDistribution",
    "LinearRegression",
    # Parameter dataclasses
    "DiscreteParams",
    "GaussianParams",
    "DiagonalGaussianParams",
    "LaplaceParams",
    "GammaParams",
    "LinearRegressionParams",
    "RegressionParams",
    # Errors
    "MLDistError",
    "ConvergenceError",
    "SerializationError",
    "serialization",
]
