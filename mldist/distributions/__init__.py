"""Concrete distributions."""

from .discrete import DiscreteDistribution
from .gaussian import GaussianDistribution
from .diagonal_gaussian import DiagonalGaussianDistribution
from .laplace import LaplaceDistribution
from .gamma import GammaDistribution
from .regression import RegressionDistribution

__all__ = ['DiscreteDistribution', 'GaussianDistribution',
           'DiagonalGaussianDistribution', 'LaplaceDistribution',
           'GammaDistribution', 'RegressionDistribution']
