"""Utility functions for mldist package."""

from .linalg import positive_definite_constraint
from .stats import weighted_mean, weighted_median

__all__ = [
    'positive_definite_constraint',
    'weighted_mean', 'weighted_median',
]
