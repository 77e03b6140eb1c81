"""
Tests for the cache infrastructure on Distribution base class.

Tests that:
- _fitted flag works correctly
- _check_fitted() raises before fitting, passes after
- _invalidate_cache() clears cached_property values
- _cached_attrs inheritance works for subclasses
- concrete distributions drop their cached factors when parameters change
"""

from functools import cached_property

import numpy as np
import pytest

from mldist.base import Distribution, check_random_state
from mldist import (
    GaussianDistribution,
    DiagonalGaussianDistribution,
    LaplaceDistribution,
)


# ============================================================================
# Minimal concrete subclass for testing
# ============================================================================

class _MockDistribution(Distribution):
    """Minimal concrete Distribution for testing cache infrastructure."""

    _cached_attrs = Distribution._cached_attrs + ('expensive_value',)

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._data = None
        self._compute_count = 0  # Track how many times expensive_value is computed

    @property
    def d(self):
        return 1 if self._fitted else 0

    @cached_property
    def expensive_value(self) -> float:
        """Simulates an expensive derived computation."""
        self._compute_count += 1
        return self._data * 2.0

    def set_data(self, value: float):
        self._data = value
        self._fitted = True
        self._invalidate_cache()

    def _set_from_classical(self, *, value):
        self.set_data(value)

    def _compute_classical_params(self):
        return {'value': self._data}

    def logpdf(self, x):
        X, single = self._as_observations(x)
        return self._format_result(np.zeros(X.shape[0]), single)

    def rvs(self, size=None, random_state=None):
        return np.zeros(size or 1)

    def fit(self, X, y=None, sample_weight=None):
        X, _ = self._as_training_data(X, sample_weight)
        self.set_data(float(np.mean(X)))
        return self

    def _get_state(self):
        return {'value': self._data}

    def _set_state(self, state):
        self.set_data(state['value'])


class _MockChild(_MockDistribution):
    """Child class that extends _cached_attrs."""

    _cached_attrs = _MockDistribution._cached_attrs + ('another_value',)

    @cached_property
    def another_value(self) -> float:
        return self._data ** 2


# ============================================================================
# Tests
# ============================================================================

class TestFittedFlag:
    def test_initially_not_fitted(self):
        dist = _MockDistribution()
        assert dist._fitted is False

    def test_fitted_after_set_data(self):
        dist = _MockDistribution()
        dist.set_data(5.0)
        assert dist._fitted is True

    def test_fitted_after_fit(self):
        dist = _MockDistribution()
        result = dist.fit(np.array([1.0, 2.0, 3.0]))
        assert dist._fitted is True
        assert result is dist  # fit returns self

    def test_from_classical_params_sets_fitted(self):
        dist = _MockDistribution.from_classical_params(value=3.0)
        assert dist._fitted is True
        assert dist.classical_params == {'value': 3.0}


class TestCheckFitted:
    def test_raises_when_not_fitted(self):
        dist = _MockDistribution()
        with pytest.raises(ValueError, match="parameters not set"):
            dist._check_fitted()

    def test_passes_when_fitted(self):
        dist = _MockDistribution()
        dist.set_data(5.0)
        dist._check_fitted()  # Should not raise

    def test_error_includes_class_name(self):
        dist = _MockDistribution()
        with pytest.raises(ValueError, match="_MockDistribution"):
            dist._check_fitted()

    @pytest.mark.parametrize("cls", [
        GaussianDistribution, DiagonalGaussianDistribution, LaplaceDistribution,
    ])
    def test_empty_distribution_cannot_evaluate(self, cls):
        with pytest.raises(ValueError, match=cls.__name__):
            cls().logpdf([0.0])


class TestInvalidateCache:
    def test_cached_property_computed_once(self):
        dist = _MockDistribution()
        dist.set_data(5.0)
        assert dist._compute_count == 0

        # First access computes
        val1 = dist.expensive_value
        assert val1 == 10.0
        assert dist._compute_count == 1

        # Second access uses cache
        val2 = dist.expensive_value
        assert val2 == 10.0
        assert dist._compute_count == 1

    def test_set_data_invalidates_cache(self):
        dist = _MockDistribution()
        dist.set_data(5.0)
        assert dist.expensive_value == 10.0

        dist.set_data(7.0)
        assert dist.expensive_value == 14.0
        assert dist._compute_count == 2

    def test_invalidate_idempotent_no_cache(self):
        """_invalidate_cache is safe to call when no cached values exist."""
        dist = _MockDistribution()
        dist._invalidate_cache()
        dist._invalidate_cache()

    def test_classical_params_invalidated(self):
        dist = _MockDistribution.from_classical_params(value=1.0)
        assert dist.classical_params['value'] == 1.0
        dist.set_classical_params(value=2.0)
        assert dist.classical_params['value'] == 2.0


class TestCachedAttrsInheritance:
    def test_base_distribution_cached_attrs(self):
        assert Distribution._cached_attrs == ('classical_params',)

    def test_child_extends_cached_attrs(self):
        assert 'expensive_value' in _MockChild._cached_attrs
        assert 'another_value' in _MockChild._cached_attrs
        assert 'classical_params' in _MockChild._cached_attrs

    def test_child_invalidates_both(self):
        dist = _MockChild()
        dist.set_data(5.0)
        assert dist.expensive_value == 10.0
        assert dist.another_value == 25.0

        dist.set_data(3.0)
        assert dist.expensive_value == 6.0
        assert dist.another_value == 9.0


# ============================================================================
# Cached factors on concrete distributions
# ============================================================================

class TestGaussianCacheInvalidation:
    def test_cov_assignment_refreshes_factors(self):
        g = GaussianDistribution(2)
        assert g.log_det_cov == pytest.approx(0.0)
        g.cov = np.array([[2.0, 0.0], [0.0, 2.0]])
        assert g.log_det_cov == pytest.approx(2 * np.log(2.0))
        np.testing.assert_allclose(g.inv_cov, 0.5 * np.eye(2))
        np.testing.assert_allclose(g.cov_lower @ g.cov_lower.T, g.cov)

    def test_fit_refreshes_factors(self):
        g = GaussianDistribution(2)
        _ = g.cov_lower
        rng = np.random.default_rng(0)
        g.fit(rng.normal(scale=3.0, size=(200, 2)))
        np.testing.assert_allclose(g.cov_lower @ g.cov_lower.T, g.cov)

    def test_diagonal_cov_assignment_refreshes_factors(self):
        g = DiagonalGaussianDistribution(3)
        assert g.log_det_cov == pytest.approx(0.0)
        g.cov = [2.0, 4.0, 8.0]
        np.testing.assert_allclose(g.inv_cov, [0.5, 0.25, 0.125])
        assert g.log_det_cov == pytest.approx(np.log(64.0))

    def test_mean_assignment_refreshes_classical_params(self):
        g = GaussianDistribution(2)
        _ = g.classical_params
        g.mean = [1.0, 2.0]
        np.testing.assert_array_equal(g.classical_params.mean, [1.0, 2.0])


# ============================================================================
# Observation handling and random state
# ============================================================================

class TestObservationShapes:
    def test_single_observation_gives_float(self):
        g = GaussianDistribution(2)
        assert isinstance(g.logpdf([0.0, 0.0]), float)

    def test_batch_gives_array(self):
        g = GaussianDistribution(2)
        assert g.logpdf(np.zeros((4, 2))).shape == (4,)

    def test_univariate_vector_is_batch(self):
        g = GaussianDistribution(1)
        assert g.logpdf([0.0, 1.0, 2.0]).shape == (3,)

    def test_dimension_mismatch_raises(self):
        g = GaussianDistribution(3)
        with pytest.raises(ValueError, match="3-dimensional"):
            g.logpdf([0.0, 1.0])
        with pytest.raises(ValueError):
            g.logpdf(np.zeros((5, 2)))

    def test_score_is_mean_logpdf(self):
        g = GaussianDistribution(2)
        X = np.random.default_rng(1).normal(size=(10, 2))
        assert g.score(X) == pytest.approx(np.mean(g.logpdf(X)))

    def test_rejects_integer_dtype(self):
        with pytest.raises(ValueError, match="floating"):
            GaussianDistribution(2, dtype=np.int64)


class TestRandomState:
    def test_seed_reproducible(self):
        a = GaussianDistribution(2, random_state=42).rvs(5)
        b = GaussianDistribution(2, random_state=42).rvs(5)
        np.testing.assert_array_equal(a, b)

    def test_call_override(self):
        g = GaussianDistribution(2, random_state=1)
        np.testing.assert_array_equal(g.rvs(3, random_state=7), g.rvs(3, random_state=7))

    def test_generator_passthrough(self):
        rng = np.random.default_rng(3)
        assert check_random_state(rng) is rng

    def test_invalid_random_state(self):
        with pytest.raises(TypeError):
            check_random_state("seed")
